"""
recon/cli/main.py: CLI entry point using Click

Commands:
- reconcile --items bon.json --text ocr.txt --out rows.csv
- reconcile-dir --dir /path/to/bons --out rows.csv
- discover --text ocr.txt
- export --items bon.json --target csv
- catalog-stats
"""

import click
from pathlib import Path
from datetime import datetime
import json
import logging

from recon import config

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _load_items(items_path: Path):
    """Read a JSON bon (or a plain list of lines); returns (items, embedded OCR text)."""
    from recon.bon_mapper import map_bon_to_items
    from recon.models import ExtractedItem

    with open(items_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    mapped = map_bon_to_items(data)
    if mapped.items:
        return mapped.items, mapped.ocr_text

    if isinstance(data, list):
        return [ExtractedItem.from_dict(row) for row in data if isinstance(row, dict)], None
    return [], mapped.ocr_text


def _read_text(text_path):
    if not text_path:
        return None
    return Path(text_path).read_text(encoding='utf-8')


def _reconciler(catalog):
    from recon.reconciler import OrderReconciler
    return OrderReconciler.from_path(Path(catalog) if catalog else None)


catalog_option = click.option(
    '--catalog', type=click.Path(exists=True), default=None,
    help='Catalog JSON (default: CATALOG_PATH)'
)


@click.group()
def cli():
    """OCR order reconciliation CLI"""
    pass


@cli.command()
@click.option('--items', 'items_path', required=True, type=click.Path(exists=True), help='JSON bon or list of extracted lines')
@click.option('--text', 'text_path', type=click.Path(exists=True), help='Raw OCR text of the order form')
@click.option('--out', 'output_path', type=click.Path(), help='Output CSV (prints JSON when omitted)')
@click.option('--no-discovery', is_flag=True, help='Skip whole-text reference discovery')
@catalog_option
def reconcile(items_path, text_path, output_path, no_discovery, catalog):
    """
    Reconcile one order against the catalog

    Example: reconcile --items bon.json --text ocr.txt --out rows.csv
    """
    from recon.export.csv_export import write_rows_csv
    from recon.reconciler import OrderReconciler
    from recon.catalog.index import CatalogIndex

    items, embedded_text = _load_items(Path(items_path))
    ocr_text = _read_text(text_path) or embedded_text

    reconciler = OrderReconciler(
        CatalogIndex(Path(catalog) if catalog else None),
        enable_text_discovery=False if no_discovery else None,
    )
    rows = reconciler.reconcile(items, ocr_text)

    review = sum(1 for row in rows if row.needs_review)
    discovered = sum(1 for row in rows if row.discovered_in_text)
    logger.info(f"{len(items)} line(s) in, {len(rows)} row(s) out ({review} to review, {discovered} discovered in text)")

    if output_path:
        write_rows_csv(rows, Path(output_path))
        logger.info(f"Rows written to: {output_path}")
    else:
        click.echo(json.dumps([row.to_dict() for row in rows], indent=2, ensure_ascii=False))


@cli.command('reconcile-dir')
@click.option('--dir', 'bon_dir', required=True, type=click.Path(exists=True), help='Directory containing JSON bons')
@click.option('--out', 'output_csv', required=True, type=click.Path(), help='Output CSV path for all rows')
@catalog_option
def reconcile_dir(bon_dir, output_csv, catalog):
    """Reconcile every JSON bon in a directory into one CSV."""
    from recon.export.csv_export import write_rows_csv
    from tqdm import tqdm

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    job_dir = config.BASE_DIR / "data" / "jobs" / f"reconcile_{timestamp}"
    job_dir.mkdir(parents=True, exist_ok=True)

    bon_paths = sorted(Path(bon_dir).glob('*.json'))
    if not bon_paths:
        logger.error(f"No JSON bons found in {bon_dir}")
        return

    logger.info(f"Found {len(bon_paths)} bons to process")
    reconciler = _reconciler(catalog)
    reconciler.warm_up()

    all_rows = []
    failures = []
    start_time = datetime.now()

    for bon_path in tqdm(bon_paths, desc="Reconciling bons"):
        try:
            items, ocr_text = _load_items(bon_path)
            text_path = bon_path.with_suffix('.txt')
            if text_path.exists():
                ocr_text = text_path.read_text(encoding='utf-8')
            all_rows.extend(reconciler.reconcile(items, ocr_text))
        except (OSError, ValueError) as e:
            logger.error(f"Error processing {bon_path}: {e}")
            failures.append({'path': str(bon_path), 'error': str(e)})

    duration = (datetime.now() - start_time).total_seconds()
    output_path = Path(output_csv)
    write_rows_csv(all_rows, output_path)

    metrics = {
        'job_id': job_dir.name,
        'total_bons': len(bon_paths),
        'failed_bons': len(failures),
        'rows': len(all_rows),
        'rows_to_review': sum(1 for row in all_rows if row.needs_review),
        'rows_discovered': sum(1 for row in all_rows if row.discovered_in_text),
        'total_duration_seconds': duration,
        'timestamp': timestamp,
        'output_csv': str(output_path),
    }
    with open(job_dir / "metrics.json", 'w') as f:
        json.dump(metrics, f, indent=2)
    if failures:
        with open(job_dir / "failures.json", 'w') as f:
            json.dump(failures, f, indent=2)

    logger.info(f"Reconciliation completed: {metrics['rows']} row(s), {metrics['rows_to_review']} to review")
    logger.info(f"Results: {output_path}")


@cli.command()
@click.option('--text', 'text_path', required=True, type=click.Path(exists=True), help='Raw OCR text file')
@catalog_option
def discover(text_path, catalog):
    """Show which catalog references each discovery pass finds in a text."""
    reconciler = _reconciler(catalog)
    trace = reconciler.explain_discovery(_read_text(text_path))
    click.echo(json.dumps(trace.to_dict(), indent=2))


@cli.command()
@click.option('--items', 'items_path', required=True, type=click.Path(exists=True), help='JSON bon or list of extracted lines')
@click.option('--text', 'text_path', type=click.Path(exists=True), help='Raw OCR text of the order form')
@click.option('--target', type=click.Choice(['csv', 'sheets']), default=None, help='Export target (default: EXPORT_TARGET)')
@click.option('--max-attempts', type=int, default=None, help='Attempt budget (default: VALIDATION_MAX_ATTEMPTS)')
@click.option('--no-agent', is_flag=True, help='Disable the correction agent')
@catalog_option
def export(items_path, text_path, target, max_attempts, no_agent, catalog):
    """
    Validate and submit one order, with automated correction between attempts

    Example: export --items bon.json --text ocr.txt --target csv
    """
    from recon.export import build_submitter
    from recon.llm.validation_agent import GroqValidationAgent

    items, embedded_text = _load_items(Path(items_path))
    ocr_text = _read_text(text_path) or embedded_text

    reconciler = _reconciler(catalog)
    coordinator = reconciler.coordinator(
        build_submitter(target),
        correction_agent=None if no_agent else GroqValidationAgent(reconciler.index),
        max_attempts=max_attempts,
    )

    logger.info("=" * 80)
    logger.info(f"Exporting {len(items)} line(s) from {items_path}")
    logger.info("=" * 80)

    outcome = coordinator.submit(items, ocr_text)
    for entry in outcome.history:
        logger.info(
            f"Attempt {entry.attempt}: {entry.error} "
            f"(agent applied={entry.agent_applied}, notes={entry.agent_notes}, agent error={entry.agent_error})"
        )

    if outcome.ok:
        logger.info(f"Export succeeded after {outcome.attempts} attempt(s): {outcome.result}")
    else:
        logger.error(f"Export failed ({outcome.kind.value}) after {outcome.attempts} attempt(s): {outcome.error}")

    click.echo(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False, default=str))
    if not outcome.ok:
        raise SystemExit(1)


@cli.command('catalog-stats')
@catalog_option
def catalog_stats(catalog):
    """Print catalog size, reference length distribution and model groups."""
    reconciler = _reconciler(catalog)
    stats = reconciler.index.stats()
    stats['settings'] = reconciler.settings()
    click.echo(json.dumps(stats, indent=2))


if __name__ == '__main__':
    cli()
