#!/usr/bin/env python3
"""
scripts/build_catalog.py: Build the catalog JSON from a CSV product export

The CSV needs a header row. Column names are matched loosely (case, accents
and spacing are ignored), so "Référence", "reference" and "REF" all work.
Rows whose reference does not have an accepted length are skipped and counted.

Usage: python scripts/build_catalog.py --csv products.csv --out data/catalog.json
"""

import sys
import csv
import json
import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from recon import config
from recon.catalog.normalize import normalize_key, normalize_reference

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Accepted header spellings per catalog field (compared after normalize_key)
COLUMN_ALIASES = {
    'reference': ['REFERENCE', 'REF', 'REFERENCEARTICLE', 'CODEARTICLE', 'SKU'],
    'model': ['MODEL', 'MODELE', 'DESIGNATION', 'ARTICLE'],
    'color': ['COLOR', 'COLORIS', 'COULEUR'],
    'size': ['SIZE', 'TAILLE', 'POINTURE'],
    'price': ['PRICE', 'PRIX', 'PRIXUNITAIRE', 'PU'],
}


def resolve_columns(header: List[str]) -> Dict[str, Optional[str]]:
    """Map each catalog field to the CSV column that carries it (or None)"""
    by_key = {normalize_key(name): name for name in header}
    columns = {}
    for field, aliases in COLUMN_ALIASES.items():
        columns[field] = next((by_key[alias] for alias in aliases if alias in by_key), None)
    return columns


def build_catalog(csv_path: Path, valid_lengths) -> Dict[str, object]:
    """Read the CSV and return the catalog records plus skip counters"""
    records = []
    seen = set()
    skipped_length = 0
    skipped_duplicate = 0

    with open(csv_path, 'r', encoding='utf-8-sig', newline='') as f:
        sample = f.read(4096)
        f.seek(0)
        dialect = csv.Sniffer().sniff(sample, delimiters=',;\t')
        reader = csv.DictReader(f, dialect=dialect)

        columns = resolve_columns(reader.fieldnames or [])
        if not columns['reference']:
            raise ValueError(f"No reference column found in {csv_path} (header: {reader.fieldnames})")
        logger.info(f"Column mapping: {columns}")

        for row in reader:
            reference = normalize_reference(row.get(columns['reference']))
            if not reference or len(reference) not in valid_lengths:
                skipped_length += 1
                continue
            if reference in seen:
                skipped_duplicate += 1
                continue
            seen.add(reference)

            record = {'reference': reference}
            for field in ('model', 'color', 'size', 'price'):
                column = columns[field]
                value = (row.get(column) or '').strip() if column else ''
                record[field] = value or None
            records.append(record)

    return {
        'records': records,
        'skipped_length': skipped_length,
        'skipped_duplicate': skipped_duplicate,
    }


def main():
    parser = argparse.ArgumentParser(description="Build catalog.json from a CSV product export")
    parser.add_argument("--csv", required=True, help="CSV product export")
    parser.add_argument("--out", default=str(config.CATALOG_PATH), help="Output catalog JSON")
    args = parser.parse_args()

    csv_path = Path(args.csv)
    if not csv_path.exists():
        logger.error(f"CSV not found: {csv_path}")
        sys.exit(1)

    result = build_catalog(csv_path, config.REFERENCE_LENGTHS)
    records = result['records']

    output_path = Path(args.out)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(records, f, indent=2, ensure_ascii=False)

    logger.info(f"Wrote {len(records)} entries to {output_path}")
    logger.info(
        f"Skipped {result['skipped_length']} row(s) with an invalid reference length "
        f"and {result['skipped_duplicate']} duplicate reference(s)"
    )


if __name__ == "__main__":
    main()
