"""
recon/tests/test_cli.py: Tests for the click CLI
"""

import json

from click.testing import CliRunner

from recon import config
from recon.cli.main import cli


def _write_json(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


class TestCli:
    """Test CLI commands end to end against a catalog file"""

    def test_reconcile_prints_rows(self, temp_dir, catalog_file):
        items = _write_json(temp_dir / 'bon.json', {'items': [{'ref': 'l234567', 'qte': '2'}]})
        text = temp_dir / 'ocr.txt'
        text.write_text('Commande 1234567 et 444.1179', encoding='utf-8')

        result = CliRunner().invoke(cli, [
            'reconcile', '--items', str(items), '--text', str(text), '--catalog', str(catalog_file),
        ])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [row['reference_ocr'] for row in rows] == ['1234567', '4441179']
        assert rows[0]['needs_review'] is True
        assert rows[1]['discovered_in_text'] is True

    def test_reconcile_writes_csv(self, temp_dir, catalog_file):
        items = _write_json(temp_dir / 'lines.json', [{'reference_ocr': '4441179'}])
        out = temp_dir / 'rows.csv'

        result = CliRunner().invoke(cli, [
            'reconcile', '--items', str(items), '--out', str(out), '--catalog', str(catalog_file),
        ])

        assert result.exit_code == 0, result.output
        assert '4441179' in out.read_text(encoding='utf-8')

    def test_discover(self, temp_dir, catalog_file):
        text = temp_dir / 'ocr.txt'
        text.write_text('Sac 778899XX', encoding='utf-8')

        result = CliRunner().invoke(cli, ['discover', '--text', str(text), '--catalog', str(catalog_file)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)['found'] == ['77889900']

    def test_export_to_csv(self, temp_dir, catalog_file, monkeypatch):
        export_path = temp_dir / 'export.csv'
        monkeypatch.setattr(config, 'EXPORT_CSV_PATH', export_path)
        items = _write_json(temp_dir / 'lines.json', [{'reference_ocr': '4441179', 'quantity_raw': '1'}])

        result = CliRunner().invoke(cli, [
            'export', '--items', str(items), '--target', 'csv', '--no-agent', '--catalog', str(catalog_file),
        ])

        assert result.exit_code == 0, result.output
        outcome = json.loads(result.stdout)
        assert outcome['ok'] is True
        assert outcome['attempts'] == 1
        assert export_path.exists()

    def test_export_failure_exit_code(self, temp_dir, catalog_file, monkeypatch):
        monkeypatch.setattr(config, 'EXPORT_CSV_PATH', temp_dir / 'export.csv')
        items = _write_json(temp_dir / 'lines.json', [{'reference_ocr': '9999999'}])

        result = CliRunner().invoke(cli, [
            'export', '--items', str(items), '--target', 'csv', '--no-agent', '--catalog', str(catalog_file),
        ])

        assert result.exit_code == 1
        assert json.loads(result.stdout)['kind'] == 'preflight_invalid'

    def test_catalog_stats(self, catalog_file):
        result = CliRunner().invoke(cli, ['catalog-stats', '--catalog', str(catalog_file)])

        assert result.exit_code == 0, result.output
        stats = json.loads(result.stdout)
        assert stats['entries'] == 6
        assert stats['model_groups'] == 5
