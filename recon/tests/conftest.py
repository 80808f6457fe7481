"""
recon/tests/conftest.py: Pytest configuration and shared fixtures

Provides:
- A small in-memory catalog and its index
- A catalog file on disk
- Temporary file management
- Logging configuration
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path

import pytest

from recon.catalog.index import CatalogIndex
from recon.merging.line_merger import LineMerger

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture
def temp_dir():
    """
    Function-scoped temporary directory

    Yields:
        Path to temporary directory (cleaned up after test)
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path

    # Cleanup
    if temp_path.exists():
        shutil.rmtree(temp_path)


@pytest.fixture
def catalog_records():
    """
    Catalog records as found in catalog.json

    Includes one reference of invalid length and one duplicate, both of
    which the index must drop.
    """
    return [
        {'reference': '1234567', 'model': 'Chausson', 'color': 'Rose', 'size': '38', 'price': '19.99'},
        {'reference': '444.1179', 'model': 'Robe Fleurie', 'color': 'Bleu marine', 'size': '42', 'price': '39.9'},
        {'reference': '3139681', 'model': 'Pantalon', 'color': 'Noir', 'size': '44', 'price': '29.5'},
        {'reference': '3139682', 'model': 'Pantalon', 'color': 'Beige', 'size': '46', 'price': '29.5'},
        {'reference': '555000A', 'model': 'Gilet', 'color': 'Ecru', 'size': None, 'price': '24.00'},
        {'reference': '77889900', 'model': 'Sac cabas', 'color': 'Camel', 'size': 'TU', 'price': 15},
        {'reference': '12345', 'model': 'Trop court', 'color': 'Vert', 'size': '40', 'price': '10'},
        {'reference': '1234567', 'model': 'Doublon', 'color': 'Gris', 'size': '40', 'price': '11'},
    ]


@pytest.fixture
def catalog_index(catalog_records):
    """Index over catalog_records with the default reference lengths"""
    return CatalogIndex.from_records(catalog_records, valid_lengths=(6, 7, 8, 9))


@pytest.fixture
def catalog_file(temp_dir, catalog_records):
    """
    Write catalog_records to a JSON file

    Returns:
        Path to catalog.json
    """
    path = temp_dir / 'catalog.json'
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(catalog_records, f)
    return path


@pytest.fixture
def merger(catalog_index):
    """Line merger with discovery enabled and confusable matches flagged for review"""
    return LineMerger(
        catalog_index,
        enable_text_discovery=True,
        max_quantity=10,
        min_price=10,
        review_confusable=True,
    )


# Pytest hooks

def pytest_configure(config):
    """
    Pytest configuration hook

    Args:
        config: Pytest config object
    """
    # Register custom markers
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (several components wired together)")
