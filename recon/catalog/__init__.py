"""
Catalog package: the product index and everything that matches against it.

This package provides:
- CatalogIndex: memoized catalog with reference and model lookups
- ReferenceMatcher: exact / OCR look-alike / edit-distance reference matching
- ModelMatcher: model + color + size matching when no reference is usable
- TextDiscoveryEngine: multi-pass reference discovery in raw OCR text
"""

from recon.catalog.index import CatalogIndex
from recon.catalog.reference_matcher import (
    ReferenceMatcher,
    OCR_SUBSTITUTIONS,
    generate_confusable_variants,
)
from recon.catalog.model_matcher import ModelMatcher
from recon.catalog.discovery import TextDiscoveryEngine, DiscoveryTrace, DiscoveryPass

__all__ = [
    'CatalogIndex',
    'ReferenceMatcher',
    'OCR_SUBSTITUTIONS',
    'generate_confusable_variants',
    'ModelMatcher',
    'TextDiscoveryEngine',
    'DiscoveryTrace',
    'DiscoveryPass',
]
