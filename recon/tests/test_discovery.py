"""
recon/tests/test_discovery.py: Tests for whole-text reference discovery

Tests:
- Anchor extraction
- Mention detection with tolerance
- Pass ordering and short-circuit
- Prefix and substring passes
- Rescue budget
"""

import pytest

from recon.catalog.discovery import (
    TextDiscoveryEngine,
    extract_anchors,
    is_mentioned,
    reference_anchor,
)
from recon.catalog.index import CatalogIndex


@pytest.fixture
def engine(catalog_index):
    return TextDiscoveryEngine(catalog_index, scan_budget=200)


class TestAnchors:
    """Test digit-run anchors"""

    def test_extract_anchors(self):
        """Only runs of at least 5 digits are anchors"""
        assert extract_anchors('REF4441179TAILLE42PAGE12345') == {'4441179', '12345'}

    def test_reference_anchor(self):
        """Leading 6 digits, else the longest digit run of at least 5"""
        assert reference_anchor('77889900') == '778899'
        assert reference_anchor('A123456') == '123456'
        assert reference_anchor('AB12CD') is None


class TestIsMentioned:
    """Test the per-reference text check"""

    def test_verbatim(self):
        assert is_mentioned('4441179', 'COMMANDE4441179', tolerance=0)

    def test_look_alike(self):
        """A single look-alike substitution counts as a mention"""
        assert is_mentioned('4441179', 'REF4441I79', tolerance=0)

    def test_within_tolerance(self):
        """Windows of length L-1..L+1 are compared by edit distance"""
        assert is_mentioned('77889900', 'SAC778899XX', tolerance=2)
        assert not is_mentioned('77889900', 'SAC778899XX', tolerance=1)


class TestTextDiscoveryEngine:
    """Test TextDiscoveryEngine.discover / explain"""

    def test_strict_pass(self, engine):
        """Verbatim references are found by the first pass"""
        found = engine.discover('Commande: 444.1179 taille 42, puis 123 4567 en 38')

        assert found == {'4441179', '1234567'}

    def test_only_catalog_references(self, catalog_index, engine):
        """Discovery never returns a reference outside the catalog"""
        found = engine.discover('9999999 8888888 4441179 12345 313968 1')

        assert found
        assert found <= set(catalog_index.by_reference)

    def test_anchor_pass(self, engine):
        """Two edits away, found through the reference's own leading digits"""
        trace = engine.explain('Sac 778899XX')

        assert trace.found == ['77889900']
        assert trace.passes[0].count == 0
        assert trace.passes[1].name == 'anchor-reference<=2'
        assert trace.passes[1].count == 1
        assert len(trace.passes) == 2

    def test_short_circuit(self, engine):
        """A later pass does not run once an earlier one finds something"""
        found = engine.discover('4441179 and Sac 778899XX')

        assert found == {'4441179'}

    def test_rescue_pass(self, engine):
        """No anchor in the text: only the rescue pass can find the reference"""
        trace = engine.explain('Gilet 555OO0A')

        assert trace.anchors == []
        assert trace.found == ['555000A']
        assert trace.passes[-1].name == 'rescue<=2'

    def test_rescue_budget(self, catalog_index):
        """The rescue pass scans at most scan_budget entries"""
        engine = TextDiscoveryEngine(catalog_index, scan_budget=0)

        assert engine.discover('Gilet 555OO0A') == set()

    def test_empty_text(self, engine):
        """Empty or separator-only text finds nothing"""
        assert engine.discover(None) == set()
        assert engine.discover(' -- ') == set()

    def test_trace_to_dict(self, engine):
        """The trace serializes pass names, counts and samples"""
        data = engine.explain('4441179').to_dict()

        assert data['found'] == ['4441179']
        assert data['anchors'] == ['4441179']
        assert data['passes'][0] == {'pass': 'strict<=1', 'count': 1, 'references': ['4441179']}

    def test_prefix_pass(self):
        """A text anchor matching the start of a reference ends on the prefix pass"""
        engine = TextDiscoveryEngine(
            CatalogIndex.from_records([{'reference': '1234567'}], valid_lengths=(6, 7, 8, 9)),
        )
        trace = engine.explain('ref 12345XY')

        assert trace.found == ['1234567']
        assert [(p.name, p.count) for p in trace.passes] == [
            ('strict<=1', 0),
            ('anchor-reference<=2', 0),
            ('anchor-prefix<=2', 1),
        ]

    def test_substring_pass(self):
        """A text anchor inside a reference ends on the substring pass"""
        engine = TextDiscoveryEngine(
            CatalogIndex.from_records([{'reference': 'A1234568'}], valid_lengths=(6, 7, 8, 9)),
        )
        trace = engine.explain('x Q23456 8Z')

        assert trace.anchors == ['234568']
        assert trace.found == ['A1234568']
        assert [(p.name, p.count) for p in trace.passes] == [
            ('strict<=1', 0),
            ('anchor-reference<=2', 0),
            ('anchor-prefix<=2', 0),
            ('anchor-substring<=2', 1),
        ]
