"""
recon/tests/test_matchers.py: Tests for reference and model matching

Tests:
- Exact, look-alike and edit-distance reference resolution
- Look-alike variant generation
- Model/color/size resolution
"""

import pytest

from recon.catalog.model_matcher import ModelMatcher
from recon.catalog.reference_matcher import (
    CONFUSABLE_DISTANCE,
    OCR_SUBSTITUTIONS,
    ReferenceMatcher,
    generate_confusable_variants,
)


@pytest.fixture
def reference_matcher(catalog_index):
    return ReferenceMatcher(catalog_index, max_distance=1)


@pytest.fixture
def model_matcher(catalog_index):
    return ModelMatcher(catalog_index, max_distance=2, min_color_length=4)


class TestConfusableVariants:
    """Test look-alike substitution variants"""

    def test_includes_original(self):
        """The reference itself is always a variant"""
        assert '1234567' in generate_confusable_variants('1234567')

    def test_single_substitutions(self):
        """Each position is substituted alone"""
        variants = generate_confusable_variants('O1')

        assert variants == {'O1', '01', 'OI', 'OL'}

    def test_substitution_table_is_read_only(self):
        """The look-alike table cannot be modified"""
        with pytest.raises(TypeError):
            OCR_SUBSTITUTIONS['X'] = ('Y',)


class TestReferenceMatcher:
    """Test ReferenceMatcher.resolve"""

    def test_every_entry_resolves_exactly(self, catalog_index, reference_matcher):
        """Each catalog reference resolves to itself with distance 0"""
        for entry in catalog_index.entries:
            match = reference_matcher.resolve(entry.reference)
            assert match.entry == entry
            assert match.distance == 0

    def test_separators_are_ignored(self, reference_matcher):
        """'444.1179' is the same reference as '4441179'"""
        match = reference_matcher.resolve('444.1179')

        assert match.entry.reference == '4441179'
        assert match.distance == 0

    def test_lowercase_l_for_one(self, reference_matcher):
        """'l234567' resolves to 1234567 through a look-alike substitution"""
        match = reference_matcher.resolve('l234567')

        assert match.entry.reference == '1234567'
        assert match.distance == CONFUSABLE_DISTANCE

    def test_letter_i_for_one(self, reference_matcher):
        """'4441I79' resolves to 4441179"""
        match = reference_matcher.resolve('4441I79')

        assert match.entry.reference == '4441179'
        assert match.distance == 0.5

    def test_every_single_substitution_resolves(self, catalog_index, reference_matcher):
        """Any one look-alike substitution of a catalog reference resolves with distance 0.5"""
        entry = catalog_index.get('1234567')
        for variant in generate_confusable_variants(entry.reference) - {entry.reference}:
            match = reference_matcher.resolve(variant)
            assert match.entry == entry, variant
            assert match.distance == 0.5

    def test_edit_distance_match(self, reference_matcher):
        """One substitution that is not a look-alike is an edit-distance match"""
        match = reference_matcher.resolve('4441178')

        assert match.entry.reference == '4441179'
        assert match.distance == 1

    def test_too_far(self, reference_matcher):
        """Nothing within max_distance"""
        match = reference_matcher.resolve('9999999')

        assert not match
        assert match.distance == float('inf')

    def test_empty_input(self, reference_matcher):
        """Empty and separator-only references never match"""
        assert not reference_matcher.resolve(None)
        assert not reference_matcher.resolve(' . ')

    def test_empty_catalog(self):
        """Matching against an empty catalog finds nothing"""
        from recon.catalog.index import CatalogIndex

        matcher = ReferenceMatcher(CatalogIndex.from_records([]))

        assert not matcher.resolve('1234567')


class TestModelMatcher:
    """Test ModelMatcher.resolve"""

    def test_model_and_color(self, model_matcher):
        """Exact model and color pick the entry"""
        match = model_matcher.resolve('Pantalon', 'Noir', '44')

        assert match.entry.reference == '3139681'
        assert match.distance == 0

    def test_color_picks_member(self, model_matcher):
        """Color selects among entries of the same model"""
        match = model_matcher.resolve('pantalon', 'beige')

        assert match.entry.reference == '3139682'
        assert match.distance == 0

    def test_color_one_edit_away(self, model_matcher):
        """A color within one edit still matches, at a cost"""
        match = model_matcher.resolve('Pantalon', 'Noire')

        assert match.entry.reference == '3139681'
        assert match.distance == 1

    def test_fuzzy_model_name(self, model_matcher):
        """A model name within max_distance selects the group"""
        match = model_matcher.resolve('Pantalom', 'Noir')

        assert match.entry.reference == '3139681'
        assert match.distance == 1

    def test_color_mismatch_rejects_all(self, model_matcher):
        """A readable color that matches no member gives no match"""
        assert not model_matcher.resolve('Pantalon', 'Rouge')

    def test_short_color_is_ignored(self, model_matcher):
        """Colors shorter than the minimum are not used"""
        match = model_matcher.resolve('Pantalon', 'Nr')

        assert match.entry.reference == '3139681'

    def test_size_breaks_ties(self, model_matcher):
        """Without a usable color, the size decides"""
        match = model_matcher.resolve('Pantalon', None, '46')

        assert match.entry.reference == '3139682'
        assert match.distance == 0

    def test_unknown_model(self, model_matcher):
        """No group within max_distance"""
        assert not model_matcher.resolve('Inconnu', 'Rose')
        assert not model_matcher.resolve(None, 'Rose')
