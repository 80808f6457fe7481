"""
Fuzzy catalog reference matching for OCR correction.

Catalog references are 6-9 character codes (e.g. "4441179", "313968A").
OCR often makes single-character errors that can be corrected by matching
against the catalog.

Common OCR errors:
- O/0 confusion: "444O179" -> "4440179"
- I/1/L confusion: "l234567" -> "1234567"
- S/5 and B/8 confusion: "5I3968B" -> "513968B"
- Z/2, G/6, E/3, A/4 look-alikes
"""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Set, Tuple

import Levenshtein

from recon import config
from recon.catalog.index import CatalogIndex
from recon.catalog.normalize import normalize_reference
from recon.models import CatalogMatch, NO_MATCH

logger = logging.getLogger(__name__)

CONFUSABLE_DISTANCE = 0.5

# Digit/letter look-alikes (character -> possible readings)
OCR_SUBSTITUTIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    'A': ('4',),
    'B': ('8',),
    'E': ('3',),
    'G': ('6',),
    'I': ('1', 'L'),
    'L': ('1', 'I'),
    'O': ('0',),
    'S': ('5',),
    'Z': ('2',),
    '0': ('O',),
    '1': ('I', 'L'),
    '2': ('Z',),
    '3': ('E',),
    '4': ('A',),
    '5': ('S',),
    '6': ('G',),
    '8': ('B',),
})


def generate_confusable_variants(
    reference: str,
    substitutions: Mapping[str, Iterable[str]] = OCR_SUBSTITUTIONS,
) -> Set[str]:
    """
    All strings one look-alike substitution away from reference (reference included).

    Examples:
        >>> sorted(generate_confusable_variants("O1"))
        ['01', 'O1', 'OI', 'OL']
    """
    variants = {reference}
    for i, char in enumerate(reference):
        for replacement in substitutions.get(char, ()):
            variants.add(reference[:i] + replacement + reference[i + 1:])
    return variants


class ReferenceMatcher:
    """
    Resolves an OCR'd reference to a catalog entry.

    Strategies, in order of precedence:
    1. Exact match (distance 0)
    2. One OCR look-alike substitution (distance 0.5)
    3. Levenshtein distance against every reference (distance <= max_distance)

    The order is a tie-break: a known OCR failure mode wins over a merely
    close alternative reference.
    """

    def __init__(self, index: CatalogIndex, max_distance: Optional[int] = None):
        self.index = index
        self.max_distance = config.MAX_REFERENCE_DISTANCE if max_distance is None else max_distance

    def resolve(self, raw_reference: Optional[str]) -> CatalogMatch:
        """
        Args:
            raw_reference: Reference as read by OCR/LLM (e.g. "444.1179", "l234567")

        Returns:
            CatalogMatch; NO_MATCH (distance inf) when nothing is close enough.
        """
        reference = normalize_reference(raw_reference)
        if not reference:
            return NO_MATCH

        by_reference = self.index.by_reference
        if not by_reference:
            return NO_MATCH

        # Strategy 1: Exact match
        exact = by_reference.get(reference)
        if exact:
            return CatalogMatch(entry=exact, distance=0)

        # Strategy 2: OCR look-alike substitutions
        for variant in sorted(generate_confusable_variants(reference)):
            hit = by_reference.get(variant)
            if hit:
                logger.debug(f"Reference OCR substitution: {reference} -> {variant}")
                return CatalogMatch(entry=hit, distance=CONFUSABLE_DISTANCE)

        # Strategy 3: Levenshtein distance matching
        best_entry = None
        best_distance = self.max_distance + 1
        for entry in self.index.entries:
            if abs(len(entry.reference) - len(reference)) > self.max_distance:
                continue
            distance = Levenshtein.distance(reference, entry.reference)
            if distance < best_distance:
                best_distance = distance
                best_entry = entry

        if best_entry and best_distance <= self.max_distance:
            logger.debug(f"Reference Levenshtein match: {reference} -> {best_entry.reference} (distance={best_distance})")
            return CatalogMatch(entry=best_entry, distance=best_distance)

        logger.debug(f"No catalog reference match for: {reference}")
        return NO_MATCH
