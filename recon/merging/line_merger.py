"""
Line merger: turns extracted order lines plus raw OCR text into the final,
deduplicated, catalog-canonical row set.
"""

import logging
from typing import Any, Iterable, List, Optional, Set, Tuple, Union

from recon import config
from recon.catalog.discovery import TextDiscoveryEngine
from recon.catalog.index import CatalogIndex
from recon.catalog.model_matcher import ModelMatcher
from recon.catalog.normalize import (
    ensure_valid_size,
    normalize_price,
    normalize_reference,
    sanitize_quantity,
    split_reference_and_size,
)
from recon.catalog.reference_matcher import CONFUSABLE_DISTANCE, ReferenceMatcher
from recon.models import CatalogMatch, ExtractedItem, ResolvedItem

logger = logging.getLogger(__name__)

ItemLike = Union[ExtractedItem, ResolvedItem, dict]


def coerce_item(item: Any) -> Optional[ExtractedItem]:
    """Accept extracted items, previously merged rows, or plain dicts."""
    if isinstance(item, ExtractedItem):
        return item
    if isinstance(item, ResolvedItem):
        return item.to_extracted()
    if isinstance(item, dict):
        return ExtractedItem.from_dict(item)
    return None


class LineMerger:
    """
    Resolves each line against the catalog, then adds references found only in the text.

    Output invariants:
    - no two rows share (reference, size, quantity)
    - a text-discovered reference never duplicates a (reference, size) already resolved from a line
    - rows are sorted by reference, stable for equal references
    """

    def __init__(
        self,
        index: CatalogIndex,
        reference_matcher: Optional[ReferenceMatcher] = None,
        model_matcher: Optional[ModelMatcher] = None,
        discovery: Optional[TextDiscoveryEngine] = None,
        enable_text_discovery: Optional[bool] = None,
        max_quantity: Optional[int] = None,
        min_price: Optional[float] = None,
        review_confusable: Optional[bool] = None,
    ):
        self.index = index
        self.reference_matcher = reference_matcher or ReferenceMatcher(index)
        self.model_matcher = model_matcher or ModelMatcher(index)
        self.discovery = discovery or TextDiscoveryEngine(index)
        self.enable_text_discovery = (
            config.ENABLE_TEXT_DISCOVERY if enable_text_discovery is None else enable_text_discovery
        )
        self.max_quantity = config.MAX_QUANTITY if max_quantity is None else max_quantity
        self.min_price = config.MIN_PRICE_VALUE if min_price is None else min_price
        self.review_confusable = (
            config.REVIEW_CONFUSABLE_MATCHES if review_confusable is None else review_confusable
        )

    def clean_reference(self, item: ExtractedItem) -> Tuple[Optional[str], Optional[str]]:
        """
        Normalized reference and size for a line.

        A reference of invalid length may have swallowed its size code
        ('442903142' -> '4429031' + '42'); the split size only fills an empty size.
        """
        size = item.size_or_code_raw
        reference = normalize_reference(item.reference_ocr)
        if not reference or not self.index.is_valid_length(len(reference)):
            split_ref, split_size = split_reference_and_size(item.reference_ocr, self.index.valid_lengths)
            if split_ref:
                reference = split_ref
            if not size and split_size:
                size = split_size
        return reference, size

    def resolve_item(self, item: ExtractedItem) -> Tuple[CatalogMatch, Optional[str], Optional[str]]:
        """Reference first, model/color/size second. Returns (match, cleaned reference, size)."""
        reference, size = self.clean_reference(item)

        match = self.reference_matcher.resolve(reference)
        if not match:
            match = self.model_matcher.resolve(item.model_name_raw, item.coloris_raw, size)
        return match, reference, size

    def needs_review(self, distance: float) -> bool:
        if distance == CONFUSABLE_DISTANCE and not self.review_confusable:
            return False
        return distance > 0

    def merge(self, items: Iterable[ItemLike], ocr_text: Optional[str] = None) -> List[ResolvedItem]:
        """
        Args:
            items: Extracted lines (or rows from a previous merge)
            ocr_text: Raw OCR text of the order form, used for reference discovery

        Returns:
            Sorted, deduplicated ResolvedItem rows
        """
        results: List[ResolvedItem] = []
        seen_keys: Set[tuple] = set()
        covered: Set[Tuple[str, Optional[str]]] = set()
        matched = unmatched = 0

        for raw in items or []:
            item = coerce_item(raw)
            if item is None or not item.has_matchable_field():
                continue

            match, reference, size = self.resolve_item(item)
            quantity = sanitize_quantity(item.quantity_raw, self.max_quantity)

            if match:
                entry = match.entry
                covered.add((entry.reference, entry.size))
                row = ResolvedItem(
                    page=item.page,
                    model_name_raw=entry.model,
                    coloris_raw=entry.color,
                    reference_ocr=entry.reference,
                    size_or_code_raw=entry.size or ensure_valid_size(size),
                    quantity_raw=quantity,
                    unit_price_raw=(
                        normalize_price(entry.price, self.min_price)
                        or normalize_price(item.unit_price_raw, self.min_price)
                    ),
                    needs_review=self.needs_review(match.distance) or item.needs_review,
                    source=item,
                )
            else:
                row = ResolvedItem(
                    page=item.page,
                    model_name_raw=item.model_name_raw,
                    coloris_raw=item.coloris_raw,
                    reference_ocr=reference,
                    size_or_code_raw=ensure_valid_size(size),
                    quantity_raw=quantity,
                    unit_price_raw=normalize_price(item.unit_price_raw, self.min_price),
                    needs_review=True,
                    source=item,
                )

            if row.dedup_key in seen_keys:
                logger.debug(f"Dropping duplicate line {row.dedup_key}")
                continue
            seen_keys.add(row.dedup_key)
            results.append(row)
            if match:
                matched += 1
            else:
                unmatched += 1

        discovered = 0
        if self.enable_text_discovery and ocr_text:
            for reference in sorted(self.discovery.discover(ocr_text)):
                entry = self.index.get(reference)
                if entry is None or (entry.reference, entry.size) in covered:
                    continue
                row = ResolvedItem(
                    page=None,
                    model_name_raw=entry.model,
                    coloris_raw=entry.color,
                    reference_ocr=entry.reference,
                    size_or_code_raw=entry.size,
                    quantity_raw='1',
                    unit_price_raw=normalize_price(entry.price, self.min_price),
                    needs_review=False,
                    discovered_in_text=True,
                )
                if row.dedup_key in seen_keys:
                    continue
                seen_keys.add(row.dedup_key)
                covered.add((entry.reference, entry.size))
                results.append(row)
                discovered += 1

        logger.info(f"Merged lines: {matched} matched, {unmatched} unmatched, {discovered} discovered in text")
        return sorted(results, key=lambda row: row.reference_ocr or '')
