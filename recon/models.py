"""
Core data types shared by the catalog, merging and export layers.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


DISPLAY_FIELDS = (
    'page',
    'model_name_raw',
    'coloris_raw',
    'reference_ocr',
    'size_or_code_raw',
    'quantity_raw',
    'unit_price_raw',
)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_page(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _clean_flag(value: Any) -> bool:
    """Booleans pass through; strings count only when they spell true."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return False


@dataclass(frozen=True)
class CatalogEntry:
    """A product from the authoritative catalog."""

    reference: str
    """Normalized uppercase alphanumeric reference (e.g. '4441179')."""

    model: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    price: Optional[str] = None


@dataclass(frozen=True)
class CatalogMatch:
    """Outcome of a reference or model lookup."""

    entry: Optional[CatalogEntry]
    distance: float = float('inf')
    """0 = exact, 0.5 = confusable substitution, >= 1 = edit distance / score."""

    def __bool__(self) -> bool:
        return self.entry is not None


NO_MATCH = CatalogMatch(entry=None)


@dataclass
class ExtractedItem:
    """One order line as emitted by upstream extraction (untrusted)."""

    page: Optional[int] = None
    model_name_raw: Optional[str] = None
    coloris_raw: Optional[str] = None
    reference_ocr: Optional[str] = None
    size_or_code_raw: Optional[str] = None
    quantity_raw: Optional[str] = None
    unit_price_raw: Optional[str] = None

    needs_review: bool = False
    """Carried over when a previously merged row is merged again."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], keep_review_flag: bool = True) -> "ExtractedItem":
        """Build from a loosely shaped dict (LLM output, API payload, stored row)."""
        return cls(
            page=_clean_page(data.get('page')),
            model_name_raw=_clean_text(data.get('model_name_raw') or data.get('model')),
            coloris_raw=_clean_text(data.get('coloris_raw') or data.get('color')),
            reference_ocr=_clean_text(
                data.get('reference_ocr') or data.get('reference') or data.get('reference_raw')
            ),
            size_or_code_raw=_clean_text(data.get('size_or_code_raw') or data.get('size')),
            quantity_raw=_clean_text(data.get('quantity_raw') or data.get('quantity')),
            unit_price_raw=_clean_text(data.get('unit_price_raw') or data.get('price')),
            needs_review=_clean_flag(data.get('needs_review')) if keep_review_flag else False,
        )

    def has_matchable_field(self) -> bool:
        return any((self.reference_ocr, self.model_name_raw, self.coloris_raw, self.size_or_code_raw))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ResolvedItem:
    """A normalized output row, catalog-canonical where a match was found."""

    page: Optional[int] = None
    model_name_raw: Optional[str] = None
    coloris_raw: Optional[str] = None
    reference_ocr: Optional[str] = None
    size_or_code_raw: Optional[str] = None
    quantity_raw: str = '1'
    unit_price_raw: Optional[str] = None
    needs_review: bool = False

    # Audit trail, not part of row identity
    source: Optional[ExtractedItem] = field(default=None, compare=False, repr=False)
    discovered_in_text: bool = field(default=False, compare=False)

    @property
    def dedup_key(self) -> tuple:
        return (self.reference_ocr, self.size_or_code_raw, self.quantity_raw)

    def to_extracted(self) -> ExtractedItem:
        """Feed this row back into a merge pass."""
        return ExtractedItem(
            page=self.page,
            model_name_raw=self.model_name_raw,
            coloris_raw=self.coloris_raw,
            reference_ocr=self.reference_ocr,
            size_or_code_raw=self.size_or_code_raw,
            quantity_raw=self.quantity_raw,
            unit_price_raw=self.unit_price_raw,
            needs_review=self.needs_review,
        )

    def to_dict(self, include_source: bool = False) -> Dict[str, Any]:
        data = {name: getattr(self, name) for name in DISPLAY_FIELDS}
        data['needs_review'] = self.needs_review
        data['discovered_in_text'] = self.discovered_in_text
        if include_source:
            data['source'] = self.source.to_dict() if self.source else None
        return data
