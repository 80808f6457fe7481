"""
Normalization helpers shared by the catalog index, matchers and merger.

All catalog keys go through the same pipeline: strip diacritics, drop every
non-alphanumeric character, uppercase. Value cleaners (quantity, price, size)
turn free OCR text into the canonical export format.
"""

import re
import unicodedata
from typing import Any, Iterable, Optional, Tuple

_NON_ALNUM = re.compile(r'[^0-9A-Za-z]')
_CODE10 = re.compile(r'^code\s*10$', re.IGNORECASE)


def strip_diacritics(value: Any) -> str:
    """Remove combining accents: 'Écru' -> 'Ecru'."""
    decomposed = unicodedata.normalize('NFD', str(value or ''))
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_key(value: Any) -> Optional[str]:
    """Catalog key form: 'Rose poudré' -> 'ROSEPOUDRE'. None when nothing is left."""
    if value is None:
        return None
    key = _NON_ALNUM.sub('', strip_diacritics(value)).upper()
    return key or None


# References and whole-text scans use the same normalization
normalize_reference = normalize_key


def normalize_text(text: Optional[str]) -> str:
    """Normalize a whole OCR text into one alphanumeric run."""
    if not text:
        return ''
    return normalize_key(text) or ''


def normalize_size_key(value: Any) -> Optional[str]:
    """Size comparison key: alphanumerics only, uppercase (no diacritic folding)."""
    if value is None:
        return None
    key = _NON_ALNUM.sub('', str(value)).upper()
    return key or None


def normalize_price(value: Any, min_price: float) -> Optional[str]:
    """'16,9' -> '16.90'. Unparseable or below min_price -> None."""
    if value is None:
        return None
    text = re.sub(r'[^0-9,.\-]', '', str(value).strip()).replace(',', '.')
    try:
        number = float(text)
    except ValueError:
        return None
    if number != number or number < min_price:  # NaN check
        return None
    return f"{number:.2f}"


def sanitize_quantity(value: Any, max_quantity: int) -> str:
    """Digits only; anything outside 1..max_quantity becomes '1'."""
    digits = re.sub(r'[^0-9]', '', str(value if value is not None else ''))
    if not digits:
        return '1'
    number = int(digits)
    if number <= 0 or number > max_quantity:
        return '1'
    return str(number)


def ensure_valid_size(value: Any, fallback: Optional[str] = None) -> Optional[str]:
    """
    Clean a size/code field.

    Keeps slashes so ranges survive: '38/40', '95BC', 'code 10' -> 'code10'.
    Values shorter than two characters fall back.
    """
    if not value:
        return fallback or None
    cleaned = str(value).strip()
    if _CODE10.match(cleaned):
        return 'code10'
    alnum = re.sub(r'[^0-9A-Za-z/]', '', cleaned).upper()
    if len(alnum) >= 2:
        return alnum
    return fallback or None


def split_reference_and_size(
    raw_reference: Any,
    valid_lengths: Iterable[int],
) -> Tuple[Optional[str], Optional[str]]:
    """
    Split an OCR reference that swallowed its size code.

    '442903142' with valid length 7 -> ('4429031', '42').
    """
    if not raw_reference:
        return None, None
    cleaned = _NON_ALNUM.sub('', strip_diacritics(raw_reference)).upper()
    lengths = tuple(valid_lengths)
    for length in lengths:
        if len(cleaned) == length + 2:
            return cleaned[:length], cleaned[length:]
    if len(cleaned) in lengths:
        return cleaned, None
    return None, None
