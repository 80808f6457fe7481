"""
Local checks run before any row leaves the process.

A row is exportable when it has a reference, a quantity in (0, max_quantity],
a price, and is not flagged for review.
"""

import re
from typing import List, Optional, Sequence

from recon import config
from recon.models import ResolvedItem

_QUANTITY_CHARS = re.compile(r'[^0-9.\-]')


def _field(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def get_preflight_issues(rows: Sequence[ResolvedItem], max_quantity: Optional[int] = None) -> List[str]:
    """
    Returns:
        Human-readable issues, one per failed check; empty when every row is exportable.
    """
    max_quantity = config.MAX_QUANTITY if max_quantity is None else max_quantity
    if not rows:
        return ["No rows to export."]

    issues = []
    for position, row in enumerate(rows, start=1):
        reference = _field(row.reference_ocr)
        quantity = _field(row.quantity_raw)
        price = _field(row.unit_price_raw)

        if not reference:
            issues.append(f"Line {position}: missing reference_ocr.")
        if not quantity:
            issues.append(f"Line {position}: missing quantity_raw.")
        else:
            try:
                number = float(_QUANTITY_CHARS.sub('', quantity))
            except ValueError:
                number = None
            if number is None or number <= 0 or number > max_quantity:
                issues.append(f"Line {position}: invalid quantity_raw ({quantity}).")
        if not price:
            issues.append(f"Line {position}: missing unit_price_raw.")
        if row.needs_review:
            issues.append(f"Line {position}: suspicious fields (needs_review).")
    return issues
