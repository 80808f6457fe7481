"""
LLM extraction of structured order lines from raw OCR text.
"""

import logging
from typing import List

from recon.llm.groq_client import LLMError, call_groq_json
from recon.models import ExtractedItem

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """You extract order lines from scanned mail-order forms.
Read the OCR text below and return every ordered product line.

Rules:
- Only read lines that contain ordered products; ignore advertising and unrelated notes.
- For each product line return an object with:
  - page: page number if detected, else null
  - model_name_raw: model name as written (fixed if readable)
  - coloris_raw: color as written
  - reference_ocr: product reference as written (e.g. 313.9681 or 444.1179A)
  - size_or_code_raw: size or code (e.g. 50/52, 38, code10)
  - quantity_raw: quantity (digits)
  - unit_price_raw: unit price with a decimal point (e.g. 16.99)
- Never invent values. Missing or unreadable fields are null.
- Fix obvious small OCR errors ("5Q/52" -> "50/52", "313.968l" -> "313.9681").
- Answer with strict JSON only: {{"items": [ ... ]}}

OCR text:
---
{ocr_text}
---
"""

MOCK_EXTRACTION = {
    "items": [
        {
            "page": None,
            "model_name_raw": "Example model",
            "coloris_raw": "Rose",
            "reference_ocr": "000.0000",
            "size_or_code_raw": "M",
            "quantity_raw": "1",
            "unit_price_raw": "9.99",
        }
    ]
}


def build_extraction_prompt(ocr_text: str) -> str:
    return EXTRACTION_PROMPT.format(ocr_text=ocr_text)


def structurize_order_lines(ocr_text: str) -> List[ExtractedItem]:
    """
    Args:
        ocr_text: Raw OCR text of one order form

    Returns:
        Extracted lines (untrusted; merge them before use)
    """
    if not ocr_text or not isinstance(ocr_text, str):
        raise LLMError("Invalid OCR text.")

    response = call_groq_json(build_extraction_prompt(ocr_text), mock_result=MOCK_EXTRACTION)
    parsed = response.parsed if isinstance(response.parsed, dict) else {}
    raw_items = parsed.get("items") if isinstance(parsed.get("items"), list) else []

    items = [ExtractedItem.from_dict(raw) for raw in raw_items if isinstance(raw, dict)]
    logger.info(f"LLM extracted {len(items)} line(s) from {len(ocr_text)} chars of OCR text")
    return items
