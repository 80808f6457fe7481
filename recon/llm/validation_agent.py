"""
LLM correction agent for the export retry loop.

Given the current rows, the OCR text and the error of the failed attempt,
asks the model for corrected rows, with a slice of the catalog in the prompt
so it can copy exact values.
"""

import json
import logging
from typing import List, Optional

from recon import config
from recon.catalog.index import CatalogIndex
from recon.export.coordinator import CorrectionSuggestion
from recon.llm.groq_client import LLMError, call_groq_json
from recon.models import ResolvedItem

logger = logging.getLogger(__name__)

VALIDATION_PROMPT = """You are a validation agent for mail-order forms.
Fix the lines so they strictly respect these constraints:
- reference_ocr: exactly {reference_lengths} alphanumeric characters (separators removed). If the OCR reference is a reference followed by a size (e.g. 442903142), keep the reference and move the size into size_or_code_raw.
- coloris_raw: text of at least {color_min_length} characters.
- quantity_raw: positive integer <= {max_quantity}.
- unit_price_raw: decimal number with a point and 2 decimals (e.g. 16.99), >= {min_price}.
- model_name_raw: must not be a color. If only the color is known, leave model_name_raw null.

Catalog (reference: model | color | size | price). Use it to check and copy exact values:
---
{catalog}
---

Instructions:
1. Use the OCR text to recover missing values and fix errors.
2. Replace every field by the exact catalog value for its reference.
3. If unsure, leave the value null and explain in "notes".
4. Answer with strict JSON: {{"items": [...], "notes": string|null}}

Attempt: {attempt}
Export error: {error}

OCR text:
---
{ocr_text}
---

Current items:
{items}
"""


class GroqValidationAgent:
    """Correction collaborator backed by the Groq client."""

    def __init__(self, index: CatalogIndex, catalog_limit: Optional[int] = None):
        self.index = index
        self.catalog_limit = config.PROMPT_CATALOG_LIMIT if catalog_limit is None else catalog_limit

    def build_prompt(self, items: List[ResolvedItem], ocr_text: Optional[str], error: str, attempt: int) -> str:
        rows = [item.to_dict() for item in items]
        return VALIDATION_PROMPT.format(
            reference_lengths=" or ".join(str(n) for n in self.index.valid_lengths),
            color_min_length=config.COLOR_MIN_LENGTH,
            max_quantity=config.MAX_QUANTITY,
            min_price=config.MIN_PRICE_VALUE,
            catalog=self.index.prompt_snippet(self.catalog_limit),
            attempt=attempt,
            error=error or "unknown",
            ocr_text=ocr_text or "not provided",
            items=json.dumps(rows, indent=2, ensure_ascii=False),
        )

    def correct(
        self,
        items: List[ResolvedItem],
        ocr_text: Optional[str],
        error: str,
        attempt: int,
    ) -> CorrectionSuggestion:
        mock = {
            "items": [item.to_dict() for item in items],
            "notes": "Mock mode: no correction applied",
        }
        response = call_groq_json(self.build_prompt(items, ocr_text, error, attempt), mock_result=mock)
        parsed = response.parsed if isinstance(response.parsed, dict) else {}

        next_items = parsed.get("items")
        if not isinstance(next_items, list) or not next_items:
            raise LLMError("Validation agent returned no items.")

        notes = parsed.get("notes")
        logger.info(f"Validation agent returned {len(next_items)} item(s) on attempt {attempt}")
        return CorrectionSuggestion(
            items=[row for row in next_items if isinstance(row, dict)],
            notes=notes if isinstance(notes, str) and notes else None,
        )
