"""
Maps an already-structured order document ("bon", JSON) to extracted items.

Documents come from different upstream tools with different key names and
casing ("Modèle", "CODIF_CAT", "Qté", ...). Every `items` array anywhere in
the document is read, and keys are matched against synonym sets after
accent/case folding.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from recon.catalog.normalize import strip_diacritics
from recon.models import ExtractedItem

logger = logging.getLogger(__name__)

FIELD_KEYSETS: Dict[str, tuple] = {
    'model': ('modele', 'model', 'designation', 'nommodel', 'nomduproduit'),
    'color': ('coloris', 'couleur', 'color', 'couleurproduit'),
    'reference': ('codifcat', 'reference', 'ref', 'sku', 'codeproduit', 'coderef'),
    'size': ('taille', 'code', 'taillecode', 'size'),
    'quantity': ('quantite', 'quantitecommande', 'quantity', 'qte'),
    'price': ('pv', 'prix', 'prixunitaire', 'price', 'montant'),
}

OCR_TEXT_KEYS = ('ocrtext', 'texteocr', 'ocr', 'rawtext', 'texte', 'text')
MIN_OCR_TEXT_LENGTH = 40


@dataclass
class MappedBon:
    items: List[ExtractedItem] = field(default_factory=list)
    ocr_text: Optional[str] = None


def normalize_field_key(key: Any) -> str:
    """'Quantité commande' -> 'quantitecommande'"""
    return re.sub(r'[^a-z0-9]', '', strip_diacritics(key).lower())


def _clean_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_price(value: Any) -> Optional[str]:
    text = _clean_string(value)
    if not text:
        return None
    match = re.match(r'-?\d*\.?\d+', re.sub(r'[^0-9,.\-]', '', text).replace(',', '.', 1))
    if not match:
        return None
    return f"{float(match.group(0)):.2f}"


def _clean_quantity(value: Any) -> str:
    text = _clean_string(value)
    if not text:
        return '1'
    match = re.match(r'-?\d+', re.sub(r'[^0-9\-]', '', text))
    if not match:
        return '1'
    number = int(match.group(0))
    return str(number) if number > 0 else '1'


def _pick(item: dict, keyset: tuple) -> Any:
    for key, value in item.items():
        if normalize_field_key(key) in keyset:
            return value
    return None


def _walk_items(node: Any, collect: Callable[[Any], None]) -> None:
    if isinstance(node, list):
        for child in node:
            _walk_items(child, collect)
        return
    if not isinstance(node, dict):
        return

    if isinstance(node.get('items'), list):
        for item in node['items']:
            collect(item)

    for value in node.values():
        if isinstance(value, (dict, list)):
            _walk_items(value, collect)


def _detect_ocr_text(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for key, value in data.items():
        if isinstance(value, str) and len(value) > MIN_OCR_TEXT_LENGTH:
            if normalize_field_key(key) in OCR_TEXT_KEYS:
                return value
    return None


def map_bon_to_items(data: Any) -> MappedBon:
    """
    Args:
        data: Parsed JSON document

    Returns:
        MappedBon with the extracted items and the embedded OCR text if any
    """
    items: List[ExtractedItem] = []

    def collect(raw: Any) -> None:
        if not isinstance(raw, dict):
            return
        item = ExtractedItem(
            page=None,
            model_name_raw=_clean_string(_pick(raw, FIELD_KEYSETS['model'])),
            coloris_raw=_clean_string(_pick(raw, FIELD_KEYSETS['color'])),
            reference_ocr=_clean_string(_pick(raw, FIELD_KEYSETS['reference'])),
            size_or_code_raw=_clean_string(_pick(raw, FIELD_KEYSETS['size'])),
            quantity_raw=_clean_quantity(_pick(raw, FIELD_KEYSETS['quantity'])),
            unit_price_raw=_clean_price(_pick(raw, FIELD_KEYSETS['price'])),
        )
        if item.has_matchable_field():
            items.append(item)

    _walk_items(data, collect)
    logger.debug(f"Mapped {len(items)} item(s) from JSON bon")

    return MappedBon(
        items=items,
        ocr_text=_detect_ocr_text(data),
    )
