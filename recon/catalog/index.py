"""
Catalog index: the authoritative product list and its lookup structures.

The catalog is a static JSON array of {reference, model, color, size, price}
records. It is loaded lazily on first use, exactly once per index instance,
and is read-only afterwards. A missing or corrupt file is not fatal: the index
logs a warning and behaves as an empty catalog.
"""

import json
import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from recon import config
from recon.catalog.normalize import normalize_key, normalize_reference
from recon.models import CatalogEntry

logger = logging.getLogger(__name__)


class CatalogIndex:
    """
    Memoized catalog with exact-reference and model-group lookups.

    Usage:
        index = CatalogIndex(Path("data/catalog.json"))
        entry = index.get("4441179")
        group = index.models_by_key.get("CHAUSSON", [])
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        valid_lengths: Optional[Sequence[int]] = None,
        records: Optional[Iterable[dict]] = None,
    ):
        """
        Args:
            path: JSON catalog file. Defaults to config.CATALOG_PATH.
            valid_lengths: Accepted reference lengths. Defaults to config.REFERENCE_LENGTHS.
            records: In-memory records; when given, the file is never read.
        """
        self.path = Path(path) if path is not None else config.CATALOG_PATH
        self.valid_lengths = tuple(valid_lengths or config.REFERENCE_LENGTHS)
        self._records = list(records) if records is not None else None

        self._lock = threading.Lock()
        self._entries: Optional[List[CatalogEntry]] = None
        self._by_reference: Dict[str, CatalogEntry] = {}
        self._by_model: Dict[str, List[CatalogEntry]] = {}

    @classmethod
    def from_records(cls, records: Iterable[dict], valid_lengths: Optional[Sequence[int]] = None) -> "CatalogIndex":
        """Build an index from in-memory records (tests, scripts)."""
        return cls(path=None, valid_lengths=valid_lengths, records=records)

    def is_valid_length(self, length: int) -> bool:
        return length in self.valid_lengths

    def load(self) -> List[CatalogEntry]:
        """Load the catalog once; later calls return the cached entries."""
        if self._entries is not None:
            return self._entries

        with self._lock:
            if self._entries is None:
                self._build(self._read_records())
        return self._entries

    @property
    def entries(self) -> List[CatalogEntry]:
        return self.load()

    @property
    def by_reference(self) -> Dict[str, CatalogEntry]:
        self.load()
        return self._by_reference

    @property
    def models_by_key(self) -> Dict[str, List[CatalogEntry]]:
        self.load()
        return self._by_model

    def get(self, reference: Optional[str]) -> Optional[CatalogEntry]:
        if not reference:
            return None
        return self.by_reference.get(reference)

    def __len__(self) -> int:
        return len(self.load())

    def _read_records(self) -> list:
        if self._records is not None:
            return self._records

        if not self.path.exists():
            logger.warning(f"Catalog file not found: {self.path} - continuing with an empty catalog")
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                parsed = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read catalog {self.path}: {e} - continuing with an empty catalog")
            return []

        if not isinstance(parsed, list):
            logger.warning(f"Catalog {self.path} is not a JSON array - continuing with an empty catalog")
            return []
        return parsed

    def _build(self, records: list) -> None:
        entries: List[CatalogEntry] = []
        by_reference: Dict[str, CatalogEntry] = {}
        by_model: Dict[str, List[CatalogEntry]] = {}

        for record in records:
            if not isinstance(record, dict):
                continue
            reference = normalize_reference(record.get('reference'))
            if not reference or not self.is_valid_length(len(reference)):
                continue

            entry = CatalogEntry(
                reference=reference,
                model=record.get('model') or None,
                color=record.get('color') or None,
                size=str(record['size']) if record.get('size') else None,
                price=str(record['price']) if record.get('price') not in (None, '') else None,
            )
            if reference in by_reference:
                logger.debug(f"Duplicate catalog reference {reference}, keeping the first entry")
                continue

            entries.append(entry)
            by_reference[reference] = entry

            model_key = normalize_key(entry.model)
            if model_key:
                by_model.setdefault(model_key, []).append(entry)

        self._by_reference = by_reference
        self._by_model = by_model
        self._entries = entries

        distribution = dict(sorted(Counter(len(e.reference) for e in entries).items()))
        logger.info(
            f"Loaded {len(entries)} catalog entries from "
            f"{'memory' if self._records is not None else self.path} "
            f"(lengths={','.join(map(str, self.valid_lengths))}, distribution={distribution})"
        )

    def prompt_snippet(self, limit: int = 50) -> str:
        """Render the first entries as 'REF: model | color | size | price' lines for LLM prompts."""
        lines = []
        for entry in self.entries[:limit]:
            lines.append(
                f"{entry.reference}: {entry.model or ''} | {entry.color or ''} | "
                f"{entry.size or ''} | {entry.price or ''}"
            )
        return "\n".join(lines)

    def stats(self) -> dict:
        """Summary used by the CLI and the config endpoint."""
        entries = self.entries
        return {
            'entries': len(entries),
            'model_groups': len(self._by_model),
            'valid_lengths': list(self.valid_lengths),
            'length_distribution': dict(sorted(Counter(len(e.reference) for e in entries).items())),
            'source': str(self.path) if self._records is None else 'memory',
        }
