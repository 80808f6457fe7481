"""
Model/color/size matching, used when a line carries no usable reference.
"""

import logging
from typing import List, Optional

import Levenshtein

from recon import config
from recon.catalog.index import CatalogIndex
from recon.catalog.normalize import normalize_key, normalize_size_key
from recon.models import CatalogEntry, CatalogMatch, NO_MATCH

logger = logging.getLogger(__name__)

SIZE_MISMATCH_PENALTY = 1
MAX_COLOR_DISTANCE = 1


class ModelMatcher:
    """
    Resolves a (model, color, size) triple to one catalog entry.

    The model name picks a candidate group (exact key, else the closest key
    within max_distance); color and size then pick the best member.
    """

    def __init__(
        self,
        index: CatalogIndex,
        max_distance: Optional[int] = None,
        min_color_length: Optional[int] = None,
    ):
        self.index = index
        self.max_distance = config.MAX_MODEL_DISTANCE if max_distance is None else max_distance
        self.min_color_length = config.COLOR_MIN_LENGTH if min_color_length is None else min_color_length

    def resolve(
        self,
        model_text: Optional[str],
        color_text: Optional[str] = None,
        size_text: Optional[str] = None,
    ) -> CatalogMatch:
        model_key = normalize_key(model_text)
        if not model_key:
            return NO_MATCH

        candidates, key_distance = self._candidate_group(model_key)
        if not candidates:
            return NO_MATCH

        color_key = normalize_key(color_text)
        if color_key and len(color_key) < self.min_color_length:
            color_key = None
        size_key = normalize_size_key(size_text)

        best_entry = None
        best_score = float('inf')
        for entry in candidates:
            score = self._score(entry, color_key, size_key)
            if score < best_score:
                best_score = score
                best_entry = entry

        if best_entry is None:
            logger.debug(f"Model '{model_key}' found but every candidate was rejected on color '{color_key}'")
            return NO_MATCH

        return CatalogMatch(entry=best_entry, distance=best_score + key_distance)

    def _candidate_group(self, model_key: str):
        groups = self.index.models_by_key
        exact = groups.get(model_key)
        if exact:
            return exact, 0

        best_group: List[CatalogEntry] = []
        best_distance = self.max_distance + 1
        for key, entries in groups.items():
            distance = Levenshtein.distance(model_key, key)
            if distance < best_distance:
                best_distance = distance
                best_group = entries

        if best_group and best_distance <= self.max_distance:
            logger.debug(f"Model fuzzy match: {model_key} (distance={best_distance})")
            return best_group, best_distance
        return [], 0

    @staticmethod
    def _score(entry: CatalogEntry, color_key: Optional[str], size_key: Optional[str]) -> float:
        score = 0
        if color_key:
            entry_color = normalize_key(entry.color)
            if not entry_color:
                return float('inf')
            color_distance = Levenshtein.distance(color_key, entry_color)
            if color_distance > MAX_COLOR_DISTANCE:
                return float('inf')
            score += color_distance

        if size_key and entry.size and normalize_size_key(entry.size) != size_key:
            score += SIZE_MISMATCH_PENALTY
        return score
