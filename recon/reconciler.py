"""
Composition root: wires one catalog index to the matchers, the discovery
engine, the line merger and (on demand) the export coordinator.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional

from recon import config
from recon.catalog.discovery import DiscoveryTrace, TextDiscoveryEngine
from recon.catalog.index import CatalogIndex
from recon.catalog.model_matcher import ModelMatcher
from recon.catalog.reference_matcher import ReferenceMatcher
from recon.export.coordinator import CorrectionAgent, ExportRetryCoordinator, Submitter
from recon.merging.line_merger import LineMerger
from recon.models import ResolvedItem

logger = logging.getLogger(__name__)


class OrderReconciler:
    """
    Usage:
        reconciler = OrderReconciler.from_path(Path("data/catalog.json"))
        rows = reconciler.reconcile(items, ocr_text)
    """

    def __init__(self, index: CatalogIndex, enable_text_discovery: Optional[bool] = None):
        self.index = index
        self.reference_matcher = ReferenceMatcher(index)
        self.model_matcher = ModelMatcher(index)
        self.discovery = TextDiscoveryEngine(index)
        self.merger = LineMerger(
            index,
            reference_matcher=self.reference_matcher,
            model_matcher=self.model_matcher,
            discovery=self.discovery,
            enable_text_discovery=enable_text_discovery,
        )

    @classmethod
    def from_path(cls, catalog_path: Optional[Path] = None, **kwargs) -> "OrderReconciler":
        return cls(CatalogIndex(catalog_path), **kwargs)

    def warm_up(self) -> int:
        """Load the catalog now rather than on the first request."""
        return len(self.index)

    def reconcile(self, items: Iterable[Any], ocr_text: Optional[str] = None) -> List[ResolvedItem]:
        return self.merger.merge(items, ocr_text)

    def explain_discovery(self, ocr_text: Optional[str]) -> DiscoveryTrace:
        return self.discovery.explain(ocr_text)

    def coordinator(
        self,
        submitter: Submitter,
        correction_agent: Optional[CorrectionAgent] = None,
        max_attempts: Optional[int] = None,
        correction_enabled: Optional[bool] = None,
    ) -> ExportRetryCoordinator:
        return ExportRetryCoordinator(
            self.merger,
            submitter,
            correction_agent=correction_agent,
            max_attempts=max_attempts,
            correction_enabled=correction_enabled,
        )

    def settings(self) -> dict:
        """Flags and limits exposed by the CLI and the config endpoint."""
        return {
            'reference_lengths': list(self.index.valid_lengths),
            'color_min_length': self.model_matcher.min_color_length,
            'min_price': self.merger.min_price,
            'max_quantity': self.merger.max_quantity,
            'max_reference_distance': self.reference_matcher.max_distance,
            'max_model_distance': self.model_matcher.max_distance,
            'text_discovery': self.merger.enable_text_discovery,
            'review_confusable_matches': self.merger.review_confusable,
            'validation_agent': config.ENABLE_VALIDATION_AGENT,
            'validation_max_attempts': config.VALIDATION_MAX_ATTEMPTS,
            'export_target': config.EXPORT_TARGET,
            'google_sheets': config.ENABLE_GOOGLE_SHEETS,
            'llm_provider': config.LLM_PROVIDER,
        }
