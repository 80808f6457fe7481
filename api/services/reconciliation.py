"""
Process-wide reconciliation objects for the API.

The catalog is loaded once per process and shared by every request; the
export coordinator is cheap and built per request.
"""

import logging
from functools import lru_cache

from recon import config
from recon.export import ExportRetryCoordinator, build_submitter
from recon.llm.validation_agent import GroqValidationAgent
from recon.reconciler import OrderReconciler

logger = logging.getLogger(__name__)


@lru_cache()
def get_reconciler() -> OrderReconciler:
    """Shared reconciler (FastAPI dependency)."""
    reconciler = OrderReconciler.from_path(config.CATALOG_PATH)
    logger.info(f"Reconciler ready with catalog {config.CATALOG_PATH}")
    return reconciler


def get_coordinator() -> ExportRetryCoordinator:
    """Export coordinator for the configured target and correction agent (FastAPI dependency)."""
    reconciler = get_reconciler()
    agent = GroqValidationAgent(reconciler.index) if config.ENABLE_VALIDATION_AGENT else None
    return reconciler.coordinator(build_submitter(), correction_agent=agent)
