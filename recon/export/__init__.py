"""
Export of reconciled rows: preflight checks, the bounded retry loop and the
submission targets (Google Sheets, CSV file).
"""

from typing import Optional

from recon import config
from recon.export.coordinator import (
    AttemptHistoryEntry,
    CorrectionFailed,
    CorrectionSuggestion,
    ExportFailure,
    ExportRetryCoordinator,
    ExportSuccess,
    FailureKind,
    PreflightInvalid,
    SubmissionFailed,
)
from recon.export.csv_export import CsvFileSubmitter
from recon.export.preflight import get_preflight_issues
from recon.export.sheets import GoogleSheetsSubmitter, SubmissionError


EXPORT_TARGETS = ("csv", "sheets")


def check_export_target(target: Optional[str] = None) -> str:
    """Normalized export target; ValueError when it is not one of EXPORT_TARGETS."""
    target = (target or config.EXPORT_TARGET or "").strip().lower()
    if target not in EXPORT_TARGETS:
        raise ValueError(f"Unknown export target: {target!r} (expected one of {', '.join(EXPORT_TARGETS)})")
    return target


def build_submitter(target: Optional[str] = None):
    """Submitter for EXPORT_TARGET ('sheets' or 'csv')."""
    target = check_export_target(target)
    if target == "csv":
        return CsvFileSubmitter()
    return GoogleSheetsSubmitter()


__all__ = [
    'AttemptHistoryEntry',
    'CorrectionFailed',
    'CorrectionSuggestion',
    'CsvFileSubmitter',
    'ExportFailure',
    'ExportRetryCoordinator',
    'ExportSuccess',
    'FailureKind',
    'GoogleSheetsSubmitter',
    'PreflightInvalid',
    'SubmissionError',
    'SubmissionFailed',
    'EXPORT_TARGETS',
    'build_submitter',
    'check_export_target',
    'get_preflight_issues',
]
