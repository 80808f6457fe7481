"""
Bounded validate -> submit -> correct loop for exporting reconciled rows.

Each attempt re-merges the current rows, runs the local preflight checks,
then hands the rows to the submission collaborator. A failed attempt is
recorded in the history; if automated correction is enabled the correction
collaborator proposes replacement rows for the next attempt. The loop ends
on success, on a correction failure, or when the attempt budget is spent.

Terminal failures are returned as an ExportFailure value, never raised.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence, Union

from recon import config
from recon.export.preflight import get_preflight_issues
from recon.merging.line_merger import LineMerger
from recon.models import ExtractedItem, ResolvedItem

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    PREFLIGHT_INVALID = "preflight_invalid"
    SUBMISSION_FAILED = "submission_failed"
    CORRECTION_FAILED = "correction_failed"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


class ExportAttemptError(Exception):
    """An attempt-level failure; always recorded in the history."""

    kind = FailureKind.SUBMISSION_FAILED


class PreflightInvalid(ExportAttemptError):
    kind = FailureKind.PREFLIGHT_INVALID

    def __init__(self, issues: Sequence[str]):
        self.issues = list(issues)
        super().__init__(f"Preflight validation failed: {' '.join(self.issues)}")


class SubmissionFailed(ExportAttemptError):
    kind = FailureKind.SUBMISSION_FAILED


class CorrectionFailed(ExportAttemptError):
    kind = FailureKind.CORRECTION_FAILED


@dataclass
class CorrectionSuggestion:
    items: List[Any]
    notes: Optional[str] = None


class Submitter(Protocol):
    def submit(self, rows: List[ResolvedItem]) -> Any:
        ...


class CorrectionAgent(Protocol):
    def correct(
        self,
        items: List[ResolvedItem],
        ocr_text: Optional[str],
        error: str,
        attempt: int,
    ) -> CorrectionSuggestion:
        ...


@dataclass
class AttemptHistoryEntry:
    attempt: int
    error: str
    kind: FailureKind = FailureKind.SUBMISSION_FAILED
    agent_notes: Optional[str] = None
    agent_applied: bool = False
    agent_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "attempt": self.attempt,
            "error": self.error,
            "kind": self.kind.value,
            "agentNotes": self.agent_notes,
            "agentApplied": self.agent_applied,
            "agentError": self.agent_error,
        }


@dataclass
class ExportSuccess:
    result: Any
    items: List[ResolvedItem]
    attempts: int
    history: List[AttemptHistoryEntry] = field(default_factory=list)

    ok = True

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "result": self.result,
            "attempts": self.attempts,
            "items": [item.to_dict() for item in self.items],
            "history": [entry.to_dict() for entry in self.history],
        }


@dataclass
class ExportFailure:
    kind: FailureKind
    error: str
    items: List[ResolvedItem]
    attempts: int
    history: List[AttemptHistoryEntry] = field(default_factory=list)

    ok = False

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "kind": self.kind.value,
            "error": self.error,
            "attempts": self.attempts,
            "items": [item.to_dict() for item in self.items],
            "history": [entry.to_dict() for entry in self.history],
        }


ExportResult = Union[ExportSuccess, ExportFailure]


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


def _clear_review_flag(item: Any) -> Any:
    """Corrected rows are judged afresh by the next merge."""
    if isinstance(item, dict):
        return ExtractedItem.from_dict(item, keep_review_flag=False)
    if isinstance(item, ResolvedItem):
        return replace(item.to_extracted(), needs_review=False)
    if isinstance(item, ExtractedItem):
        return replace(item, needs_review=False)
    return item


class ExportRetryCoordinator:
    """
    Usage:
        coordinator = ExportRetryCoordinator(merger, submitter, correction_agent=agent)
        outcome = coordinator.submit(items, ocr_text)
        if outcome.ok:
            print(outcome.attempts, outcome.result)
        else:
            print(outcome.kind, outcome.error, outcome.history)
    """

    def __init__(
        self,
        merger: LineMerger,
        submitter: Submitter,
        correction_agent: Optional[CorrectionAgent] = None,
        max_attempts: Optional[int] = None,
        correction_enabled: Optional[bool] = None,
        max_quantity: Optional[int] = None,
    ):
        self.merger = merger
        self.submitter = submitter
        self.correction_agent = correction_agent

        attempts = config.VALIDATION_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.max_attempts = max(1, min(attempts, config.MAX_ATTEMPTS_CEILING))

        enabled = config.ENABLE_VALIDATION_AGENT if correction_enabled is None else correction_enabled
        self.correction_enabled = enabled and correction_agent is not None
        self.max_quantity = config.MAX_QUANTITY if max_quantity is None else max_quantity

    def _attempt(self, rows: List[ResolvedItem]) -> Any:
        issues = get_preflight_issues(rows, self.max_quantity)
        if issues:
            raise PreflightInvalid(issues)

        try:
            return self.submitter.submit(rows)
        except Exception as e:
            raise SubmissionFailed(_describe(e)) from e

    def _correct(
        self,
        rows: List[ResolvedItem],
        ocr_text: Optional[str],
        entry: AttemptHistoryEntry,
    ) -> List[Any]:
        try:
            suggestion = self.correction_agent.correct(rows, ocr_text, entry.error, entry.attempt)
        except Exception as e:
            raise CorrectionFailed(_describe(e)) from e

        if suggestion is None or not suggestion.items:
            raise CorrectionFailed("Correction agent returned no items")

        entry.agent_applied = True
        entry.agent_notes = suggestion.notes or None
        return [_clear_review_flag(item) for item in suggestion.items]

    def submit(self, items: Sequence[Any], ocr_text: Optional[str] = None) -> ExportResult:
        """
        Args:
            items: ExtractedItem / ResolvedItem / dict rows
            ocr_text: Raw OCR text, used for re-merging and by the correction agent

        Returns:
            ExportSuccess or ExportFailure (both carry the attempt history)
        """
        current: List[Any] = list(items or [])
        rows: List[ResolvedItem] = []
        history: List[AttemptHistoryEntry] = []

        for attempt in range(1, self.max_attempts + 1):
            rows = self.merger.merge(current, ocr_text)
            logger.info(f"Export attempt {attempt}/{self.max_attempts} with {len(rows)} row(s)")

            try:
                result = self._attempt(rows)
            except ExportAttemptError as e:
                entry = AttemptHistoryEntry(attempt=attempt, error=_describe(e), kind=e.kind)
                history.append(entry)
                logger.warning(f"Export attempt {attempt} failed ({e.kind.value}): {entry.error}")
            else:
                logger.info(f"Export succeeded on attempt {attempt}")
                return ExportSuccess(result=result, items=rows, attempts=attempt, history=history)

            if not self.correction_enabled:
                return ExportFailure(entry.kind, entry.error, rows, attempt, history)

            if attempt >= self.max_attempts:
                logger.error(f"Export gave up after {attempt} attempt(s): {entry.error}")
                return ExportFailure(FailureKind.ATTEMPTS_EXHAUSTED, entry.error, rows, attempt, history)

            try:
                current = self._correct(rows, ocr_text, entry)
            except CorrectionFailed as e:
                entry.agent_error = _describe(e)
                logger.error(f"Correction agent failed on attempt {attempt}: {entry.agent_error}")
                return ExportFailure(FailureKind.CORRECTION_FAILED, entry.agent_error, rows, attempt, history)

            logger.info(f"Correction applied after attempt {attempt}: {entry.agent_notes or 'no notes'}")

        # max_attempts >= 1, so the loop always returns
        return ExportFailure(
            FailureKind.ATTEMPTS_EXHAUSTED,
            "Maximum number of attempts reached.",
            rows,
            self.max_attempts,
            history,
        )
