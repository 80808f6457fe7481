"""
recon/tests/test_export_coordinator.py: Tests for the bounded export retry loop

Tests:
- Preflight checks
- Success, retry-after-correction, correction failure, exhaustion
- Attempt budget
"""

import pytest

from recon.export.coordinator import (
    CorrectionSuggestion,
    ExportFailure,
    ExportRetryCoordinator,
    ExportSuccess,
    FailureKind,
)
from recon.export.preflight import get_preflight_issues
from recon.models import ResolvedItem


class FakeSubmitter:
    """Raises the queued errors in order, then succeeds"""

    def __init__(self, errors=None, always_fail=False):
        self.errors = list(errors or [])
        self.always_fail = always_fail
        self.calls = []

    def submit(self, rows):
        self.calls.append(list(rows))
        if self.always_fail:
            raise RuntimeError("HTTP 500")
        if self.errors:
            raise self.errors.pop(0)
        return {'updated_rows': len(rows)}


class EchoAgent:
    """Returns the rows it was given (optionally with a fixed reference)"""

    def __init__(self, notes='checked', reference=None):
        self.notes = notes
        self.reference = reference
        self.calls = []

    def correct(self, items, ocr_text, error, attempt):
        self.calls.append((error, attempt))
        rows = [item.to_dict() for item in items]
        if self.reference:
            for row in rows:
                row['reference_ocr'] = self.reference
        return CorrectionSuggestion(items=rows, notes=self.notes)


class FailingAgent:
    def __init__(self, error=None):
        self.error = error or RuntimeError("LLM unavailable")
        self.calls = 0

    def correct(self, items, ocr_text, error, attempt):
        self.calls += 1
        raise self.error


class EmptyAgent:
    def correct(self, items, ocr_text, error, attempt):
        return CorrectionSuggestion(items=[], notes=None)


GOOD_LINE = {'reference_ocr': '4441179', 'quantity_raw': '1'}


def _coordinator(merger, submitter, agent=None, max_attempts=3, enabled=True):
    return ExportRetryCoordinator(
        merger,
        submitter,
        correction_agent=agent,
        max_attempts=max_attempts,
        correction_enabled=enabled,
        max_quantity=10,
    )


class TestPreflight:
    """Test get_preflight_issues"""

    def test_valid_row(self):
        row = ResolvedItem(reference_ocr='4441179', quantity_raw='1', unit_price_raw='39.90')

        assert get_preflight_issues([row], max_quantity=10) == []

    def test_every_problem_is_reported(self):
        """Reference, quantity, price and review flag are all checked"""
        row = ResolvedItem(reference_ocr=None, quantity_raw='12', unit_price_raw=None, needs_review=True)

        issues = get_preflight_issues([row], max_quantity=10)

        assert issues == [
            "Line 1: missing reference_ocr.",
            "Line 1: invalid quantity_raw (12).",
            "Line 1: missing unit_price_raw.",
            "Line 1: suspicious fields (needs_review).",
        ]

    def test_zero_quantity(self):
        row = ResolvedItem(reference_ocr='4441179', quantity_raw='0', unit_price_raw='39.90')

        assert get_preflight_issues([row], max_quantity=10) == ["Line 1: invalid quantity_raw (0)."]

    def test_no_rows(self):
        """An empty export is a preflight failure"""
        assert get_preflight_issues([], max_quantity=10) == ["No rows to export."]


class TestExportRetryCoordinator:
    """Test ExportRetryCoordinator.submit"""

    def test_first_attempt_success(self, merger):
        submitter = FakeSubmitter()

        outcome = _coordinator(merger, submitter, EchoAgent()).submit([GOOD_LINE])

        assert isinstance(outcome, ExportSuccess)
        assert outcome.ok
        assert outcome.attempts == 1
        assert outcome.history == []
        assert outcome.result == {'updated_rows': 1}
        assert outcome.items[0].unit_price_raw == '39.90'
        assert len(submitter.calls) == 1

    def test_retry_after_correction(self, merger):
        """Timeout on attempt 1, correction applied, attempt 2 succeeds"""
        submitter = FakeSubmitter(errors=[TimeoutError("timeout")])
        agent = EchoAgent(notes='nothing to fix')

        outcome = _coordinator(merger, submitter, agent).submit([GOOD_LINE], 'ocr text')

        assert outcome.ok
        assert outcome.attempts == 2
        assert len(outcome.history) == 1
        entry = outcome.history[0]
        assert entry.attempt == 1
        assert entry.error == 'timeout'
        assert entry.kind == FailureKind.SUBMISSION_FAILED
        assert entry.agent_applied is True
        assert entry.agent_notes == 'nothing to fix'
        assert entry.agent_error is None
        assert agent.calls == [('timeout', 1)]

    def test_correction_failure_is_terminal(self, merger):
        """A failing correction agent ends the loop after one submission"""
        submitter = FakeSubmitter(always_fail=True)
        agent = FailingAgent()

        outcome = _coordinator(merger, submitter, agent).submit([GOOD_LINE])

        assert isinstance(outcome, ExportFailure)
        assert not outcome.ok
        assert outcome.kind == FailureKind.CORRECTION_FAILED
        assert outcome.error == 'LLM unavailable'
        assert len(outcome.history) == 1
        assert outcome.history[0].agent_applied is False
        assert outcome.history[0].agent_error == 'LLM unavailable'
        assert len(submitter.calls) == 1
        assert agent.calls == 1

    def test_empty_correction_is_a_failure(self, merger):
        """A correction with no items counts as a correction failure"""
        outcome = _coordinator(merger, FakeSubmitter(always_fail=True), EmptyAgent()).submit([GOOD_LINE])

        assert outcome.kind == FailureKind.CORRECTION_FAILED
        assert outcome.history[0].agent_error

    def test_attempts_exhausted(self, merger):
        """The submitter is never called more than max_attempts times"""
        submitter = FakeSubmitter(always_fail=True)

        outcome = _coordinator(merger, submitter, EchoAgent(), max_attempts=3).submit([GOOD_LINE])

        assert outcome.kind == FailureKind.ATTEMPTS_EXHAUSTED
        assert outcome.error == 'HTTP 500'
        assert outcome.attempts == 3
        assert len(submitter.calls) == 3
        assert [entry.attempt for entry in outcome.history] == [1, 2, 3]
        assert [entry.agent_applied for entry in outcome.history] == [True, True, False]

    def test_correction_disabled(self, merger):
        """Without correction the first failure is terminal"""
        submitter = FakeSubmitter(always_fail=True)
        agent = EchoAgent()

        outcome = _coordinator(merger, submitter, agent, enabled=False).submit([GOOD_LINE])

        assert outcome.kind == FailureKind.SUBMISSION_FAILED
        assert outcome.attempts == 1
        assert len(outcome.history) == 1
        assert agent.calls == []

    def test_preflight_failure_skips_submission(self, merger):
        """Rows flagged for review never reach the submitter"""
        submitter = FakeSubmitter()

        outcome = _coordinator(merger, submitter, enabled=False).submit(
            [{'reference_ocr': 'l234567', 'quantity_raw': '1'}]
        )

        assert outcome.kind == FailureKind.PREFLIGHT_INVALID
        assert 'needs_review' in outcome.error
        assert submitter.calls == []
        assert outcome.items[0].reference_ocr == '1234567'

    def test_correction_fixes_preflight(self, merger):
        """Corrected rows are judged afresh by the next merge"""
        submitter = FakeSubmitter()
        agent = EchoAgent(reference='1234567')

        outcome = _coordinator(merger, submitter, agent).submit(
            [{'reference_ocr': 'l234567', 'quantity_raw': '1'}]
        )

        assert outcome.ok
        assert outcome.attempts == 2
        assert outcome.history[0].kind == FailureKind.PREFLIGHT_INVALID
        assert len(submitter.calls) == 1
        assert submitter.calls[0][0].needs_review is False

    def test_empty_items(self, merger):
        """Nothing to export fails locally"""
        submitter = FakeSubmitter()

        outcome = _coordinator(merger, submitter, enabled=False).submit([])

        assert outcome.kind == FailureKind.PREFLIGHT_INVALID
        assert outcome.error == 'Preflight validation failed: No rows to export.'
        assert submitter.calls == []

    def test_items_are_re_merged_before_submission(self, merger):
        """Submitted rows are canonical catalog rows"""
        submitter = FakeSubmitter()

        _coordinator(merger, submitter).submit([{'reference': '444 1179', 'quantity': '2', 'price': '1'}])

        row = submitter.calls[0][0]
        assert row.reference_ocr == '4441179'
        assert row.model_name_raw == 'Robe Fleurie'
        assert row.unit_price_raw == '39.90'

    @pytest.mark.parametrize('requested, expected', [(50, 10), (0, 1), (4, 4)])
    def test_attempt_budget_is_clamped(self, merger, requested, expected):
        assert _coordinator(merger, FakeSubmitter(), max_attempts=requested).max_attempts == expected

    def test_agent_missing_disables_correction(self, merger):
        coordinator = _coordinator(merger, FakeSubmitter(), agent=None, enabled=True)

        assert coordinator.correction_enabled is False

    def test_failure_to_dict(self, merger):
        """Failures serialize with the attempt history in camelCase"""
        outcome = _coordinator(merger, FakeSubmitter(always_fail=True), FailingAgent()).submit([GOOD_LINE])

        data = outcome.to_dict()

        assert data['ok'] is False
        assert data['kind'] == 'correction_failed'
        assert data['history'] == [{
            'attempt': 1,
            'error': 'HTTP 500',
            'kind': 'submission_failed',
            'agentNotes': None,
            'agentApplied': False,
            'agentError': 'LLM unavailable',
        }]
