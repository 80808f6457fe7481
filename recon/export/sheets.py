"""
Google Sheets submission through the v4 `values:append` REST endpoint.

Rows are appended below the header line of the configured tab with
USER_ENTERED semantics, so prices and quantities land as numbers.
The bearer token comes from configuration; acquiring it is out of scope.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import requests

from recon import config
from recon.models import ResolvedItem

logger = logging.getLogger(__name__)

SHEET_HEADER = [
    "page",
    "model",
    "color",
    "reference",
    "size",
    "quantity",
    "price",
    "exported_at",
]


class SubmissionError(RuntimeError):
    """The export target rejected the rows or could not be reached."""


def _cell(value) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def build_sheet_row(item: ResolvedItem, exported_at: Optional[str] = None) -> List[Optional[str]]:
    """page, model, color, reference, size, quantity, price, ISO timestamp"""
    return [
        _cell(item.page),
        _cell(item.model_name_raw),
        _cell(item.coloris_raw),
        _cell(item.reference_ocr),
        _cell(item.size_or_code_raw),
        _cell(item.quantity_raw),
        _cell(item.unit_price_raw),
        exported_at or datetime.now(timezone.utc).isoformat(),
    ]


class GoogleSheetsSubmitter:
    """Appends reconciled rows to a spreadsheet tab."""

    def __init__(
        self,
        sheet_id: Optional[str] = None,
        tab_name: Optional[str] = None,
        access_token: Optional[str] = None,
        enabled: Optional[bool] = None,
        api_base: Optional[str] = None,
        timeout: int = 20,
        session: Optional[requests.Session] = None,
    ):
        self.sheet_id = sheet_id or config.GOOGLE_SHEET_ID
        self.tab_name = tab_name or config.GOOGLE_SHEETS_TAB_NAME
        self.access_token = access_token or config.GOOGLE_SHEETS_ACCESS_TOKEN
        self.enabled = config.ENABLE_GOOGLE_SHEETS if enabled is None else enabled
        self.api_base = (api_base or config.GOOGLE_SHEETS_API_BASE).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _check_configuration(self) -> None:
        if not self.enabled:
            raise SubmissionError("Google Sheets export is disabled.")
        if not self.sheet_id:
            raise SubmissionError("GOOGLE_SHEET_ID is not set.")
        if not self.access_token:
            raise SubmissionError("GOOGLE_SHEETS_ACCESS_TOKEN is not set.")

    def submit(self, rows: Sequence[ResolvedItem]) -> dict:
        if not rows:
            raise SubmissionError("No rows to send to Google Sheets.")
        self._check_configuration()

        exported_at = datetime.now(timezone.utc).isoformat()
        values = [build_sheet_row(row, exported_at) for row in rows]
        url = f"{self.api_base}/{self.sheet_id}/values/{self.tab_name}!A2:append"
        params = {
            "valueInputOption": "USER_ENTERED",
            "insertDataOption": "INSERT_ROWS",
        }

        try:
            response = self.session.post(
                url,
                params=params,
                json={"values": values},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SubmissionError(f"Google Sheets request failed: {e}") from e

        if not response.ok:
            raise SubmissionError(f"Google Sheets error ({response.status_code}): {response.text[:500]}")

        try:
            updates = (response.json() or {}).get("updates") or {}
        except ValueError:
            updates = {}

        logger.info(f"Appended {len(values)} row(s) to sheet {self.sheet_id}/{self.tab_name}")
        return {
            "updated_range": updates.get("updatedRange"),
            "updated_rows": updates.get("updatedRows", len(values)),
        }
