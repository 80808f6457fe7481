"""
CSV file submission: appends reconciled rows to a local spreadsheet export.
"""

import csv
import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from recon import config
from recon.export.sheets import SHEET_HEADER, SubmissionError, build_sheet_row
from recon.models import ResolvedItem

logger = logging.getLogger(__name__)


def build_rows_csv(rows: Sequence[ResolvedItem], header: bool = True) -> str:
    """Render rows in the sheet layout as a CSV string."""
    exported_at = datetime.now(timezone.utc).isoformat()
    output = io.StringIO()
    writer = csv.writer(output)
    if header:
        writer.writerow(SHEET_HEADER)
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in build_sheet_row(row, exported_at)])

    output.seek(0)
    return output.getvalue()


class CsvFileSubmitter:
    """Appends rows to a CSV file; the header is written when the file is new."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else config.EXPORT_CSV_PATH

    def submit(self, rows: Sequence[ResolvedItem]) -> dict:
        if not rows:
            raise SubmissionError("No rows to write.")

        is_new = not self.path.exists() or self.path.stat().st_size == 0
        content = build_rows_csv(rows, header=is_new)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise SubmissionError(f"Could not write {self.path}: {e}") from e

        logger.info(f"Appended {len(rows)} row(s) to {self.path}")
        return {"updated_rows": len(rows), "path": str(self.path)}


def write_rows_csv(rows: List[ResolvedItem], path: Path) -> None:
    """Overwrite path with rows (CLI output)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(build_rows_csv(rows))
