"""
Pydantic models for API request/response schemas
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


class SourceKind(str, Enum):
    """How the uploaded order was read"""
    JSON = "json"
    TEXT = "text"


class ExportStatus(str, Enum):
    """Outcome of an export run"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OrderLine(BaseModel):
    """One order row (input lines are loosely shaped; output rows are canonical)"""
    page: Optional[int] = None
    model_name_raw: Optional[str] = None
    coloris_raw: Optional[str] = None
    reference_ocr: Optional[str] = None
    size_or_code_raw: Optional[str] = None
    quantity_raw: Optional[str] = None
    unit_price_raw: Optional[str] = None
    needs_review: bool = False
    discovered_in_text: bool = Field(False, description="Found only by scanning the OCR text")


class AttemptEntry(BaseModel):
    """One failed export attempt"""
    attempt: int
    error: str
    kind: str
    agentNotes: Optional[str] = None
    agentApplied: bool = False
    agentError: Optional[str] = None


class ExportRequest(BaseModel):
    """Rows to validate and submit"""
    items: List[Dict[str, Any]] = Field(..., description="Extracted or previously reconciled lines")
    ocr_text: Optional[str] = Field(None, description="Raw OCR text, used for discovery and correction")


class ExportResponse(BaseModel):
    """Successful export"""
    ok: bool = True
    result: Any = None
    attempts: int
    items: List[OrderLine]
    history: List[AttemptEntry] = []
    export_run_id: Optional[int] = None


class ProcessResponse(BaseModel):
    """Order processed from an upload"""
    order_id: str
    source_kind: SourceKind
    filename: Optional[str] = None
    items: List[OrderLine]
    needs_review: int = Field(0, description="Rows flagged for human review")
    ocr_text: Optional[str] = None
    export: Optional[Dict[str, Any]] = Field(None, description="Auto-export outcome when enabled")


class ExportRunInfo(BaseModel):
    """Stored export run"""
    id: int
    status: ExportStatus
    kind: Optional[str] = None
    attempts: int
    error: Optional[str] = None
    history: List[AttemptEntry] = []
    created_at: datetime


class OrderInfo(BaseModel):
    """Stored order with its export runs"""
    order_id: str
    source_kind: SourceKind
    filename: Optional[str] = None
    created_at: datetime
    ocr_text: Optional[str] = None
    items: List[OrderLine]
    export_runs: List[ExportRunInfo] = []


class DiscoveryRequest(BaseModel):
    """Text to scan for catalog references"""
    ocr_text: str = Field(..., min_length=1)
