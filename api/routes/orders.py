"""
Order routes
Handles upload processing, export with automated correction, and debugging
"""

import json
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from api.database import ExportRun, Order, get_db
from api.models import (
    DiscoveryRequest, ExportRequest, ExportResponse, ExportRunInfo, ExportStatus,
    OrderInfo, ProcessResponse, SourceKind,
)
from api.services.rate_limiter import export_limit, upload_limit
from api.services.reconciliation import get_coordinator, get_reconciler
from recon import config
from recon.bon_mapper import map_bon_to_items
from recon.export import ExportRetryCoordinator
from recon.export.coordinator import ExportResult
from recon.llm.extraction import structurize_order_lines
from recon.llm.groq_client import LLMError
from recon.models import ResolvedItem
from recon.reconciler import OrderReconciler

logger = logging.getLogger(__name__)

router = APIRouter()


def _record_run(db: Session, outcome: ExportResult, order_id: Optional[str] = None) -> ExportRun:
    run = ExportRun(
        order_id=order_id,
        status=(ExportStatus.SUCCEEDED if outcome.ok else ExportStatus.FAILED).value,
        kind=None if outcome.ok else outcome.kind.value,
        attempts=outcome.attempts,
        error=None if outcome.ok else outcome.error,
        history_json=json.dumps([entry.to_dict() for entry in outcome.history]),
        created_at=datetime.utcnow(),
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def _export_response(db: Session, outcome: ExportResult, order_id: Optional[str] = None) -> ExportResponse:
    run = _record_run(db, outcome, order_id)
    if not outcome.ok:
        logger.warning(f"Export failed ({outcome.kind.value}) after {outcome.attempts} attempt(s): {outcome.error}")
        detail = outcome.to_dict()
        detail["export_run_id"] = run.id
        raise HTTPException(status_code=502, detail=detail)

    return ExportResponse(
        result=outcome.result,
        attempts=outcome.attempts,
        items=[row.to_dict() for row in outcome.items],
        history=[entry.to_dict() for entry in outcome.history],
        export_run_id=run.id,
    )


def _read_upload(file: UploadFile) -> str:
    content = file.file.read(config.MAX_UPLOAD_BYTES + 1)
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large (limit {config.MAX_UPLOAD_BYTES // (1024 * 1024)} MB)",
        )
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    return content.decode("utf-8-sig", errors="replace")


@router.get("/config")
def get_config(reconciler: OrderReconciler = Depends(get_reconciler)):
    """Flags and limits in effect, plus catalog statistics"""
    return {
        **reconciler.settings(),
        "auto_export": config.AUTO_EXPORT_ON_PROCESS,
        "catalog": reconciler.index.stats(),
    }


@router.post("/process", response_model=ProcessResponse)
@upload_limit
def process_order(
    request: Request,  # Required for rate limiter
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    reconciler: OrderReconciler = Depends(get_reconciler),
):
    """
    Process one order form

    Accepts either a JSON bon (already structured lines, possibly with the
    OCR text embedded) or plain OCR text, which is structured by the LLM.
    Lines are reconciled against the catalog and the order is stored.
    """
    filename = file.filename or ""
    content = _read_upload(file)

    parsed = None
    if filename.lower().endswith(".json") or content.lstrip().startswith(("{", "[")):
        try:
            parsed = json.loads(content)
        except ValueError as e:
            if filename.lower().endswith(".json"):
                raise HTTPException(status_code=400, detail=f"Invalid JSON: {e}")

    if parsed is not None:
        bon = map_bon_to_items(parsed)
        items, ocr_text, source_kind = bon.items, bon.ocr_text, SourceKind.JSON
    else:
        try:
            items = structurize_order_lines(content)
        except LLMError as e:
            logger.error(f"Extraction failed for {filename}: {e}")
            raise HTTPException(status_code=502, detail=f"Extraction failed: {e}")
        ocr_text, source_kind = content, SourceKind.TEXT

    rows: List[ResolvedItem] = reconciler.reconcile(items, ocr_text)

    order = Order(
        id=str(uuid.uuid4()),
        source_filename=filename or None,
        source_kind=source_kind.value,
        ocr_text=ocr_text,
        items_json=json.dumps([row.to_dict() for row in rows], ensure_ascii=False),
        created_at=datetime.utcnow(),
    )
    db.add(order)
    db.commit()
    logger.info(f"Order {order.id}: {len(items)} line(s) read, {len(rows)} row(s) reconciled from {filename}")

    export_summary = None
    if config.AUTO_EXPORT_ON_PROCESS:
        outcome = get_coordinator().submit(rows, ocr_text)
        run = _record_run(db, outcome, order.id)
        export_summary = {**outcome.to_dict(), "export_run_id": run.id}

    return ProcessResponse(
        order_id=order.id,
        source_kind=source_kind,
        filename=filename or None,
        items=[row.to_dict() for row in rows],
        needs_review=sum(1 for row in rows if row.needs_review),
        ocr_text=ocr_text,
        export=export_summary,
    )


@router.post("/export", response_model=ExportResponse)
@export_limit
def export_items(
    request: Request,  # Required for rate limiter
    payload: ExportRequest,
    db: Session = Depends(get_db),
    coordinator: ExportRetryCoordinator = Depends(get_coordinator),
):
    """
    Validate and submit rows, letting the correction agent fix them between attempts

    Failure returns 502 with the error, its kind and the attempt history.
    """
    if not payload.items:
        raise HTTPException(status_code=400, detail="No items to export")
    outcome = coordinator.submit(payload.items, payload.ocr_text)
    return _export_response(db, outcome)


@router.post("/debug-discovery")
def debug_discovery(payload: DiscoveryRequest, reconciler: OrderReconciler = Depends(get_reconciler)):
    """Which catalog references each discovery pass finds in a text"""
    return reconciler.explain_discovery(payload.ocr_text).to_dict()


@router.post("/{order_id}/export", response_model=ExportResponse)
@export_limit
def export_order(
    request: Request,  # Required for rate limiter
    order_id: str,
    db: Session = Depends(get_db),
    coordinator: ExportRetryCoordinator = Depends(get_coordinator),
):
    """Export a stored order"""
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    outcome = coordinator.submit(order.items, order.ocr_text)
    if outcome.ok:
        order.items_json = json.dumps([row.to_dict() for row in outcome.items], ensure_ascii=False)
        db.commit()
    return _export_response(db, outcome, order.id)


@router.get("/{order_id}", response_model=OrderInfo)
def get_order(order_id: str, db: Session = Depends(get_db)):
    """Stored order with its export runs"""
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    return OrderInfo(
        order_id=order.id,
        source_kind=order.source_kind,
        filename=order.source_filename,
        created_at=order.created_at,
        ocr_text=order.ocr_text,
        items=order.items,
        export_runs=[
            ExportRunInfo(
                id=run.id,
                status=run.status,
                kind=run.kind,
                attempts=run.attempts,
                error=run.error,
                history=run.history,
                created_at=run.created_at,
            )
            for run in order.export_runs
        ],
    )
