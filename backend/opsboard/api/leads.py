"""
Lead management endpoints.

Handles manual lead entry, CSV and bulk imports, outreach email
dispatch, and the lead list for the leads screen.

Creating or importing leads stores them first and then dispatches the
outreach email per lead. Dispatch is best-effort: a failed email never
undoes the stored lead, and the response reports the outcome.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from ..core.config import settings
from ..schemas.analytics import LeadStats
from ..schemas.common import PaginatedResponse, SuccessResponse
from ..schemas.entities import (
    BulkLeadRequest,
    DispatchOutcome,
    LeadCreate,
    LeadCreateResponse,
    LeadImportResponse,
)
from ..schemas.filters import LeadFilters
from ..schemas.records import LeadRecord, decode_rows
from ..services.lead_import import ImportBatch, parse_bulk_leads, parse_csv_leads
from ..services.notifications import WebhookNotifier, lead_payload
from ..services.reporting_service import ReportingService
from ..services.row_store import RowFilter, RowStore
from ..tasks.notification_tasks import send_lead_email_task
from .deps import get_notifier, get_reporting_service, get_row_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/leads", tags=["Leads"])


# =============================================================================
# Helper Functions
# =============================================================================

async def dispatch_lead_emails(leads: List[LeadRecord], notifier: WebhookNotifier) -> LeadImportResponse:
    """
    Dispatch the outreach email for each lead.

    In "celery" mode each lead is queued; otherwise the webhook is called
    inline. Either way one lead's failure does not stop the others.

    Returns:
        LeadImportResponse with sent / failed / queued counts filled in
    """
    outcome = LeadImportResponse(inserted=len(leads))
    if settings.notification_mode == "celery":
        for lead in leads:
            try:
                send_lead_email_task.delay(lead_payload(lead)["lead"])
                outcome.queued += 1
            except Exception as e:
                logger.error(f"Failed to queue email for lead {lead.id}: {e}")
                outcome.failed += 1
        return outcome

    batch = await notifier.notify_leads(leads)
    outcome.sent = batch.sent + batch.skipped
    outcome.failed = batch.failed
    return outcome


def _get_lead_or_404(row_store: RowStore, lead_id: UUID) -> LeadRecord:
    rows = row_store.select("leads", filters=[RowFilter("id", "eq", lead_id)])
    leads = decode_rows(LeadRecord, rows)
    if not leads:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Lead {lead_id} not found"
        )
    return leads[0]


async def _import(
    batch: ImportBatch,
    row_store: RowStore,
    service: ReportingService,
    notifier: WebhookNotifier,
) -> LeadImportResponse:
    if not batch.leads:
        return LeadImportResponse(inserted=0, errors=batch.errors)

    inserted = decode_rows(LeadRecord, row_store.insert("leads", batch.leads))
    service.invalidate()
    outcome = await dispatch_lead_emails(inserted, notifier)
    outcome.errors = batch.errors
    logger.info(
        f"Imported {outcome.inserted} leads ({len(batch.errors)} rejected); "
        f"emails sent={outcome.sent} failed={outcome.failed} queued={outcome.queued}"
    )
    return outcome


# =============================================================================
# Lead List & Stats
# =============================================================================

@router.get(
    "",
    response_model=PaginatedResponse[LeadRecord],
    summary="List Leads",
    description="Newest first, filtered by search text, company, and source.",
)
async def list_leads(
    search: Optional[str] = Query(None, description="Name, email, or company"),
    company: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    row_store: RowStore = Depends(get_row_store),
) -> PaginatedResponse[LeadRecord]:
    filters = LeadFilters(
        search=search, company=company, source=source, page=page, page_size=page_size
    )
    total = row_store.count("leads", filters.row_filters())
    rows = row_store.select(
        "leads",
        filters=filters.row_filters(),
        order=filters.order(),
        range_=filters.range(),
    )
    return PaginatedResponse[LeadRecord].build(decode_rows(LeadRecord, rows), total, page, page_size)


@router.get(
    "/stats",
    response_model=LeadStats,
    summary="Lead Stats",
    description="Total leads and counts per source.",
)
async def lead_stats(service: ReportingService = Depends(get_reporting_service)) -> LeadStats:
    return service.lead_stats()


# =============================================================================
# Lead Creation & Import
# =============================================================================

@router.post(
    "",
    response_model=LeadCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Lead",
    description="Store a lead, then trigger its outreach email.",
)
async def create_lead(
    lead_data: LeadCreate,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
    notifier: WebhookNotifier = Depends(get_notifier),
) -> LeadCreateResponse:
    inserted = decode_rows(LeadRecord, row_store.insert("leads", lead_data.model_dump()))
    if not inserted:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Lead was not stored"
        )
    lead = inserted[0]
    service.invalidate()

    outcome = await dispatch_lead_emails([lead], notifier)
    dispatch = DispatchOutcome(
        success=outcome.failed == 0,
        queued=outcome.queued > 0,
        error="Email dispatch failed" if outcome.failed else None,
    )
    return LeadCreateResponse(lead=lead, email_dispatch=dispatch)


@router.post(
    "/import-csv",
    response_model=LeadImportResponse,
    summary="Import Leads From CSV",
    description="CSV with a header row: name, email, company, source.",
)
async def import_csv(
    file: UploadFile = File(...),
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
    notifier: WebhookNotifier = Depends(get_notifier),
) -> LeadImportResponse:
    content = await file.read()
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded"
        )
    return await _import(parse_csv_leads(text), row_store, service, notifier)


@router.post(
    "/bulk",
    response_model=LeadImportResponse,
    summary="Bulk Add Leads",
    description="One `name, email[, company]` per line.",
)
async def bulk_add(
    request: BulkLeadRequest,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
    notifier: WebhookNotifier = Depends(get_notifier),
) -> LeadImportResponse:
    return await _import(parse_bulk_leads(request.text), row_store, service, notifier)


# =============================================================================
# Single Lead Actions
# =============================================================================

@router.post(
    "/{lead_id}/send-email",
    response_model=DispatchOutcome,
    summary="Send Lead Email",
    description="Manually (re)trigger the outreach email for a lead.",
)
async def send_email(
    lead_id: UUID,
    row_store: RowStore = Depends(get_row_store),
    notifier: WebhookNotifier = Depends(get_notifier),
) -> DispatchOutcome:
    lead = _get_lead_or_404(row_store, lead_id)
    result = await notifier.send_lead_email_async(lead)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.error or "Failed to trigger email workflow"
        )
    return DispatchOutcome(success=True, skipped=result.skipped)


@router.delete(
    "/{lead_id}",
    response_model=SuccessResponse,
    summary="Delete Lead",
)
async def delete_lead(
    lead_id: UUID,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> SuccessResponse:
    _get_lead_or_404(row_store, lead_id)
    row_store.delete("leads", [RowFilter("id", "eq", lead_id)])
    service.invalidate()
    return SuccessResponse(message=f"Lead {lead_id} deleted")
