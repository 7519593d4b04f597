"""
Invoice endpoints.

Invoices are created by the invoice automation webhook, which also
stores them; the API only lists, marks paid, and deletes locally.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..models.enums import InvoiceStatus
from ..schemas.analytics import InvoiceRow, InvoiceStats
from ..schemas.common import SuccessResponse
from ..schemas.entities import InvoiceCreate, InvoiceCreateResponse
from ..schemas.filters import InvoiceFilters
from ..schemas.records import InvoiceRecord, decode_rows
from ..services.notifications import WebhookNotifier
from ..services.reporting_service import ReportingService
from ..services.row_store import RowFilter, RowStore
from .deps import get_notifier, get_reporting_service, get_row_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])


def _get_invoice_or_404(row_store: RowStore, invoice_id: UUID) -> InvoiceRecord:
    rows = row_store.select("invoices", filters=[RowFilter("id", "eq", invoice_id)])
    invoices = decode_rows(InvoiceRecord, rows)
    if not invoices:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice {invoice_id} not found"
        )
    return invoices[0]


@router.get(
    "",
    response_model=List[InvoiceRow],
    summary="List Invoices",
    description="Newest first, each with its lead (null when the lead was deleted).",
)
async def list_invoices(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, paid, overdue, or all"),
    search: Optional[str] = Query(None, description="Invoice id or lead id"),
    service: ReportingService = Depends(get_reporting_service),
) -> List[InvoiceRow]:
    return service.invoice_rows(InvoiceFilters(status=status_filter, search=search))


@router.get(
    "/stats",
    response_model=InvoiceStats,
    summary="Invoice Stats",
)
async def invoice_stats(service: ReportingService = Depends(get_reporting_service)) -> InvoiceStats:
    return service.invoice_stats()


@router.post(
    "",
    response_model=InvoiceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Invoice",
    description="Forward the invoice to the invoice automation webhook.",
)
async def create_invoice(
    invoice_data: InvoiceCreate,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
    notifier: WebhookNotifier = Depends(get_notifier),
) -> InvoiceCreateResponse:
    lead_exists = row_store.count("leads", [RowFilter("id", "eq", invoice_data.lead_id)])
    if not lead_exists:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Lead {invoice_data.lead_id} not found"
        )

    payload = invoice_data.model_dump(mode="json")
    if payload.get("issued_at") is None:
        payload["issued_at"] = datetime.now(timezone.utc).isoformat()

    result = await notifier.create_invoice_async(payload)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.error or "Failed to create invoice"
        )

    service.invalidate()
    data = result.data if isinstance(result.data, dict) else None
    return InvoiceCreateResponse(invoice=data)


@router.patch(
    "/{invoice_id}/mark-paid",
    response_model=InvoiceRecord,
    summary="Mark Invoice Paid",
    description="Set status to paid; paid_at is recorded on the transition only.",
)
async def mark_paid(
    invoice_id: UUID,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> InvoiceRecord:
    invoice = _get_invoice_or_404(row_store, invoice_id)
    if invoice.status == InvoiceStatus.PAID:
        return invoice

    updated = decode_rows(
        InvoiceRecord,
        row_store.update(
            "invoices",
            {"status": InvoiceStatus.PAID.value, "paid_at": datetime.now(timezone.utc)},
            # The status guard keeps paid_at from a concurrent mark-paid
            [
                RowFilter("id", "eq", invoice_id),
                RowFilter("status", "neq", InvoiceStatus.PAID.value),
            ],
        ),
    )
    if not updated:
        return _get_invoice_or_404(row_store, invoice_id)

    service.invalidate()
    logger.info(f"Invoice {invoice_id} marked paid")
    return updated[0]


@router.delete(
    "/{invoice_id}",
    response_model=SuccessResponse,
    summary="Delete Invoice",
)
async def delete_invoice(
    invoice_id: UUID,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> SuccessResponse:
    _get_invoice_or_404(row_store, invoice_id)
    row_store.delete("invoices", [RowFilter("id", "eq", invoice_id)])
    service.invalidate()
    return SuccessResponse(message=f"Invoice {invoice_id} deleted")
