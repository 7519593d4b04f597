"""
Transaction endpoints.

Lists payments for a trailing window or a custom date range, with stat
cards and a CSV export of the filtered list.
"""

import csv
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from ..schemas.analytics import TransactionStats
from ..schemas.filters import TransactionFilters
from ..schemas.records import TransactionRecord
from ..services.reporting_service import ReportingService
from .deps import get_reporting_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])

EXPORT_HEADERS = ["ID", "Invoice ID", "Amount", "Currency", "Payment Method", "Date"]


def transaction_filters(
    date_range: str = Query("30d", description="7d, 30d, 90d, all, or custom"),
    date_from: Optional[datetime] = Query(None, description="Custom range start (inclusive)"),
    date_to: Optional[datetime] = Query(None, description="Custom range end (inclusive)"),
    payment_method: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Id, invoice id, method, or currency"),
) -> TransactionFilters:
    try:
        return TransactionFilters(
            date_range=date_range,
            date_from=date_from,
            date_to=date_to,
            payment_method=payment_method,
            search=search,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid transaction filters: {e.errors()[0]['msg']}"
        )


def export_rows(transactions: List[TransactionRecord]) -> List[list]:
    """CSV body rows for transactions, in list order."""
    rows = []
    for t in transactions:
        rows.append([
            str(t.id),
            str(t.invoice_id) if t.invoice_id else "",
            f"{t.amount:.2f}",
            t.currency,
            t.payment_method or "N/A",
            t.transaction_date.strftime("%Y-%m-%d %H:%M:%S") if t.transaction_date else "",
        ])
    return rows


@router.get(
    "",
    response_model=List[TransactionRecord],
    summary="List Transactions",
    description="Newest first within the selected window.",
)
async def list_transactions(
    filters: TransactionFilters = Depends(transaction_filters),
    service: ReportingService = Depends(get_reporting_service),
) -> List[TransactionRecord]:
    return service.transactions(filters)


@router.get(
    "/stats",
    response_model=TransactionStats,
    summary="Transaction Stats",
    description="Count, total, and average over the filtered transactions.",
)
async def transaction_stats(
    filters: TransactionFilters = Depends(transaction_filters),
    service: ReportingService = Depends(get_reporting_service),
) -> TransactionStats:
    return service.transaction_stats(filters)


@router.get(
    "/export",
    summary="Export Transactions",
    description="Download the filtered transactions as CSV.",
)
async def export_transactions(
    filters: TransactionFilters = Depends(transaction_filters),
    service: ReportingService = Depends(get_reporting_service),
):
    transactions = service.transactions(filters)

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(export_rows(transactions))

    filename = f"transactions-{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.csv"
    logger.info(f"Exporting {len(transactions)} transactions to {filename}")

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Cache-Control": "no-cache",
        },
    )
