"""
Outreach email endpoints.

Emails are written by the automation workflow; this screen lists them,
shows delivery stats, and re-queues failed ones.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..models.enums import EmailStatus
from ..schemas.analytics import EmailStats
from ..schemas.filters import EmailFilters
from ..schemas.records import EmailRecord, decode_rows
from ..services.reporting_service import ReportingService
from ..services.row_store import RowFilter, RowStore
from .deps import get_reporting_service, get_row_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/emails", tags=["Emails"])


@router.get(
    "",
    response_model=List[EmailRecord],
    summary="List Emails",
    description="Newest first, filtered by status and search text.",
)
async def list_emails(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, sent, failed, or all"),
    search: Optional[str] = Query(None, description="Subject, body, or lead id"),
    service: ReportingService = Depends(get_reporting_service),
) -> List[EmailRecord]:
    return service.emails(EmailFilters(status=status_filter, search=search))


@router.get(
    "/stats",
    response_model=EmailStats,
    summary="Email Stats",
)
async def email_stats(service: ReportingService = Depends(get_reporting_service)) -> EmailStats:
    return service.email_stats()


@router.post(
    "/{email_id}/retry",
    response_model=EmailRecord,
    summary="Retry Email",
    description="Move a failed email back to pending so the workflow picks it up again.",
)
async def retry_email(
    email_id: UUID,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> EmailRecord:
    current = decode_rows(
        EmailRecord,
        row_store.select("emails", filters=[RowFilter("id", "eq", email_id)]),
    )
    if not current:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Email {email_id} not found"
        )
    if current[0].status != EmailStatus.FAILED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Only failed emails can be retried (status is {current[0].status.value})"
        )

    # The status guard makes a concurrent retry a no-op
    updated = decode_rows(
        EmailRecord,
        row_store.update(
            "emails",
            {"status": EmailStatus.PENDING.value},
            [RowFilter("id", "eq", email_id), RowFilter("status", "eq", EmailStatus.FAILED.value)],
        ),
    )
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email status changed before the retry was applied"
        )

    service.invalidate()
    logger.info(f"Email {email_id} re-queued for delivery")
    return updated[0]
