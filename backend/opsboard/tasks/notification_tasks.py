"""
Celery tasks for outbound notifications and cache upkeep.

Provides:
- Lead email dispatch through the email webhook (no automatic retry)
- Periodic warming of the cached dashboard view-models
"""

import logging
from typing import Any, Dict

from celery import shared_task
from sqlalchemy.orm import Session

from ..core.database import SessionLocal
from ..services.cache import get_cache
from ..services.notifications import WebhookNotifier
from ..services.reporting_service import ReportingService
from ..services.row_store import RowStore


logger = logging.getLogger(__name__)


def get_db_session() -> Session:
    """Create a new database session for task execution."""
    return SessionLocal()


# =============================================================================
# Notifications
# =============================================================================

@shared_task(bind=True, max_retries=0)
def send_lead_email_task(self, lead: Dict[str, Any]) -> Dict[str, Any]:
    """
    Trigger the outreach email workflow for one lead.

    A failure is reported in the task result and not retried; the user
    re-sends from the leads screen.

    Args:
        lead: JSON-safe lead fields (id, name, email, company)

    Returns:
        Dict mirroring NotificationResult
    """
    result = WebhookNotifier().send_lead_email(lead)
    if not result.success:
        logger.warning(f"Lead email for {lead.get('id')} not sent: {result.error}")
    return {
        "lead_id": lead.get("id"),
        "success": result.success,
        "skipped": result.skipped,
        "status_code": result.status_code,
        "error": result.error,
    }


# =============================================================================
# Cache Warming
# =============================================================================

@shared_task
def warm_dashboard_cache() -> Dict[str, Any]:
    """
    Periodic task to warm dashboard caches.

    Recomputes the engagement dashboard for every period and the clinic
    analytics page so the first request after expiry is served from cache.
    """
    from ..services.reports import PERIODS

    cache = get_cache()
    if not cache.is_connected:
        return {"status": "skipped", "reason": "cache unavailable"}

    db = get_db_session()
    warmed = []
    try:
        service = ReportingService(RowStore(db), cache)
        cache.invalidate_dashboards()
        for period in PERIODS:
            try:
                service.engagement_dashboard(period)
                warmed.append(f"engagement:{period}")
            except Exception as e:
                logger.warning(f"Failed to warm engagement dashboard ({period}): {e}")
        try:
            service.clinic_analytics()
            warmed.append("clinic")
        except Exception as e:
            logger.warning(f"Failed to warm clinic analytics: {e}")
    finally:
        db.close()

    logger.debug(f"Dashboard cache warmed: {', '.join(warmed)}")
    return {"status": "ok", "warmed": warmed}
