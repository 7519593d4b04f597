"""
Shared FastAPI dependencies.

Each request gets its own session, row store, and reporting service;
the cache and the webhook notifier are process-wide.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..services.cache import get_cache
from ..services.notifications import WebhookNotifier
from ..services.reporting_service import ReportingService
from ..services.row_store import RowStore


def get_row_store(db: Session = Depends(get_db)) -> RowStore:
    return RowStore(db)


def get_reporting_service(row_store: RowStore = Depends(get_row_store)) -> ReportingService:
    return ReportingService(row_store, get_cache())


def get_notifier() -> WebhookNotifier:
    """Webhook client; overridden in tests with a mock transport."""
    return WebhookNotifier()
