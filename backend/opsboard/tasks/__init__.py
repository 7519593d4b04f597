"""
Celery tasks package.

Provides background task infrastructure for:
- Lead email dispatch when notification_mode is "celery"
- Dashboard cache warming
"""

from .celery_app import celery_app
from .notification_tasks import send_lead_email_task, warm_dashboard_cache

__all__ = [
    "celery_app",
    "send_lead_email_task",
    "warm_dashboard_cache",
]
