"""
Celery application configuration.

Configures Celery for background work with:
- Redis as message broker
- A notifications queue for outbound webhook calls
- Periodic dashboard cache warming via beat
"""

import logging
from celery import Celery
from kombu import Exchange, Queue

from ..core.config import settings


logger = logging.getLogger(__name__)


# =============================================================================
# Celery Application
# =============================================================================

celery_app = Celery(
    "opsboard",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "opsboard.tasks.notification_tasks",
    ],
)


# =============================================================================
# Celery Configuration
# =============================================================================

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task time limits
    task_time_limit=settings.celery_task_time_limit,
    task_soft_time_limit=max(settings.celery_task_time_limit - 30, 1),

    # Worker settings
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,

    result_expires=3600,

    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,

    # At-most-once delivery for webhook calls
    task_acks_late=False,

    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",

    beat_schedule_filename="/tmp/celerybeat-schedule",
    beat_schedule={
        "cache-warm-dashboard": {
            "task": "opsboard.tasks.notification_tasks.warm_dashboard_cache",
            "schedule": settings.dashboard_warm_interval,
        },
    },
)


# =============================================================================
# Queue Configuration
# =============================================================================

default_exchange = Exchange("default", type="direct")
notifications_exchange = Exchange("notifications", type="direct")

celery_app.conf.task_queues = (
    Queue(
        "default",
        default_exchange,
        routing_key="default",
    ),
    Queue(
        "notifications",
        notifications_exchange,
        routing_key="notifications",
    ),
)

celery_app.conf.task_routes = {
    "opsboard.tasks.notification_tasks.send_lead_email_task": {
        "queue": "notifications",
        "routing_key": "notifications",
    },
}
