"""
Business logic services for OpsBoard.

Contains the reporting aggregator, the row-store client, the
notification webhook client, and the view-model cache. Report builders
and the reporting service depend on schemas and are imported from their
own modules.
"""

from .row_store import RowStore, RowFilter, AnyOf, RowOrder, RowRange
from .notifications import WebhookNotifier, NotificationResult, NotificationBatch
from .cache import CacheService, get_cache
from .lead_import import ImportBatch, parse_csv_leads, parse_bulk_leads

__all__ = [
    "RowStore",
    "RowFilter",
    "AnyOf",
    "RowOrder",
    "RowRange",
    "WebhookNotifier",
    "NotificationResult",
    "NotificationBatch",
    "CacheService",
    "get_cache",
    "ImportBatch",
    "parse_csv_leads",
    "parse_bulk_leads",
]
