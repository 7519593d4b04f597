"""
API route controllers for OpsBoard.

One router per dashboard screen. Routes build the screen's filter
object from query parameters and delegate to the row store and the
reporting service.
"""

from .health import router as health_router
from .dashboard import router as dashboard_router
from .leads import router as leads_router
from .emails import router as emails_router
from .invoices import router as invoices_router
from .transactions import router as transactions_router
from .patients import router as patients_router
from .appointments import router as appointments_router
from .clinic_analytics import router as clinic_analytics_router

__all__ = [
    "health_router",
    "dashboard_router",
    "leads_router",
    "emails_router",
    "invoices_router",
    "transactions_router",
    "patients_router",
    "appointments_router",
    "clinic_analytics_router",
]
