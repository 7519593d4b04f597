"""
Pydantic schemas for OpsBoard.

Contains decoded row records, per-screen filter objects, dashboard
view-models, and request/response DTOs.
"""

from .common import (
    HealthResponse,
    ErrorResponse,
    PaginatedResponse,
    SuccessResponse,
)
from .records import (
    LeadRecord,
    EmailRecord,
    InvoiceRecord,
    TransactionRecord,
    PatientRecord,
    AppointmentRecord,
    decode_rows,
)
from .filters import (
    LeadFilters,
    EmailFilters,
    InvoiceFilters,
    TransactionFilters,
    PatientFilters,
    AppointmentFilters,
)

__all__ = [
    # Common schemas
    "HealthResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "SuccessResponse",
    # Records
    "LeadRecord",
    "EmailRecord",
    "InvoiceRecord",
    "TransactionRecord",
    "PatientRecord",
    "AppointmentRecord",
    "decode_rows",
    # View state
    "LeadFilters",
    "EmailFilters",
    "InvoiceFilters",
    "TransactionFilters",
    "PatientFilters",
    "AppointmentFilters",
]
