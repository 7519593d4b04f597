"""
Status vocabularies shared by models, records, and view-models.

Columns store these as plain strings; decoding at the row-store
boundary maps them back onto the enums.
"""

import enum
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current time, used as the column default for timestamps."""
    return datetime.now(timezone.utc)


class LeadSource(str, enum.Enum):
    """
    Known lead sources.

    The column is free text; a missing source is reported as "Unknown".
    """
    MANUAL = "manual"
    CSV = "CSV"
    BULK = "bulk"
    WEB = "web"
    CONTACTED = "contacted"


UNKNOWN_SOURCE = "Unknown"


class EmailStatus(str, enum.Enum):
    """Outreach email delivery status (pending -> sent | failed, failed -> pending on retry)."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class InvoiceStatus(str, enum.Enum):
    """Invoice payment status."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, enum.Enum):
    """How an appointment is paid."""
    STRIPE = "Stripe"
    CASH = "Cash"


class PaymentStatus(str, enum.Enum):
    """Appointment payment status."""
    PENDING = "Pending"
    PAID = "Paid"
    REFUNDED = "Refunded"


class AppointmentStatus(str, enum.Enum):
    """Appointment lifecycle status."""
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
