"""
Typed records for rows read through the row store.

Every table read is decoded into one of these before it reaches the
aggregator or an API response. Optional columns get neutral defaults,
amounts become exact Decimals, and status columns are checked against
their enum. A row that cannot be decoded is logged and skipped so one
bad row never blanks a whole screen.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..models.enums import (
    EmailStatus,
    InvoiceStatus,
    PaymentMethod,
    PaymentStatus,
    AppointmentStatus,
)
from ..services.aggregator import to_decimal


logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


# =============================================================================
# Engagement & Billing
# =============================================================================

class LeadRecord(_Record):
    id: UUID
    name: str = ""
    email: str = ""
    company: str = ""
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("name", "email", "company", mode="before")
    @classmethod
    def blank_text(cls, value: Any) -> Any:
        return _blank_if_none(value)


class EmailRecord(_Record):
    id: UUID
    lead_id: Optional[UUID] = None
    subject: str = ""
    body: str = ""
    status: EmailStatus = EmailStatus.PENDING
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("subject", "body", mode="before")
    @classmethod
    def blank_text(cls, value: Any) -> Any:
        return _blank_if_none(value)


class InvoiceRecord(_Record):
    id: UUID
    lead_id: Optional[UUID] = None
    amount: Decimal = Decimal(0)
    currency: str = "USD"
    status: InvoiceStatus = InvoiceStatus.PENDING
    issued_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, value: Any) -> Any:
        return value or "USD"


class TransactionRecord(_Record):
    id: UUID
    invoice_id: Optional[UUID] = None
    amount: Decimal = Decimal(0)
    currency: str = "USD"
    payment_method: Optional[str] = None
    transaction_date: Optional[datetime] = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, value: Any) -> Any:
        return value or "USD"


# =============================================================================
# Clinic
# =============================================================================

class PatientRecord(_Record):
    patient_id: str
    name: str = ""
    age: Optional[int] = None
    gender: Optional[str] = None
    whatsapp_number: str = ""
    created_at: Optional[datetime] = None

    @field_validator("name", "whatsapp_number", mode="before")
    @classmethod
    def blank_text(cls, value: Any) -> Any:
        return _blank_if_none(value)

    @field_validator("age", mode="before")
    @classmethod
    def lenient_age(cls, value: Any) -> Optional[int]:
        """Ages are typed in by hand over WhatsApp; unreadable ones are dropped."""
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class AppointmentRecord(_Record):
    appointment_id: str
    patient_id: Optional[str] = None
    whatsapp_number: Optional[str] = None
    date: date
    time: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    stripe_payment_intent: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("time", mode="before")
    @classmethod
    def blank_time(cls, value: Any) -> Any:
        return _blank_if_none(value)


# =============================================================================
# Decoding
# =============================================================================

def decode_rows(record_cls: Type[R], rows: Iterable[Any]) -> List[R]:
    """
    Decode raw rows into records, skipping rows that fail validation.

    Args:
        record_cls: Record type to validate against
        rows: Mappings or ORM objects

    Returns:
        Decoded records in input order
    """
    records: List[R] = []
    skipped = 0
    for row in rows:
        try:
            records.append(record_cls.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.warning(
                f"Skipping undecodable {record_cls.__name__} row: "
                f"{e.error_count()} error(s), first: {e.errors()[0]['msg']}"
            )
    if skipped:
        logger.info(f"Decoded {len(records)} {record_cls.__name__} rows, skipped {skipped}")
    return records
