"""
Request and response bodies for the write endpoints.

Validates inputs at the API boundary before anything reaches the row
store or a notification webhook.
"""

import datetime as dt
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..models.enums import (
    AppointmentStatus,
    InvoiceStatus,
    LeadSource,
    PaymentMethod,
    PaymentStatus,
)
from .analytics import AppointmentRow
from .records import LeadRecord, PatientRecord


# =============================================================================
# Leads
# =============================================================================

class LeadCreate(BaseModel):
    """
    Schema for creating a single lead from the leads screen.

    The lead is stored first; the outreach email is dispatched afterwards.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Contact name"
    )
    email: EmailStr = Field(
        ...,
        description="Contact email"
    )
    company: str = Field(
        default="",
        max_length=255,
        description="Company name"
    )
    source: str = Field(
        default=LeadSource.MANUAL.value,
        max_length=50,
        description="Where the lead came from"
    )

    @field_validator("name", "company")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "company": "Analytical Engines",
                "source": "manual"
            }
        }
    }


class BulkLeadRequest(BaseModel):
    """Pasted lead list, one `name, email[, company]` per line."""

    text: str = Field(..., description="Raw pasted text")


class DispatchOutcome(BaseModel):
    """How the outreach email for a lead was handled."""

    success: bool
    queued: bool = False
    skipped: bool = False
    error: Optional[str] = None


class LeadCreateResponse(BaseModel):
    lead: LeadRecord
    email_dispatch: DispatchOutcome


class LeadImportResponse(BaseModel):
    """
    Result of a CSV or bulk import.

    Leads are inserted as a batch; emails are then dispatched one by one.
    A failed dispatch does not undo the leads or the emails already sent.
    """

    inserted: int = 0
    errors: List[str] = Field(default_factory=list)
    sent: int = 0
    failed: int = 0
    queued: int = 0


# =============================================================================
# Invoices
# =============================================================================

class InvoiceCreate(BaseModel):
    """
    Invoice creation request, forwarded to the invoice automation webhook.
    """

    lead_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    due_date: dt.date
    issued_at: Optional[dt.datetime] = None
    status: InvoiceStatus = InvoiceStatus.PENDING

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    model_config = {
        "json_schema_extra": {
            "example": {
                "lead_id": "6f1c0d6e-1f7b-4b8e-9d7e-0c3f6b2d9a11",
                "amount": "1500.00",
                "currency": "USD",
                "due_date": "2024-02-15"
            }
        }
    }


class InvoiceCreateResponse(BaseModel):
    invoice: Optional[dict] = Field(default=None, description="Payload echoed by the automation")


# =============================================================================
# Clinic
# =============================================================================

class PatientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    whatsapp_number: str = Field(..., min_length=5, max_length=32)
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[str] = Field(default=None, max_length=20)


class PatientUpdate(BaseModel):
    """Partial update; only fields that are set are written."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    whatsapp_number: Optional[str] = Field(default=None, min_length=5, max_length=32)
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[str] = Field(default=None, max_length=20)


class AppointmentUpdate(BaseModel):
    """Admin-side appointment edit (reschedule, status, payment)."""

    date: Optional[dt.date] = None
    time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    status: Optional[AppointmentStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None


class PatientListResponse(BaseModel):
    patients: List[PatientRecord]
    total_count: int
    total_pages: int
    current_page: int


class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentRow]
    total_count: int
    total_pages: int
    current_page: int
    sort_by: str
    sort_order: str
