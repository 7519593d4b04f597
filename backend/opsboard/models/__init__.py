"""
SQLAlchemy ORM models for OpsBoard.

Contains the row-store table definitions for the engagement/billing
dashboard and the clinic admin panel.
"""

from .enums import (
    LeadSource,
    EmailStatus,
    InvoiceStatus,
    PaymentMethod,
    PaymentStatus,
    AppointmentStatus,
    UNKNOWN_SOURCE,
)
from .engagement import Lead, EmailMessage, Invoice, Transaction
from .clinic import Patient, Appointment

__all__ = [
    # Engagement & billing
    "Lead",
    "EmailMessage",
    "Invoice",
    "Transaction",
    # Clinic
    "Patient",
    "Appointment",
    # Enums
    "LeadSource",
    "EmailStatus",
    "InvoiceStatus",
    "PaymentMethod",
    "PaymentStatus",
    "AppointmentStatus",
    "UNKNOWN_SOURCE",
]
