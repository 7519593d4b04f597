"""
Client engagement and billing tables.

Leads receive outreach emails and invoices; transactions record payments
against invoices. Cross-table ids are weak references: plain columns with
no foreign-key constraint, so a referenced row may have been deleted.
"""

import uuid

from sqlalchemy import Column, String, Text, DateTime, Numeric, Uuid

from ..core.database import Base
from .enums import EmailStatus, InvoiceStatus, utcnow


class Lead(Base):
    """
    Prospective client.

    Attributes:
        source: manual / CSV / bulk / web / contacted; doubles as a lifecycle tag
    """

    __tablename__ = "leads"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, index=True)
    company = Column(String(255), nullable=True)
    source = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Lead {self.id} source={self.source}>"


class EmailMessage(Base):
    """Outreach email generated for a lead by the automation workflow."""

    __tablename__ = "emails"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    subject = Column(String(500), nullable=True)
    body = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=EmailStatus.PENDING.value, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<EmailMessage {self.id} status={self.status}>"


class Invoice(Base):
    """
    Invoice issued to a lead.

    paid_at is only set on the transition to paid.
    """

    __tablename__ = "invoices"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=InvoiceStatus.PENDING.value, index=True)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Invoice {self.id} {self.amount} {self.currency} status={self.status}>"


class Transaction(Base):
    """Append-only payment record against an invoice."""

    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    payment_method = Column(String(50), nullable=True, index=True)
    transaction_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.amount} {self.currency}>"
