"""
WhatsApp clinic tables.

Patients book appointments through the WhatsApp assistant; the admin
panel reads and updates them here. Appointment.patient_id is a weak reference.
"""

from sqlalchemy import Column, String, Integer, Date, DateTime

from ..core.database import Base
from .enums import AppointmentStatus, PaymentMethod, PaymentStatus, utcnow


class Patient(Base):
    """Patient registered through WhatsApp or the admin panel."""

    __tablename__ = "patients"

    patient_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)
    whatsapp_number = Column(String(32), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Patient {self.patient_id}>"


class Appointment(Base):
    """Booked consultation slot."""

    __tablename__ = "appointments"

    appointment_id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=True, index=True)
    whatsapp_number = Column(String(32), nullable=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(8), nullable=False)  # HH:MM
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.CASH.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    status = Column(String(20), nullable=False, default=AppointmentStatus.CONFIRMED.value, index=True)
    stripe_payment_intent = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Appointment {self.appointment_id} {self.date} {self.time} status={self.status}>"
