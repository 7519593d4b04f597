"""
Dashboard view-model schemas.

Read-only structures produced by the report builders and returned as
JSON to chart and table widgets. Money is held as exact Decimal and
rendered as a JSON number.
"""

import datetime as dt
from decimal import Decimal
from typing import Annotated, Dict, List, Optional, Union

from pydantic import BaseModel, Field, PlainSerializer

from .records import AppointmentRecord, InvoiceRecord, LeadRecord, PatientRecord


Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# =============================================================================
# Engagement Dashboard
# =============================================================================

class KpiCard(BaseModel):
    """Single KPI value with its change against the previous period."""

    value: Union[int, Money] = Field(..., description="Value for the current period")
    previous: Union[int, Money] = Field(default=0, description="Value for the previous period")
    trend: float = Field(default=0.0, description="Percent change vs previous period")


class EngagementKpis(BaseModel):
    total_leads: KpiCard
    emails_sent: KpiCard
    revenue: KpiCard
    pending_invoices: KpiCard


class CumulativeRevenuePoint(BaseModel):
    day: str = Field(..., description="YYYY-MM-DD")
    label: str = Field(..., description="Axis label, e.g. 'Jan 05'")
    revenue: Money
    cumulative: Money


class MonthlyStatusPoint(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    label: str = Field(..., description="Axis label, e.g. 'Jan 2024'")
    paid: int = 0
    pending: int = 0
    overdue: int = 0


class DailyEmailPoint(BaseModel):
    day: str
    label: str
    sent: int
    moving_average: float = Field(..., description="Trailing mean of sent over the configured window")


class NamedCount(BaseModel):
    name: str
    value: int


class EngagementDashboard(BaseModel):
    """
    Engagement & billing dashboard.

    KPIs cover the selected period; charts cover the same window.
    """

    period: str
    window_start: Optional[dt.datetime] = Field(
        default=None,
        description="Start of the current window; None for 'all'"
    )
    generated_at: dt.datetime
    kpis: EngagementKpis
    cumulative_revenue: List[CumulativeRevenuePoint] = Field(default_factory=list)
    invoice_status_by_month: List[MonthlyStatusPoint] = Field(default_factory=list)
    daily_emails: List[DailyEmailPoint] = Field(default_factory=list)
    invoice_status_distribution: List[NamedCount] = Field(default_factory=list)
    leads_by_source: List[NamedCount] = Field(default_factory=list)


# =============================================================================
# Screen Stat Cards
# =============================================================================

class LeadStats(BaseModel):
    total: int = 0
    by_source: Dict[str, int] = Field(default_factory=dict)


class EmailStats(BaseModel):
    total: int = 0
    sent: int = 0
    pending: int = 0
    failed: int = 0
    success_rate: float = Field(default=0.0, description="Sent share of all emails, percent")


class InvoiceStats(BaseModel):
    total: int = 0
    paid: int = 0
    pending: int = 0
    overdue: int = 0
    total_amount: Money = Decimal(0)
    paid_amount: Money = Decimal(0)


class TransactionStats(BaseModel):
    total: int = 0
    total_amount: Money = Decimal(0)
    average_amount: Money = Decimal(0)


# =============================================================================
# Joined Table Rows
# =============================================================================

class InvoiceRow(InvoiceRecord):
    """Invoice with its lead; lead is None when the reference dangles."""
    lead: Optional[LeadRecord] = None


class AppointmentRow(AppointmentRecord):
    """Appointment with its patient; patient is None when the reference dangles."""
    patient: Optional[PatientRecord] = None


# =============================================================================
# Clinic Analytics
# =============================================================================

class ClinicStats(BaseModel):
    total_appointments: int = 0
    today_appointments: int = Field(default=0, description="Confirmed appointments dated today")
    total_patients: int = 0
    revenue: Money = Decimal(0)
    revenue_basis: str = Field(
        default="flat_rate",
        description="flat_rate: paid appointments x configured price, not transaction-backed"
    )


class StatusCount(BaseModel):
    status: str
    count: int


class GenderCount(BaseModel):
    gender: str
    count: int


class WeekdayCount(BaseModel):
    day: str
    count: int


class MonthlyRevenue(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    label: str
    revenue: Money


class ClinicAnalytics(BaseModel):
    stats: ClinicStats
    appointments_by_status: List[StatusCount] = Field(default_factory=list)
    appointments_by_weekday: List[WeekdayCount] = Field(default_factory=list)
    patients_by_gender: List[GenderCount] = Field(default_factory=list)
    revenue_by_month: List[MonthlyRevenue] = Field(default_factory=list)


class CalendarDay(BaseModel):
    date: dt.date
    appointments: List[AppointmentRow] = Field(default_factory=list)


class AppointmentCalendar(BaseModel):
    year: int
    month: int
    days: List[CalendarDay] = Field(default_factory=list)
