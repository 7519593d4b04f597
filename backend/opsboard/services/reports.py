"""
Report builders.

One pure function per screen, composing the aggregator into a complete
view-model. Inputs are decoded records; outputs are the pydantic schemas
in schemas.analytics. Nothing here touches the database or the cache.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import AggregationParameterError
from ..models.enums import (
    AppointmentStatus,
    EmailStatus,
    InvoiceStatus,
    PaymentStatus,
    UNKNOWN_SOURCE,
)
from ..schemas.analytics import (
    AppointmentCalendar,
    AppointmentRow,
    CalendarDay,
    ClinicAnalytics,
    ClinicStats,
    CumulativeRevenuePoint,
    DailyEmailPoint,
    EmailStats,
    EngagementDashboard,
    EngagementKpis,
    GenderCount,
    InvoiceRow,
    InvoiceStats,
    KpiCard,
    LeadStats,
    MonthlyRevenue,
    MonthlyStatusPoint,
    NamedCount,
    StatusCount,
    TransactionStats,
    WeekdayCount,
)
from .aggregator import (
    DEFAULT_KEY,
    count_by_status,
    count_by_weekday,
    cumulative_series,
    fill_daily_gaps,
    filter_between,
    get_field,
    group_by_day,
    group_by_key,
    group_by_month,
    join_weak,
    moving_average,
    percentage,
    plain,
    status_counts_by_month,
    sum_amount_where,
    to_day,
    to_decimal,
    to_utc_datetime,
    trend_percentage,
)


PERIODS: Dict[str, Optional[int]] = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
    "all": None,
}

CLINIC_STATUS_ORDER = (
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
)
FIXED_GENDERS = ("Male", "Female")

CENTS = Decimal("0.01")


def _is_paid_invoice(row: Any) -> bool:
    return plain(get_field(row, "status")) == InvoiceStatus.PAID.value


def _is_sent_email(row: Any) -> bool:
    return plain(get_field(row, "status")) == EmailStatus.SENT.value


def _is_paid_appointment(row: Any) -> bool:
    return plain(get_field(row, "payment_status")) == PaymentStatus.PAID.value


def day_label(day: str) -> str:
    """'2024-01-05' -> 'Jan 05'."""
    return date.fromisoformat(day).strftime("%b %d")


def month_label(month: str) -> str:
    """'2024-01' -> 'Jan 2024'."""
    return date.fromisoformat(f"{month}-01").strftime("%b %Y")


# =============================================================================
# Engagement Dashboard
# =============================================================================

def period_windows(period: str, now: datetime) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Start of the current and previous windows for a period.

    Both are None for "all". The previous window has the same length and
    ends where the current one starts.

    Raises:
        AggregationParameterError: Unknown period key
    """
    if period not in PERIODS:
        raise AggregationParameterError(
            f"Unknown period '{period}', expected one of {list(PERIODS)}"
        )
    days = PERIODS[period]
    if days is None:
        return None, None
    start = now - timedelta(days=days)
    return start, start - timedelta(days=days)


def _kpi(current: Any, previous: Any, compare: bool) -> KpiCard:
    if not compare:
        return KpiCard(value=current, previous=0, trend=0.0)
    return KpiCard(value=current, previous=previous, trend=trend_percentage(current, previous))


def build_engagement_dashboard(
    leads: Sequence[Any],
    emails: Sequence[Any],
    invoices: Sequence[Any],
    period: str = "30d",
    now: Optional[datetime] = None,
    moving_average_window: int = 7,
    fill_gaps: bool = False,
) -> EngagementDashboard:
    """
    Build the engagement & billing dashboard for one period.

    Args:
        leads: Lead records
        emails: Email records
        invoices: Invoice records
        period: 7d, 30d, 90d, 1y, or all
        now: Reference time (defaults to the current UTC time)
        moving_average_window: Window for the daily sent-email average
        fill_gaps: Zero-fill days without activity in the daily series

    Returns:
        EngagementDashboard view-model

    Raises:
        AggregationParameterError: Unknown period or invalid window
    """
    now = to_utc_datetime(now) or datetime.now(timezone.utc)
    start, previous_start = period_windows(period, now)
    compare = start is not None

    if compare:
        # Previous window ends just before the current one so no row counts twice
        previous_end = start - timedelta(microseconds=1)
        current_leads = filter_between(leads, "created_at", start, now)
        current_emails = filter_between(emails, "created_at", start, now)
        current_invoices = filter_between(invoices, "issued_at", start, now)
        previous_leads = filter_between(leads, "created_at", previous_start, previous_end)
        previous_emails = filter_between(emails, "created_at", previous_start, previous_end)
        previous_invoices = filter_between(invoices, "issued_at", previous_start, previous_end)
    else:
        current_leads, current_emails, current_invoices = list(leads), list(emails), list(invoices)
        previous_leads, previous_emails, previous_invoices = [], [], []

    invoice_counts = count_by_status(current_invoices, "status", InvoiceStatus)
    previous_invoice_counts = count_by_status(previous_invoices, "status", InvoiceStatus)

    kpis = EngagementKpis(
        total_leads=_kpi(len(current_leads), len(previous_leads), compare),
        emails_sent=_kpi(
            count_by_status(current_emails, "status", EmailStatus)[EmailStatus.SENT.value],
            count_by_status(previous_emails, "status", EmailStatus)[EmailStatus.SENT.value],
            compare,
        ),
        revenue=_kpi(
            sum_amount_where(current_invoices, _is_paid_invoice),
            sum_amount_where(previous_invoices, _is_paid_invoice),
            compare,
        ),
        pending_invoices=_kpi(
            invoice_counts[InvoiceStatus.PENDING.value],
            previous_invoice_counts[InvoiceStatus.PENDING.value],
            compare,
        ),
    )

    # Cumulative revenue from paid invoices, by issue day
    revenue_by_day = group_by_day(
        current_invoices, "issued_at", "amount", aggregation="sum", where=_is_paid_invoice
    )
    if fill_gaps:
        revenue_by_day = fill_daily_gaps(revenue_by_day, fill=Decimal(0))
    cumulative_revenue = [
        CumulativeRevenuePoint(
            day=point.day,
            label=day_label(point.day),
            revenue=point.value,
            cumulative=point.running_total,
        )
        for point in cumulative_series(revenue_by_day)
    ]

    invoice_status_by_month = [
        MonthlyStatusPoint(month=month, label=month_label(month), **counts)
        for month, counts in status_counts_by_month(
            current_invoices, "issued_at", "status", InvoiceStatus
        )
    ]

    # Daily sent emails with a trailing average
    sent_by_day = group_by_day(current_emails, "created_at", _is_sent_email)
    if fill_gaps:
        sent_by_day = fill_daily_gaps(sent_by_day, fill=0)
    averages = moving_average([sent for _, sent in sent_by_day], moving_average_window)
    daily_emails = [
        DailyEmailPoint(day=day, label=day_label(day), sent=sent, moving_average=round(float(avg), 2))
        for (day, sent), avg in zip(sent_by_day, averages)
    ]

    return EngagementDashboard(
        period=period,
        window_start=start,
        generated_at=now,
        kpis=kpis,
        cumulative_revenue=cumulative_revenue,
        invoice_status_by_month=invoice_status_by_month,
        daily_emails=daily_emails,
        invoice_status_distribution=[
            NamedCount(name=status, value=count) for status, count in invoice_counts.items()
        ],
        leads_by_source=[
            NamedCount(name=str(source), value=count)
            for source, count in group_by_key(current_leads, "source", UNKNOWN_SOURCE).items()
        ],
    )


# =============================================================================
# Screen Stat Cards
# =============================================================================

def build_lead_stats(leads: Sequence[Any]) -> LeadStats:
    return LeadStats(
        total=len(leads),
        by_source=group_by_key(leads, "source", UNKNOWN_SOURCE),
    )


def build_email_stats(emails: Sequence[Any]) -> EmailStats:
    counts = count_by_status(emails, "status", EmailStatus)
    sent = counts[EmailStatus.SENT.value]
    return EmailStats(
        total=len(emails),
        sent=sent,
        pending=counts[EmailStatus.PENDING.value],
        failed=counts[EmailStatus.FAILED.value],
        success_rate=percentage(sent, len(emails)),
    )


def build_invoice_stats(invoices: Sequence[Any]) -> InvoiceStats:
    counts = count_by_status(invoices, "status", InvoiceStatus)
    return InvoiceStats(
        total=len(invoices),
        paid=counts[InvoiceStatus.PAID.value],
        pending=counts[InvoiceStatus.PENDING.value],
        overdue=counts[InvoiceStatus.OVERDUE.value],
        total_amount=sum_amount_where(invoices),
        paid_amount=sum_amount_where(invoices, _is_paid_invoice),
    )


def build_transaction_stats(transactions: Sequence[Any]) -> TransactionStats:
    total_amount = sum_amount_where(transactions)
    average = (total_amount / len(transactions)).quantize(CENTS) if transactions else Decimal(0)
    return TransactionStats(
        total=len(transactions),
        total_amount=total_amount,
        average_amount=average,
    )


# =============================================================================
# Joined Table Rows
# =============================================================================

def build_invoice_rows(invoices: Sequence[Any], leads: Optional[Sequence[Any]]) -> List[InvoiceRow]:
    """Invoices with their lead attached; dangling references get lead=None."""
    return [
        InvoiceRow(**dict(invoice), lead=lead)
        for invoice, lead in join_weak(invoices, leads, "lead_id", "id")
    ]


def build_appointment_rows(
    appointments: Sequence[Any],
    patients: Optional[Sequence[Any]],
) -> List[AppointmentRow]:
    """Appointments with their patient attached; dangling references get patient=None."""
    return [
        AppointmentRow(**dict(appointment), patient=patient)
        for appointment, patient in join_weak(appointments, patients, "patient_id", "patient_id")
    ]


# =============================================================================
# Clinic
# =============================================================================

def build_clinic_analytics(
    appointments: Sequence[Any],
    patients: Sequence[Any],
    today: date,
    flat_price: Any,
) -> ClinicAnalytics:
    """
    Clinic analytics page.

    Revenue is an estimate: every paid appointment is valued at flat_price.
    """
    price = to_decimal(flat_price)

    today_confirmed = sum(
        1 for a in appointments
        if to_day(get_field(a, "date")) == today
        and plain(get_field(a, "status")) == AppointmentStatus.CONFIRMED.value
    )
    paid_count = sum(1 for a in appointments if _is_paid_appointment(a))

    status_counts = count_by_status(appointments, "status", CLINIC_STATUS_ORDER)

    gender_counts = group_by_key(patients, "gender", DEFAULT_KEY)
    genders = {gender: gender_counts.pop(gender, 0) for gender in FIXED_GENDERS}
    genders.update(gender_counts)

    paid_by_month = group_by_month(appointments, "date", where=_is_paid_appointment)

    return ClinicAnalytics(
        stats=ClinicStats(
            total_appointments=len(appointments),
            today_appointments=today_confirmed,
            total_patients=len(patients),
            revenue=price * paid_count,
            revenue_basis="flat_rate",
        ),
        appointments_by_status=[
            StatusCount(status=status, count=count) for status, count in status_counts.items()
        ],
        appointments_by_weekday=[
            WeekdayCount(day=day, count=count)
            for day, count in count_by_weekday(appointments, "date").items()
        ],
        patients_by_gender=[
            GenderCount(gender=str(gender), count=count) for gender, count in genders.items()
        ],
        revenue_by_month=[
            MonthlyRevenue(month=month, label=month_label(month), revenue=price * count)
            for month, count in paid_by_month
        ],
    )


def build_appointment_calendar(
    appointments: Sequence[Any],
    patients: Optional[Sequence[Any]],
    year: int,
    month: int,
) -> AppointmentCalendar:
    """
    Month calendar with every day present, appointments ordered by time.

    Raises:
        AggregationParameterError: month outside 1..12
    """
    if not 1 <= month <= 12:
        raise AggregationParameterError(f"month must be between 1 and 12, got {month}")

    _, days_in_month = calendar.monthrange(year, month)
    first = date(year, month, 1)
    in_month = [
        a for a in appointments
        if (to_day(get_field(a, "date")) or date.min).replace(day=1) == first
    ]

    by_day: Dict[date, List[AppointmentRow]] = {}
    rows = build_appointment_rows(in_month, patients)
    for row in sorted(rows, key=lambda r: (r.date, r.time)):
        by_day.setdefault(row.date, []).append(row)

    days = []
    for offset in range(days_in_month):
        day = first + timedelta(days=offset)
        days.append(CalendarDay(date=day, appointments=by_day.get(day, [])))
    return AppointmentCalendar(year=year, month=month, days=days)
