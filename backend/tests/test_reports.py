"""Tests for the dashboard report builders."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from opsboard.core.exceptions import AggregationParameterError
from opsboard.services.reports import (
    build_appointment_calendar,
    build_clinic_analytics,
    build_email_stats,
    build_engagement_dashboard,
    build_invoice_rows,
    build_lead_stats,
    build_transaction_stats,
    day_label,
    month_label,
    period_windows,
)


NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


def at(day: str) -> datetime:
    return datetime.fromisoformat(f"{day}T09:00:00+00:00")


@pytest.fixture
def engagement_data():
    """30d window starts 2024-03-01 12:00; the previous one starts 2024-01-31 12:00."""
    leads = [
        {"id": uuid.uuid4(), "source": "manual", "created_at": at("2024-03-10")},
        {"id": uuid.uuid4(), "source": None, "created_at": at("2024-03-15")},
        {"id": uuid.uuid4(), "source": "CSV", "created_at": at("2024-02-15")},
    ]
    emails = [
        {"status": "sent", "created_at": at("2024-03-10")},
        {"status": "sent", "created_at": at("2024-03-10")},
        {"status": "failed", "created_at": at("2024-03-11")},
        {"status": "sent", "created_at": at("2024-03-12")},
        {"status": "sent", "created_at": at("2024-02-20")},
    ]
    invoices = [
        {"amount": 100, "status": "paid", "issued_at": at("2024-03-05")},
        {"amount": 50, "status": "paid", "issued_at": at("2024-03-07")},
        {"amount": 20, "status": "pending", "issued_at": at("2024-03-07")},
        {"amount": 100, "status": "paid", "issued_at": at("2024-02-20")},
    ]
    return leads, emails, invoices


class TestEngagementDashboard:
    """Tests for the engagement & billing dashboard."""

    def test_kpis_compare_with_previous_window(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, period="30d", now=NOW)
        kpis = dashboard.kpis

        assert kpis.total_leads.value == 2
        assert kpis.total_leads.previous == 1
        assert kpis.total_leads.trend == 100.0

        assert kpis.emails_sent.value == 3
        assert kpis.emails_sent.previous == 1
        assert kpis.emails_sent.trend == 200.0

        assert kpis.revenue.value == Decimal("150")
        assert kpis.revenue.previous == Decimal("100")
        assert kpis.revenue.trend == 50.0

        assert kpis.pending_invoices.value == 1
        assert kpis.pending_invoices.trend == 100.0

    def test_cumulative_revenue(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, now=NOW)
        points = [(p.day, p.label, p.revenue, p.cumulative) for p in dashboard.cumulative_revenue]
        assert points == [
            ("2024-03-05", "Mar 05", Decimal("100"), Decimal("100")),
            ("2024-03-07", "Mar 07", Decimal("50"), Decimal("150")),
        ]

    def test_invoice_charts(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, now=NOW)
        assert len(dashboard.invoice_status_by_month) == 1
        march = dashboard.invoice_status_by_month[0]
        assert (march.month, march.label, march.paid, march.pending, march.overdue) == (
            "2024-03", "Mar 2024", 2, 1, 0
        )
        assert [(c.name, c.value) for c in dashboard.invoice_status_distribution] == [
            ("pending", 1), ("paid", 2), ("overdue", 0)
        ]

    def test_daily_emails_with_moving_average(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, now=NOW, moving_average_window=2)
        assert [(p.day, p.sent, p.moving_average) for p in dashboard.daily_emails] == [
            ("2024-03-10", 2, 2.0),
            ("2024-03-12", 1, 1.5),
        ]

    def test_fill_gaps_densifies_daily_series(self, engagement_data):
        dashboard = build_engagement_dashboard(
            *engagement_data, now=NOW, moving_average_window=2, fill_gaps=True
        )
        assert [(p.day, p.sent, p.moving_average) for p in dashboard.daily_emails] == [
            ("2024-03-10", 2, 2.0),
            ("2024-03-11", 0, 1.0),
            ("2024-03-12", 1, 0.5),
        ]
        assert [p.cumulative for p in dashboard.cumulative_revenue] == [
            Decimal("100"), Decimal("100"), Decimal("150")
        ]

    def test_fill_gaps_keeps_totals(self, engagement_data):
        """Test zero-filled days leave the running total and sent count unchanged."""
        sparse = build_engagement_dashboard(*engagement_data, now=NOW)
        dense = build_engagement_dashboard(*engagement_data, now=NOW, fill_gaps=True)

        days = [date.fromisoformat(p.day) for p in dense.cumulative_revenue]
        assert all((b - a).days == 1 for a, b in zip(days, days[1:]))
        assert dense.cumulative_revenue[-1].cumulative == sparse.cumulative_revenue[-1].cumulative
        assert [p.revenue for p in dense.cumulative_revenue if p.day == "2024-03-06"] == [Decimal(0)]
        assert sum(p.sent for p in dense.daily_emails) == sum(p.sent for p in sparse.daily_emails)

    def test_leads_by_source_uses_unknown(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, now=NOW)
        assert [(c.name, c.value) for c in dashboard.leads_by_source] == [("manual", 1), ("Unknown", 1)]

    def test_all_period_has_no_trends(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, period="all", now=NOW)
        assert dashboard.window_start is None
        assert dashboard.kpis.total_leads.value == 3
        assert dashboard.kpis.total_leads.trend == 0.0
        assert dashboard.kpis.revenue.value == Decimal("250")

    def test_empty_input(self):
        dashboard = build_engagement_dashboard([], [], [], now=NOW)
        assert dashboard.kpis.revenue.value == Decimal(0)
        assert dashboard.cumulative_revenue == []
        assert dashboard.daily_emails == []

    def test_unknown_period_raises(self):
        with pytest.raises(AggregationParameterError):
            build_engagement_dashboard([], [], [], period="2w", now=NOW)

    def test_json_amounts_are_numbers(self, engagement_data):
        dashboard = build_engagement_dashboard(*engagement_data, now=NOW)
        payload = dashboard.model_dump(mode="json")
        assert payload["kpis"]["revenue"]["value"] == 150.0
        assert payload["cumulative_revenue"][-1]["cumulative"] == 150.0


class TestPeriodsAndLabels:
    """Tests for period windows and axis labels."""

    def test_period_windows(self):
        start, previous = period_windows("7d", NOW)
        assert start == datetime(2024, 3, 24, 12, tzinfo=timezone.utc)
        assert previous == datetime(2024, 3, 17, 12, tzinfo=timezone.utc)
        assert period_windows("all", NOW) == (None, None)

    def test_labels(self):
        assert day_label("2024-01-05") == "Jan 05"
        assert month_label("2024-01") == "Jan 2024"


class TestStatCards:
    """Tests for the per-screen stat cards."""

    def test_lead_stats(self):
        stats = build_lead_stats([{"source": "manual"}, {"source": None}, {"source": "manual"}])
        assert stats.total == 3
        assert stats.by_source == {"manual": 2, "Unknown": 1}

    def test_email_stats(self):
        emails = [{"status": "sent"}, {"status": "sent"}, {"status": "failed"}, {"status": "pending"}]
        stats = build_email_stats(emails)
        assert (stats.total, stats.sent, stats.failed, stats.pending) == (4, 2, 1, 1)
        assert stats.success_rate == 50.0

    def test_email_stats_empty(self):
        assert build_email_stats([]).success_rate == 0.0

    def test_transaction_stats(self):
        stats = build_transaction_stats([{"amount": 10}, {"amount": 20}, {"amount": "5.55"}])
        assert stats.total == 3
        assert stats.total_amount == Decimal("35.55")
        assert stats.average_amount == Decimal("11.85")

    def test_transaction_stats_empty(self):
        stats = build_transaction_stats([])
        assert stats.total_amount == Decimal(0)
        assert stats.average_amount == Decimal(0)


class TestJoinedRows:
    """Tests for rows joined over weak references."""

    def test_invoice_rows_attach_lead_or_none(self):
        lead_id = uuid.uuid4()
        leads = [{"id": lead_id, "name": "Ada", "email": "ada@example.com"}]
        invoices = [
            {"id": uuid.uuid4(), "lead_id": lead_id, "amount": 10, "status": "paid"},
            {"id": uuid.uuid4(), "lead_id": uuid.uuid4(), "amount": 5, "status": "pending"},
        ]
        rows = build_invoice_rows(invoices, leads)
        assert rows[0].lead.name == "Ada"
        assert rows[1].lead is None
        assert rows[1].amount == Decimal("5")


def appointment(appointment_id, day, time="10:00", status="Confirmed", payment_status="Pending",
                patient_id=None):
    return {
        "appointment_id": appointment_id,
        "patient_id": patient_id,
        "date": day,
        "time": time,
        "status": status,
        "payment_status": payment_status,
    }


class TestClinicAnalytics:
    """Tests for the clinic analytics page."""

    @pytest.fixture
    def clinic_data(self):
        appointments = [
            appointment("a1", date(2024, 3, 4), status="Confirmed", payment_status="Paid"),
            appointment("a2", date(2024, 3, 4), status="Cancelled"),
            appointment("a3", date(2024, 3, 5), status="Completed", payment_status="Paid"),
            appointment("a4", date(2024, 2, 10), status="Confirmed"),
        ]
        patients = [
            {"patient_id": "p1", "gender": "Male"},
            {"patient_id": "p2", "gender": "Female"},
            {"patient_id": "p3", "gender": None},
            {"patient_id": "p4", "gender": "Other"},
            {"patient_id": "p5", "gender": "Male"},
        ]
        return appointments, patients

    def test_stats_use_flat_rate_revenue(self, clinic_data):
        analytics = build_clinic_analytics(*clinic_data, today=date(2024, 3, 4), flat_price=50.0)
        stats = analytics.stats
        assert stats.total_appointments == 4
        assert stats.today_appointments == 1
        assert stats.total_patients == 5
        assert stats.revenue == Decimal("100")
        assert stats.revenue_basis == "flat_rate"

    def test_breakdowns(self, clinic_data):
        analytics = build_clinic_analytics(*clinic_data, today=date(2024, 3, 4), flat_price=50)
        assert [(s.status, s.count) for s in analytics.appointments_by_status] == [
            ("Confirmed", 2), ("Completed", 1), ("Cancelled", 1)
        ]
        weekdays = {w.day: w.count for w in analytics.appointments_by_weekday}
        assert weekdays == {"Mon": 2, "Tue": 1, "Wed": 0, "Thu": 0, "Fri": 0, "Sat": 1, "Sun": 0}
        assert [(g.gender, g.count) for g in analytics.patients_by_gender] == [
            ("Male", 2), ("Female", 1), ("Unknown", 1), ("Other", 1)
        ]
        assert [(m.month, m.revenue) for m in analytics.revenue_by_month] == [("2024-03", Decimal("100"))]

    def test_fixed_genders_always_present(self):
        analytics = build_clinic_analytics([], [], today=date(2024, 3, 4), flat_price=50)
        assert [(g.gender, g.count) for g in analytics.patients_by_gender] == [("Male", 0), ("Female", 0)]


class TestAppointmentCalendar:
    """Tests for the month calendar."""

    def test_every_day_present_and_sorted_by_time(self):
        appointments = [
            appointment("a1", date(2024, 2, 10), time="14:00", patient_id="p1"),
            appointment("a2", date(2024, 2, 10), time="09:30", patient_id="missing"),
            appointment("a3", date(2024, 3, 1), time="09:00"),
        ]
        patients = [{"patient_id": "p1", "name": "Grace"}]
        calendar = build_appointment_calendar(appointments, patients, 2024, 2)

        assert len(calendar.days) == 29
        assert calendar.days[0].date == date(2024, 2, 1)
        day = calendar.days[9]
        assert [a.appointment_id for a in day.appointments] == ["a2", "a1"]
        assert day.appointments[1].patient.name == "Grace"
        assert day.appointments[0].patient is None
        assert sum(len(d.appointments) for d in calendar.days) == 2

    def test_invalid_month_raises(self):
        with pytest.raises(AggregationParameterError):
            build_appointment_calendar([], [], 2024, 13)
