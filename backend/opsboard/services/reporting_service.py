"""
Reporting service.

Fetches table snapshots through the row store, decodes them into records,
and hands them to the report builders. A failed read is logged and
treated as an empty table, so a screen shows zeros instead of an error.
Finished dashboard view-models are cached in Redis when it is available.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from ..core.config import settings
from ..core.exceptions import RowStoreError
from ..schemas.analytics import (
    AppointmentCalendar,
    AppointmentRow,
    ClinicAnalytics,
    EmailStats,
    EngagementDashboard,
    InvoiceRow,
    InvoiceStats,
    LeadStats,
    TransactionStats,
)
from ..schemas.filters import (
    AppointmentFilters,
    EmailFilters,
    InvoiceFilters,
    TransactionFilters,
)
from ..schemas.records import (
    AppointmentRecord,
    EmailRecord,
    InvoiceRecord,
    LeadRecord,
    PatientRecord,
    TransactionRecord,
    decode_rows,
)
from . import reports
from .cache import CacheService
from .row_store import RowFilter, RowOrder, RowStore


logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)
V = TypeVar("V", bound=BaseModel)


class ReportingService:
    """
    Read side of every dashboard screen.

    Args:
        row_store: Row store bound to the request's session
        cache: Optional view-model cache; None disables caching
    """

    def __init__(self, row_store: RowStore, cache: Optional[CacheService] = None):
        self.row_store = row_store
        self.cache = cache

    # ==========================================================================
    # Snapshot Reads
    # ==========================================================================

    def _read(self, table: str, record_cls: Type[R], **query: Any) -> List[R]:
        try:
            rows = self.row_store.select(table, **query)
        except RowStoreError as e:
            logger.error(f"Error reading {table} for reporting: {e}")
            return []
        return decode_rows(record_cls, rows)

    def leads(self, **query: Any) -> List[LeadRecord]:
        return self._read("leads", LeadRecord, **query)

    def emails(self, filters: Optional[EmailFilters] = None) -> List[EmailRecord]:
        filters = filters or EmailFilters()
        records = self._read(
            "emails", EmailRecord,
            filters=filters.row_filters(),
            order=[RowOrder("created_at", ascending=False)],
        )
        return [r for r in records if filters.matches(r)]

    def invoices(self, **query: Any) -> List[InvoiceRecord]:
        return self._read("invoices", InvoiceRecord, **query)

    def transactions(
        self,
        filters: Optional[TransactionFilters] = None,
        now: Optional[datetime] = None,
    ) -> List[TransactionRecord]:
        filters = filters or TransactionFilters()
        records = self._read(
            "transactions", TransactionRecord,
            filters=filters.row_filters(now),
            order=filters.order(),
        )
        return [r for r in records if filters.matches(r)]

    def patients(self, **query: Any) -> List[PatientRecord]:
        return self._read("patients", PatientRecord, **query)

    def appointments(self, **query: Any) -> List[AppointmentRecord]:
        return self._read("appointments", AppointmentRecord, **query)

    # ==========================================================================
    # Caching
    # ==========================================================================

    def _cached(self, key: str, model: Type[V], build: Callable[[], V], ttl: int) -> V:
        if self.cache is None or not self.cache.is_connected:
            return build()
        payload = self.cache.get_or_compute(
            self.cache.key(key),
            lambda: build().model_dump(mode="json"),
            ttl=ttl,
        )
        return model.model_validate(payload)

    def invalidate(self) -> None:
        """Drop cached dashboards after a write."""
        if self.cache is not None:
            self.cache.invalidate_dashboards()

    # ==========================================================================
    # Dashboards
    # ==========================================================================

    def engagement_dashboard(
        self,
        period: str = "30d",
        now: Optional[datetime] = None,
    ) -> EngagementDashboard:
        """
        Engagement & billing dashboard for a period.

        Raises:
            AggregationParameterError: Unknown period
        """
        # Unknown periods raise before any cache access
        reports.period_windows(period, datetime.now(timezone.utc))

        def build() -> EngagementDashboard:
            return reports.build_engagement_dashboard(
                self.leads(),
                self._read("emails", EmailRecord),
                self.invoices(),
                period=period,
                now=now,
                moving_average_window=settings.email_moving_average_window,
                fill_gaps=settings.fill_daily_gaps,
            )

        if now is not None:
            return build()
        return self._cached(f"engagement:{period}", EngagementDashboard, build, settings.cache_ttl_dashboard)

    def clinic_analytics(self, today: Optional[date] = None) -> ClinicAnalytics:
        def build() -> ClinicAnalytics:
            return reports.build_clinic_analytics(
                self.appointments(),
                self.patients(),
                today=today or datetime.now(timezone.utc).date(),
                flat_price=settings.appointment_flat_price,
            )

        if today is not None:
            return build()
        return self._cached("clinic", ClinicAnalytics, build, settings.cache_ttl_analytics)

    def appointment_calendar(self, year: int, month: int) -> AppointmentCalendar:
        month_start = date(year, month, 1) if 1 <= month <= 12 else None
        query = {}
        if month_start is not None:
            next_month = date(year + month // 12, month % 12 + 1, 1)
            query["filters"] = [
                RowFilter("date", "gte", month_start),
                RowFilter("date", "lt", next_month),
            ]
        return reports.build_appointment_calendar(
            self.appointments(**query), self.patients(), year, month
        )

    # ==========================================================================
    # Stat Cards
    # ==========================================================================

    def lead_stats(self) -> LeadStats:
        return reports.build_lead_stats(self.leads(columns=["id", "source", "created_at"]))

    def email_stats(self) -> EmailStats:
        return reports.build_email_stats(self._read("emails", EmailRecord))

    def invoice_stats(self) -> InvoiceStats:
        return reports.build_invoice_stats(self.invoices())

    def transaction_stats(
        self,
        filters: Optional[TransactionFilters] = None,
        now: Optional[datetime] = None,
    ) -> TransactionStats:
        return reports.build_transaction_stats(self.transactions(filters, now))

    # ==========================================================================
    # Joined Lists
    # ==========================================================================

    def invoice_rows(self, filters: Optional[InvoiceFilters] = None) -> List[InvoiceRow]:
        """Invoices (newest first) with their lead attached."""
        filters = filters or InvoiceFilters()
        invoices = [
            invoice for invoice in self.invoices(
                filters=filters.row_filters(),
                order=[RowOrder("issued_at", ascending=False)],
            )
            if filters.matches(invoice)
        ]
        lead_ids = sorted({str(i.lead_id) for i in invoices if i.lead_id is not None})
        leads = self.leads(filters=[RowFilter("id", "in", lead_ids)]) if lead_ids else []
        return reports.build_invoice_rows(invoices, leads)

    def appointment_rows(self, filters: AppointmentFilters) -> List[AppointmentRow]:
        """One page of appointments with their patient attached."""
        appointments = self.appointments(
            filters=filters.row_filters(),
            order=filters.order(),
            range_=filters.range(),
        )
        patient_ids = sorted({a.patient_id for a in appointments if a.patient_id})
        patients = (
            self.patients(filters=[RowFilter("patient_id", "in", patient_ids)])
            if patient_ids else []
        )
        return reports.build_appointment_rows(appointments, patients)
