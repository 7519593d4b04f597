"""
Per-screen view state.

Each list screen owns one filter object built from its query parameters.
The object turns itself into row-store conditions for the parts the store
can evaluate, and matches decoded records for free-text search over id
columns, which the store cannot ilike portably.
"""

import datetime as dt
from datetime import datetime, timedelta, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from ..services.row_store import AnyOf, RowFilter, RowOrder, RowRange


def _contains(needle: str, *haystacks: Any) -> bool:
    needle = needle.lower()
    return any(needle in str(h).lower() for h in haystacks if h is not None)


class _ScreenFilters(BaseModel):
    """Shared shape: filters are optional, and empty strings mean no filter."""

    def row_filters(self) -> List[Any]:
        return []

    def matches(self, record: Any) -> bool:
        return True


# =============================================================================
# Engagement & Billing Screens
# =============================================================================

class LeadFilters(_ScreenFilters):
    search: Optional[str] = Field(default=None, description="Name, email, or company substring")
    company: Optional[str] = Field(default=None, description="Company substring")
    source: Optional[str] = Field(default=None, description="Source substring")
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)

    def row_filters(self) -> List[Any]:
        filters: List[Any] = []
        if self.search:
            filters.append(AnyOf(
                RowFilter("name", "ilike", self.search),
                RowFilter("email", "ilike", self.search),
                RowFilter("company", "ilike", self.search),
            ))
        if self.company:
            filters.append(RowFilter("company", "ilike", self.company))
        if self.source:
            filters.append(RowFilter("source", "ilike", self.source))
        return filters

    def order(self) -> List[RowOrder]:
        return [RowOrder("created_at", ascending=False)]

    def range(self) -> RowRange:
        return RowRange.for_page(self.page, self.page_size)


class EmailFilters(_ScreenFilters):
    status: Optional[str] = Field(default=None, description="pending, sent, failed, or all")
    search: Optional[str] = Field(default=None, description="Subject, body, or lead id substring")

    def row_filters(self) -> List[Any]:
        if self.status and self.status != "all":
            return [RowFilter("status", "eq", self.status)]
        return []

    def matches(self, record: Any) -> bool:
        if not self.search:
            return True
        return _contains(self.search, record.subject, record.body, record.lead_id)


class InvoiceFilters(_ScreenFilters):
    status: Optional[str] = Field(default=None, description="pending, paid, overdue, or all")
    search: Optional[str] = Field(default=None, description="Invoice id or lead id substring")

    def row_filters(self) -> List[Any]:
        if self.status and self.status != "all":
            return [RowFilter("status", "eq", self.status)]
        return []

    def matches(self, record: Any) -> bool:
        if not self.search or not self.search.strip():
            return True
        return _contains(self.search.strip(), record.id, record.lead_id)


DateRange = Literal["7d", "30d", "90d", "all", "custom"]

_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}


class TransactionFilters(_ScreenFilters):
    """
    Transaction screen filters.

    date_range picks a trailing window ending now; "custom" uses
    date_from / date_to instead (each optional, inclusive).
    """

    date_range: DateRange = Field(default="30d")
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    payment_method: Optional[str] = None
    search: Optional[str] = None

    def window(self, now: Optional[datetime] = None) -> tuple:
        """(start, end) bounds; either may be None."""
        if self.date_range == "custom":
            return self.date_from, self.date_to
        days = _RANGE_DAYS.get(self.date_range)
        if days is None:
            return None, None
        now = now or datetime.now(timezone.utc)
        return now - timedelta(days=days), None

    def row_filters(self, now: Optional[datetime] = None) -> List[Any]:
        filters: List[Any] = []
        start, end = self.window(now)
        if start is not None:
            filters.append(RowFilter("transaction_date", "gte", start))
        if end is not None:
            filters.append(RowFilter("transaction_date", "lte", end))
        if self.payment_method:
            filters.append(RowFilter("payment_method", "eq", self.payment_method))
        return filters

    def order(self) -> List[RowOrder]:
        return [RowOrder("transaction_date", ascending=False)]

    def matches(self, record: Any) -> bool:
        if not self.search:
            return True
        return _contains(
            self.search, record.id, record.invoice_id, record.payment_method, record.currency
        )


# =============================================================================
# Clinic Screens
# =============================================================================

class PatientFilters(_ScreenFilters):
    search: Optional[str] = Field(default=None, description="Name or WhatsApp number substring")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    def row_filters(self) -> List[Any]:
        if not self.search:
            return []
        return [AnyOf(
            RowFilter("name", "ilike", self.search),
            RowFilter("whatsapp_number", "ilike", self.search),
        )]

    def order(self) -> List[RowOrder]:
        return [RowOrder("created_at", ascending=False)]

    def range(self) -> RowRange:
        return RowRange.for_page(self.page, self.limit)


class AppointmentFilters(_ScreenFilters):
    """
    Appointment list filters.

    sort_by="created_at" sorts by booking time in sort_order; any other
    value sorts by slot (date, then time), latest first.
    """

    date: Optional[dt.date] = None
    status: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    def row_filters(self) -> List[Any]:
        filters: List[Any] = []
        if self.date is not None:
            filters.append(RowFilter("date", "eq", self.date))
        if self.status and self.status != "all":
            filters.append(RowFilter("status", "eq", self.status))
        return filters

    def order(self) -> List[RowOrder]:
        if self.sort_by == "created_at":
            return [RowOrder("created_at", ascending=self.sort_order == "asc")]
        return [RowOrder("date", ascending=False), RowOrder("time", ascending=False)]

    def range(self) -> RowRange:
        return RowRange.for_page(self.page, self.limit)
