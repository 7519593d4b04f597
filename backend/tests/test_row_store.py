"""Tests for the row-store client."""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from opsboard.core.exceptions import RowStoreError
from opsboard.schemas.records import LeadRecord
from opsboard.services.reporting_service import ReportingService
from opsboard.services.row_store import AnyOf, RowFilter, RowOrder, RowRange


class TestQueryParameters:
    """Tests for filter, order, and range value objects."""

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValueError):
            RowFilter("name", "like", "x")

    def test_range_for_page(self):
        assert RowRange.for_page(3, 20) == RowRange(offset=40, limit=20)
        with pytest.raises(ValueError):
            RowRange.for_page(0, 20)

    def test_any_of_requires_filters(self):
        with pytest.raises(ValueError):
            AnyOf()


class TestReads:
    """Tests for select and count."""

    def test_insert_then_select(self, row_store):
        inserted = row_store.insert("leads", {"name": "Ada", "email": "ada@example.com", "source": "manual"})
        assert len(inserted) == 1
        lead = inserted[0]
        assert isinstance(lead["id"], uuid.UUID)
        assert lead["created_at"] is not None

        rows = row_store.select("leads", filters=[RowFilter("id", "eq", str(lead["id"]))])
        assert [r["name"] for r in rows] == ["Ada"]

    def test_select_columns(self, row_store):
        row_store.insert("leads", {"name": "Ada", "email": "ada@example.com"})
        rows = row_store.select("leads", columns=["name", "email"])
        assert rows == [{"name": "Ada", "email": "ada@example.com"}]

    def test_ilike_search_across_columns(self, row_store):
        row_store.insert("leads", [
            {"name": "Ada", "email": "ada@example.com", "company": "Engines"},
            {"name": "Grace", "email": "grace@navy.example.com", "company": "Navy"},
            {"name": "Alan", "email": "alan@example.com", "company": "Bletchley"},
        ])
        search = AnyOf(
            RowFilter("name", "ilike", "nav"),
            RowFilter("company", "ilike", "nav"),
        )
        rows = row_store.select("leads", filters=[search])
        assert [r["name"] for r in rows] == ["Grace"]
        assert row_store.count("leads", [RowFilter("email", "ilike", "EXAMPLE")]) == 3

    def test_order_and_range(self, row_store):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        row_store.insert("leads", [
            {"name": f"Lead {i}", "email": f"lead{i}@example.com", "created_at": base + timedelta(days=i)}
            for i in range(3)
        ])
        rows = row_store.select(
            "leads",
            order=[RowOrder("created_at", ascending=False)],
            range_=RowRange.for_page(2, 1),
        )
        assert [r["name"] for r in rows] == ["Lead 1"]

    def test_in_filter_with_text_ids(self, row_store):
        leads = row_store.insert("leads", [
            {"name": "A", "email": "a@example.com"},
            {"name": "B", "email": "b@example.com"},
            {"name": "C", "email": "c@example.com"},
        ])
        wanted = [str(leads[0]["id"]), str(leads[2]["id"])]
        rows = row_store.select("leads", filters=[RowFilter("id", "in", wanted)])
        assert sorted(r["name"] for r in rows) == ["A", "C"]

    def test_eq_none_matches_null(self, row_store):
        row_store.insert("leads", [
            {"name": "A", "email": "a@example.com", "source": None},
            {"name": "B", "email": "b@example.com", "source": "web"},
        ])
        assert row_store.count("leads", [RowFilter("source", "eq", None)]) == 1
        assert row_store.count("leads", [RowFilter("source", "neq", None)]) == 1

    def test_date_and_numeric_coercion(self, row_store):
        row_store.insert("appointments", {
            "appointment_id": "apt-1",
            "date": "2024-05-01",
            "time": "10:00",
        })
        row_store.insert("transactions", {"amount": 0.1, "transaction_date": "2024-05-01T10:00:00Z"})

        appointments = row_store.select("appointments", filters=[RowFilter("date", "gte", date(2024, 5, 1))])
        assert appointments[0]["date"] == date(2024, 5, 1)
        transactions = row_store.select("transactions")
        assert transactions[0]["amount"] == Decimal("0.10")

    def test_unknown_table_and_column(self, row_store):
        with pytest.raises(ValueError):
            row_store.select("nope")
        with pytest.raises(ValueError):
            row_store.select("leads", filters=[RowFilter("nope", "eq", 1)])


class TestWrites:
    """Tests for update and delete."""

    def test_update_returns_affected_rows(self, row_store):
        lead = row_store.insert("leads", {"name": "Ada", "email": "ada@example.com"})[0]
        updated = row_store.update("leads", {"company": "Engines"}, [RowFilter("id", "eq", lead["id"])])
        assert [r["company"] for r in updated] == ["Engines"]

    def test_update_without_match_is_empty(self, row_store):
        assert row_store.update("leads", {"company": "X"}, [RowFilter("id", "eq", uuid.uuid4())]) == []

    def test_update_guards(self, row_store):
        with pytest.raises(ValueError):
            row_store.update("leads", {"company": "X"}, [])
        with pytest.raises(ValueError):
            row_store.update("leads", {}, [RowFilter("name", "eq", "Ada")])

    def test_delete(self, row_store):
        lead = row_store.insert("leads", {"name": "Ada", "email": "ada@example.com"})[0]
        assert row_store.delete("leads", [RowFilter("id", "eq", lead["id"])]) is True
        assert row_store.count("leads") == 0
        with pytest.raises(ValueError):
            row_store.delete("leads", [])

    def test_database_failure_becomes_row_store_error(self, row_store, db_session):
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        with patch.object(db_session, "execute", side_effect=error):
            with pytest.raises(RowStoreError) as exc_info:
                row_store.select("leads")
        assert exc_info.value.table == "leads"


class TestReportingReads:
    """Tests for how the reporting service treats read failures."""

    def test_failed_read_is_empty(self):
        store = MagicMock()
        store.select.side_effect = RowStoreError("select on 'leads' failed", table="leads")
        service = ReportingService(store)
        assert service.leads() == []
        assert service.lead_stats().total == 0

    def test_undecodable_rows_are_skipped(self):
        store = MagicMock()
        store.select.return_value = [
            {"id": str(uuid.uuid4()), "name": "Ada", "email": "ada@example.com"},
            {"id": "not-a-uuid", "name": "Broken"},
        ]
        leads = ReportingService(store).leads()
        assert len(leads) == 1
        assert isinstance(leads[0], LeadRecord)
