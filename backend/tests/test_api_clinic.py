"""Tests for the clinic admin and health endpoints."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from opsboard.core.exceptions import AggregationParameterError, RowStoreError
from opsboard.main import app
from opsboard.schemas.analytics import LeadStats
from opsboard.services.reporting_service import ReportingService
from opsboard.services.row_store import RowStore


@pytest.fixture
def clinic(row_store):
    """Two patients and three appointments, one pointing at a deleted patient."""
    row_store.insert("patients", [
        {"patient_id": "p1", "name": "Grace Hopper", "whatsapp_number": "+15550001", "gender": "Female", "age": 85},
        {"patient_id": "p2", "name": "Alan Turing", "whatsapp_number": "+15550002", "gender": "Male", "age": 41},
    ])
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    row_store.insert("appointments", [
        {"appointment_id": "a1", "patient_id": "p1", "date": date(2024, 5, 6), "time": "10:00",
         "status": "Confirmed", "payment_status": "Paid", "created_at": base},
        {"appointment_id": "a2", "patient_id": "p2", "date": date(2024, 5, 6), "time": "09:00",
         "status": "Completed", "payment_status": "Pending", "created_at": base + timedelta(hours=1)},
        {"appointment_id": "a3", "patient_id": "gone", "date": date(2024, 5, 20), "time": "11:30",
         "status": "Cancelled", "payment_status": "Refunded", "created_at": base + timedelta(hours=2)},
    ])


class TestPatientEndpoints:
    """Tests for /api/patients."""

    def test_list_and_search(self, client, clinic):
        data = client.get("/api/patients").json()
        assert data["total_count"] == 2
        assert data["total_pages"] == 1
        assert data["current_page"] == 1

        data = client.get("/api/patients", params={"search": "0002"}).json()
        assert [p["name"] for p in data["patients"]] == ["Alan Turing"]

        data = client.get("/api/patients", params={"limit": 1, "page": 2}).json()
        assert data["total_pages"] == 2
        assert len(data["patients"]) == 1

    def test_create_patient(self, client, row_store):
        response = client.post("/api/patients", json={
            "name": "Ada Lovelace", "whatsapp_number": "+15550003", "age": 36, "gender": "Female",
        })
        assert response.status_code == 201
        patient = response.json()
        assert patient["patient_id"]
        assert patient["age"] == 36
        assert row_store.count("patients") == 1

    def test_update_only_sent_fields(self, client, clinic):
        response = client.put("/api/patients/p1", json={"age": 86})
        assert response.status_code == 200
        patient = response.json()
        assert patient["age"] == 86
        assert patient["name"] == "Grace Hopper"

    def test_update_errors(self, client, clinic):
        assert client.put("/api/patients/p1", json={}).status_code == 400
        assert client.put("/api/patients/missing", json={"age": 1}).status_code == 404
        assert client.put("/api/patients/p1", json={"age": -1}).status_code == 422

    def test_delete_patient_leaves_appointments_dangling(self, client, clinic):
        assert client.delete("/api/patients/p1").status_code == 200
        assert client.delete("/api/patients/p1").status_code == 404

        rows = client.get("/api/appointments", params={"sort_by": "date"}).json()["appointments"]
        a1 = next(a for a in rows if a["appointment_id"] == "a1")
        assert a1["patient"] is None


class TestAppointmentEndpoints:
    """Tests for /api/appointments."""

    def test_list_joins_patient(self, client, clinic):
        data = client.get("/api/appointments").json()
        assert data["total_count"] == 3
        assert data["sort_by"] == "created_at"
        assert [a["appointment_id"] for a in data["appointments"]] == ["a3", "a2", "a1"]
        assert data["appointments"][0]["patient"] is None
        assert data["appointments"][1]["patient"]["name"] == "Alan Turing"

    def test_sort_by_slot(self, client, clinic):
        data = client.get("/api/appointments", params={"sort_by": "date"}).json()
        assert [a["appointment_id"] for a in data["appointments"]] == ["a3", "a1", "a2"]

        data = client.get("/api/appointments", params={"sort_order": "asc"}).json()
        assert [a["appointment_id"] for a in data["appointments"]] == ["a1", "a2", "a3"]

    def test_filters(self, client, clinic):
        data = client.get("/api/appointments", params={"date": "2024-05-06"}).json()
        assert data["total_count"] == 2
        data = client.get("/api/appointments", params={"status": "Cancelled"}).json()
        assert [a["appointment_id"] for a in data["appointments"]] == ["a3"]

    def test_reschedule(self, client, clinic):
        response = client.put("/api/appointments/a1", json={"date": "2024-06-01", "time": "14:30"})
        assert response.status_code == 200
        data = response.json()
        assert (data["date"], data["time"], data["status"]) == ("2024-06-01", "14:30", "Confirmed")

    def test_update_status_and_payment(self, client, clinic):
        response = client.put("/api/appointments/a2", json={"status": "Cancelled", "payment_status": "Refunded"})
        assert response.status_code == 200
        assert response.json()["status"] == "Cancelled"
        assert response.json()["payment_status"] == "Refunded"

    def test_update_errors(self, client, clinic):
        assert client.put("/api/appointments/a1", json={"time": "2pm"}).status_code == 422
        assert client.put("/api/appointments/a1", json={"status": "Lost"}).status_code == 422
        assert client.put("/api/appointments/a1", json={}).status_code == 400
        assert client.put("/api/appointments/missing", json={"time": "10:00"}).status_code == 404

    def test_calendar(self, client, clinic):
        data = client.get("/api/appointments/calendar", params={"year": 2024, "month": 5}).json()
        assert len(data["days"]) == 31
        may_6 = data["days"][5]
        assert may_6["date"] == "2024-05-06"
        assert [a["appointment_id"] for a in may_6["appointments"]] == ["a2", "a1"]

    def test_calendar_rejects_bad_month(self, client):
        response = client.get("/api/appointments/calendar", params={"year": 2024, "month": 13})
        assert response.status_code == 422


class TestClinicAnalyticsEndpoint:
    """Tests for GET /api/clinic/analytics."""

    def test_analytics(self, client, clinic):
        data = client.get("/api/clinic/analytics").json()
        assert data["stats"]["total_appointments"] == 3
        assert data["stats"]["total_patients"] == 2
        assert data["stats"]["revenue"] == 50.0
        assert data["stats"]["revenue_basis"] == "flat_rate"
        assert [s["status"] for s in data["appointments_by_status"]] == ["Confirmed", "Completed", "Cancelled"]
        assert [g["gender"] for g in data["patients_by_gender"]] == ["Male", "Female"]
        assert data["revenue_by_month"] == [{"month": "2024-05", "label": "May 2024", "revenue": 50.0}]


class TestHealthEndpoints:
    """Tests for health and root endpoints."""

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["cache"] == "disabled"

    def test_ready(self, client):
        data = client.get("/health/ready").json()
        assert data["status"] == "ready"
        assert data["components"]["redis"]["status"] == "disabled"
        assert data["components"]["webhooks"]["mode"] == "sync"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"


class TestStoreFailures:
    """Row-store failures on writes surface as 503."""

    def test_write_failure_is_503(self, client):
        with patch.object(RowStore, "insert", side_effect=RowStoreError("insert on 'patients' failed", table="patients")):
            response = client.post("/api/patients", json={"name": "Ada", "whatsapp_number": "+15550003"})
        assert response.status_code == 503
        assert response.json()["error"] == "store_unavailable"


class TestErrorHandlers:
    """Report parameter errors are 400; other value errors stay internal."""

    def test_report_parameter_error_is_400(self, client):
        with patch.object(ReportingService, "lead_stats", side_effect=AggregationParameterError("bad window")):
            response = client.get("/api/leads/stats")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "validation_error", "message": "bad window"}

    def test_internal_validation_error_is_500(self, client):
        def broken_stats(*args, **kwargs):
            return LeadStats.model_validate({"total": "many"})

        server = TestClient(app, raise_server_exceptions=False)
        with patch.object(ReportingService, "lead_stats", side_effect=broken_stats):
            response = server.get("/api/leads/stats")
        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"
        assert "total" not in response.json()["message"]

    def test_plain_value_error_is_500(self, client):
        server = TestClient(app, raise_server_exceptions=False)
        with patch.object(ReportingService, "lead_stats", side_effect=ValueError("db detail")):
            response = server.get("/api/leads/stats")
        assert response.status_code == 500
        assert "db detail" not in response.text
