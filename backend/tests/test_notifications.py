"""Tests for the notification webhook client."""

import asyncio
import uuid

import httpx

from opsboard.services.notifications import WebhookNotifier, lead_payload


def make_lead(**overrides):
    lead = {"id": uuid.uuid4(), "name": "Ada", "email": "ada@example.com", "company": "Engines"}
    lead.update(overrides)
    return lead


class TestLeadEmail:
    """Tests for the outreach email webhook."""

    def test_success_posts_lead_payload(self, notifier, webhook):
        lead = make_lead()
        result = notifier.send_lead_email(lead)

        assert result.success
        assert result.status_code == 200
        assert result.data == {"ok": True}
        assert webhook.urls == [notifier.send_email_url]
        assert webhook.payloads == [{
            "lead": {"id": str(lead["id"]), "name": "Ada", "email": "ada@example.com", "company": "Engines"}
        }]

    def test_blank_company_is_sent_as_null(self):
        assert lead_payload(make_lead(company=""))["lead"]["company"] is None

    def test_non_2xx_is_failure(self, notifier, webhook):
        webhook.status_code = 500
        result = notifier.send_lead_email(make_lead())
        assert not result.success
        assert result.status_code == 500
        assert "500" in result.error

    def test_timeout_is_failure(self, notifier, webhook):
        webhook.error = httpx.ConnectTimeout
        result = notifier.send_lead_email(make_lead())
        assert not result.success
        assert result.error == "Webhook request timed out"

    def test_connection_error_is_failure(self, notifier, webhook):
        webhook.error = httpx.ConnectError
        result = notifier.send_lead_email(make_lead())
        assert not result.success
        assert result.error.startswith("Failed to reach webhook")

    def test_invalid_lead_is_not_sent(self, notifier, webhook):
        result = notifier.send_lead_email(make_lead(email=None))
        assert not result.success
        assert result.error == "Invalid lead payload"
        assert webhook.requests == []

    def test_missing_url_is_skipped_success(self, webhook):
        notifier = WebhookNotifier(transport=httpx.MockTransport(webhook.handler), send_email_url="")
        result = notifier.send_lead_email(make_lead())
        assert result.success
        assert result.skipped
        assert webhook.requests == []


class TestInvoiceWebhook:
    """Tests for the invoice automation webhook."""

    def test_create_invoice(self, notifier, webhook):
        webhook.body = {"id": "inv-1", "status": "pending"}
        result = notifier.create_invoice({"lead_id": "l1", "amount": "10.00"})
        assert result.success
        assert result.data == {"id": "inv-1", "status": "pending"}
        assert webhook.urls == [notifier.invoice_url]

    def test_missing_url_is_failure(self, webhook):
        notifier = WebhookNotifier(transport=httpx.MockTransport(webhook.handler), invoice_url="")
        result = notifier.create_invoice({"lead_id": "l1"})
        assert not result.success
        assert result.error == "Invoice webhook URL not configured"


class TestAsyncDelivery:
    """Tests for the non-blocking variants used by the API routes."""

    def test_lead_email_posts_without_blocking(self, notifier, webhook):
        lead = make_lead()
        result = asyncio.run(notifier.send_lead_email_async(lead))
        assert result.success
        assert webhook.urls == [notifier.send_email_url]
        assert webhook.payloads[0]["lead"]["id"] == str(lead["id"])

    def test_timeout_is_failure(self, notifier, webhook):
        webhook.error = httpx.ConnectTimeout
        result = asyncio.run(notifier.send_lead_email_async(make_lead()))
        assert not result.success
        assert result.error == "Webhook request timed out"

    def test_invalid_lead_is_not_sent(self, notifier, webhook):
        result = asyncio.run(notifier.send_lead_email_async(make_lead(email="")))
        assert result.error == "Invalid lead payload"
        assert webhook.requests == []

    def test_create_invoice(self, notifier, webhook):
        webhook.body = {"id": "inv-2"}
        result = asyncio.run(notifier.create_invoice_async({"lead_id": "l1", "amount": "5.00"}))
        assert result.success
        assert result.data == {"id": "inv-2"}
        assert webhook.urls == [notifier.invoice_url]


class TestFanOut:
    """Tests for per-lead best-effort dispatch."""

    def test_failures_do_not_stop_the_batch(self, notifier, webhook):
        leads = [make_lead(), make_lead(name=""), make_lead()]
        batch = asyncio.run(notifier.notify_leads(leads))
        assert (batch.sent, batch.failed, batch.skipped) == (2, 1, 0)
        assert len(webhook.requests) == 2
        assert [r.success for _, r in batch.results] == [True, False, True]
