"""
Notification webhook client.

Business side effects (outreach email for a lead, invoice creation) are
delegated to automation webhooks over plain JSON POST. Every call returns
a NotificationResult instead of raising:
- Any 2xx response is a success
- Non-2xx, timeouts, and connection errors are failures
- Nothing is retried automatically; retry is a user action
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import httpx

from ..core.config import settings
from .aggregator import get_field


logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Outcome of one webhook call."""

    success: bool
    status_code: Optional[int] = None
    data: Any = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class NotificationBatch:
    """Outcome of a best-effort fan-out; earlier sends stand if later ones fail."""

    results: List[Tuple[str, NotificationResult]] = field(default_factory=list)
    sent: int = 0
    failed: int = 0
    skipped: int = 0


def lead_payload(lead: Any) -> Dict[str, Any]:
    """JSON body the email workflow expects for a lead."""
    lead_id = get_field(lead, "id")
    return {
        "lead": {
            "id": str(lead_id) if lead_id is not None else None,
            "name": get_field(lead, "name"),
            "email": get_field(lead, "email"),
            "company": get_field(lead, "company") or None,
        }
    }


class WebhookNotifier:
    """
    POSTs JSON to the configured automation webhooks.

    Webhook URLs default to settings and are read at call time, so a
    notifier can be long-lived while configuration changes underneath it.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None,
        send_email_url: Optional[str] = None,
        invoice_url: Optional[str] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
        self._transport = transport
        self._send_email_url = send_email_url
        self._invoice_url = invoice_url

    @property
    def send_email_url(self) -> str:
        return self._send_email_url if self._send_email_url is not None else settings.n8n_send_email_webhook

    @property
    def invoice_url(self) -> str:
        return self._invoice_url if self._invoice_url is not None else settings.n8n_create_invoice_webhook

    # ==========================================================================
    # Transport
    # ==========================================================================

    def _outcome(self, url: str, response: httpx.Response) -> NotificationResult:
        try:
            data = response.json()
        except ValueError:
            data = response.text or None

        if response.is_success:
            logger.info(f"Webhook {url} accepted payload ({response.status_code})")
            return NotificationResult(success=True, status_code=response.status_code, data=data)

        logger.error(f"Webhook {url} returned {response.status_code}: {response.text[:200]}")
        return NotificationResult(
            success=False,
            status_code=response.status_code,
            data=data,
            error=f"Webhook returned {response.status_code}",
        )

    @staticmethod
    def _request_failure(url: str, error: httpx.RequestError) -> NotificationResult:
        if isinstance(error, httpx.TimeoutException):
            logger.error(f"Webhook timeout for {url}: {error}")
            return NotificationResult(success=False, error="Webhook request timed out")
        logger.error(f"Webhook request error for {url}: {error}")
        return NotificationResult(success=False, error=f"Failed to reach webhook: {error}")

    def post(self, url: str, payload: Dict[str, Any]) -> NotificationResult:
        """
        POST a JSON payload to a webhook. Used from Celery workers.

        Args:
            url: Webhook URL
            payload: JSON-serializable body

        Returns:
            NotificationResult; never raises for HTTP or network failures
        """
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=payload)
        except httpx.RequestError as e:
            return self._request_failure(url, e)
        return self._outcome(url, response)

    async def post_async(self, url: str, payload: Dict[str, Any]) -> NotificationResult:
        """Same as post, without blocking the event loop. Used from API routes."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.RequestError as e:
            return self._request_failure(url, e)
        return self._outcome(url, response)

    # ==========================================================================
    # Commands
    # ==========================================================================

    def _lead_email_request(self, lead: Any) -> Union[NotificationResult, Tuple[str, Dict[str, Any]]]:
        """
        Validate a lead and resolve the email webhook.

        Returns a final NotificationResult when nothing should be posted
        (invalid lead, or no webhook configured, which is a skipped success),
        otherwise the (url, payload) to post.
        """
        payload = lead_payload(lead)
        body = payload["lead"]
        if not body["id"] or not body["email"] or not body["name"]:
            return NotificationResult(success=False, error="Invalid lead payload")

        url = self.send_email_url
        if not url:
            logger.debug(f"No email webhook configured; skipping lead {body['id']}")
            return NotificationResult(success=True, skipped=True)
        return url, payload

    def _invoice_url_or_failure(self) -> Union[str, NotificationResult]:
        # A missing invoice webhook is a failure: nothing would be created
        url = self.invoice_url
        if not url:
            logger.error("Invoice webhook URL not configured")
            return NotificationResult(success=False, error="Invoice webhook URL not configured")
        return url

    def send_lead_email(self, lead: Any) -> NotificationResult:
        """Trigger the outreach email workflow for one lead."""
        request = self._lead_email_request(lead)
        if isinstance(request, NotificationResult):
            return request
        return self.post(*request)

    async def send_lead_email_async(self, lead: Any) -> NotificationResult:
        request = self._lead_email_request(lead)
        if isinstance(request, NotificationResult):
            return request
        return await self.post_async(*request)

    def create_invoice(self, payload: Dict[str, Any]) -> NotificationResult:
        """Hand an invoice to the invoice automation, which stores it."""
        url = self._invoice_url_or_failure()
        if isinstance(url, NotificationResult):
            return url
        return self.post(url, payload)

    async def create_invoice_async(self, payload: Dict[str, Any]) -> NotificationResult:
        url = self._invoice_url_or_failure()
        if isinstance(url, NotificationResult):
            return url
        return await self.post_async(url, payload)

    async def notify_leads(self, leads: Iterable[Any]) -> NotificationBatch:
        """
        Send the outreach email for each lead, one call per lead.

        Best-effort: a failure is recorded and the loop continues. Nothing
        already sent is compensated.
        """
        batch = NotificationBatch()
        for lead in leads:
            result = await self.send_lead_email_async(lead)
            batch.results.append((str(get_field(lead, "id")), result))
            if not result.success:
                batch.failed += 1
            elif result.skipped:
                batch.skipped += 1
            else:
                batch.sent += 1

        if batch.failed:
            logger.warning(
                f"Lead email fan-out: {batch.sent} sent, {batch.failed} failed, "
                f"{batch.skipped} skipped"
            )
        return batch
