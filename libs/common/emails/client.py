"""
Email client for service-to-service email delivery.

Templates live in the Communications Service; this client only forwards the
template type and its data over HTTP.

Usage:
    from libs.common.emails.client import get_email_client

    email_client = get_email_client()
    await email_client.send_template(
        template_type="order_confirmation",
        to_email="user@example.com",
        template_data={"order_number": "ORD-1700000000000-042"},
    )
"""

from typing import Any, Optional

import httpx

from libs.common.config import get_settings
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


class EmailNotConfiguredError(RuntimeError):
    """Raised when no Communications Service URL is configured."""


class EmailClient:
    """
    HTTP client for the Communications Service email API.

    Errors are raised to the caller. Delivery is best-effort and callers decide
    whether a failure matters.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.base_url = base_url or settings.COMMUNICATIONS_SERVICE_URL
        self.timeout = timeout or settings.COMMUNICATIONS_TIMEOUT

    def _headers(self) -> dict[str, str]:
        headers = {"X-Service-Name": get_settings().SERVICE_NAME}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    async def send_template(
        self,
        template_type: str,
        to_email: str,
        template_data: dict[str, Any],
    ) -> None:
        """
        Send a templated email through the Communications Service.
        """
        if not self.base_url:
            raise EmailNotConfiguredError("COMMUNICATIONS_SERVICE_URL is not set")

        payload = {
            "template_type": template_type,
            "to_email": to_email,
            "template_data": template_data,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/email/template",
                json=payload,
                headers=self._headers(),
            )
            response.raise_for_status()

        logger.info("Sent %s email to %s", template_type, to_email)


_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """Return the process-wide email client."""
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client
