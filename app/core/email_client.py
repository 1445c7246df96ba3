"""SendGrid transactional email client."""

from typing import Optional

import httpx
from httpx import TimeoutException

from app.core.config import settings
from app.core.exceptions import APITimeoutError, ConfigurationError, EmailDeliveryError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EmailClient:
    """Sends one HTML email per call through the SendGrid v3 mail API."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        from_email: str,
        from_name: str,
        timeout: int = 30,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    async def send(self, to: str, subject: str, html: str) -> Optional[str]:
        """Send an email.

        Returns:
            The provider message id from the ``x-message-id`` header.

        Raises:
            ConfigurationError: If no API key is configured
            EmailDeliveryError: If the provider rejects the message or cannot be reached
        """
        if not self.api_key:
            raise ConfigurationError("SENDGRID_API_KEY is not configured")

        payload = {
            "personalizations": [{"to": [{"email": to}], "subject": subject}],
            "from": {"email": self.from_email, "name": self.from_name},
            "content": [{"type": "text/html", "value": html}],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except TimeoutException as e:
            LOGGER.error("SendGrid request timed out", extra={"to": to})
            raise APITimeoutError("Email provider timed out", original_error=e) from e
        except httpx.RequestError as e:
            LOGGER.error(f"SendGrid request failed: {e}", extra={"to": to})
            raise EmailDeliveryError(f"Failed to send email: {e}", original_error=e) from e

        if response.status_code >= 400:
            LOGGER.error(
                "SendGrid API error",
                extra={"status_code": response.status_code, "error_body": response.text[:500]},
            )
            raise EmailDeliveryError(f"Failed to send email: {response.text}")

        message_id = response.headers.get("x-message-id")
        LOGGER.info("Email sent", extra={"to": to, "message_id": message_id})
        return message_id


def get_email_client() -> EmailClient:
    return EmailClient(
        api_key=settings.email.sendgrid_api_key,
        api_url=settings.email.sendgrid_api_url,
        from_email=settings.email.from_email,
        from_name=settings.email.from_name,
        timeout=settings.http_timeout,
    )
