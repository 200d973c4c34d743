"""Resend email API wrapper."""

import logging

import httpx

from polo_core.config import get_settings
from polo_core.exceptions import EmailDeliveryError
from polo_core.redact import mask

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def render_otp_email(code: str, app_name: str) -> str:
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
        "<h2>Login Verification</h2>"
        f"<p>Your verification code for <strong>{app_name}</strong> is:</p>"
        f'<p style="font-size: 32px; font-weight: bold; letter-spacing: 5px;">{code}</p>'
        "<p>This code will expire in 10 minutes.</p>"
        "<p style=\"font-size: 12px; color: #71717a;\">"
        "If you didn't request this, please ignore this email.</p>"
        "</div>"
    )


class ResendClient:
    """Sends OTP emails through Resend.

    Without RESEND_API_KEY, development environments log the code instead of
    sending it; other environments fail.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.api_key = settings.resend_api_key
        self.sender = settings.email_from
        self.development = settings.is_development
        self.timeout = 15.0

    def _dev_fallback(self, email: str, code: str, reason: str) -> bool:
        if not self.development:
            return False
        logger.warning(f"[DEV EMAIL] {reason}. To: {mask(email)} | Code: {code}")
        return True

    async def send_otp_email(self, email: str, code: str, app_name: str = "Polo App") -> None:
        """Send a verification code email.

        Raises:
            EmailDeliveryError: If email is not configured or Resend rejects it
        """
        if not self.api_key:
            if self._dev_fallback(email, code, "RESEND_API_KEY not set"):
                return
            logger.error("RESEND_API_KEY is not set")
            raise EmailDeliveryError("Email service not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.sender,
                        "to": [email],
                        "subject": f"{code} is your verification code for {app_name}",
                        "html": render_otp_email(code, app_name),
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error sending email to {mask(email)}: {type(e).__name__}")
            if self._dev_fallback(email, code, "send failed"):
                return
            raise EmailDeliveryError("Failed to send email") from e

        logger.info(f"Email sent to {mask(email)}: {response.json().get('id')}")
