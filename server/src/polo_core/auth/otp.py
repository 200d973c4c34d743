"""One-time passcodes for SDK end-users and console developers.

SDK codes are scoped to an app and have 8 digits; console codes are unscoped
and have 6. At most one live code exists per (scope, email): issuing a new
code invalidates the earlier ones, and a code is consumed by an atomic
compare-and-set on ``used``.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Callable, Protocol

from polo_core.db.store import CustodyStore
from polo_core.exceptions import InputValidationError
from polo_core.redact import mask

logger = logging.getLogger(__name__)

SDK_CODE_DIGITS = 8
CONSOLE_CODE_DIGITS = 6


class Mailer(Protocol):
    async def send_otp_email(self, email: str, code: str, app_name: str) -> None: ...


def generate_code(digits: int) -> str:
    """Random numeric code with no leading zero."""
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


def validate_email(email: str | None) -> str:
    if not email or "@" not in email:
        raise InputValidationError("Valid email is required")
    return email.strip()


class OtpService:
    """Issues and verifies email one-time passcodes."""

    def __init__(
        self,
        store: CustodyStore,
        mailer: Mailer,
        ttl_minutes: int = 10,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def challenge(
        self,
        email: str | None,
        app_id: str | None = None,
        app_name: str = "Polo App",
    ) -> None:
        """Issue a new code for ``email`` and send it.

        Args:
            email: Recipient address
            app_id: App scope for SDK users, None for console developers
            app_name: Name shown in the email

        Raises:
            InputValidationError: If the email is malformed
            EmailDeliveryError: If the email could not be sent
        """
        email = validate_email(email)
        digits = SDK_CODE_DIGITS if app_id else CONSOLE_CODE_DIGITS
        code = generate_code(digits)

        invalidated = await self.store.invalidate_otps(app_id, email)
        if invalidated:
            logger.debug(f"Invalidated {invalidated} earlier code(s) for {mask(email)}")

        await self.store.create_otp(app_id, email, code, self._clock() + self.ttl)
        await self.mailer.send_otp_email(email, code, app_name)
        logger.info(f"OTP issued for {mask(email)} (scope: {app_id or 'console'})")

    async def verify(
        self,
        email: str | None,
        code: str | None,
        app_id: str | None = None,
    ) -> bool:
        """Consume a live code. Returns False for wrong, used or expired codes."""
        if not email or not code:
            raise InputValidationError("Email and code are required")

        otp = await self.store.find_live_otp(app_id, email.strip(), code.strip(), self._clock())
        if otp is None:
            return False

        consumed = await self.store.consume_otp(otp.id)
        if not consumed:
            logger.warning(f"OTP for {mask(email)} was consumed concurrently")
        return consumed
