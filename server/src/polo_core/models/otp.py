"""One-time passcode models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class OtpCode(BaseModel):
    """Stored OTP. ``app_id`` is None for developer console codes."""

    id: UUID
    app_id: str | None = None
    email: str
    code: str
    expires_at: datetime
    used: bool = False
