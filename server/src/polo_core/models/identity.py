"""Identity models for multi-tenant support."""

from datetime import datetime
from enum import Enum
from typing import Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class App(BaseModel):
    """Registered application (tenant).

    The publishable key is globally unique and maps to exactly one app.
    """

    id: UUID
    owner_id: str
    name: str
    publishable_key: str
    created_at: datetime


class Identity(BaseModel):
    """The resolved caller. ``tenant_id`` is set only for tenant-key callers."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    email: str
    tenant_id: str | None = None


class RejectionReason(str, Enum):
    """Why the resolver refused a request.

    UNAUTHENTICATED: no usable credential was supplied
    INVALID_KEY_FORMAT: tenant key without the ``pk_`` marker
    KEY_NOT_FOUND: tenant key is well-formed but unknown
    INVALID_TOKEN: identity provider rejected the bearer token
    NO_EMAIL_ASSOCIATED: token is valid but the user has no email
    PROVIDER_UNAVAILABLE: identity provider could not be reached
    """

    UNAUTHENTICATED = "unauthenticated"
    INVALID_KEY_FORMAT = "invalid_key_format"
    KEY_NOT_FOUND = "key_not_found"
    INVALID_TOKEN = "invalid_token"
    NO_EMAIL_ASSOCIATED = "no_email_associated"
    PROVIDER_UNAVAILABLE = "provider_unavailable"

    @property
    def status_code(self) -> int:
        if self is RejectionReason.NO_EMAIL_ASSOCIATED:
            return 403
        if self is RejectionReason.PROVIDER_UNAVAILABLE:
            return 503
        return 401


class TenantUser(BaseModel):
    """SDK end-user: verified session plus tenant context."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tenant_user"] = "tenant_user"
    subject_id: str
    email: str
    tenant_id: str

    @property
    def identity(self) -> Identity:
        return Identity(
            subject_id=self.subject_id, email=self.email, tenant_id=self.tenant_id
        )


class TenantOnly(BaseModel):
    """Tenant key without a usable session (credential-issuance flows)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tenant_only"] = "tenant_only"
    owner_id: str
    tenant_id: str

    @property
    def identity(self) -> Identity:
        return Identity(
            subject_id=self.owner_id,
            email=f"app:{self.tenant_id}",
            tenant_id=self.tenant_id,
        )


class ConsoleUser(BaseModel):
    """Developer signed in to the console; not tenant scoped."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["console_user"] = "console_user"
    subject_id: str
    email: str

    @property
    def identity(self) -> Identity:
        return Identity(subject_id=self.subject_id, email=self.email)


class Rejected(BaseModel):
    """Terminal rejection with its HTTP status class."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["rejected"] = "rejected"
    reason: RejectionReason
    message: str

    @property
    def status_code(self) -> int:
        return self.reason.status_code


AuthResolution = Union[TenantUser, TenantOnly, ConsoleUser, Rejected]


class VerifiedUser(BaseModel):
    """User returned by the identity provider for a valid token."""

    id: str
    email: str | None = None


class TokenFailure(str, Enum):
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"


class TokenVerification(BaseModel):
    """Result of verifying a bearer token with the identity provider."""

    success: bool
    user: VerifiedUser | None = None
    failure: TokenFailure | None = None
    error: str | None = None


class ConsoleSession(BaseModel):
    """Session issued to a developer after console OTP verification."""

    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    provider_user_id: str


class Developer(BaseModel):
    id: UUID
    email: str
    created_at: datetime | None = None
