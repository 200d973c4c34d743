"""Authentication resolution.

Turns the inbound credentials of a request (tenant publishable key, bearer
session token, or both) into exactly one ``AuthResolution``:

    tenant key? ──yes──> key format ok? ──no──> Rejected(INVALID_KEY_FORMAT)
        │                     │yes
        │                app exists? ──no──> Rejected(KEY_NOT_FOUND)
        │                     │yes
        │                bearer token verifies with email?
        │                     ├─yes─> TenantUser
        │                     └─no──> TenantOnly  (fallback, see below)
        no
        │
    bearer token? ──no──> Rejected(UNAUTHENTICATED)
        │yes
    verify ──invalid──> Rejected(INVALID_TOKEN)
        ├──outage───> Rejected(PROVIDER_UNAVAILABLE)
        ├──no email─> Rejected(NO_EMAIL_ASSOCIATED)
        └──ok───────> ConsoleUser

The tenant-key fallback is intentionally lenient: during OTP challenge and
verify an end-user has no session yet, so a bad or absent token with a valid
tenant key yields a tenant-only identity instead of a rejection.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from polo_core.auth.provider import IdentityProvider
from polo_core.db.store import CustodyStore
from polo_core.models.identity import (
    AuthResolution,
    ConsoleUser,
    Rejected,
    RejectionReason,
    TenantOnly,
    TenantUser,
    TokenFailure,
)
from polo_core.redact import mask

logger = logging.getLogger(__name__)

TENANT_KEY_PREFIX = "pk_"
BEARER_PREFIX = "Bearer "
MIN_TOKEN_LENGTH = 10
MAX_TRANSITIONS = 4


class ResolverState(str, Enum):
    """Non-terminal states of the resolver."""

    START = "start"
    TENANT_KEY = "tenant_key"
    TENANT_TOKEN = "tenant_token"
    CONSOLE_TOKEN = "console_token"


@dataclass
class _Attempt:
    """Credentials and findings carried between states of one resolution."""

    api_key: str | None
    token: str | None
    tenant_only: TenantOnly | None = None


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip()


class AuthResolver:
    """Resolves request credentials into an identity and tenant context."""

    def __init__(self, store: CustodyStore, provider: IdentityProvider) -> None:
        self.store = store
        self.provider = provider
        self._transitions = {
            ResolverState.START: self._start,
            ResolverState.TENANT_KEY: self._tenant_key,
            ResolverState.TENANT_TOKEN: self._tenant_token,
            ResolverState.CONSOLE_TOKEN: self._console_token,
        }

    async def resolve(
        self,
        api_key: str | None,
        authorization: str | None,
    ) -> AuthResolution:
        """Run the resolution state machine for one request.

        Each state handler returns either the next state or a terminal
        resolution.

        Args:
            api_key: Value of the X-Publishable-Key header, if any
            authorization: Value of the Authorization header, if any

        Returns:
            TenantUser, TenantOnly, ConsoleUser, or Rejected
        """
        attempt = _Attempt(api_key=api_key, token=extract_bearer(authorization))
        step: ResolverState | AuthResolution = ResolverState.START
        for _ in range(MAX_TRANSITIONS):
            if not isinstance(step, ResolverState):
                return step
            state = step
            step = await self._transitions[state](attempt)
            if isinstance(step, ResolverState):
                logger.debug(f"Auth resolver {state.value} -> {step.value}")
        if isinstance(step, ResolverState):
            raise RuntimeError(f"Auth resolver did not terminate in state {step.value}")
        return step

    async def _start(self, attempt: _Attempt) -> ResolverState:
        if attempt.api_key:
            return ResolverState.TENANT_KEY
        return ResolverState.CONSOLE_TOKEN

    async def _tenant_key(self, attempt: _Attempt) -> ResolverState | AuthResolution:
        api_key = attempt.api_key or ""
        if not api_key.startswith(TENANT_KEY_PREFIX):
            return Rejected(
                reason=RejectionReason.INVALID_KEY_FORMAT,
                message=f"Invalid API Key format. Must start with {TENANT_KEY_PREFIX}",
            )

        app = await self.store.find_app_by_key(api_key)
        if app is None:
            logger.warning(f"Invalid API key attempted: {mask(api_key)}")
            return Rejected(
                reason=RejectionReason.KEY_NOT_FOUND,
                message="Invalid API Key. Project not found.",
            )

        attempt.tenant_only = TenantOnly(owner_id=app.owner_id, tenant_id=str(app.id))
        if not attempt.token:
            return attempt.tenant_only
        return ResolverState.TENANT_TOKEN

    async def _tenant_token(self, attempt: _Attempt) -> AuthResolution:
        tenant_only = attempt.tenant_only
        verification = await self.provider.verify(attempt.token)
        if verification.success and verification.user and verification.user.email:
            return TenantUser(
                subject_id=verification.user.id,
                email=verification.user.email,
                tenant_id=tenant_only.tenant_id,
            )

        failure = verification.failure.value if verification.failure else "no_email"
        logger.info(
            f"Token rejected ({failure}) with valid key for app {tenant_only.tenant_id}; "
            "falling back to tenant-only identity"
        )
        return tenant_only

    async def _console_token(self, attempt: _Attempt) -> AuthResolution:
        token = attempt.token
        if token is None:
            return Rejected(
                reason=RejectionReason.UNAUTHENTICATED,
                message="Missing authentication. Provide Bearer token or x-publishable-key.",
            )
        if len(token) < MIN_TOKEN_LENGTH:
            return Rejected(
                reason=RejectionReason.UNAUTHENTICATED,
                message="Invalid token format",
            )

        verification = await self.provider.verify(token)
        if not verification.success:
            if verification.failure is TokenFailure.UNAVAILABLE:
                logger.error(f"Identity provider unavailable: {verification.error}")
                return Rejected(
                    reason=RejectionReason.PROVIDER_UNAVAILABLE,
                    message="Authentication service unavailable",
                )
            logger.warning(f"Token verification failed: {verification.error}")
            return Rejected(
                reason=RejectionReason.INVALID_TOKEN,
                message="Invalid or expired token",
            )

        user = verification.user
        if user is None or not user.email:
            return Rejected(
                reason=RejectionReason.NO_EMAIL_ASSOCIATED,
                message="User has no email associated",
            )

        return ConsoleUser(subject_id=user.id, email=user.email)
