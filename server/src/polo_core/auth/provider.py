"""Supabase Auth adapter: verifies bearer tokens and issues console sessions."""

import logging
import secrets
from typing import Any, Protocol

import httpx
from supabase import AuthApiError, AuthError, AuthRetryableError, Client, create_client

from polo_core.config import get_settings
from polo_core.exceptions import SessionIssueError
from polo_core.models.identity import (
    ConsoleSession,
    TokenFailure,
    TokenVerification,
    VerifiedUser,
)
from polo_core.redact import mask

logger = logging.getLogger(__name__)

USERS_PAGE_SIZE = 1000


class IdentityProvider(Protocol):
    """Verifies bearer tokens and issues sessions."""

    async def verify(self, token: str) -> TokenVerification: ...

    async def issue_session(self, email: str) -> ConsoleSession: ...


class SupabaseIdentityProvider:
    """Identity provider backed by Supabase Auth."""

    def __init__(
        self,
        url: str | None = None,
        anon_key: str | None = None,
        service_role_key: str | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url or settings.supabase_url
        self._anon_key = anon_key or settings.supabase_anon_key
        self._service_role_key = service_role_key or settings.supabase_service_role_key
        self._anon_client: Client | None = None
        self._admin_client: Client | None = None

    def _anon(self) -> Client:
        if self._anon_client is None:
            self._anon_client = create_client(self._url, self._anon_key)
        return self._anon_client

    def _admin(self) -> Client:
        if self._admin_client is None:
            self._admin_client = create_client(self._url, self._service_role_key)
        return self._admin_client

    async def verify(self, token: str) -> TokenVerification:
        """Verify a bearer token.

        Provider 4xx answers are INVALID; 5xx answers, retryable auth errors
        and transport failures are UNAVAILABLE.
        """
        try:
            response = self._anon().auth.get_user(token)
        except AuthApiError as e:
            failure = TokenFailure.UNAVAILABLE if (e.status or 0) >= 500 else TokenFailure.INVALID
            return TokenVerification(success=False, failure=failure, error=e.message)
        except AuthRetryableError as e:
            return TokenVerification(
                success=False, failure=TokenFailure.UNAVAILABLE, error=e.message
            )
        except AuthError as e:
            return TokenVerification(success=False, failure=TokenFailure.INVALID, error=e.message)
        except httpx.HTTPError as e:
            return TokenVerification(
                success=False, failure=TokenFailure.UNAVAILABLE, error=type(e).__name__
            )

        if response is None or response.user is None:
            return TokenVerification(
                success=False, failure=TokenFailure.INVALID, error="No user for token"
            )

        return TokenVerification(
            success=True,
            user=VerifiedUser(id=response.user.id, email=response.user.email),
        )

    def _find_user(self, admin: Any, email: str) -> Any | None:
        """Page through provider users looking for ``email``."""
        page = 1
        while True:
            users = admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
            match = next(
                (u for u in users if u.email and u.email.lower() == email.lower()), None
            )
            if match is not None or len(users) < USERS_PAGE_SIZE:
                return match
            page += 1

    async def issue_session(self, email: str) -> ConsoleSession:
        """Get or create the provider user for ``email`` and sign them in.

        Sets a random one-off password on the user and signs in with it to
        obtain a real session token.

        Raises:
            SessionIssueError: If the user cannot be created or signed in
        """
        admin = self._admin().auth.admin
        try:
            user = self._find_user(admin, email)
            if user is None:
                created = admin.create_user({"email": email, "email_confirm": True})
                user = created.user
            if user is None:
                raise SessionIssueError("Failed to resolve user")

            temp_password = secrets.token_urlsafe(32)
            admin.update_user_by_id(user.id, {"password": temp_password})

            # Fresh client so the shared anon client never holds a session
            signer = create_client(self._url, self._anon_key)
            signed_in = signer.auth.sign_in_with_password(
                {"email": email, "password": temp_password}
            )
        except (AuthError, httpx.HTTPError) as e:
            logger.error(f"Session issue failed for {mask(email)}: {type(e).__name__}")
            raise SessionIssueError("Failed to create session") from e

        if signed_in.session is None:
            raise SessionIssueError("Failed to create session")

        logger.info(f"Issued console session for {mask(email)}")
        return ConsoleSession(
            access_token=signed_in.session.access_token,
            refresh_token=signed_in.session.refresh_token,
            expires_at=signed_in.session.expires_at,
            provider_user_id=user.id,
        )
