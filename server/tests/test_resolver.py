"""Tests for the authentication resolver."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from polo_core.auth.resolver import AuthResolver, ResolverState, extract_bearer
from polo_core.models.identity import (
    ConsoleUser,
    Rejected,
    RejectionReason,
    TenantOnly,
    TenantUser,
    TokenFailure,
    TokenVerification,
    VerifiedUser,
)

TOKEN = "eyJhbGciOiJIUzI1NiJ9.payload.signature"


def _ok(email: str | None = "alice@example.com") -> TokenVerification:
    return TokenVerification(success=True, user=VerifiedUser(id="user-1", email=email))


def _fail(failure: TokenFailure) -> TokenVerification:
    return TokenVerification(success=False, failure=failure, error="nope")


@pytest.fixture
def provider() -> MagicMock:
    provider = MagicMock()
    provider.verify = AsyncMock(return_value=_ok())
    return provider


@pytest.fixture
def resolver(store, provider) -> AuthResolver:
    return AuthResolver(store=store, provider=provider)


class TestExtractBearer:
    def test_extracts_token(self):
        assert extract_bearer(f"Bearer {TOKEN}") == TOKEN

    @pytest.mark.parametrize("header", [None, "", TOKEN, f"Basic {TOKEN}", f"bearer {TOKEN}"])
    def test_rejects_other_schemes(self, header):
        assert extract_bearer(header) is None


# ---------------------------------------------------------------------------
# Tenant key path
# ---------------------------------------------------------------------------

class TestTenantKey:
    """Requests carrying X-Publishable-Key."""

    @pytest.mark.asyncio
    async def test_key_with_valid_token_is_tenant_user(self, resolver, store):
        app = await store.create_app("owner-1", "Demo")

        result = await resolver.resolve(app.publishable_key, f"Bearer {TOKEN}")

        assert isinstance(result, TenantUser)
        assert result.tenant_id == str(app.id)
        assert result.email == "alice@example.com"
        assert result.identity.tenant_id == str(app.id)

    @pytest.mark.asyncio
    async def test_key_without_token_is_tenant_only(self, resolver, store, provider):
        app = await store.create_app("owner-1", "Demo")

        result = await resolver.resolve(app.publishable_key, None)

        assert isinstance(result, TenantOnly)
        assert result.owner_id == "owner-1"
        assert result.identity.email == f"app:{app.id}"
        provider.verify.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "verification",
        [_fail(TokenFailure.INVALID), _fail(TokenFailure.UNAVAILABLE), _ok(email=None)],
    )
    async def test_bad_token_falls_back_to_tenant_only(
        self, resolver, store, provider, verification, caplog
    ):
        app = await store.create_app("owner-1", "Demo")
        provider.verify = AsyncMock(return_value=verification)

        with caplog.at_level(logging.INFO):
            result = await resolver.resolve(app.publishable_key, f"Bearer {TOKEN}")

        assert isinstance(result, TenantOnly)
        assert result.tenant_id == str(app.id)
        assert "falling back" in caplog.text
        assert TOKEN not in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_key(self, resolver, provider):
        result = await resolver.resolve("sk_live_123", f"Bearer {TOKEN}")

        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.INVALID_KEY_FORMAT
        assert result.status_code == 401
        provider.verify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_key(self, resolver, caplog):
        unknown = "pk_" + "f" * 48
        with caplog.at_level(logging.WARNING):
            result = await resolver.resolve(unknown, None)

        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.KEY_NOT_FOUND
        assert result.status_code == 401
        assert unknown not in caplog.text
        assert unknown[:8] in caplog.text


# ---------------------------------------------------------------------------
# Console path
# ---------------------------------------------------------------------------

class TestConsoleToken:
    """Requests with only a bearer token."""

    @pytest.mark.asyncio
    async def test_valid_token_is_console_user(self, resolver):
        result = await resolver.resolve(None, f"Bearer {TOKEN}")

        assert isinstance(result, ConsoleUser)
        assert result.subject_id == "user-1"
        assert result.identity.tenant_id is None

    @pytest.mark.asyncio
    async def test_no_credentials(self, resolver):
        result = await resolver.resolve(None, None)

        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.UNAUTHENTICATED
        assert result.status_code == 401

    @pytest.mark.asyncio
    async def test_short_token(self, resolver, provider):
        result = await resolver.resolve(None, "Bearer short")

        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.UNAUTHENTICATED
        provider.verify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_token(self, resolver, provider):
        provider.verify = AsyncMock(return_value=_fail(TokenFailure.INVALID))

        result = await resolver.resolve(None, f"Bearer {TOKEN}")

        assert result.reason is RejectionReason.INVALID_TOKEN
        assert result.status_code == 401

    @pytest.mark.asyncio
    async def test_provider_outage(self, resolver, provider):
        provider.verify = AsyncMock(return_value=_fail(TokenFailure.UNAVAILABLE))

        result = await resolver.resolve(None, f"Bearer {TOKEN}")

        assert result.reason is RejectionReason.PROVIDER_UNAVAILABLE
        assert result.status_code == 503

    @pytest.mark.asyncio
    async def test_token_without_email(self, resolver, provider):
        provider.verify = AsyncMock(return_value=_ok(email=None))

        result = await resolver.resolve(None, f"Bearer {TOKEN}")

        assert result.reason is RejectionReason.NO_EMAIL_ASSOCIATED
        assert result.status_code == 403


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

class TestTransitions:
    """The resolver walks its states in order and stops at a terminal result."""

    @pytest.mark.asyncio
    async def test_tenant_user_path(self, resolver, store, caplog):
        app = await store.create_app("owner-1", "Demo")

        with caplog.at_level(logging.DEBUG, logger="polo_core.auth.resolver"):
            await resolver.resolve(app.publishable_key, f"Bearer {TOKEN}")

        steps = [r.getMessage() for r in caplog.records if "Auth resolver" in r.getMessage()]
        assert steps == [
            "Auth resolver start -> tenant_key",
            "Auth resolver tenant_key -> tenant_token",
        ]

    @pytest.mark.asyncio
    async def test_console_path(self, resolver, caplog):
        with caplog.at_level(logging.DEBUG, logger="polo_core.auth.resolver"):
            result = await resolver.resolve(None, f"Bearer {TOKEN}")

        steps = [r.getMessage() for r in caplog.records if "Auth resolver" in r.getMessage()]
        assert steps == ["Auth resolver start -> console_token"]
        assert isinstance(result, ConsoleUser)

    def test_state_handlers_cover_every_state(self, resolver):
        assert set(resolver._transitions) == set(ResolverState)
