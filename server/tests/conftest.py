"""Global test configuration for Polo Core."""

import asyncio
import os
import secrets
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from stellar_sdk import Keypair, Network

from polo_core.ledger.client import LedgerClient
from polo_core.ledger.network import NetworkConfig
from polo_core.ledger.sponsor import SponsorSigner
from polo_core.models.identity import App, Developer
from polo_core.models.ledger import AccountResult, LedgerAccount, SubmitResult
from polo_core.models.otp import OtpCode
from polo_core.models.wallet import (
    CustodyWallet,
    EncryptedSecret,
    InsertWalletResult,
    NewCustodyWallet,
)
from polo_core.security.cipher import SecretCipher

TEST_ENCRYPTION_SECRET = "0123456789abcdef" * 4


@pytest.fixture(autouse=True, scope="session")
def _set_test_env_vars():
    """Set dummy environment variables for Settings validation.

    This ensures tests don't require a real .env file or exported env vars.
    Only sets values that aren't already present, so real env vars take
    precedence (useful for integration tests).
    """
    defaults = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "test-service-role-key",
        "SUPABASE_ANON_KEY": "test-anon-key",
        "ENCRYPTION_SECRET": TEST_ENCRYPTION_SECRET,
        "SPONSOR_SECRET_KEY": Keypair.random().secret,
        "APP_ENV": "test",
    }
    originals = {}
    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value
            originals[key] = None
        else:
            originals[key] = os.environ[key]

    # Clear the lru_cache on get_settings so it picks up the new env vars
    from polo_core.config import get_settings
    get_settings.cache_clear()

    yield

    # Restore original env state
    for key, original in originals.items():
        if original is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original
    get_settings.cache_clear()


class InMemoryStore:
    """CustodyStore fake with the same uniqueness and CAS guarantees.

    Every method yields to the event loop once so concurrent callers
    interleave the way they would against a real database.
    """

    def __init__(self) -> None:
        self.wallets: dict[tuple[str, str], CustodyWallet] = {}
        self.apps: dict[UUID, App] = {}
        self.otps: dict[UUID, OtpCode] = {}
        self.sdk_users: set[tuple[str, str]] = set()
        self.developers: dict[str, Developer] = {}
        self.healthy = True

    async def find_wallet(self, tenant_id: str, user_identifier: str) -> CustodyWallet | None:
        await asyncio.sleep(0)
        return self.wallets.get((tenant_id, user_identifier))

    async def insert_wallet(self, record: NewCustodyWallet) -> InsertWalletResult:
        await asyncio.sleep(0)
        key = (record.tenant_id, record.user_identifier)
        if key in self.wallets:
            return InsertWalletResult(conflict=True)
        wallet = CustodyWallet(id=uuid4(), created_at=datetime.now(UTC), **record.model_dump())
        self.wallets[key] = wallet
        return InsertWalletResult(wallet=wallet)

    async def get_public_key(self, tenant_id: str, user_identifier: str) -> str | None:
        wallet = await self.find_wallet(tenant_id, user_identifier)
        return wallet.public_key if wallet else None

    async def get_encrypted_secret(
        self, tenant_id: str, user_identifier: str
    ) -> EncryptedSecret | None:
        wallet = await self.find_wallet(tenant_id, user_identifier)
        if wallet is None:
            return None
        return EncryptedSecret(iv=wallet.iv, content=wallet.encrypted_secret)

    async def find_app_by_key(self, publishable_key: str) -> App | None:
        await asyncio.sleep(0)
        return next(
            (app for app in self.apps.values() if app.publishable_key == publishable_key),
            None,
        )

    async def create_app(self, owner_id: str, name: str) -> App:
        app = App(
            id=uuid4(),
            owner_id=owner_id,
            name=name,
            publishable_key=f"pk_{secrets.token_hex(24)}",
            created_at=datetime.now(UTC),
        )
        self.apps[app.id] = app
        return app

    async def list_apps(self, owner_id: str) -> list[App]:
        return [app for app in self.apps.values() if app.owner_id == owner_id]

    async def invalidate_otps(self, app_id: str | None, email: str) -> int:
        count = 0
        for otp_id, otp in self.otps.items():
            if otp.app_id == app_id and otp.email == email and not otp.used:
                self.otps[otp_id] = otp.model_copy(update={"used": True})
                count += 1
        return count

    async def create_otp(
        self, app_id: str | None, email: str, code: str, expires_at: datetime
    ) -> OtpCode:
        otp = OtpCode(id=uuid4(), app_id=app_id, email=email, code=code, expires_at=expires_at)
        self.otps[otp.id] = otp
        return otp

    async def find_live_otp(
        self, app_id: str | None, email: str, code: str, now: datetime
    ) -> OtpCode | None:
        await asyncio.sleep(0)
        for otp in self.otps.values():
            if (
                otp.app_id == app_id
                and otp.email == email
                and otp.code == code
                and not otp.used
                and otp.expires_at > now
            ):
                return otp
        return None

    async def consume_otp(self, otp_id: UUID) -> bool:
        await asyncio.sleep(0)
        otp = self.otps.get(otp_id)
        if otp is None or otp.used:
            return False
        self.otps[otp_id] = otp.model_copy(update={"used": True})
        return True

    async def upsert_sdk_user(self, app_id: str, email: str) -> None:
        self.sdk_users.add((app_id, email))

    async def upsert_developer(self, email: str) -> Developer:
        if email not in self.developers:
            self.developers[email] = Developer(id=uuid4(), email=email)
        return self.developers[email]

    async def health_check(self) -> dict[str, Any]:
        return {"healthy": self.healthy, "latency_ms": 0.0, "error": None}


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(TEST_ENCRYPTION_SECRET)


@pytest.fixture
def network() -> NetworkConfig:
    return NetworkConfig(
        name="testnet",
        horizon_url="https://horizon-testnet.stellar.org",
        passphrase=Network.TESTNET_NETWORK_PASSPHRASE,
    )


@pytest.fixture
def sponsor_keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def sponsor(sponsor_keypair: Keypair) -> SponsorSigner:
    return SponsorSigner(sponsor_keypair.secret)


@pytest.fixture
def mock_ledger(sponsor_keypair: Keypair) -> MagicMock:
    """LedgerClient mock where every account exists and every submit succeeds."""
    ledger = MagicMock(spec=LedgerClient)

    async def _load(public_key: str) -> AccountResult:
        await asyncio.sleep(0)
        return AccountResult(
            success=True,
            account=LedgerAccount(account_id=public_key, sequence=100),
        )

    async def _submit(envelope) -> SubmitResult:
        await asyncio.sleep(0)
        return SubmitResult(success=True, hash=envelope.hash_hex())

    ledger.load_account = AsyncMock(side_effect=_load)
    ledger.submit_transaction = AsyncMock(side_effect=_submit)
    ledger.get_balances = AsyncMock()
    ledger.get_payments_history = AsyncMock()
    ledger.health_check = AsyncMock(return_value=True)
    ledger.clamp_limit = MagicMock(side_effect=lambda limit, default=10: min(limit or default, 50))
    return ledger
