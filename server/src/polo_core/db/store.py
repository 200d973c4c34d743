"""Custody store contract.

The services depend on this protocol rather than on Supabase directly, so
tests can run against an in-memory implementation. Implementations must
enforce uniqueness of (tenant_id, user_identifier) on insert and make
``consume_otp`` an atomic compare-and-set on ``used``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from polo_core.models.identity import App, Developer
from polo_core.models.otp import OtpCode
from polo_core.models.wallet import CustodyWallet, EncryptedSecret, InsertWalletResult, NewCustodyWallet


@runtime_checkable
class CustodyStore(Protocol):
    """Persistence for wallets, apps, OTP codes, SDK users and developers."""

    async def find_wallet(
        self, tenant_id: str, user_identifier: str
    ) -> CustodyWallet | None: ...

    async def insert_wallet(self, record: NewCustodyWallet) -> InsertWalletResult: ...

    async def get_public_key(
        self, tenant_id: str, user_identifier: str
    ) -> str | None: ...

    async def get_encrypted_secret(
        self, tenant_id: str, user_identifier: str
    ) -> EncryptedSecret | None: ...

    async def find_app_by_key(self, publishable_key: str) -> App | None: ...

    async def create_app(self, owner_id: str, name: str) -> App: ...

    async def list_apps(self, owner_id: str) -> list[App]: ...

    async def invalidate_otps(self, app_id: str | None, email: str) -> int: ...

    async def create_otp(
        self, app_id: str | None, email: str, code: str, expires_at: datetime
    ) -> OtpCode: ...

    async def find_live_otp(
        self, app_id: str | None, email: str, code: str, now: datetime
    ) -> OtpCode | None: ...

    async def consume_otp(self, otp_id: UUID) -> bool: ...

    async def upsert_sdk_user(self, app_id: str, email: str) -> None: ...

    async def upsert_developer(self, email: str) -> Developer: ...

    async def health_check(self) -> dict[str, Any]: ...
