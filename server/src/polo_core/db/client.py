"""Supabase database client for custody persistence.

Uses the service role key, which bypasses row level security. Server-side
only.
"""

import logging
import secrets
import time
from datetime import datetime
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client, create_client

from polo_core.config import get_settings
from polo_core.exceptions import StoreError
from polo_core.models.identity import App, Developer
from polo_core.models.otp import OtpCode
from polo_core.models.wallet import (
    CustodyWallet,
    EncryptedSecret,
    InsertWalletResult,
    NewCustodyWallet,
)
from polo_core.redact import mask

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
PUBLISHABLE_KEY_PREFIX = "pk_"


class DatabaseClient:
    """Client for Supabase database operations."""

    def __init__(self, url: str | None = None, key: str | None = None) -> None:
        settings = get_settings()
        self.client: Client = create_client(
            url or settings.supabase_url,
            key or settings.supabase_service_role_key,
        )

    # -------------------------------------------------------------------------
    # Custody wallets
    # -------------------------------------------------------------------------

    async def find_wallet(
        self,
        tenant_id: str,
        user_identifier: str,
    ) -> CustodyWallet | None:
        """Find a custody wallet by tenant + user identifier.

        Args:
            tenant_id: The tenant (app) ID
            user_identifier: The end-user identifier (email)

        Returns:
            CustodyWallet if found, None otherwise
        """
        result = (
            self.client.table("custody_wallets")
            .select("*")
            .eq("tenant_id", tenant_id)
            .eq("user_identifier", user_identifier)
            .execute()
        )
        if result.data:
            return CustodyWallet(**result.data[0])
        return None

    async def insert_wallet(self, record: NewCustodyWallet) -> InsertWalletResult:
        """Insert a new custody wallet.

        A (tenant_id, user_identifier) uniqueness violation is reported as a
        conflict rather than raised, so callers can refetch.

        Args:
            record: The wallet to insert

        Returns:
            InsertWalletResult with the stored wallet, or conflict=True
        """
        try:
            result = (
                self.client.table("custody_wallets")
                .insert(record.model_dump())
                .execute()
            )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.warning(
                    f"Wallet already exists for {mask(record.user_identifier)} "
                    f"(tenant: {record.tenant_id})"
                )
                return InsertWalletResult(conflict=True)
            raise StoreError(f"Wallet insert failed: {e.message}") from e

        return InsertWalletResult(wallet=CustodyWallet(**result.data[0]))

    async def get_public_key(
        self,
        tenant_id: str,
        user_identifier: str,
    ) -> str | None:
        """Get the public key for a user (no secret exposed)."""
        result = (
            self.client.table("custody_wallets")
            .select("public_key")
            .eq("tenant_id", tenant_id)
            .eq("user_identifier", user_identifier)
            .execute()
        )
        if result.data:
            return result.data[0]["public_key"]
        return None

    async def get_encrypted_secret(
        self,
        tenant_id: str,
        user_identifier: str,
    ) -> EncryptedSecret | None:
        """Get the encrypted secret + IV for server-side decryption only."""
        result = (
            self.client.table("custody_wallets")
            .select("encrypted_secret, iv")
            .eq("tenant_id", tenant_id)
            .eq("user_identifier", user_identifier)
            .execute()
        )
        if result.data:
            row = result.data[0]
            return EncryptedSecret(iv=row["iv"], content=row["encrypted_secret"])
        return None

    # -------------------------------------------------------------------------
    # Apps (tenants)
    # -------------------------------------------------------------------------

    async def find_app_by_key(self, publishable_key: str) -> App | None:
        """Look up app by publishable key."""
        result = (
            self.client.table("apps")
            .select("*")
            .eq("publishable_key", publishable_key)
            .execute()
        )
        if result.data:
            return App(**result.data[0])
        return None

    async def create_app(self, owner_id: str, name: str) -> App:
        """Create an app with a fresh publishable key."""
        data = {
            "owner_id": owner_id,
            "name": name,
            "publishable_key": f"{PUBLISHABLE_KEY_PREFIX}{secrets.token_hex(24)}",
        }
        result = self.client.table("apps").insert(data).execute()
        app = App(**result.data[0])
        logger.info(f"Created app {app.id} for owner {mask(owner_id)}")
        return app

    async def list_apps(self, owner_id: str) -> list[App]:
        """List a developer's apps, newest first."""
        result = (
            self.client.table("apps")
            .select("*")
            .eq("owner_id", owner_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [App(**row) for row in result.data]

    # -------------------------------------------------------------------------
    # OTP codes
    # -------------------------------------------------------------------------

    def _otp_scope(self, query: Any, app_id: str | None) -> Any:
        if app_id is None:
            return query.is_("app_id", "null")
        return query.eq("app_id", app_id)

    async def invalidate_otps(self, app_id: str | None, email: str) -> int:
        """Mark every unused code for (scope, email) as used."""
        query = (
            self.client.table("otp_codes")
            .update({"used": True})
            .eq("email", email)
            .eq("used", False)
        )
        result = self._otp_scope(query, app_id).execute()
        return len(result.data or [])

    async def create_otp(
        self,
        app_id: str | None,
        email: str,
        code: str,
        expires_at: datetime,
    ) -> OtpCode:
        data = {
            "app_id": app_id,
            "email": email,
            "code": code,
            "expires_at": expires_at.isoformat(),
            "used": False,
        }
        result = self.client.table("otp_codes").insert(data).execute()
        return OtpCode(**result.data[0])

    async def find_live_otp(
        self,
        app_id: str | None,
        email: str,
        code: str,
        now: datetime,
    ) -> OtpCode | None:
        """Find an unused, unexpired code matching (scope, email, code)."""
        query = (
            self.client.table("otp_codes")
            .select("*")
            .eq("email", email)
            .eq("code", code)
            .eq("used", False)
            .gt("expires_at", now.isoformat())
        )
        result = (
            self._otp_scope(query, app_id)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if result.data:
            return OtpCode(**result.data[0])
        return None

    async def consume_otp(self, otp_id: UUID) -> bool:
        """Atomically flip used false->true. False if another caller won."""
        result = (
            self.client.table("otp_codes")
            .update({"used": True})
            .eq("id", str(otp_id))
            .eq("used", False)
            .execute()
        )
        return bool(result.data)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def upsert_sdk_user(self, app_id: str, email: str) -> None:
        """Ensure an SDK end-user row exists for (app, email)."""
        (
            self.client.table("sdk_users")
            .upsert({"app_id": app_id, "email": email}, on_conflict="app_id,email")
            .execute()
        )

    async def upsert_developer(self, email: str) -> Developer:
        """Create or fetch the developer profile for an email."""
        result = (
            self.client.table("developers")
            .upsert({"email": email}, on_conflict="email")
            .execute()
        )
        return Developer(**result.data[0])

    async def health_check(self) -> dict[str, Any]:
        """Check database connectivity and return health status.

        Returns:
            Dict with:
                - healthy: bool - whether the database is reachable
                - latency_ms: float - query latency in milliseconds
                - error: str | None - error message if unhealthy
        """
        start = time.perf_counter()
        try:
            self.client.table("apps").select("id").limit(1).execute()
            latency_ms = (time.perf_counter() - start) * 1000
            return {"healthy": True, "latency_ms": round(latency_ms, 2), "error": None}
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Database health check failed: {e}")
            return {"healthy": False, "latency_ms": round(latency_ms, 2), "error": str(e)}
