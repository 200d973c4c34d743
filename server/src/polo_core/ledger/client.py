"""Horizon client for the Stellar network.

Stateless apart from one lazily created connection pool. Calls are never
retried here: blind retries of a submission risk double-spending, so retry
policy belongs to the caller. Expected failures come back as result models.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from stellar_sdk import ServerAsync, TransactionEnvelope
from stellar_sdk.client.aiohttp_client import AiohttpClient
from stellar_sdk.exceptions import (
    BaseHorizonError,
    BaseRequestError,
    NotFoundError,
)
from stellar_sdk.sep.exceptions import AccountRequiresMemoError

from polo_core.ledger.network import NATIVE_ASSET_CODE, NetworkConfig
from polo_core.models.ledger import (
    AccountResult,
    BalancesResult,
    HistoryResult,
    LedgerAccount,
    LedgerError,
    LedgerErrorKind,
    PaymentRecord,
    SubmitResult,
)
from polo_core.redact import mask

logger = logging.getLogger(__name__)

HORIZON_MAX_PAGE = 200


def _horizon_error(
    e: BaseRequestError,
    kind: LedgerErrorKind = LedgerErrorKind.NETWORK_ERROR,
) -> LedgerError:
    if isinstance(e, BaseHorizonError):
        extras = e.extras or {}
        return LedgerError(
            kind=kind,
            message=e.title or e.detail or "Horizon error",
            status=e.status,
            result_codes=extras.get("result_codes"),
        )
    return LedgerError(kind=LedgerErrorKind.NETWORK_ERROR, message=str(e) or type(e).__name__)


class LedgerClient:
    """Async adapter over Horizon."""

    def __init__(
        self,
        network: NetworkConfig,
        history_max_limit: int = 50,
    ) -> None:
        self.network = network
        self.history_max_limit = max(1, min(history_max_limit, HORIZON_MAX_PAGE))
        self._server: ServerAsync | None = None

    def _get_server(self) -> ServerAsync:
        if self._server is None:
            self._server = ServerAsync(
                horizon_url=self.network.horizon_url,
                client=AiohttpClient(),
            )
        return self._server

    async def close(self) -> None:
        """Close the Horizon connection pool."""
        if self._server is not None:
            await self._server.close()
            self._server = None

    async def load_account(self, public_key: str) -> AccountResult:
        """Load an account's current sequence number.

        Returns ACCOUNT_NOT_FOUND when the account does not exist on-chain.
        """
        try:
            account = await self._get_server().load_account(public_key)
        except NotFoundError:
            return AccountResult(
                success=False,
                error=LedgerError(
                    kind=LedgerErrorKind.ACCOUNT_NOT_FOUND,
                    message=f"Account {mask(public_key)} not found",
                    status=404,
                ),
            )
        except BaseRequestError as e:
            logger.error(f"Account load failed for {mask(public_key)}: {e}")
            return AccountResult(success=False, error=_horizon_error(e))

        return AccountResult(
            success=True,
            account=LedgerAccount(
                account_id=account.account.account_id,
                sequence=account.sequence,
            ),
        )

    async def submit_transaction(self, envelope: TransactionEnvelope) -> SubmitResult:
        """Submit a fully signed transaction."""
        try:
            response = await self._get_server().submit_transaction(envelope)
        except AccountRequiresMemoError as e:
            return SubmitResult(
                success=False,
                error=LedgerError(
                    kind=LedgerErrorKind.TRANSACTION_REJECTED,
                    message=f"Destination {mask(e.account_id)} requires a memo",
                ),
            )
        except BaseHorizonError as e:
            error = _horizon_error(e, LedgerErrorKind.TRANSACTION_REJECTED)
            logger.error(f"Submission error: {error.result_codes or error.message}")
            return SubmitResult(success=False, error=error)
        except BaseRequestError as e:
            logger.error(f"Submission error: {e}")
            return SubmitResult(success=False, error=_horizon_error(e))

        return SubmitResult(success=True, hash=response["hash"])

    def _balance_key(self, balance: dict[str, Any]) -> str | None:
        asset_type = balance.get("asset_type")
        if asset_type == "native":
            return NATIVE_ASSET_CODE
        if asset_type in ("credit_alphanum4", "credit_alphanum12"):
            code = balance.get("asset_code")
            issuer = balance.get("asset_issuer")
            if (
                code == self.network.stable_asset_code
                and issuer == self.network.stable_issuer
            ):
                return code
            return f"{code}:{issuer}"
        return None

    async def get_balances(self, public_key: str) -> BalancesResult:
        """Fetch live balances keyed by asset symbol.

        Native is keyed "XLM", the platform stable asset by its code, any
        other issued asset by "CODE:ISSUER". Other asset types are omitted.
        """
        try:
            data = await self._get_server().accounts().account_id(public_key).call()
        except NotFoundError:
            return BalancesResult(
                success=False,
                error=LedgerError(
                    kind=LedgerErrorKind.ACCOUNT_NOT_FOUND,
                    message=f"Account {mask(public_key)} not found",
                    status=404,
                ),
            )
        except BaseRequestError as e:
            logger.error(f"Balance fetch error: {e}")
            return BalancesResult(success=False, error=_horizon_error(e))

        balances: dict[str, str] = {}
        for balance in data.get("balances", []):
            key = self._balance_key(balance)
            if key is not None:
                balances[key] = balance["balance"]
        return BalancesResult(success=True, balances=balances)

    def clamp_limit(self, limit: int | None, default: int = 10) -> int:
        if limit is None:
            limit = default
        return max(1, min(limit, self.history_max_limit))

    def _to_record(self, raw: dict[str, Any]) -> PaymentRecord:
        op_type = raw.get("type", "")
        if op_type == "create_account":
            from_account = raw.get("funder")
            to_account = raw.get("account")
            amount = raw.get("starting_balance")
            asset = NATIVE_ASSET_CODE
        elif op_type == "account_merge":
            from_account = raw.get("account")
            to_account = raw.get("into")
            amount = None
            asset = NATIVE_ASSET_CODE
        else:
            from_account = raw.get("from")
            to_account = raw.get("to")
            amount = raw.get("amount")
            if raw.get("asset_type") == "native":
                asset = NATIVE_ASSET_CODE
            else:
                asset = raw.get("asset_code")

        return PaymentRecord(
            id=str(raw.get("id", "")),
            type=op_type,
            created_at=raw.get("created_at"),
            transaction_hash=raw.get("transaction_hash"),
            from_account=from_account,
            to_account=to_account,
            amount=amount,
            asset=asset,
        )

    async def iter_payments(
        self,
        public_key: str,
        limit: int | None = None,
    ) -> AsyncIterator[PaymentRecord]:
        """Yield payment records newest first, stopping after ``limit``.

        Pages are fetched lazily. Request errors propagate to the caller.
        """
        remaining = self.clamp_limit(limit)
        cursor: str | None = None

        while remaining > 0:
            builder = (
                self._get_server()
                .payments()
                .for_account(public_key)
                .order(desc=True)
                .limit(remaining)
            )
            if cursor is not None:
                builder = builder.cursor(cursor)
            page = await builder.call()

            records = page.get("_embedded", {}).get("records", [])
            if not records:
                return
            for raw in records[:remaining]:
                yield self._to_record(raw)
            remaining -= len(records)
            cursor = records[-1].get("paging_token")
            if cursor is None:
                return

    async def get_payments_history(
        self,
        public_key: str,
        limit: int | None = None,
    ) -> HistoryResult:
        """Fetch recent payments. Network failure yields success=False, no records."""
        records: list[PaymentRecord] = []
        try:
            async for record in self.iter_payments(public_key, limit):
                records.append(record)
        except BaseRequestError as e:
            logger.error(f"History fetch error for {mask(public_key)}: {e}")
            return HistoryResult(success=False, records=[], error=_horizon_error(e))
        return HistoryResult(success=True, records=records)

    async def health_check(self) -> bool:
        """Check connectivity to Horizon."""
        try:
            await self._get_server().root().call()
            return True
        except BaseRequestError:
            return False
