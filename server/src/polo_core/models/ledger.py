"""Result types returned by the ledger client.

Network-facing calls never raise for expected failures; they return one of
these models with ``success`` and a structured ``error``.
"""

from enum import Enum

from pydantic import BaseModel, Field


class LedgerErrorKind(str, Enum):
    ACCOUNT_NOT_FOUND = "account_not_found"
    TRANSACTION_REJECTED = "transaction_rejected"
    NETWORK_ERROR = "network_error"


class LedgerError(BaseModel):
    """Structured ledger failure.

    ``result_codes`` mirrors Horizon's ``extras.result_codes`` when the
    network rejected a transaction, e.g.
    ``{"transaction": "tx_failed", "operations": ["op_underfunded"]}``.
    """

    kind: LedgerErrorKind
    message: str
    status: int | None = None
    result_codes: dict | None = None


class LedgerAccount(BaseModel):
    """Account state needed to build a transaction."""

    account_id: str
    sequence: int


class AccountResult(BaseModel):
    success: bool
    account: LedgerAccount | None = None
    error: LedgerError | None = None


class SubmitResult(BaseModel):
    success: bool
    hash: str | None = None
    error: LedgerError | None = None


class BalancesResult(BaseModel):
    success: bool
    balances: dict[str, str] = Field(default_factory=dict)
    error: LedgerError | None = None


class PaymentRecord(BaseModel):
    """A payment-like operation from an account's history."""

    id: str
    type: str
    created_at: str | None = None
    transaction_hash: str | None = None
    from_account: str | None = None
    to_account: str | None = None
    amount: str | None = None
    asset: str | None = None


class HistoryResult(BaseModel):
    success: bool
    records: list[PaymentRecord] = Field(default_factory=list)
    error: LedgerError | None = None
