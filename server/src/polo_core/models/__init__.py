"""Pydantic models for Polo Core - the contracts."""

from polo_core.models.identity import (
    App,
    AuthResolution,
    ConsoleSession,
    ConsoleUser,
    Developer,
    Identity,
    Rejected,
    RejectionReason,
    TenantOnly,
    TenantUser,
    TokenFailure,
    TokenVerification,
    VerifiedUser,
)
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
from polo_core.models.otp import OtpCode
from polo_core.models.wallet import (
    CustodyWallet,
    EncryptedSecret,
    InsertWalletResult,
    NewCustodyWallet,
    PaymentReceipt,
    WalletBalances,
    WalletHistory,
    WalletResult,
    WalletStatus,
)

__all__ = [
    "AccountResult",
    "App",
    "AuthResolution",
    "BalancesResult",
    "ConsoleSession",
    "ConsoleUser",
    "CustodyWallet",
    "Developer",
    "EncryptedSecret",
    "HistoryResult",
    "Identity",
    "InsertWalletResult",
    "LedgerAccount",
    "LedgerError",
    "LedgerErrorKind",
    "NewCustodyWallet",
    "OtpCode",
    "PaymentReceipt",
    "PaymentRecord",
    "Rejected",
    "RejectionReason",
    "SubmitResult",
    "TenantOnly",
    "TenantUser",
    "TokenFailure",
    "TokenVerification",
    "VerifiedUser",
    "WalletBalances",
    "WalletHistory",
    "WalletResult",
    "WalletStatus",
]
