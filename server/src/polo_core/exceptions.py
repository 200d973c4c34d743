"""Custom exceptions for Polo Core.

Every error carries an HTTP-equivalent ``status_code`` and a stable ``kind``
so the transport layer can shape responses without inspecting messages.
Messages must never contain key material, full tokens, or full API keys.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from polo_core.models.identity import RejectionReason


class PoloError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InputValidationError(PoloError):
    """Bad address, non-positive amount, missing fields."""

    status_code = 400
    kind = "input_validation"


class TenantRequiredError(PoloError):
    """A tenant-scoped operation was called without a tenant."""

    status_code = 400
    kind = "tenant_required"


class AuthenticationError(PoloError):
    """Raised when the resolver rejects a request."""

    def __init__(self, reason: RejectionReason, message: str) -> None:
        self.reason = reason
        self.status_code = reason.status_code
        self.kind = reason.value
        super().__init__(message)


class InvalidOtpError(PoloError):
    status_code = 401
    kind = "invalid_otp"


class WalletNotFoundError(PoloError):
    """The caller has no custody wallet yet."""

    status_code = 404
    kind = "wallet_not_found"


class AccountNotFoundError(PoloError):
    """An account does not exist on-chain (e.g. unfunded sponsor)."""

    status_code = 502
    kind = "account_not_found"


class LedgerUnavailableError(PoloError):
    status_code = 502
    kind = "ledger_unavailable"


class WalletCreationFailedError(PoloError):
    """The onboarding transaction was rejected by the network."""

    status_code = 502
    kind = "wallet_creation_failed"

    def __init__(self, message: str, result_codes: dict | None = None) -> None:
        self.result_codes = result_codes
        super().__init__(message)


class PaymentFailedError(PoloError):
    """The payment transaction was rejected by the network."""

    status_code = 502
    kind = "payment_failed"

    def __init__(self, message: str, result_codes: dict | None = None) -> None:
        self.result_codes = result_codes
        super().__init__(message)


class EmailDeliveryError(PoloError):
    status_code = 502
    kind = "email_delivery_failed"


class SessionIssueError(PoloError):
    status_code = 500
    kind = "session_issue_failed"


class StoreError(PoloError):
    """Unexpected custody store failure."""

    status_code = 500
    kind = "store_error"


class CipherConfigurationError(PoloError):
    """ENCRYPTION_SECRET is missing or has the wrong length. Fatal."""

    status_code = 500
    kind = "cipher_configuration"


class SponsorConfigurationError(PoloError):
    """SPONSOR_SECRET_KEY is missing or malformed. Fatal."""

    status_code = 500
    kind = "sponsor_configuration"


class DecryptionError(PoloError):
    """Stored ciphertext failed authentication or could not be decrypted."""

    status_code = 500
    kind = "decryption_failed"
