"""Payments and read paths for custodied wallets.

The sender's secret key is decrypted in memory, used to sign one
transaction, and dropped before this call returns. It is never logged,
returned, or stored in plaintext.
"""

import logging
from decimal import Decimal, InvalidOperation

from stellar_sdk import Keypair, StrKey

from polo_core.db.store import CustodyStore
from polo_core.exceptions import (
    DecryptionError,
    InputValidationError,
    LedgerUnavailableError,
    PaymentFailedError,
    WalletNotFoundError,
)
from polo_core.ledger.builder import build_payment_transaction
from polo_core.ledger.client import LedgerClient
from polo_core.ledger.network import NATIVE_ASSET_CODE, NetworkConfig
from polo_core.manager.wallet_manager import account_error
from polo_core.models.ledger import LedgerErrorKind
from polo_core.models.wallet import PaymentReceipt, WalletBalances, WalletHistory
from polo_core.redact import mask
from polo_core.security.cipher import SecretCipher

logger = logging.getLogger(__name__)

ADDRESS_PREFIX = "G"
ADDRESS_LENGTH = 56
MAX_AMOUNT_DECIMALS = 7  # Stellar amounts have 7 decimal places
MAX_AMOUNT = Decimal("922337203685.4775807")  # int64 stroops


def validate_destination(destination: str | None) -> str:
    """Check a destination has the shape of a Stellar public key."""
    if not destination:
        raise InputValidationError("Missing required fields: destination, amount")
    destination = destination.strip()
    if not destination.startswith(ADDRESS_PREFIX) or len(destination) != ADDRESS_LENGTH:
        raise InputValidationError(
            "Invalid Stellar address. Must start with G and be 56 characters."
        )
    if not StrKey.is_valid_ed25519_public_key(destination):
        raise InputValidationError("Invalid Stellar address checksum")
    return destination


def parse_amount(amount: str | int | float | None) -> str:
    """Parse a positive decimal amount and return it as a plain string."""
    if amount is None or str(amount).strip() == "":
        raise InputValidationError("Missing required fields: destination, amount")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise InputValidationError("Amount must be a positive number") from None
    if not value.is_finite() or value <= 0:
        raise InputValidationError("Amount must be a positive number")
    if value > MAX_AMOUNT:
        raise InputValidationError(f"Amount cannot exceed {MAX_AMOUNT}")
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > MAX_AMOUNT_DECIMALS:
        raise InputValidationError(
            f"Amount cannot have more than {MAX_AMOUNT_DECIMALS} decimal places"
        )
    return format(value, "f")


def normalize_asset(asset: str | None, network: NetworkConfig) -> str:
    if not asset:
        return NATIVE_ASSET_CODE
    symbol = asset.strip().upper()
    if symbol not in network.supported_assets:
        raise InputValidationError(
            f"Unsupported asset. Use one of: {', '.join(network.supported_assets)}"
        )
    return symbol


class PaymentService:
    """Sends payments from custodied wallets and reads their ledger state."""

    def __init__(
        self,
        store: CustodyStore,
        ledger: LedgerClient,
        cipher: SecretCipher,
        network: NetworkConfig,
        history_default_limit: int = 10,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.cipher = cipher
        self.network = network
        self.history_default_limit = history_default_limit

    async def send_payment(
        self,
        tenant_id: str,
        user_identifier: str,
        destination: str | None,
        amount: str | int | float | None,
        asset: str | None = None,
    ) -> PaymentReceipt:
        """Sign and submit a payment from the user's custody wallet.

        All input validation happens before any store or network call.

        Args:
            tenant_id: The tenant (app) ID
            user_identifier: The sender's identifier (email)
            destination: Destination public key (G...)
            amount: Positive decimal amount
            asset: "XLM" (default) or the stable asset code

        Returns:
            PaymentReceipt with the transaction hash

        Raises:
            InputValidationError: On a bad destination, amount or asset
            WalletNotFoundError: If the sender has no wallet yet
            DecryptionError: If the stored secret fails to decrypt
            PaymentFailedError: If the network rejects the transaction
        """
        destination = validate_destination(destination)
        amount_str = parse_amount(amount)
        asset_symbol = normalize_asset(asset, self.network)

        secret = await self.store.get_encrypted_secret(tenant_id, user_identifier)
        if secret is None:
            raise WalletNotFoundError("Wallet not found. Call POST /api/v1/wallet/create first.")

        decrypted = self.cipher.decrypt(secret.content, secret.iv)
        if not decrypted.success or decrypted.plaintext is None:
            logger.error(
                f"Secret decryption failed for {mask(user_identifier)} "
                f"(tenant: {tenant_id}): {decrypted.error}"
            )
            raise DecryptionError("Stored wallet secret could not be decrypted")

        keypair = Keypair.from_secret(decrypted.plaintext)
        del decrypted
        try:
            tx_hash = await self._sign_and_submit(keypair, destination, amount_str, asset_symbol)
        finally:
            del keypair

        logger.info(
            f"Payment sent: {mask(user_identifier)} -> {amount_str} {asset_symbol} -> "
            f"{mask(destination)} ({tx_hash})"
        )
        return PaymentReceipt(
            tx_hash=tx_hash,
            amount=amount_str,
            asset=asset_symbol,
            destination=destination,
        )

    async def _sign_and_submit(
        self,
        keypair: Keypair,
        destination: str,
        amount: str,
        asset_symbol: str,
    ) -> str:
        sender = keypair.public_key
        loaded = await self.ledger.load_account(sender)
        if not loaded.success or loaded.account is None:
            raise account_error(loaded.error, sender)

        envelope = build_payment_transaction(
            source_public_key=sender,
            sequence=loaded.account.sequence,
            destination=destination,
            amount=amount,
            asset_symbol=asset_symbol,
            network=self.network,
        )
        envelope.sign(keypair)

        submitted = await self.ledger.submit_transaction(envelope)
        if not submitted.success or submitted.hash is None:
            codes = submitted.error.result_codes if submitted.error else None
            detail = codes or (submitted.error.message if submitted.error else "unknown error")
            raise PaymentFailedError(f"Payment failed: {detail}", result_codes=codes)
        return submitted.hash

    async def _require_public_key(self, tenant_id: str, user_identifier: str) -> str:
        public_key = await self.store.get_public_key(tenant_id, user_identifier)
        if public_key is None:
            raise WalletNotFoundError(
                "Wallet not found. User must authenticate via POST /api/v1/auth/verify first."
            )
        return public_key

    async def get_balances(self, tenant_id: str, user_identifier: str) -> WalletBalances:
        """Live balances of the user's wallet."""
        public_key = await self._require_public_key(tenant_id, user_identifier)
        result = await self.ledger.get_balances(public_key)
        if not result.success:
            if result.error and result.error.kind is LedgerErrorKind.ACCOUNT_NOT_FOUND:
                raise account_error(result.error, public_key)
            raise LedgerUnavailableError("Failed to fetch balances from Stellar")
        return WalletBalances(public_key=public_key, balances=result.balances)

    async def get_history(
        self,
        tenant_id: str,
        user_identifier: str,
        limit: int | None = None,
    ) -> WalletHistory:
        """Recent payments, newest first. Degrades to an empty list on failure."""
        public_key = await self._require_public_key(tenant_id, user_identifier)
        clamped = self.ledger.clamp_limit(limit, default=self.history_default_limit)
        result = await self.ledger.get_payments_history(public_key, clamped)
        return WalletHistory(
            public_key=public_key,
            records=result.records,
            success=result.success,
        )
