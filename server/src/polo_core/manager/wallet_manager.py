"""Get-or-create custody wallets."""

import logging

from stellar_sdk import Account, Keypair

from polo_core.db.store import CustodyStore
from polo_core.exceptions import (
    AccountNotFoundError,
    LedgerUnavailableError,
    PoloError,
    StoreError,
    WalletCreationFailedError,
)
from polo_core.ledger.builder import build_onboarding_transaction
from polo_core.ledger.client import LedgerClient
from polo_core.ledger.network import NetworkConfig
from polo_core.ledger.sponsor import SponsorSigner
from polo_core.models.ledger import LedgerError, LedgerErrorKind
from polo_core.models.wallet import NewCustodyWallet, WalletResult, WalletStatus
from polo_core.redact import mask
from polo_core.security.cipher import SecretCipher

logger = logging.getLogger(__name__)


def account_error(error: LedgerError | None, public_key: str) -> PoloError:
    """Translate a failed account load into a domain error."""
    if error is not None and error.kind is LedgerErrorKind.ACCOUNT_NOT_FOUND:
        return AccountNotFoundError(f"Account {mask(public_key)} not found on ledger")
    detail = error.message if error else "unknown error"
    return LedgerUnavailableError(f"Failed to load account {mask(public_key)}: {detail}")


class WalletManager:
    """Creates funded custody wallets and stores their encrypted secrets.

    Creation is all-or-nothing from the store's point of view: a row is only
    written after the onboarding transaction succeeds on-chain.
    """

    def __init__(
        self,
        store: CustodyStore,
        ledger: LedgerClient,
        sponsor: SponsorSigner,
        cipher: SecretCipher,
        network: NetworkConfig,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.sponsor = sponsor
        self.cipher = cipher
        self.network = network

    async def get_or_create_wallet(
        self,
        tenant_id: str,
        user_identifier: str,
    ) -> WalletResult:
        """Return the user's wallet, creating and funding it if needed.

        Args:
            tenant_id: The tenant (app) ID
            user_identifier: The end-user identifier (email)

        Returns:
            WalletResult with status ACTIVE (existing) or CREATED (new)

        Raises:
            AccountNotFoundError: If the sponsor account is not on-chain
            LedgerUnavailableError: If Horizon cannot be reached
            WalletCreationFailedError: If the onboarding transaction fails
        """
        existing = await self.store.find_wallet(tenant_id, user_identifier)
        if existing is not None:
            logger.info(f"Wallet exists for {mask(user_identifier)} (tenant: {tenant_id})")
            return WalletResult(status=WalletStatus.ACTIVE, public_key=existing.public_key)

        logger.info(f"Creating wallet for {mask(user_identifier)} (tenant: {tenant_id})...")
        keypair = Keypair.random()
        public_key = keypair.public_key

        sponsor_key = self.sponsor.public_key()
        loaded = await self.ledger.load_account(sponsor_key)
        if not loaded.success or loaded.account is None:
            raise account_error(loaded.error, sponsor_key)

        envelope = build_onboarding_transaction(
            Account(loaded.account.account_id, loaded.account.sequence),
            public_key,
            self.network,
        )
        # Sponsor pays and creates the account; the new account authorizes its trustline
        self.sponsor.cosign(envelope)
        envelope.sign(keypair)

        submitted = await self.ledger.submit_transaction(envelope)
        if not submitted.success:
            codes = submitted.error.result_codes if submitted.error else None
            detail = codes or (submitted.error.message if submitted.error else "unknown error")
            raise WalletCreationFailedError(
                f"Account creation failed: {detail}", result_codes=codes
            )

        encrypted = self.cipher.encrypt(keypair.secret)
        del keypair

        inserted = await self.store.insert_wallet(
            NewCustodyWallet(
                tenant_id=tenant_id,
                user_identifier=user_identifier,
                public_key=public_key,
                encrypted_secret=encrypted.content,
                iv=encrypted.iv,
            )
        )
        if inserted.conflict:
            return await self._resolve_conflict(tenant_id, user_identifier, public_key)

        logger.info(f"Wallet created: {mask(public_key)}")
        return WalletResult(
            status=WalletStatus.CREATED,
            public_key=public_key,
            tx_hash=submitted.hash,
        )

    async def _resolve_conflict(
        self,
        tenant_id: str,
        user_identifier: str,
        orphan_key: str,
    ) -> WalletResult:
        """A concurrent call stored a wallet first; return that one."""
        logger.warning(
            f"Concurrent wallet creation for {mask(user_identifier)} (tenant: {tenant_id}); "
            f"funded account {mask(orphan_key)} is orphaned"
        )
        winner = await self.store.find_wallet(tenant_id, user_identifier)
        if winner is None:
            raise StoreError("Wallet conflict reported but no wallet found")
        return WalletResult(status=WalletStatus.ACTIVE, public_key=winner.public_key)
