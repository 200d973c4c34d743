"""Platform sponsor keypair: pays for and co-signs new end-user accounts."""

import logging
import threading

from stellar_sdk import Keypair, TransactionEnvelope
from stellar_sdk.exceptions import Ed25519SecretSeedInvalidError

from polo_core.exceptions import SponsorConfigurationError
from polo_core.redact import mask

logger = logging.getLogger(__name__)


class SponsorSigner:
    """Holds the one platform funding keypair.

    The keypair is derived from the configured secret on first use, once,
    under a lock. The secret is never returned, logged, or included in any
    error message.
    """

    def __init__(self, secret: str | None) -> None:
        self._secret = secret
        self._keypair: Keypair | None = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "initialized" if self._keypair is not None else "uninitialized"
        return f"SponsorSigner({state})"

    def _get_keypair(self) -> Keypair:
        if self._keypair is None:
            with self._lock:
                if self._keypair is None:
                    self._keypair = self._derive()
        return self._keypair

    def _derive(self) -> Keypair:
        if not self._secret:
            raise SponsorConfigurationError("SPONSOR_SECRET_KEY is not set")
        try:
            keypair = Keypair.from_secret(self._secret)
        except Ed25519SecretSeedInvalidError:
            raise SponsorConfigurationError(
                "SPONSOR_SECRET_KEY is not a valid Stellar secret seed"
            ) from None
        self._secret = None
        logger.info(f"Sponsor initialized: {mask(keypair.public_key)}")
        return keypair

    def initialize(self) -> None:
        """Derive the keypair now. Raises SponsorConfigurationError if malformed."""
        self._get_keypair()

    def public_key(self) -> str:
        return self._get_keypair().public_key

    def cosign(self, envelope: TransactionEnvelope) -> TransactionEnvelope:
        """Append the sponsor signature to ``envelope`` in place."""
        envelope.sign(self._get_keypair())
        return envelope
