"""Process-scoped service wiring.

Each component is built on first use from ``Settings`` and cached for the
life of the process. Tests replace the container with one built from fakes
via ``set_container``.
"""

import logging
import threading

from polo_core.auth.otp import Mailer, OtpService
from polo_core.auth.provider import IdentityProvider, SupabaseIdentityProvider
from polo_core.auth.resolver import AuthResolver
from polo_core.config import Settings, get_settings
from polo_core.db.client import DatabaseClient
from polo_core.db.store import CustodyStore
from polo_core.ledger.client import LedgerClient
from polo_core.ledger.network import NetworkConfig, network_from_settings
from polo_core.ledger.sponsor import SponsorSigner
from polo_core.manager.payment_service import PaymentService
from polo_core.manager.wallet_manager import WalletManager
from polo_core.security.cipher import SecretCipher
from polo_core.tools.resend import ResendClient

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Lazily constructed, shared service instances.

    Any component may be passed in explicitly; the rest are built from
    settings when first requested.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: CustodyStore | None = None,
        ledger: LedgerClient | None = None,
        provider: IdentityProvider | None = None,
        mailer: Mailer | None = None,
        cipher: SecretCipher | None = None,
        sponsor: SponsorSigner | None = None,
        network: NetworkConfig | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._ledger = ledger
        self._provider = provider
        self._mailer = mailer
        self._cipher = cipher
        self._sponsor = sponsor
        self._network = network
        self._resolver: AuthResolver | None = None
        self._otp: OtpService | None = None
        self._wallets: WalletManager | None = None
        self._payments: PaymentService | None = None
        self._lock = threading.RLock()

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def store(self) -> CustodyStore:
        with self._lock:
            if self._store is None:
                self._store = DatabaseClient(
                    url=self.settings.supabase_url,
                    key=self.settings.supabase_service_role_key,
                )
            return self._store

    @property
    def network(self) -> NetworkConfig:
        with self._lock:
            if self._network is None:
                self._network = network_from_settings(self.settings)
            return self._network

    @property
    def ledger(self) -> LedgerClient:
        with self._lock:
            if self._ledger is None:
                self._ledger = LedgerClient(
                    self.network,
                    history_max_limit=self.settings.history_max_limit,
                )
            return self._ledger

    @property
    def cipher(self) -> SecretCipher:
        with self._lock:
            if self._cipher is None:
                self._cipher = SecretCipher(self.settings.encryption_secret)
            return self._cipher

    @property
    def sponsor(self) -> SponsorSigner:
        with self._lock:
            if self._sponsor is None:
                self._sponsor = SponsorSigner(self.settings.sponsor_secret_key)
            return self._sponsor

    @property
    def provider(self) -> IdentityProvider:
        with self._lock:
            if self._provider is None:
                self._provider = SupabaseIdentityProvider(
                    url=self.settings.supabase_url,
                    anon_key=self.settings.supabase_anon_key,
                    service_role_key=self.settings.supabase_service_role_key,
                )
            return self._provider

    @property
    def mailer(self) -> Mailer:
        with self._lock:
            if self._mailer is None:
                self._mailer = ResendClient()
            return self._mailer

    @property
    def resolver(self) -> AuthResolver:
        with self._lock:
            if self._resolver is None:
                self._resolver = AuthResolver(store=self.store, provider=self.provider)
            return self._resolver

    @property
    def otp(self) -> OtpService:
        with self._lock:
            if self._otp is None:
                self._otp = OtpService(
                    store=self.store,
                    mailer=self.mailer,
                    ttl_minutes=self.settings.otp_ttl_minutes,
                )
            return self._otp

    @property
    def wallets(self) -> WalletManager:
        with self._lock:
            if self._wallets is None:
                self._wallets = WalletManager(
                    store=self.store,
                    ledger=self.ledger,
                    sponsor=self.sponsor,
                    cipher=self.cipher,
                    network=self.network,
                )
            return self._wallets

    @property
    def payments(self) -> PaymentService:
        with self._lock:
            if self._payments is None:
                self._payments = PaymentService(
                    store=self.store,
                    ledger=self.ledger,
                    cipher=self.cipher,
                    network=self.network,
                    history_default_limit=self.settings.history_default_limit,
                )
            return self._payments

    def startup(self) -> None:
        """Validate custody secrets so misconfiguration fails at boot.

        Raises:
            CipherConfigurationError: If ENCRYPTION_SECRET is invalid
            SponsorConfigurationError: If SPONSOR_SECRET_KEY is invalid
        """
        _ = self.cipher
        self.sponsor.initialize()
        logger.info(f"Custody ready on {self.network.name}")

    async def shutdown(self) -> None:
        if self._ledger is not None:
            await self._ledger.close()


_container: ServiceContainer | None = None
_container_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """Get or create the process-wide container."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer | None) -> None:
    """Replace the process-wide container (None resets it)."""
    global _container
    with _container_lock:
        _container = container
