"""Stellar ledger access: network config, builder, sponsor, Horizon client."""

from polo_core.ledger.builder import (
    build_onboarding_transaction,
    build_payment_transaction,
)
from polo_core.ledger.client import LedgerClient
from polo_core.ledger.network import NetworkConfig, network_from_settings
from polo_core.ledger.sponsor import SponsorSigner

__all__ = [
    "LedgerClient",
    "NetworkConfig",
    "SponsorSigner",
    "build_onboarding_transaction",
    "build_payment_transaction",
    "network_from_settings",
]
