"""Custody orchestration: wallet creation and payments."""

from polo_core.manager.payment_service import PaymentService
from polo_core.manager.wallet_manager import WalletManager

__all__ = ["PaymentService", "WalletManager"]
