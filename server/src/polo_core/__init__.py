"""Polo Core - Multi-tenant custodial Stellar wallet backend."""

__version__ = "0.1.0"

from polo_core.exceptions import PoloError

__all__ = ["__version__", "PoloError"]
