"""Wrappers for external APIs."""

from polo_core.tools.resend import ResendClient

__all__ = ["ResendClient"]
