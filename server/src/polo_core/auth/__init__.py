"""Authentication: identity provider, resolver, and OTP flows."""

from polo_core.auth.otp import OtpService
from polo_core.auth.provider import IdentityProvider, SupabaseIdentityProvider
from polo_core.auth.resolver import AuthResolver, extract_bearer

__all__ = [
    "AuthResolver",
    "IdentityProvider",
    "OtpService",
    "SupabaseIdentityProvider",
    "extract_bearer",
]
