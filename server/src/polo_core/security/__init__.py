"""At-rest protection for custodied key material."""

from polo_core.security.cipher import DecryptResult, SecretCipher

__all__ = ["DecryptResult", "SecretCipher"]
