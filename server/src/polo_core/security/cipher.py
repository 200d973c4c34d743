"""AES-256-CBC encryption for custodied secret keys.

Secrets are encrypted before they reach the custody store and decrypted only
in memory, immediately before signing. The stored ``content`` is the CBC
ciphertext followed by an HMAC-SHA256 tag over ``iv || ciphertext``
(encrypt-then-MAC, as Fernet does), so a wrong IV or a tampered row fails to
decrypt instead of yielding a different plaintext.

ENCRYPTION_SECRET must be exactly 64 hex characters (32 bytes). Encryption and
MAC subkeys are derived from it with HKDF-SHA256.
"""

import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from pydantic import BaseModel, Field

from polo_core.exceptions import CipherConfigurationError
from polo_core.models.wallet import EncryptedSecret

KEY_LENGTH = 32
IV_LENGTH = 16  # AES block size
TAG_LENGTH = 32
_HKDF_INFO = b"polo-core/custody-secret/v1"


class DecryptResult(BaseModel):
    """Outcome of a decryption. ``plaintext`` is excluded from repr."""

    success: bool
    plaintext: str | None = Field(default=None, repr=False)
    error: str | None = None


def _parse_key(secret: str | None) -> bytes:
    if not secret or len(secret) != KEY_LENGTH * 2:
        length = len(secret) if secret else 0
        raise CipherConfigurationError(
            "ENCRYPTION_SECRET must be set and be exactly 64 hex characters "
            f"(32 bytes). Current length: {length}"
        )
    try:
        return bytes.fromhex(secret)
    except ValueError:
        raise CipherConfigurationError(
            "ENCRYPTION_SECRET must contain only hex characters"
        ) from None


class SecretCipher:
    """Symmetric cipher for secret keys at rest."""

    def __init__(self, secret: str | None) -> None:
        master = _parse_key(secret)
        derived = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH * 2,
            salt=None,
            info=_HKDF_INFO,
        ).derive(master)
        self._enc_key = derived[:KEY_LENGTH]
        self._mac_key = derived[KEY_LENGTH:]

    def __repr__(self) -> str:
        return "SecretCipher(aes-256-cbc+hmac-sha256)"

    def _tag(self, iv: bytes, ciphertext: bytes) -> hmac.HMAC:
        mac = hmac.HMAC(self._mac_key, hashes.SHA256())
        mac.update(iv)
        mac.update(ciphertext)
        return mac

    def encrypt(self, plaintext: str) -> EncryptedSecret:
        """Encrypt a plaintext string with a fresh random IV."""
        iv = os.urandom(IV_LENGTH)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        tag = self._tag(iv, ciphertext).finalize()

        return EncryptedSecret(iv=iv.hex(), content=(ciphertext + tag).hex())

    def decrypt(self, content: str, iv_hex: str) -> DecryptResult:
        """Decrypt ``content`` with the IV used at encryption time.

        The returned plaintext must never leave the server process.
        """
        try:
            iv = bytes.fromhex(iv_hex)
            blob = bytes.fromhex(content)
        except ValueError:
            return DecryptResult(success=False, error="ciphertext or IV is not valid hex")

        if len(iv) != IV_LENGTH:
            return DecryptResult(success=False, error=f"IV must be {IV_LENGTH} bytes")
        if len(blob) <= TAG_LENGTH or (len(blob) - TAG_LENGTH) % IV_LENGTH:
            return DecryptResult(success=False, error="ciphertext has invalid length")

        ciphertext, tag = blob[:-TAG_LENGTH], blob[-TAG_LENGTH:]
        try:
            self._tag(iv, ciphertext).verify(tag)
        except InvalidSignature:
            return DecryptResult(success=False, error="authentication tag mismatch")

        decryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            raw = unpadder.update(padded) + unpadder.finalize()
            return DecryptResult(success=True, plaintext=raw.decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            return DecryptResult(success=False, error="invalid padding or encoding")


def generate_encryption_secret() -> str:
    """Generate a new 64-hex-character ENCRYPTION_SECRET."""
    return os.urandom(KEY_LENGTH).hex()
