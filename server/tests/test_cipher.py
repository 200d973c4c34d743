"""Tests for the secret cipher."""

import pytest

from polo_core.exceptions import CipherConfigurationError
from polo_core.security.cipher import (
    IV_LENGTH,
    SecretCipher,
    generate_encryption_secret,
)

SEED = "SBJ5ZH2UXTL2DXH3SA7DQUIXEIW4DL6QSQ4N2ACJBYZTOD67RMYH3MLJ"


# ---------------------------------------------------------------------------
# Key configuration
# ---------------------------------------------------------------------------

class TestKeyConfiguration:
    """Tests for ENCRYPTION_SECRET validation."""

    def test_generated_secret_is_accepted(self):
        secret = generate_encryption_secret()
        assert len(secret) == 64
        SecretCipher(secret)

    @pytest.mark.parametrize("secret", [None, "", "ab" * 31, "ab" * 33])
    def test_wrong_length_is_fatal(self, secret):
        with pytest.raises(CipherConfigurationError) as exc_info:
            SecretCipher(secret)
        assert "64 hex characters" in exc_info.value.message

    def test_non_hex_is_fatal(self):
        with pytest.raises(CipherConfigurationError):
            SecretCipher("zz" * 32)

    def test_repr_hides_keys(self, cipher):
        assert "0123456789abcdef" not in repr(cipher)


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

class TestEncryptDecrypt:
    """Tests for encrypt/decrypt."""

    def test_round_trip(self, cipher):
        encrypted = cipher.encrypt(SEED)
        result = cipher.decrypt(encrypted.content, encrypted.iv)

        assert result.success is True
        assert result.plaintext == SEED

    def test_iv_is_fresh_and_hex(self, cipher):
        first = cipher.encrypt(SEED)
        second = cipher.encrypt(SEED)

        assert len(bytes.fromhex(first.iv)) == IV_LENGTH
        assert first.iv != second.iv
        assert first.content != second.content

    def test_ciphertext_does_not_contain_plaintext(self, cipher):
        encrypted = cipher.encrypt(SEED)
        assert SEED not in encrypted.content
        assert SEED.encode().hex() not in encrypted.content

    def test_plaintext_not_in_repr(self, cipher):
        encrypted = cipher.encrypt(SEED)
        result = cipher.decrypt(encrypted.content, encrypted.iv)
        assert SEED not in repr(result)
        assert encrypted.content not in repr(encrypted)

    def test_empty_string_round_trips(self, cipher):
        encrypted = cipher.encrypt("")
        assert cipher.decrypt(encrypted.content, encrypted.iv).plaintext == ""


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestDecryptFailures:
    """Decryption failures come back as results, never as a wrong plaintext."""

    def test_wrong_iv_fails(self, cipher):
        encrypted = cipher.encrypt(SEED)
        other_iv = cipher.encrypt(SEED).iv

        result = cipher.decrypt(encrypted.content, other_iv)

        assert result.success is False
        assert result.plaintext is None

    def test_tampered_ciphertext_fails(self, cipher):
        encrypted = cipher.encrypt(SEED)
        flipped = ("0" if encrypted.content[0] != "0" else "1") + encrypted.content[1:]

        result = cipher.decrypt(flipped, encrypted.iv)

        assert result.success is False
        assert result.error == "authentication tag mismatch"

    def test_wrong_key_fails(self, cipher):
        encrypted = cipher.encrypt(SEED)
        other = SecretCipher(generate_encryption_secret())

        assert other.decrypt(encrypted.content, encrypted.iv).success is False

    def test_non_hex_input_fails(self, cipher):
        result = cipher.decrypt("not-hex", "also-not-hex")
        assert result.success is False
        assert "hex" in result.error

    def test_short_iv_fails(self, cipher):
        encrypted = cipher.encrypt(SEED)
        result = cipher.decrypt(encrypted.content, "00" * 8)
        assert result.success is False

    def test_truncated_content_fails(self, cipher):
        encrypted = cipher.encrypt(SEED)
        result = cipher.decrypt(encrypted.content[:40], encrypted.iv)
        assert result.success is False
        assert result.error == "ciphertext has invalid length"
