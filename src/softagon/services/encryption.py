"""Field encryption for sensitive columns.

Certificate passwords are encrypted by the application before they reach
the database, using AES-256-GCM (authenticated encryption) from the
`cryptography` library.

Stored format (text column):

    v1:<base64(nonce || ciphertext || tag)>

The 12-byte nonce is random per value. A fixed associated-data string binds
the ciphertext to its purpose, so a value encrypted for another field does
not decrypt here.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

if TYPE_CHECKING:
    from softagon.core.config import CryptoSettings

logger = logging.getLogger(__name__)

# AES-256 requires 32-byte key
KEY_SIZE_BYTES = 32
# GCM nonce should be 12 bytes per NIST recommendations
GCM_NONCE_SIZE_BYTES = 12
# GCM tag is 16 bytes (128 bits)
GCM_TAG_SIZE_BYTES = 16

FORMAT_PREFIX = "v1:"
DEFAULT_ASSOCIATED_DATA = b"softagon:field:v1"


class EncryptionError(Exception):
    """Base exception for field encryption operations."""

    pass


class DecryptionError(EncryptionError):
    """Raised when a stored value cannot be decrypted."""

    pass


class FieldEncryptor:
    """Encrypts and decrypts single text values with AES-256-GCM.

    Example:
        encryptor = FieldEncryptor(os.urandom(32))
        stored = encryptor.encrypt("s3cret")
        assert encryptor.decrypt(stored) == "s3cret"
    """

    def __init__(self, key: bytes, *, associated_data: bytes = DEFAULT_ASSOCIATED_DATA) -> None:
        """Initialize with a raw 32-byte key.

        Raises:
            EncryptionError: If the key has the wrong length.
        """
        if len(key) != KEY_SIZE_BYTES:
            raise EncryptionError(
                f"Field encryption key must be {KEY_SIZE_BYTES} bytes, got {len(key)}"
            )
        self._aesgcm = AESGCM(key)
        self._associated_data = associated_data

    @classmethod
    def from_settings(cls, crypto: CryptoSettings | None = None) -> FieldEncryptor:
        """Build an encryptor from configuration.

        Raises:
            EncryptionError: If no field encryption key is configured.
        """
        if crypto is None:
            from softagon.core.settings import get_settings

            crypto = get_settings().crypto

        key = crypto.key_bytes()
        if key is None:
            raise EncryptionError(
                "Field encryption key not configured. Set SOFTAGON_CRYPTO__FIELD_ENCRYPTION_KEY."
            )
        return cls(key)

    @staticmethod
    def generate_key() -> str:
        """Return a new random key, base64-encoded for the environment."""
        return base64.b64encode(os.urandom(KEY_SIZE_BYTES)).decode("ascii")

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a text value into its stored form."""
        nonce = os.urandom(GCM_NONCE_SIZE_BYTES)
        try:
            ciphertext = self._aesgcm.encrypt(
                nonce, plaintext.encode("utf-8"), self._associated_data
            )
        except Exception as e:
            logger.error("Field encryption failed: %s", type(e).__name__)
            raise EncryptionError(f"Field encryption failed: {e}") from e
        return FORMAT_PREFIX + base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, stored: str) -> str:
        """Decrypt a stored value.

        Raises:
            DecryptionError: If the value is malformed, was encrypted with
                another key, or has been tampered with.
        """
        if not stored.startswith(FORMAT_PREFIX):
            raise DecryptionError("Unrecognized encrypted value format")

        try:
            raw = base64.b64decode(stored[len(FORMAT_PREFIX) :], validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Encrypted value is not valid base64") from e

        if len(raw) < GCM_NONCE_SIZE_BYTES + GCM_TAG_SIZE_BYTES:
            raise DecryptionError("Encrypted value is truncated")

        nonce, ciphertext = raw[:GCM_NONCE_SIZE_BYTES], raw[GCM_NONCE_SIZE_BYTES:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext, self._associated_data)
        except InvalidTag as e:
            logger.warning("Field decryption failed: authentication tag mismatch")
            raise DecryptionError("Encrypted value failed authentication") from e
        return plaintext.decode("utf-8")

    @staticmethod
    def is_encrypted(value: str) -> bool:
        """Check whether a value carries the encrypted-value prefix."""
        return value.startswith(FORMAT_PREFIX)
