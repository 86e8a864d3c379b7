"""Notes encryption — AES-256-GCM for the free-text notes field.

Encrypted values are stored as "ENC:" + base64(nonce || ciphertext).
Values without the prefix are treated as plain text, so records written
before a key was configured stay readable.
"""

from __future__ import annotations

import base64
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

PREFIX = "ENC:"
NONCE_LENGTH = 12


def generate_key() -> str:
    """Return a fresh base64-encoded 256-bit key for NOTES_ENCRYPTION_KEY."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")


def is_encrypted(text: str | None) -> bool:
    return bool(text) and text.startswith(PREFIX)


class NotesCipher:
    """Encrypts and decrypts single text values with one AES-GCM key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != 32:
            raise ValueError("Notes encryption key must be 32 bytes (AES-256)")
        self._aes = AESGCM(key)

    @classmethod
    def from_base64(cls, encoded: str) -> NotesCipher:
        return cls(base64.b64decode(encoded))

    @classmethod
    def from_settings(cls) -> NotesCipher | None:
        """Cipher for the configured key, or None if encryption is off."""
        from vitacare.config import settings

        if not settings.NOTES_ENCRYPTION_KEY:
            return None
        return cls.from_base64(settings.NOTES_ENCRYPTION_KEY)

    def encrypt(self, text: str | None) -> str:
        if not text or not text.strip():
            return ""
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aes.encrypt(nonce, text.encode("utf-8"), None)
        return PREFIX + base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, stored: str | None) -> str:
        """Plain text for a stored value.

        Returns unprefixed values unchanged. A value that fails
        authentication is logged and returned as stored.
        """
        if not stored or not stored.strip():
            return ""
        if not is_encrypted(stored):
            return stored

        try:
            combined = base64.b64decode(stored[len(PREFIX):])
            nonce, sealed = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
            return self._aes.decrypt(nonce, sealed, None).decode("utf-8")
        except (InvalidTag, ValueError) as exc:
            logger.warning("Failed to decrypt notes value: %s", type(exc).__name__)
            return stored
