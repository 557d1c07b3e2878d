"""AES-256-GCM encryption for bearer tokens cached at rest."""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_LENGTH = 32
NONCE_LENGTH = 12  # 96 bits, the GCM recommendation
_TAG_LENGTH = 16


class InvalidKeyError(ValueError):
    """The configured encryption key is not base64 for exactly 32 bytes."""


class DecryptionError(Exception):
    """Ciphertext could not be authenticated with the configured key."""


def decode_key(key_b64: str) -> bytes:
    """Decode and validate a base64-encoded 256-bit key.

    Raises:
        InvalidKeyError: If *key_b64* is not valid base64 or does not
            decode to exactly 32 bytes.
    """
    try:
        key = base64.b64decode(key_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidKeyError("Encryption key must be base64-encoded") from exc
    if len(key) != KEY_LENGTH:
        raise InvalidKeyError(
            f"Encryption key must be {KEY_LENGTH} bytes (256 bits), got {len(key)}"
        )
    return key


def generate_key() -> str:
    """Return a fresh random key in the format ``decode_key`` accepts."""
    return base64.b64encode(os.urandom(KEY_LENGTH)).decode()


class TokenCipher:
    """Encrypt and decrypt token strings with a static master key.

    Each encryption draws a new random nonce, which is prepended to the
    ciphertext before base64 encoding, so ``decrypt`` needs nothing but
    the ciphertext and the key.

    Args:
        key_b64: Base64-encoded 32-byte key.

    Raises:
        InvalidKeyError: If the key is malformed.
    """

    def __init__(self, key_b64: str) -> None:
        self._aead = AESGCM(decode_key(key_b64))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aead.encrypt(nonce, plaintext.encode(), None)
        return base64.b64encode(nonce + sealed).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Return the plaintext for *ciphertext*.

        Raises:
            DecryptionError: On malformed, truncated, tampered or
                foreign-key ciphertext.
        """
        try:
            combined = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecryptionError("Ciphertext is not valid base64") from exc
        if len(combined) < NONCE_LENGTH + _TAG_LENGTH:
            raise DecryptionError("Ciphertext is too short")

        nonce, sealed = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise DecryptionError("Ciphertext failed authentication") from exc
        return plaintext.decode()
