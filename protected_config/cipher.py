"""
String Cipher - Password-based symmetric encryption of configuration values.

Provides:
- PBKDF2-HMAC-SHA256 key derivation from a password and a random salt
- Fernet encryption (AES-128-CBC with HMAC-SHA256)
- A Cipher protocol so hosts can plug in their own primitive

Ciphertext layout: salt (SALT_SIZE bytes) followed by the Fernet token.
A fresh salt is generated on every call, so encrypting the same value
twice produces different ciphertexts.
"""

import base64
import logging
import secrets
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptionError

logger = logging.getLogger(__name__)


class Cipher(Protocol):
    """Symmetric primitive used to protect configuration values."""

    def encrypt(self, plaintext: str, password: str) -> bytes: ...

    def decrypt(self, ciphertext: bytes, password: str) -> str: ...


class StringCipher:
    """
    Default cipher: PBKDF2 key derivation feeding a Fernet token.

    The password is stretched with KDF_ITERATIONS rounds per call. Tests
    and tools that do many round trips may lower the iteration count, but
    ciphertexts only decrypt with the count they were produced with.
    """

    # Key derivation parameters
    KDF_ITERATIONS = 480000  # OWASP recommended minimum for PBKDF2-SHA256
    SALT_SIZE = 16

    def __init__(self, iterations: int = KDF_ITERATIONS, salt_size: int = SALT_SIZE):
        if iterations < 1:
            raise ValueError("iterations must be a positive integer")
        if salt_size < 8:
            raise ValueError("salt_size must be at least 8 bytes")
        self.iterations = iterations
        self.salt_size = salt_size

    def _derive_fernet(self, password: str, salt: bytes) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.iterations,
        )
        key = base64.urlsafe_b64encode(kdf.derive(password.encode('utf-8')))
        return Fernet(key)

    def encrypt(self, plaintext: str, password: str) -> bytes:
        """Encrypt plaintext with a key derived from password."""
        salt = secrets.token_bytes(self.salt_size)
        token = self._derive_fernet(password, salt).encrypt(plaintext.encode('utf-8'))
        return salt + token

    def decrypt(self, ciphertext: bytes, password: str) -> str:
        """
        Decrypt ciphertext produced by encrypt().

        Raises:
            DecryptionError: wrong password, tampered or truncated data
        """
        if len(ciphertext) <= self.salt_size:
            raise DecryptionError("Ciphertext is too short to contain a salt and token")

        salt = ciphertext[:self.salt_size]
        token = ciphertext[self.salt_size:]

        try:
            plaintext = self._derive_fernet(password, salt).decrypt(token)
        except InvalidToken as e:
            logger.error("Failed to decrypt config value - invalid key or corrupted data")
            raise DecryptionError() from e

        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted value is not valid UTF-8") from e


__all__ = [
    'Cipher',
    'StringCipher',
]
