"""
Protected value envelope.

A protected value is stored in the configuration file as

    base64(MARKER + ciphertext)

The marker only exists so a protected value can be told apart from a
plaintext value that happens to be valid base64. Base64 encoding also
hides the marker, so the file does not advertise which values are
encrypted beyond their shape.
"""

import base64
import binascii
from typing import Optional

from .cipher import Cipher, StringCipher
from .errors import ConfigError, DecryptionError

MARKER = b"!ENCRYPT!"


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value, validate=True)


def is_protected(value: Optional[str]) -> bool:
    """
    Check whether a configuration value is already a protected envelope.

    Never raises: None, non-strings, invalid base64 and base64 that does
    not decode to the marker prefix are all simply "not protected".
    """
    if not isinstance(value, str) or not value:
        return False

    try:
        decoded = _b64decode(value)
    except (binascii.Error, ValueError):
        return False

    return len(decoded) >= len(MARKER) and decoded[:len(MARKER)] == MARKER


class EnvelopeCipher:
    """Wraps a Cipher with the marker envelope and a fixed password."""

    def __init__(self, password: str, cipher: Optional[Cipher] = None):
        if not password:
            raise ConfigError("A non-empty password is required")
        self._password = password
        self._cipher = cipher or StringCipher()

    def protect(self, plaintext: str) -> str:
        """Encrypt plaintext and wrap it in a protected envelope."""
        ciphertext = self._cipher.encrypt(plaintext, self._password)
        return base64.b64encode(MARKER + ciphertext).decode('ascii')

    def unprotect(self, envelope: str, key: Optional[str] = None) -> str:
        """
        Unwrap and decrypt a protected envelope.

        Raises:
            DecryptionError: envelope is malformed, password is wrong or
                the ciphertext was tampered with
        """
        if not is_protected(envelope):
            raise DecryptionError("Value is not a protected envelope", key=key)

        ciphertext = _b64decode(envelope)[len(MARKER):]
        try:
            return self._cipher.decrypt(ciphertext, self._password)
        except DecryptionError as e:
            if key is None or e.key is not None:
                raise
            raise DecryptionError(key=key) from e


def protect(plaintext: str, password: str, cipher: Optional[Cipher] = None) -> str:
    """Encrypt plaintext into a protected envelope string."""
    return EnvelopeCipher(password, cipher).protect(plaintext)


def unprotect(envelope: str, password: str, cipher: Optional[Cipher] = None) -> str:
    """Decrypt a protected envelope string back to plaintext."""
    return EnvelopeCipher(password, cipher).unprotect(envelope)


__all__ = [
    'MARKER',
    'is_protected',
    'EnvelopeCipher',
    'protect',
    'unprotect',
]
