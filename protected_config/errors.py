"""
Exceptions raised by the protected configuration engine.

Detection of protected values never raises. Cipher, persistence and
construction failures raise one of the types below so a host can tell
a bad password from a broken file.
"""

from typing import Optional


class ProtectedConfigError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(ProtectedConfigError):
    """Invalid provider configuration (missing password, bad pattern)."""


class PersistError(ProtectedConfigError):
    """
    Writing protected values back to the configuration file failed.

    The in-memory configuration is still valid when this is raised; the
    file keeps its previous contents until the next successful load.
    """

    def __init__(self, path, key: Optional[str] = None, reason: Optional[str] = None):
        self.path = str(path)
        self.key = key
        self.reason = reason
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        message = f"Path: {self.path}"
        if self.key is not None:
            message += f", key: {self.key}"
        if self.reason:
            message += f" ({self.reason})"
        return message


class DecryptionError(ProtectedConfigError):
    """A protected value could not be decrypted (wrong password or corrupted data)."""

    def __init__(self, message: str = "Decryption failed - wrong password or corrupted data",
                 key: Optional[str] = None):
        self.key = key
        if key is not None:
            message = f"{message} (key: {key})"
        super().__init__(message)


__all__ = [
    'ProtectedConfigError',
    'ConfigError',
    'PersistError',
    'DecryptionError',
]
