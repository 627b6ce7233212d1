"""
Protected JSON Configuration.

Transparently encrypts selected values of a JSON configuration file and
decrypts them when application code reads them:
- Regular expressions select the keys to protect
- Protected values are written back to the file, leaving the rest intact
- Already protected values are recognised, so loading is idempotent
- Reads of protected keys return the decrypted value

SECURITY: Secrets such as connection strings and API keys are encrypted
at rest without changing how the application reads its configuration.
"""

from .cipher import Cipher, StringCipher
from .envelope import MARKER, EnvelopeCipher, is_protected, protect, unprotect
from .errors import ConfigError, DecryptionError, PersistError, ProtectedConfigError
from .flatten import flatten_json, load_json_stream
from .key_matcher import KeyMatcher, in_scope
from .persister import WriteBackPersister, persist
from .provider import (
    Configuration,
    ConfigurationBuilder,
    LoadReport,
    LoadState,
    ProtectedJsonConfigurationProvider,
    ProtectedJsonSource,
    add_protected_json_file,
)
from .store import ConfigurationData, DecoratedStore, StoreDecorator
from .token_path import KEY_DELIMITER, fold_key, select_token, to_token_path

__version__ = "1.0.0"

__all__ = [
    # Provider
    'ProtectedJsonSource',
    'ProtectedJsonConfigurationProvider',
    'Configuration',
    'ConfigurationBuilder',
    'add_protected_json_file',
    'LoadReport',
    'LoadState',
    # Protection engine
    'KeyMatcher',
    'in_scope',
    'MARKER',
    'is_protected',
    'EnvelopeCipher',
    'protect',
    'unprotect',
    'Cipher',
    'StringCipher',
    'KEY_DELIMITER',
    'to_token_path',
    'fold_key',
    'select_token',
    'WriteBackPersister',
    'persist',
    # Store
    'ConfigurationData',
    'DecoratedStore',
    'StoreDecorator',
    'flatten_json',
    'load_json_stream',
    # Errors
    'ProtectedConfigError',
    'ConfigError',
    'PersistError',
    'DecryptionError',
]
