"""
Protected JSON Configuration Provider.

Loads a JSON configuration file, encrypts the values whose keys match the
configured expressions, writes the encrypted values back to the file and
decrypts them again whenever application code reads them.

Load cycle:
    LOADED          file parsed and flattened
    SCANNED         keys matched against the expressions
    PROTECTED       unprotected matches encrypted in memory
    PERSISTED       encrypted values written back to the file
    PERSIST_FAILED  write-back failed; in-memory values are still usable

Usage:
    configuration = (
        ConfigurationBuilder()
        .add_protected_json_file(password, "appsettings.json", False, False,
                                 re.compile("SomeApi:Secret"), "DBConnection")
        .build()
    )
    configuration["SomeApi:Secret"]   # decrypted value
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple, Union

from .cipher import Cipher
from .envelope import EnvelopeCipher, is_protected
from .errors import ConfigError, PersistError
from .flatten import load_json_stream
from .key_matcher import KeyMatcher, Rule
from .persister import WriteBackPersister
from .store import ConfigurationData, DecoratedStore
from .token_path import fold_key

logger = logging.getLogger(__name__)


class LoadState(Enum):
    """Stages of a provider load cycle."""
    LOADED = "loaded"
    SCANNED = "scanned"
    PROTECTED = "protected"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"


@dataclass
class LoadReport:
    """Outcome of one load cycle. Holds key names only, never values."""
    path: str = ""
    state: LoadState = LoadState.LOADED
    matched: List[str] = field(default_factory=list)
    already_protected: List[str] = field(default_factory=list)
    newly_protected: List[str] = field(default_factory=list)
    persisted: int = 0
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return bool(self.newly_protected)


@dataclass
class ProtectedJsonSource:
    """
    Settings for a protected JSON configuration file.

    Attributes:
        password: Password used for encryption and decryption (required)
        path: Path to the JSON file
        optional: Missing file yields an empty configuration instead of an error
        reload_on_change: Carried for hosts that watch the file and call load() again
        encrypted_key_expressions: Regular expressions selecting the keys to protect
        cipher: Symmetric primitive (StringCipher when None)
        backup: Keep a .bak copy of the file before each write-back
        validate_protected: Decrypt already-protected values during load so a
            wrong password fails the load instead of the first read
    """
    password: str = field(repr=False)
    path: Union[str, Path] = ""
    optional: bool = False
    reload_on_change: bool = False
    encrypted_key_expressions: Sequence[Rule] = ()
    cipher: Optional[Cipher] = None
    backup: bool = False
    validate_protected: bool = False

    def __post_init__(self):
        if not isinstance(self.password, str) or not self.password:
            raise ConfigError("A non-empty password is required for a protected JSON source")
        if not self.path:
            raise ConfigError("A file path is required for a protected JSON source")
        self.key_matcher = KeyMatcher(self.encrypted_key_expressions)

    def build(self) -> 'ProtectedJsonConfigurationProvider':
        return ProtectedJsonConfigurationProvider(self)


class ProtectedJsonConfigurationProvider:
    """
    Provider that protects selected values of a JSON configuration file.

    Acts as the decorator of its own DecoratedStore: after_load() scans and
    encrypts, before_return() decrypts.
    """

    def __init__(self, source: ProtectedJsonSource):
        self.source = source
        self._envelope = EnvelopeCipher(source.password, source.cipher)
        self._persister = WriteBackPersister(source.path, backup=source.backup)
        self._protected_keys: Set[str] = set()
        self._pending_writes: Dict[str, str] = {}
        self._report = LoadReport(path=str(source.path))
        self._store = DecoratedStore(self._read_file, decorators=[self])

    # ------------------------------------------------------------------
    # Load cycle
    # ------------------------------------------------------------------

    def load(self) -> LoadReport:
        """
        Run a full load cycle: read, scan, protect, write back.

        Raises:
            FileNotFoundError: file missing and the source is not optional
            ValueError: file is not a valid JSON object
            DecryptionError: validate_protected is set and a stored value
                does not decrypt with the password
            PersistError: write-back failed (values stay usable in memory)
        """
        self._report = LoadReport(path=str(self.source.path))
        self._pending_writes = {}
        self._store.load()

        report = self._report
        try:
            report.persisted = self._persister.persist(self._pending_writes)
        except PersistError as e:
            report.state = LoadState.PERSIST_FAILED
            report.error = str(e)
            logger.error(f"Protected values could not be written back: {e}")
            raise
        finally:
            self._pending_writes = {}

        report.state = LoadState.PERSISTED
        if report.newly_protected:
            logger.info(
                f"Protected {len(report.newly_protected)} new value(s) in {self.source.path}"
            )
        return report

    def _read_file(self) -> ConfigurationData:
        path = Path(self.source.path)
        if not path.exists():
            if self.source.optional:
                logger.debug(f"Optional config file not found: {path}")
                return ConfigurationData()
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, 'rb') as f:
            try:
                data = load_json_stream(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ValueError(f"Could not parse the JSON file {path}: {e}") from e
        return ConfigurationData(data.items())

    def after_load(self, entries: ConfigurationData) -> ConfigurationData:
        """Scan freshly loaded entries, encrypting every unprotected match."""
        report = self._report
        protected_keys: Set[str] = set()
        matcher = self.source.key_matcher

        if matcher:
            matched = [key for key, value in entries.items() if value and matcher.in_scope(key)]
            report.matched = matched
            report.state = LoadState.SCANNED

            for key in matched:
                value = entries[key]
                protected_keys.add(fold_key(key))

                if is_protected(value):
                    if self.source.validate_protected:
                        self._envelope.unprotect(value, key=key)
                    report.already_protected.append(key)
                    continue

                envelope = self._envelope.protect(value)
                entries[key] = envelope
                self._pending_writes[key] = envelope
                report.newly_protected.append(key)

            logger.debug(
                f"Scanned {len(entries)} keys in {self.source.path}: "
                f"{len(matched)} matched, {len(report.newly_protected)} to protect"
            )

        report.state = LoadState.PROTECTED
        self._protected_keys = protected_keys
        return entries

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def before_return(self, key: str, value: Optional[str]) -> Optional[str]:
        """Decrypt values of protected keys; other values pass through."""
        if value is None or not self.is_protected_key(key):
            return value
        return self._envelope.unprotect(value, key=key)

    def try_get(self, key: str) -> Tuple[bool, Optional[str]]:
        """
        Look up a key.

        Returns:
            (found, value) with protected values decrypted

        Raises:
            DecryptionError: the stored value does not decrypt
        """
        return self._store.try_get(key)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._store.get(key, default)

    def set(self, key: str, value: Optional[str]) -> None:
        """Set an in-memory value. Not written to the file and not protected."""
        self._store.set(key, value)
        self._protected_keys.discard(fold_key(key))

    def is_protected_key(self, key: str) -> bool:
        return fold_key(key) in self._protected_keys

    @property
    def protected_keys(self) -> FrozenSet[str]:
        """Protected keys of the last load, with their document casing."""
        return frozenset(k for k in self._store.keys() if self.is_protected_key(k))

    @property
    def last_report(self) -> LoadReport:
        return self._report

    def keys(self) -> List[str]:
        return self._store.keys()

    def __contains__(self, key) -> bool:
        return key in self._store

    def __repr__(self) -> str:
        return f"ProtectedJsonConfigurationProvider(path={str(self.source.path)!r})"


class Configuration:
    """
    Read-only view over a list of providers.

    Providers added later take precedence, the same way later files
    override earlier ones.
    """

    def __init__(self, providers: Sequence[ProtectedJsonConfigurationProvider]):
        self._providers = list(providers)

    @property
    def providers(self) -> List[ProtectedJsonConfigurationProvider]:
        return list(self._providers)

    def try_get(self, key: str) -> Tuple[bool, Optional[str]]:
        for provider in reversed(self._providers):
            found, value = provider.try_get(key)
            if found:
                return True, value
        return False, None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        found, value = self.try_get(key)
        return value if found else default

    def __getitem__(self, key: str) -> Optional[str]:
        found, value = self.try_get(key)
        if not found:
            raise KeyError(key)
        return value

    def __contains__(self, key) -> bool:
        return any(key in provider for provider in self._providers)

    def reload(self) -> List[LoadReport]:
        """Run a new load cycle on every provider."""
        return [provider.load() for provider in self._providers]


class ConfigurationBuilder:
    """Collects sources and builds a Configuration from them."""

    def __init__(self):
        self.sources: List[ProtectedJsonSource] = []

    def add(self, source: ProtectedJsonSource) -> 'ConfigurationBuilder':
        self.sources.append(source)
        return self

    def add_protected_json_file(
        self,
        password: str,
        path: Union[str, Path],
        optional: bool,
        reload_on_change: bool = False,
        *encrypted_key_expressions: Rule,
    ) -> 'ConfigurationBuilder':
        """Add a protected JSON file; see add_protected_json_file()."""
        return add_protected_json_file(
            self, password, path, optional, reload_on_change, *encrypted_key_expressions
        )

    def build(self) -> Configuration:
        """Build and load every provider."""
        providers = [source.build() for source in self.sources]
        for provider in providers:
            provider.load()
        return Configuration(providers)


def add_protected_json_file(
    builder: ConfigurationBuilder,
    password: str,
    path: Union[str, Path],
    optional: bool,
    reload_on_change: bool = False,
    *encrypted_key_expressions: Rule,
) -> ConfigurationBuilder:
    """
    Add a protected JSON file to a builder.

    Args:
        builder: Builder to add the file to
        password: Password used for encryption and decryption
        path: Path to the file
        optional: Whether a missing file is allowed
        reload_on_change: Whether the host reloads the file on change
        encrypted_key_expressions: Expressions matching the keys to encrypt

    Raises:
        ConfigError: missing password or invalid expression
    """
    source = ProtectedJsonSource(
        password=password,
        path=path,
        optional=optional,
        reload_on_change=reload_on_change,
        encrypted_key_expressions=encrypted_key_expressions,
    )
    return builder.add(source)


__all__ = [
    'LoadState',
    'LoadReport',
    'ProtectedJsonSource',
    'ProtectedJsonConfigurationProvider',
    'Configuration',
    'ConfigurationBuilder',
    'add_protected_json_file',
]
