"""
Decorated key/value store.

A DecoratedStore owns the flattened configuration of one source. A loader
callable produces fresh data; decorators get to rewrite the data right
after it is loaded (after_load) and to transform each value right before
it is handed to a caller (before_return).

Each load builds a new ConfigurationData and only replaces the current one
once every decorator has finished, so readers never see a half-processed
load cycle.
"""

import logging
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    MutableMapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from .token_path import fold_key

logger = logging.getLogger(__name__)


class ConfigurationData(MutableMapping[str, Optional[str]]):
    """
    Case-insensitive mapping of flattened keys to string values.

    Keys keep the casing they were first inserted with and compare
    through fold_key().
    """

    def __init__(self, data: Optional[Iterable] = None):
        self._store: Dict[str, Tuple[str, Optional[str]]] = {}
        if data is not None:
            self.update(data)

    def __getitem__(self, key: str) -> Optional[str]:
        return self._store[fold_key(key)][1]

    def __setitem__(self, key: str, value: Optional[str]) -> None:
        folded = fold_key(key)
        original = self._store[folded][0] if folded in self._store else key
        self._store[folded] = (original, value)

    def __delitem__(self, key: str) -> None:
        del self._store[fold_key(key)]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key) -> bool:
        return isinstance(key, str) and fold_key(key) in self._store

    def copy(self) -> 'ConfigurationData':
        return ConfigurationData(self.items())

    def __repr__(self) -> str:
        # values may be secrets
        return f"ConfigurationData(keys={list(self)!r})"


class StoreDecorator(Protocol):
    """Hooks run by DecoratedStore around loading and lookup."""

    def after_load(self, entries: ConfigurationData) -> ConfigurationData: ...

    def before_return(self, key: str, value: Optional[str]) -> Optional[str]: ...


Loader = Callable[[], ConfigurationData]


class DecoratedStore:
    """Key/value store that runs decorators after load and before return."""

    def __init__(self, loader: Loader, decorators: Sequence[StoreDecorator] = ()):
        self._loader = loader
        self._decorators = list(decorators)
        self._data = ConfigurationData()

    def add_decorator(self, decorator: StoreDecorator) -> None:
        self._decorators.append(decorator)

    def load(self) -> None:
        """Run the loader and every after_load hook, then publish the result."""
        data = self._loader()
        for decorator in self._decorators:
            data = decorator.after_load(data)
        self._data = data
        logger.debug(f"Configuration store loaded with {len(data)} keys")

    def try_get(self, key: str) -> Tuple[bool, Optional[str]]:
        """Return (found, value); value has passed through every before_return hook."""
        if key not in self._data:
            return False, None
        value = self._data[key]
        for decorator in self._decorators:
            value = decorator.before_return(key, value)
        return True, value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        found, value = self.try_get(key)
        return value if found else default

    def raw(self, key: str) -> Optional[str]:
        """Return the stored value without running before_return hooks."""
        return self._data[key]

    def set(self, key: str, value: Optional[str]) -> None:
        self._data[key] = value

    def keys(self):
        return list(self._data)

    def __contains__(self, key) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


__all__ = [
    'ConfigurationData',
    'StoreDecorator',
    'Loader',
    'DecoratedStore',
]
