"""
Key matcher - decides which flattened configuration keys must be protected.

Rules are regular expressions searched anywhere in the key, so the rule
"DBConnection" matches both "DBConnection" and "Databases:0:DBConnection".
Anchor the expression to restrict it. Case sensitivity is up to the
caller: pass a pattern compiled with re.IGNORECASE to opt in.
"""

import re
from typing import Iterable, Tuple, Union

from .errors import ConfigError

Rule = Union[str, re.Pattern]


def _compile(rule: Rule) -> re.Pattern:
    if isinstance(rule, re.Pattern):
        return rule
    if not isinstance(rule, str):
        raise ConfigError(f"Key rule must be a string or compiled pattern, got {type(rule).__name__}")
    try:
        return re.compile(rule)
    except re.error as e:
        raise ConfigError(f"Invalid key expression {rule!r}: {e}") from e


class KeyMatcher:
    """Ordered, immutable set of key rules."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._patterns: Tuple[re.Pattern, ...] = tuple(_compile(r) for r in rules or ())

    @property
    def patterns(self) -> Tuple[re.Pattern, ...]:
        return self._patterns

    def in_scope(self, key: str) -> bool:
        """True if at least one rule matches key."""
        return any(pattern.search(key) for pattern in self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __repr__(self) -> str:
        return f"KeyMatcher({[p.pattern for p in self._patterns]!r})"


def in_scope(key: str, rules: Iterable[Rule]) -> bool:
    """True if key matches any of rules."""
    return KeyMatcher(rules).in_scope(key)


__all__ = [
    'Rule',
    'KeyMatcher',
    'in_scope',
]
