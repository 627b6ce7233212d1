"""
JSON flattening.

Turns a nested JSON document into the flat key/value form the provider
works on:

    {"SomeApi": {"Servers": ["a", "b"], "Secret": "x"}}

becomes

    SomeApi:Servers:0 = "a"
    SomeApi:Servers:1 = "b"
    SomeApi:Secret    = "x"

Numbers keep their literal JSON text, booleans become "true"/"false",
null becomes None. An empty object or array is kept as its parent key
with a None value so the key still exists.
"""

import codecs
import json
from typing import IO, Any, Dict, List, Optional, Union

from .token_path import KEY_DELIMITER, fold_key

FlatData = Dict[str, Optional[str]]


def _scalar_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


class _Flattener:
    def __init__(self):
        self.data: FlatData = {}
        self._seen: Dict[str, str] = {}
        self._path: List[str] = []

    def visit(self, value: Any) -> None:
        if isinstance(value, dict):
            if not value and self._path:
                self._emit(None)
            for name, child in value.items():
                self._path.append(name)
                self.visit(child)
                self._path.pop()
        elif isinstance(value, list):
            if not value and self._path:
                self._emit(None)
            for index, child in enumerate(value):
                self._path.append(str(index))
                self.visit(child)
                self._path.pop()
        else:
            self._emit(_scalar_text(value))

    def _emit(self, value: Optional[str]) -> None:
        key = KEY_DELIMITER.join(self._path)
        folded = fold_key(key)
        if folded in self._seen:
            raise ValueError(f"A duplicate key '{key}' was found (keys are case-insensitive)")
        self._seen[folded] = key
        self.data[key] = value


def flatten_json(document: Any) -> FlatData:
    """
    Flatten a parsed JSON document.

    Raises:
        ValueError: the top level is not an object, or two keys differ
            only by case
    """
    if not isinstance(document, dict):
        raise ValueError(f"Top-level JSON element must be an object, got {type(document).__name__}")
    flattener = _Flattener()
    flattener.visit(document)
    return flattener.data


def parse_json_text(content: Union[str, bytes]) -> Any:
    """Parse JSON text, keeping numbers as their literal text."""
    if isinstance(content, bytes):
        if content.startswith(codecs.BOM_UTF8):
            content = content[len(codecs.BOM_UTF8):]
        content = content.decode('utf-8')
    elif content.startswith('\ufeff'):
        content = content[1:]
    return json.loads(content, parse_int=str, parse_float=str, parse_constant=str)


def load_json_stream(stream: IO) -> FlatData:
    """Read a JSON document from an open text or binary stream and flatten it."""
    return flatten_json(parse_json_text(stream.read()))


__all__ = [
    'FlatData',
    'flatten_json',
    'parse_json_text',
    'load_json_stream',
]
