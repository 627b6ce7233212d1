"""
Write-back persister.

Writes newly protected values back into the JSON configuration file
without touching anything else in it. The file is opened once and held
for the whole read-modify-write cycle:

1. read and parse the document
2. resolve every updated key to its node and check it is a scalar
3. overwrite the resolved values
4. rewrite the document from offset 0 (2-space indent) and truncate

Key order is kept and numbers keep their literal text. Whitespace is
normalised to the indented form on rewrite.

There is no lock against other processes editing the file during the
cycle; the handle is only exclusive within this process.
"""

import codecs
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, List, Mapping, Tuple, Union

from .errors import PersistError
from .token_path import Segment, select_token, to_token_path

logger = logging.getLogger(__name__)


class _Number(str):
    """Literal JSON number text, written back unquoted."""


def _parse(text: str) -> Any:
    return json.loads(text, parse_int=_Number, parse_float=_Number, parse_constant=_Number)


def _dump(value: Any, indent: int, level: int = 0) -> str:
    if isinstance(value, _Number):
        return str(value)
    if isinstance(value, dict):
        if not value:
            return "{}"
        pad = " " * (indent * (level + 1))
        items = [
            f"{pad}{json.dumps(name, ensure_ascii=False)}: {_dump(child, indent, level + 1)}"
            for name, child in value.items()
        ]
        return "{\n" + ",\n".join(items) + "\n" + " " * (indent * level) + "}"
    if isinstance(value, list):
        if not value:
            return "[]"
        pad = " " * (indent * (level + 1))
        items = [f"{pad}{_dump(child, indent, level + 1)}" for child in value]
        return "[\n" + ",\n".join(items) + "\n" + " " * (indent * level) + "]"
    return json.dumps(value, ensure_ascii=False)


class WriteBackPersister:
    """Read-modify-write of a single JSON configuration file."""

    def __init__(self, path: Union[str, Path], indent: int = 2, backup: bool = False):
        self.path = Path(path)
        self.indent = indent
        self.backup = backup

    def persist(self, updates: Mapping[str, str]) -> int:
        """
        Overwrite the values of updated keys in the file.

        Args:
            updates: flattened key -> new value (protected envelope)

        Returns:
            Number of values written (0 when the file was not touched)

        Raises:
            PersistError: I/O or parse failure, or a key that does not
                resolve to a scalar value in the document
        """
        if not updates:
            return 0

        try:
            with open(self.path, 'r+b') as handle:
                raw = handle.read()
                bom = codecs.BOM_UTF8 if raw.startswith(codecs.BOM_UTF8) else b""
                document = _parse(raw[len(bom):].decode('utf-8'))

                targets = self._resolve_all(document, updates)
                written = 0
                for (container, accessor), value in targets:
                    # JSON null stays null
                    if container[accessor] is not None:
                        container[accessor] = value
                        written += 1

                if written:
                    if self.backup:
                        self._write_backup(raw)

                    payload = bom + _dump(document, self.indent).encode('utf-8')
                    handle.seek(0)
                    handle.write(payload)
                    handle.truncate()
                    handle.flush()
                    os.fsync(handle.fileno())
        except PersistError:
            raise
        except Exception as e:
            logger.error(f"Failed to write protected values to {self.path}: {e}")
            raise PersistError(self.path, reason=str(e)) from e

        logger.info(f"Wrote {written} protected value(s) to {self.path}")
        return written

    def _resolve_all(self, document: Any, updates: Mapping[str, str]) -> List[Tuple[Tuple[Any, Segment], str]]:
        """Resolve every key before anything is modified."""
        targets = []
        for key, value in updates.items():
            try:
                container, accessor = select_token(document, key)
            except LookupError as e:
                logger.error(f"Token {to_token_path(key)} not found in {self.path}")
                raise PersistError(self.path, key=key, reason=str(e)) from e

            if isinstance(container[accessor], (dict, list)):
                raise PersistError(
                    self.path, key=key,
                    reason=f"token {to_token_path(key)} is not a scalar value",
                )
            targets.append(((container, accessor), value))
        return targets

    def _write_backup(self, content: bytes) -> None:
        backup_path = self.path.with_name(self.path.name + ".bak")
        with open(backup_path, 'wb') as f:
            f.write(content)
        shutil.copymode(self.path, backup_path)
        logger.debug(f"Backed up {self.path} to {backup_path}")


def persist(path: Union[str, Path], updates: Mapping[str, str]) -> int:
    """Write updated values back to the JSON file at path."""
    return WriteBackPersister(path).persist(updates)


__all__ = [
    'WriteBackPersister',
    'persist',
]
