"""
Token path resolution.

Flattened configuration keys use ":" between segments and plain digits
for array indices ("Databases:0:ConnectionString"). The persister needs
the inverse: a path into the parsed JSON document ("Databases[0].ConnectionString")
and the container/accessor pair that holds the value.
"""

from typing import Any, List, Sequence, Tuple, Union

KEY_DELIMITER = ":"

Segment = Union[str, int]


def _fold_char(char: str) -> str:
    upper = char.upper()
    # "ß".upper() is "SS"; keep characters without a one-to-one mapping
    return upper if len(upper) == 1 else char


def fold_key(key: str) -> str:
    """
    Case-insensitive form of a flattened key.

    Each character is upper-cased on its own, so keys only compare equal
    when they have the same length ("Straße" and "STRASSE" stay distinct).
    """
    return "".join(_fold_char(char) for char in key)


def _is_index(segment: str) -> bool:
    # str.isdigit() accepts superscripts and other non-ASCII digits
    return bool(segment) and segment.isascii() and segment.isdigit()


def to_token_path(key: str) -> str:
    """
    Convert a flattened key into a JSON token path.

    >>> to_token_path("SomeApi:Servers:0:Secret")
    'SomeApi.Servers[0].Secret'
    """
    parts = []
    for index, segment in enumerate(key.split(KEY_DELIMITER)):
        if _is_index(segment):
            parts.append(f"[{segment}]")
        elif index > 0:
            parts.append(f".{segment}")
        else:
            parts.append(segment)
    return "".join(parts)


def key_segments(key: str) -> List[Segment]:
    """Split a flattened key into property names and integer indices."""
    return [int(s) if _is_index(s) else s for s in key.split(KEY_DELIMITER)]


def parse_token_path(path: str) -> List[Segment]:
    """
    Split a token path produced by to_token_path() back into segments.

    Property names containing '.' or '[' cannot round-trip through the
    string form; use key_segments() on the flattened key instead.
    """
    segments: List[Segment] = []
    buffer = ""
    i = 0
    while i < len(path):
        char = path[i]
        if char == ".":
            if buffer:
                segments.append(buffer)
            buffer = ""
        elif char == "[":
            if buffer:
                segments.append(buffer)
            buffer = ""
            end = path.find("]", i)
            if end == -1:
                raise ValueError(f"Unterminated index in token path: {path!r}")
            digits = path[i + 1:end]
            if not _is_index(digits):
                raise ValueError(f"Invalid index {digits!r} in token path: {path!r}")
            segments.append(int(digits))
            i = end
        else:
            buffer += char
        i += 1
    if buffer:
        segments.append(buffer)
    return segments


def select_token(tree: Any, key: Union[str, Sequence[Segment]]) -> Tuple[Any, Segment]:
    """
    Locate the node addressed by a flattened key inside a parsed JSON tree.

    Returns the (container, accessor) pair so the caller can both read and
    overwrite the value. A digit-only segment indexes a list; when the
    container is an object the segment text is the property name, so
    "Codes:007" finds the property "007".

    Raises:
        LookupError: a segment does not exist in the document
    """
    segments = key.split(KEY_DELIMITER) if isinstance(key, str) else list(key)
    if not segments:
        raise LookupError("Empty key")

    container = tree
    for position, segment in enumerate(segments[:-1]):
        accessor = _accessor(container, segment, position)
        container = container[accessor]

    return container, _accessor(container, segments[-1], len(segments) - 1)


def _accessor(container: Any, segment: Segment, position: int) -> Segment:
    if isinstance(container, list):
        if isinstance(segment, str) and _is_index(segment):
            segment = int(segment)
        if isinstance(segment, int):
            if segment >= len(container):
                raise LookupError(f"Index {segment} out of range at segment {position}")
            return segment
    elif isinstance(container, dict):
        # object properties are matched on the key text, so "007" stays "007"
        name = str(segment)
        if name not in container:
            raise LookupError(f"Property {name!r} not found at segment {position}")
        return name
    raise LookupError(f"Cannot resolve segment {segment!r} at position {position}")


__all__ = [
    'KEY_DELIMITER',
    'Segment',
    'fold_key',
    'to_token_path',
    'key_segments',
    'parse_token_path',
    'select_token',
]
