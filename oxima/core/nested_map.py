"""Dot-path access into trees of nested mappings.

A key path such as ``app.api.url`` addresses one mapping level per segment.
Paths are ASCII. There is no escaping, so keys that contain ``.`` cannot be
addressed.
"""

from collections.abc import Mapping, MutableMapping
from typing import Any, List

from .errors import InvalidKeyPathError


class _Missing:
    """Marker for "nothing stored here", distinct from a stored ``None``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def split_key_path(path: str) -> List[str]:
    if not isinstance(path, str) or not path or not path.isascii():
        raise InvalidKeyPathError(path)
    segments = path.split(".")
    if any(not segment for segment in segments):
        raise InvalidKeyPathError(path)
    return segments


def get_nested(tree: Mapping, path: str) -> Any:
    """Return the value stored at ``path``, or ``MISSING``.

    Resolution stops with ``MISSING`` as soon as a segment is absent or an
    intermediate value is ``None`` or not a mapping. A stored ``None`` at the
    terminal segment is returned as ``None``.
    """
    current: Any = tree
    for segment in split_key_path(path):
        if current is None or not isinstance(current, Mapping):
            return MISSING
        if segment not in current:
            return MISSING
        current = current[segment]
    return current


def set_nested(tree: MutableMapping, path: str, value: Any) -> None:
    segments = split_key_path(path)
    current = tree
    for segment in segments[:-1]:
        child = current.get(segment)
        if not isinstance(child, MutableMapping):
            # Scalars, sequences and None on the way down are replaced
            child = {}
            current[segment] = child
        current = child
    current[segments[-1]] = value
