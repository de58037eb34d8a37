"""Shared helpers for host handles, the rolling index hash and record access.

The host handle is the single slot every view in a reducer tree reads the
backing collection from. Replacing `handle.data` is observed by all of them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar

D = TypeVar("D")

# Boost hash_combine constants; the fold is kept to 32 bits.
_GOLDEN = 0x9E3779B9
_MASK = 0xFFFFFFFF

MISSING = object()


class HostHandle(Generic[D]):
    """One-slot, replaceable reference to the backing list or dict."""

    __slots__ = ("data",)

    def __init__(self, data: D | None = None) -> None:
        self.data = data

    def __repr__(self) -> str:
        return f"HostHandle({type(self.data).__name__})"


def hash_key(key: Any) -> int:
    """Numeric value of an index key for the rolling hash."""
    return hash(key) & _MASK


def hash_index(index: list | None) -> int | None:
    """Fold every key left to right; order sensitive. `None` stays `None`."""
    if index is None:
        return None

    h = 0
    for key in index:
        h ^= (hash_key(key) + _GOLDEN + (h << 6) + (h >> 2)) & _MASK
    return h


def is_iterable(data: Any) -> bool:
    """Iterable, excluding text which would iterate per character."""
    return isinstance(data, Iterable) and not isinstance(data, (str, bytes))


def field(record: Any, name: str, default: Any = None) -> Any:
    """Read `name` from a Mapping record or as an attribute of an object record."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def has_field(record: Any, name: str) -> bool:
    if isinstance(record, Mapping):
        return name in record
    return field(record, name, MISSING) is not MISSING
