"""Sort: holds at most one comparator for a reducer.

A comparator is `compare(a, b)` returning a negative number, zero or a
positive number, like the old-style `cmp`. It is given host values, not keys.
Ordering is stable, so equal values keep their source order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Generic, TypeVar

from dynreducer._utils import field, has_field

T = TypeVar("T")

CompareFn = Callable[[Any, Any], "int | float"]


class SortData:
    """Comparator storage shared with the Indexer."""

    __slots__ = ("compare",)

    def __init__(self) -> None:
        self.compare: CompareFn | None = None


class Sort(Generic[T]):
    """Public sort API of a reducer."""

    __slots__ = ("_data", "_index_update", "_unsubscribe")

    def __init__(self, index_update: Callable[..., None], sort_data: SortData) -> None:
        self._index_update = index_update
        self._data = sort_data
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def compare(self) -> CompareFn | None:
        return self._data.compare

    def set(self, sort: Any) -> None:
        """Set the comparator; None clears it.

        Accepts a bare comparator, or a record (Mapping or object) with a
        `compare` attribute and an optional `subscribe`.
        """
        if sort is None:
            self.clear()
            return

        if isinstance(sort, Mapping) or (not callable(sort) and has_field(sort, "compare")):
            compare = field(sort, "compare")
            if not callable(compare):
                raise TypeError("Sort.set error: 'compare' attribute is not a function.")
            subscribe = getattr(compare, "subscribe", None) or field(sort, "subscribe")
        elif callable(sort):
            compare = sort
            subscribe = getattr(sort, "subscribe", None)
        else:
            raise TypeError("Sort.set error: 'sort' is not a function or object.")

        # Only a valid replacement releases the current subscription.
        self._release()
        self._data.compare = compare

        if subscribe is None:
            self._index_update()
            return

        # A subscribed comparator triggers the initial update itself.
        unsubscribe = subscribe(self._index_update)
        if not callable(unsubscribe):
            self._data.compare = None
            self._index_update()
            raise TypeError(
                "Sort.set error: sort has 'subscribe' function, but no 'unsubscribe' "
                "function is returned."
            )
        self._unsubscribe = unsubscribe

    def clear(self) -> None:
        """Remove the comparator; only updates the index if one was set."""
        old = self._data.compare
        self._data.compare = None
        self._release()

        if old is not None:
            self._index_update()

    def _release(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def __repr__(self) -> str:
        return f"Sort({self._data.compare!r})"
