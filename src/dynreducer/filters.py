"""Filters: ordered, weighted registry of inclusion predicates.

A filter is either a bare predicate or a record (a Mapping or any object
with a `filter` attribute) carrying `filter` plus optional `id` and
`weight`. Weights lie in [0, 1] and default to 1; lower weights run first,
so put the most selective predicate at a low weight.

A predicate (or record) may expose `subscribe(notify) -> unsubscribe`. The
registry subscribes the index update to it and relies on the subscription to
trigger the initial update. Every mutation ends with an index update.

Usage:
    reducer.filters.add(lambda v: v > 0)
    reducer.filters.add({"id": "name", "filter": by_name, "weight": 0.1})
    reducer.filters.remove_by_id("name")
    reducer.filters.clear()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from numbers import Real
from typing import Any, Callable, Generic, Iterator, NamedTuple, TypeVar

from dynreducer._utils import field, has_field

T = TypeVar("T")

FilterFn = Callable[[Any], bool]
Unsubscribe = Callable[[], None]

logger = logging.getLogger("dynreducer.filters")


class FilterEntry(NamedTuple):
    """Normalized filter as stored by the registry."""

    id: Any
    filter: FilterFn
    weight: float = 1


class FiltersData:
    """Filter storage shared with the Indexer."""

    __slots__ = ("filters",)

    def __init__(self) -> None:
        self.filters: list[FilterEntry] = []


def _normalize(item: Any) -> tuple[FilterEntry, Callable | None]:
    """Turn a predicate or record into a FilterEntry plus any subscribe function."""
    is_record = isinstance(item, Mapping) or (not callable(item) and has_field(item, "filter"))

    if not is_record:
        if not callable(item):
            raise TypeError("Filters.add error: 'filter' is not a function or object.")
        return FilterEntry(None, item, 1), getattr(item, "subscribe", None)

    predicate = field(item, "filter")
    if not callable(predicate):
        raise TypeError("Filters.add error: 'filter' attribute is not a function.")

    weight = field(item, "weight")
    if weight is None:
        weight = 1
    elif isinstance(weight, bool) or not isinstance(weight, Real) or not 0 <= weight <= 1:
        raise TypeError(
            "Filters.add error: 'weight' attribute is not a number between 0 - 1 inclusive."
        )

    subscribe = getattr(predicate, "subscribe", None)
    if subscribe is None:
        subscribe = field(item, "subscribe")

    return FilterEntry(field(item, "id"), predicate, weight), subscribe


class Filters(Generic[T]):
    """Public filter API of a reducer."""

    __slots__ = ("_data", "_index_update", "_unsubscribes")

    def __init__(self, index_update: Callable[..., None], filters_data: FiltersData) -> None:
        self._index_update = index_update
        self._data = filters_data
        self._unsubscribes: dict[FilterFn, Unsubscribe] = {}

    def __len__(self) -> int:
        return len(self._data.filters)

    def __iter__(self) -> Iterator[FilterEntry]:
        return iter(list(self._data.filters))

    def add(self, *filters: Any) -> None:
        """Insert filters by weight, subscribing any that expose `subscribe`.

        Validation happens per entry: an invalid entry raises after earlier
        entries of the same call have been applied.
        """
        entries = self._data.filters
        subscribed = 0

        for item in filters:
            entry, subscribe = _normalize(item)

            if subscribe is not None and entry.filter in self._unsubscribes:
                raise RuntimeError(
                    "Filters.add error: filter added already has an unsubscribe function registered."
                )

            position = next(
                (i for i, existing in enumerate(entries) if entry.weight < existing.weight),
                len(entries),
            )
            entries.insert(position, entry)

            if subscribe is None:
                continue

            unsubscribe = subscribe(self._index_update)
            if not callable(unsubscribe):
                del entries[next(i for i, e in enumerate(entries) if e is entry)]
                self._index_update()
                raise TypeError(
                    "Filters.add error: filter has subscribe function, but no unsubscribe "
                    "function is returned."
                )

            self._unsubscribes[entry.filter] = unsubscribe
            subscribed += 1

        # Subscribed filters notified on subscribe; the rest need one update.
        if subscribed < len(filters):
            self._index_update()

    def clear(self) -> None:
        """Remove every filter and release all subscriptions."""
        self._data.filters.clear()

        unsubscribes = list(self._unsubscribes.values())
        self._unsubscribes.clear()
        for unsubscribe in unsubscribes:
            unsubscribe()

        self._index_update()

    def remove(self, *filters: Any) -> None:
        """Remove filters by predicate identity; records match on their `filter`."""
        entries = self._data.filters
        length = len(entries)
        if length == 0:
            return

        for item in filters:
            predicate = field(item, "filter") if has_field(item, "filter") else item
            if not callable(predicate):
                continue

            kept = [entry for entry in entries if entry.filter is not predicate]
            if len(kept) != len(entries):
                entries[:] = kept
                self._release(predicate)

        if length != len(entries):
            self._index_update()

    def remove_by(self, callback: Callable[[FilterEntry], bool]) -> None:
        """Remove every filter entry for which callback(entry) is truthy."""
        if not callable(callback):
            raise TypeError("Filters.remove_by error: 'callback' is not a function.")
        self._remove_where(callback)

    def remove_by_id(self, *ids: Any) -> None:
        """Remove filters whose `id` matches any of the given ids."""
        self._remove_where(lambda entry: any(entry.id == id_ for id_ in ids))

    def _remove_where(self, predicate: Callable[[FilterEntry], bool]) -> None:
        entries = self._data.filters
        length = len(entries)
        if length == 0:
            return

        kept = []
        for entry in entries:
            if predicate(entry):
                self._release(entry.filter)
            else:
                kept.append(entry)
        entries[:] = kept

        if length != len(entries):
            self._index_update()

    def _release(self, predicate: FilterFn) -> None:
        unsubscribe = self._unsubscribes.pop(predicate, None)
        if unsubscribe is not None:
            logger.debug("unsubscribing filter %r", predicate)
            unsubscribe()

    def __repr__(self) -> str:
        return f"Filters({len(self)} entries)"
