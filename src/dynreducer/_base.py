"""Reducer plumbing shared by list and map reducers, top-level and derived.

A reducer wires one Indexer to its Filters, Sort and DerivedManager and
exposes them through small facades. Values are read through the index when
it is active, otherwise straight from the host collection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Callable, ClassVar, Generic, Iterable, Iterator, TypeVar

from dynreducer._utils import HostHandle, field, has_field, is_iterable
from dynreducer.derived import DerivedAPI, DerivedManager
from dynreducer.filters import Filters, FiltersData
from dynreducer.indexer import Indexer, IndexerAPI
from dynreducer.sort import Sort, SortData

T = TypeVar("T")

Handler = Callable[[Any], None]


class ReducerBase(ABC, Generic[T]):
    """Common state and API of every reducer."""

    _indexer_cls: ClassVar[type[Indexer]]
    _derived_cls: ClassVar[type[DerivedReducerBase]]

    def __init__(self, host: HostHandle, parent_index: IndexerAPI | None = None) -> None:
        self._host = host
        self._subscriptions: list[Handler] = []
        self._destroyed = False

        self._indexer = self._indexer_cls(host, self._update_subscribers, parent_index)
        self._index_api = IndexerAPI(self._indexer)

        self._filters_data = FiltersData()
        self._filters: Filters[T] = Filters(self._index_api.update, self._filters_data)

        self._sort_data = SortData()
        self._sort: Sort[T] = Sort(self._index_api.update, self._sort_data)

        self._derived = DerivedManager(host, self._index_api, self._derived_cls)
        self._derived_api = DerivedAPI(self._derived)

        self._indexer.init_adapters(self._filters_data, self._sort_data, self._derived)

    def _apply_options(self, filters: Any, sort: Any, owner: str) -> None:
        """Validate and install initial filters and sort."""
        if filters is not None and not is_iterable(filters):
            raise TypeError(f"{owner} error: 'filters' attribute is not iterable.")

        if sort is not None and not (callable(sort) or has_field(sort, "compare")):
            raise TypeError(f"{owner} error: 'sort' attribute is not a function or object.")

        if filters is not None:
            self._filters.add(*filters)
        if sort is not None:
            self._sort.set(sort)

    # --- Facades ---

    @property
    def data(self) -> Any:
        """The host collection itself, not a copy.

        After mutating it directly call `index.update(True)` so the index is
        rebuilt and subscribers are notified.
        """
        return self._host.data

    @property
    def derived(self) -> DerivedAPI:
        return self._derived_api

    @property
    def filters(self) -> Filters[T]:
        return self._filters

    @property
    def index(self) -> IndexerAPI:
        return self._index_api

    @property
    def sort(self) -> Sort[T]:
        return self._sort

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def reversed(self) -> bool:
        return self._indexer.index_data.reversed

    @reversed.setter
    def reversed(self, reversed_: bool) -> None:
        if not isinstance(reversed_, bool):
            raise TypeError(f"{type(self).__name__}.reversed error: 'reversed' is not a boolean.")

        self._indexer.index_data.reversed = reversed_
        self._index_api.update(True)

    def __len__(self) -> int:
        if self._indexer.active:
            return len(self._index_api)
        data = self._host.data
        return len(data) if data is not None else 0

    def __iter__(self) -> Iterator[T]:
        data = self._host.data
        if self._destroyed or not data:
            return

        if self._indexer.active:
            for key in self._index_api:
                yield data[key]
        else:
            values = self._indexer.host_values()
            yield from (reversed(values) if self.reversed else values)

    # --- Subscribers ---

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Call handler(self) now and on every index change. Returns an unsubscribe."""
        self._subscriptions.append(handler)
        handler(self)

        def _unsubscribe() -> None:
            try:
                self._subscriptions.remove(handler)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def _update_subscribers(self) -> None:
        for handler in list(self._subscriptions):
            handler(self)

    # --- Lifecycle ---

    @abstractmethod
    def _detach_host(self) -> None:
        """Drop this reducer's reference to the host data."""

    def destroy(self) -> None:
        """Destroy derived reducers, release the host, notify once with an
        empty view, then tear down.
        """
        if self._destroyed:
            return

        self._destroyed = True

        # Children send their own final notification; the cascade below must not.
        self._derived.destroy()

        self._detach_host()
        self._indexer.update(True)

        self._subscriptions.clear()

        self._indexer.destroy()
        self._filters.clear()
        self._sort.clear()

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else f"len={len(self)}"
        return f"{type(self).__name__}({state})"


class DynReducerBase(ReducerBase[T]):
    """Top-level reducer that owns the host handle."""

    def __init__(self, data: Any = None, *, filters: Iterable | None = None, sort: Any = None) -> None:
        super().__init__(HostHandle(self._coerce_data(data)))
        self._apply_options(filters, sort, type(self).__name__)

    @abstractmethod
    def _coerce_data(self, data: Any) -> Any:
        """Validate constructor data and return the host collection."""

    def _detach_host(self) -> None:
        self._host.data = None

    def _check_set_data(self, replace: Any) -> None:
        if not isinstance(replace, bool):
            raise TypeError(f"{type(self).__name__}.set_data error: 'replace' is not a boolean.")


class DerivedReducerBase(ReducerBase[T]):
    """Reducer created by a DerivedManager, chained to a parent index.

    Subclass and override `initialize` for custom setup instead of the
    constructor; it receives the create options other than filters/sort.
    """

    def __init__(
        self,
        host: HostHandle,
        parent_index: IndexerAPI,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(host, parent_index)

        options = options or {}
        self._apply_options(
            field(options, "filters"), field(options, "sort"), type(self).__name__
        )

        # Pick up the parent's index when it is already active.
        self._index_api.update()

    def initialize(self, options: dict[str, Any]) -> None:
        """Hook for custom derived reducers. Called once after creation."""

    def _detach_host(self) -> None:
        # The handle is shared with the parent tree; only drop our reference.
        self._host = HostHandle()
        self._indexer.host = self._host
