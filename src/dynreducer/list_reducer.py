"""List reducers: sorted and filtered views over a Python list with change detection.

Index keys are integer positions into the host list.

Usage:
    items = [1, 2, 3, 4]
    reducer = DynListReducer(items)
    reducer.filters.add(lambda v: v >= 2)
    reducer.sort.set(lambda a, b: b - a)
    list(reducer)  # [4, 3, 2]

    unsubscribe = reducer.subscribe(lambda r: print(list(r)))

    items.append(5)
    reducer.index.update(True)  # out-of-band change, force a rebuild
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from dynreducer._base import DerivedReducerBase, DynReducerBase
from dynreducer._utils import is_iterable
from dynreducer.indexer import Indexer

T = TypeVar("T")


class ListIndexer(Indexer[list, int]):
    """Indexer whose keys are positions in the host list."""

    def create_sort_fn(self) -> Callable[[int, int], int]:
        def sort_fn(a: int, b: int) -> int:
            array = self.data
            if array is None or not (0 <= a < len(array) and 0 <= b < len(array)):
                return 0
            return self.sort_data.compare(array[a], array[b])

        return sort_fn

    def reduce_impl(self) -> list[int]:
        data: list[int] = []

        array = self.data
        if array is None:
            return data

        filters = [entry.filter for entry in self.filters_data.filters]
        parent = self.parent_source()
        source = parent if parent is not None else range(len(array))
        length = len(array)

        for key in source:
            if key >= length:
                continue

            value = array[key]
            for predicate in filters:
                if not predicate(value):
                    break
            else:
                data.append(key)

        return data

    def host_size(self) -> int | None:
        array = self.data
        return len(array) if isinstance(array, list) else None

    def host_keys(self) -> list[int]:
        return list(range(len(self.data)))

    def host_values(self) -> list:
        return self.data


class DerivedListReducer(DerivedReducerBase[T]):
    """Default derived reducer for list hosts; subclass it for custom views."""

    _indexer_cls = ListIndexer


DerivedListReducer._derived_cls = DerivedListReducer


class DynListReducer(DynReducerBase[T]):
    """A managed list with non-destructive filtering, sorting and derived views.

    A list passed as `data` becomes the host list itself; any other iterable
    is copied once.
    """

    _indexer_cls = ListIndexer
    _derived_cls = DerivedListReducer

    def __init__(
        self,
        data: Iterable[T] | None = None,
        *,
        filters: Iterable | None = None,
        sort: Any = None,
    ) -> None:
        super().__init__(data, filters=filters, sort=sort)

    def _coerce_data(self, data: Any) -> list | None:
        if data is None:
            return None
        if not is_iterable(data):
            raise TypeError("DynListReducer error: 'data' is not iterable.")
        return data if isinstance(data, list) else list(data)

    def set_data(self, data: Iterable[T] | None, replace: bool = False) -> None:
        """Swap in new data and force a rebuild.

        Without `replace` the existing host list is refilled in place, so
        outside references to it see the new contents. With `replace`, or when
        there is no host list yet, `data` becomes the host (lists are used
        directly, other iterables copied).
        """
        if data is not None and not is_iterable(data):
            raise TypeError("DynListReducer.set_data error: 'data' is not iterable.")
        self._check_set_data(replace)

        array = self._host.data

        if not isinstance(array, list) or replace:
            if data is not None:
                self._host.data = data if isinstance(data, list) else list(data)
        elif data is not None:
            array[:] = list(data)
        else:
            self._host.data = None

        self._indexer.index_data.index = None
        self._index_api.update(True)
