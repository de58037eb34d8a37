"""Map reducers: sorted and filtered views over a dict with change detection.

Index keys are the dict's own keys; enumeration order is insertion order.

Usage:
    scores = {"ann": 3, "bob": 7, "cy": 5}
    reducer = DynMapReducer(scores, sort=lambda a, b: b - a)
    list(reducer)        # [7, 5, 3]
    list(reducer.index)  # ['bob', 'cy', 'ann']
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from dynreducer._base import DerivedReducerBase, DynReducerBase
from dynreducer._utils import MISSING
from dynreducer.indexer import Indexer

T = TypeVar("T")


class MapIndexer(Indexer[dict, Any]):
    """Indexer whose keys are the host dict's keys."""

    def create_sort_fn(self) -> Callable[[Any, Any], int]:
        def sort_fn(a: Any, b: Any) -> int:
            mapping = self.data
            if mapping is None:
                return 0
            value_a = mapping.get(a, MISSING)
            value_b = mapping.get(b, MISSING)
            if value_a is MISSING or value_b is MISSING:
                return 0
            return self.sort_data.compare(value_a, value_b)

        return sort_fn

    def reduce_impl(self) -> list:
        data: list = []

        mapping = self.data
        if mapping is None:
            return data

        filters = [entry.filter for entry in self.filters_data.filters]
        parent = self.parent_source()

        for key in parent if parent is not None else mapping:
            value = mapping.get(key, MISSING)
            if value is MISSING:
                continue

            for predicate in filters:
                if not predicate(value):
                    break
            else:
                data.append(key)

        return data

    def host_size(self) -> int | None:
        mapping = self.data
        return len(mapping) if isinstance(mapping, dict) else None

    def host_keys(self) -> list:
        return list(self.data)

    def host_values(self):
        return self.data.values()


class DerivedMapReducer(DerivedReducerBase[T]):
    """Default derived reducer for dict hosts; subclass it for custom views."""

    _indexer_cls = MapIndexer


DerivedMapReducer._derived_cls = DerivedMapReducer


class DynMapReducer(DynReducerBase[T]):
    """A managed dict with non-destructive filtering, sorting and derived views.

    The dict passed as `data` becomes the host dict itself; it is never copied.
    Iteration yields values; iterate `index` for keys.
    """

    _indexer_cls = MapIndexer
    _derived_cls = DerivedMapReducer

    def __init__(
        self,
        data: dict[Any, T] | None = None,
        *,
        filters: Iterable | None = None,
        sort: Any = None,
    ) -> None:
        super().__init__(data, filters=filters, sort=sort)

    def _coerce_data(self, data: Any) -> dict | None:
        if data is not None and not isinstance(data, dict):
            raise TypeError("DynMapReducer error: 'data' is not a dict.")
        return data

    def set_data(self, data: dict[Any, T] | None, replace: bool = False) -> None:
        """Swap in new data and force a rebuild.

        Without `replace` the existing host dict is synced in place: keys of
        `data` are set (existing keys keep their position) and keys absent
        from `data` are deleted. With `replace`, or when there is no host dict
        yet, `data` becomes the host.
        """
        if data is not None and not isinstance(data, dict):
            raise TypeError("DynMapReducer.set_data error: 'data' is not a dict.")
        self._check_set_data(replace)

        mapping = self._host.data

        if not isinstance(mapping, dict) or replace:
            self._host.data = data
        elif data is not None:
            if data is not mapping:
                for key in [key for key in mapping if key not in data]:
                    del mapping[key]
                mapping.update(data)
        else:
            self._host.data = None

        self._indexer.index_data.index = None
        self._index_api.update(True)
