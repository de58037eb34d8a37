"""Derived reducers: named child views chained off a parent index.

Each reducer owns a DerivedManager. A derived reducer filters and sorts the
parent's current index instead of the raw host collection, and is updated
right after its parent, so changes cascade parent first down the tree.

Usage:
    reducer = DynListReducer([1, 2, 3, 4])
    big = reducer.derived.create("big")
    big.filters.add(lambda v: v >= 2)

    reducer.sort.set(lambda a, b: b - a)
    list(big)  # [4, 3, 2]

    reducer.derived.create({"name": "odd", "filters": [is_odd], "extra": 1})
    reducer.derived.create(MyDerivedReducer)  # named "MyDerivedReducer"
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from dynreducer._utils import HostHandle

if TYPE_CHECKING:
    from dynreducer._base import DerivedReducerBase
    from dynreducer.indexer import IndexerAPI

logger = logging.getLogger("dynreducer.derived")

# Options consumed by the reducer constructor rather than `initialize`.
_REDUCER_OPTIONS = ("filters", "sort")


class DerivedManager:
    """Creates, tracks and destroys the derived reducers of one reducer."""

    def __init__(
        self,
        host: HostHandle,
        parent_index: IndexerAPI,
        base_cls: type[DerivedReducerBase],
    ) -> None:
        self._host: HostHandle | None = host
        self._parent_index: IndexerAPI | None = parent_index
        self._base_cls = base_cls
        self._derived: dict[str, DerivedReducerBase] = {}
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _check(self, operation: str) -> None:
        if self._destroyed or self._host is None:
            raise RuntimeError(f"DerivedAPI.{operation} error: this instance has been destroyed.")

    def _is_derived_class(self, value: Any) -> bool:
        return isinstance(value, type) and issubclass(value, self._base_cls)

    def create(self, options: str | type | Mapping[str, Any]) -> DerivedReducerBase:
        """Create and register a derived reducer.

        `options` is a name, a derived reducer class, or a Mapping with an
        optional `name`, optional `ctor` and any further options. `filters`
        and `sort` configure the new reducer; remaining keys are handed to
        its `initialize` hook.

        A name already in use destroys the reducer registered under it.
        """
        self._check("create")

        rest: dict[str, Any] = {}
        name: Any

        if isinstance(options, str):
            name = options
            ctor = self._base_cls
        elif self._is_derived_class(options):
            ctor = options
            name = None
        elif isinstance(options, Mapping):
            rest = dict(options)
            name = rest.pop("name", None)
            ctor = rest.pop("ctor", None) or self._base_cls
        else:
            raise TypeError(
                "DerivedAPI.create error: 'options' does not conform to allowed parameters."
            )

        if not self._is_derived_class(ctor):
            raise TypeError(
                f"DerivedAPI.create error: 'ctor' is not a '{self._base_cls.__name__}'."
            )

        if name is None:
            name = ctor.__name__
        if not isinstance(name, str):
            raise TypeError("DerivedAPI.create error: 'name' is not a string.")

        reducer = ctor(self._host, self._parent_index, rest)

        previous = self._derived.get(name)
        if previous is not None:
            logger.debug("replacing derived reducer %r", name)
            previous.destroy()

        self._derived[name] = reducer
        logger.debug("created derived reducer %r (%s)", name, ctor.__name__)

        reducer.initialize({k: v for k, v in rest.items() if k not in _REDUCER_OPTIONS})
        return reducer

    def get(self, name: str) -> DerivedReducerBase | None:
        self._check("get")
        return self._derived.get(name)

    def delete(self, name: str) -> bool:
        """Destroy and unregister a derived reducer. Returns whether it existed."""
        self._check("delete")

        reducer = self._derived.pop(name, None)
        if reducer is None:
            return False

        logger.debug("deleting derived reducer %r", name)
        reducer.destroy()
        return True

    def clear(self) -> None:
        """Destroy every derived reducer."""
        if self._destroyed:
            return

        reducers = list(self._derived.values())
        self._derived.clear()
        for reducer in reducers:
            reducer.destroy()

    def destroy(self) -> None:
        """Destroy all derived reducers and drop the host. Idempotent."""
        if self._destroyed:
            return

        logger.debug("destroying %d derived reducers", len(self._derived))
        self.clear()
        self._host = None
        self._parent_index = None
        self._destroyed = True

    def update(self, force: bool = False) -> None:
        """Rebuild every derived reducer's index against the parent."""
        if self._destroyed:
            return

        for reducer in list(self._derived.values()):
            reducer.index.update(force)

    def __len__(self) -> int:
        return len(self._derived)

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else f"{len(self._derived)} derived"
        return f"DerivedManager({state})"


class DerivedAPI:
    """Public surface of a DerivedManager: create/get/delete/clear/destroy."""

    __slots__ = ("_manager",)

    def __init__(self, manager: DerivedManager) -> None:
        self._manager = manager

    def create(self, options: str | type | Mapping[str, Any]) -> DerivedReducerBase:
        return self._manager.create(options)

    def get(self, name: str) -> DerivedReducerBase | None:
        return self._manager.get(name)

    def delete(self, name: str) -> bool:
        return self._manager.delete(name)

    def clear(self) -> None:
        self._manager.clear()

    def destroy(self) -> None:
        self._manager.destroy()

    def __len__(self) -> int:
        return len(self._manager)
