"""Indexer: the materialized, change-detected key index behind every reducer.

An Indexer turns the host collection plus the current filters and sort into
an ordered list of host keys. Each `update()` rebuilds that list, folds it
into a rolling hash and calls the host's update callback only when the
sequence actually changed (or when forced). Derived reducers are updated
afterwards, so a change cascades down the tree parent first.

Subclasses supply the host-specific pieces: the filter pass, the comparator
bound to host lookups, host size and identity keys.
"""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, TypeVar

from dynreducer._utils import HostHandle, hash_index

if TYPE_CHECKING:
    from dynreducer.derived import DerivedManager
    from dynreducer.filters import FiltersData
    from dynreducer.sort import SortData

K = TypeVar("K")
D = TypeVar("D")

logger = logging.getLogger("dynreducer.indexer")


class IndexData(Generic[K]):
    """Mutable index state shared between an Indexer and its public facade."""

    __slots__ = ("index", "hash", "reversed", "parent")

    def __init__(self, parent: IndexerAPI[K] | None = None) -> None:
        self.index: list[K] | None = None
        self.hash: int | None = None
        self.reversed = False
        self.parent = parent


class Indexer(ABC, Generic[D, K]):
    """Builds and change-detects the key index for one reducer."""

    def __init__(
        self,
        host: HostHandle[D],
        host_update: Callable[[], None],
        parent: IndexerAPI[K] | None = None,
    ) -> None:
        self.host: HostHandle[D] | None = host
        self.host_update = host_update
        self.index_data: IndexData[K] = IndexData(parent)
        self.filters_data: FiltersData | None = None
        self.sort_data: SortData | None = None
        self.derived: DerivedManager | None = None
        self.sort_key: Callable[[K], Any] | None = None
        self.destroyed = False

    def init_adapters(
        self,
        filters_data: FiltersData,
        sort_data: SortData,
        derived: DerivedManager | None,
    ) -> None:
        """Attach the filter/sort state and derived manager built after the indexer."""
        self.filters_data = filters_data
        self.sort_data = sort_data
        self.derived = derived
        self.sort_key = functools.cmp_to_key(self.create_sort_fn())

    # --- Host specifics ---

    @property
    def data(self) -> D | None:
        return self.host.data if self.host is not None else None

    @abstractmethod
    def create_sort_fn(self) -> Callable[[K, K], int]:
        """Comparator over keys that resolves both sides through the host."""

    @abstractmethod
    def reduce_impl(self) -> list[K]:
        """Run the filters over the candidate source and return passing keys."""

    @abstractmethod
    def host_size(self) -> int | None:
        """Number of host entries, or None when there is no valid host."""

    @abstractmethod
    def host_keys(self) -> list[K]:
        """Identity key sequence of the host in enumeration order."""

    # --- State ---

    @property
    def active(self) -> bool:
        """Whether the index is in use: own filters, own sort, or an active parent."""
        if self.filters_data is not None and self.filters_data.filters:
            return True
        if self.sort_data is not None and self.sort_data.compare is not None:
            return True
        parent = self.index_data.parent
        return parent is not None and parent.active

    def __len__(self) -> int:
        index = self.index_data.index
        return len(index) if index is not None else 0

    def parent_source(self) -> IndexerAPI[K] | None:
        """The parent facade when it is active and should feed the filter pass."""
        parent = self.index_data.parent
        if parent is not None and parent.active:
            return parent
        return None

    # --- Update ---

    def update(self, force: bool = False) -> None:
        """Rebuild the index and notify the host when it changed.

        Pass force=True after mutating host data out of band; subscribers are
        then notified regardless of the hash comparison.
        """
        if self.destroyed:
            return

        data = self.index_data
        old_index = data.index
        old_hash = data.hash

        filters = self.filters_data.filters
        compare = self.sort_data.compare
        size = self.host_size()

        if (not filters and compare is None) or (
            data.index is not None and size != len(data.index)
        ):
            data.index = None

        if filters:
            data.index = self.reduce_impl()

        if data.index is None:
            parent = self.parent_source()
            if parent is not None:
                data.index = list(parent)

        if compare is not None and size is not None:
            if data.index is None:
                data.index = self.host_keys()
            data.index = sorted(data.index, key=self.sort_key)

        self.calc_hash_update(old_index, old_hash, force)

        if self.derived is not None:
            self.derived.update(force)

    def calc_hash_update(
        self, old_index: list[K] | None, old_hash: int | None, force: bool = False
    ) -> None:
        """Hash the new index and invoke host_update on any change.

        Equal hashes still fall back to comparing the sequences, so a hash
        collision can only cause an extra notification, never a missed one.
        """
        new_index = self.index_data.index
        new_hash = hash_index(new_index)
        self.index_data.hash = new_hash

        if force or old_hash != new_hash or old_index != new_index:
            logger.debug(
                "index changed (force=%s): %s keys",
                force, len(new_index) if new_index is not None else None,
            )
            self.host_update()

    def destroy(self) -> None:
        """Drop host and parent references; later updates are ignored."""
        if self.destroyed:
            return

        self.host = None
        data = self.index_data
        data.index = None
        data.hash = None
        data.reversed = False
        data.parent = None
        self.destroyed = True


class IndexerAPI(Generic[K]):
    """Read-only public view of an Indexer; iterable over the current keys."""

    __slots__ = ("_indexer",)

    def __init__(self, indexer: Indexer[Any, K]) -> None:
        self._indexer = indexer

    @property
    def active(self) -> bool:
        return self._indexer.active

    @property
    def hash(self) -> int | None:
        return self._indexer.index_data.hash

    def __len__(self) -> int:
        return len(self._indexer)

    def update(self, force: bool = False) -> None:
        """Manually rebuild the index; force=True always notifies subscribers."""
        self._indexer.update(force)

    def __iter__(self) -> Iterator[K]:
        data = self._indexer.index_data
        index = data.index
        if index is None:
            return iter(())
        return reversed(index) if data.reversed else iter(index)

    def __repr__(self) -> str:
        return f"IndexerAPI(active={self.active}, len={len(self)})"
