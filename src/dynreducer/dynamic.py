"""Dynamic filters and sorts: swappable predicates that re-index on change.

Both implement the subscription protocol the registries understand:
`subscribe(notify)` calls `notify()` once immediately and returns an
unsubscribe function. Calling `set()` notifies every subscribed reducer, so
one DynamicFilter can drive several reducers at once.

Usage:
    query = DynamicFilter()
    reducer.filters.add(query)         # passes everything until set
    query.set(lambda v: "ice" in v)   # every subscribed reducer re-indexes
"""

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

Notify = Callable[..., None]
Disposer = Callable[[], None]


class _Subscribable:
    """Subscriber bookkeeping shared by DynamicFilter and DynamicSort."""

    def __init__(self) -> None:
        self._subscribers: list[Notify] = []

    def subscribe(self, notify: Notify) -> Disposer:
        """Register notify, call it now, and return an idempotent unsubscribe."""
        self._subscribers.append(notify)
        notify()

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(notify)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _notify(self) -> None:
        for notify in list(self._subscribers):
            notify()


class DynamicFilter(_Subscribable, Generic[T]):
    """Filter predicate whose logic can be replaced at runtime.

    With no predicate set, every value passes.
    """

    def __init__(self, predicate: Callable[[T], bool] | None = None) -> None:
        super().__init__()
        self._predicate = predicate

    @property
    def predicate(self) -> Callable[[T], bool] | None:
        return self._predicate

    def set(self, predicate: Callable[[T], bool] | None) -> None:
        if predicate is not None and not callable(predicate):
            raise TypeError("DynamicFilter.set error: 'predicate' is not a function.")
        self._predicate = predicate
        self._notify()

    def __call__(self, value: T) -> bool:
        return self._predicate is None or bool(self._predicate(value))

    def __repr__(self) -> str:
        return f"DynamicFilter({self._predicate!r})"


class DynamicSort(_Subscribable, Generic[T]):
    """Comparator whose ordering can be replaced at runtime.

    With no comparator set, every pair compares equal and source order stays.
    """

    def __init__(self, compare: Callable[[T, T], Any] | None = None) -> None:
        super().__init__()
        self._compare = compare

    @property
    def compare(self) -> Callable[[T, T], Any] | None:
        return self._compare

    def set(self, compare: Callable[[T, T], Any] | None) -> None:
        if compare is not None and not callable(compare):
            raise TypeError("DynamicSort.set error: 'compare' is not a function.")
        self._compare = compare
        self._notify()

    def __call__(self, a: T, b: T) -> Any:
        return 0 if self._compare is None else self._compare(a, b)

    def __repr__(self) -> str:
        return f"DynamicSort({self._compare!r})"
