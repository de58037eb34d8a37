"""Textual integration for dynreducer. Opt-in, requires textual.

Reducer notifications are synchronous and may come from any thread that
mutated the reducer. `subscribe` makes a handler safe to point at widgets:
it is skipped while the app is not running or paused, marshaled onto the
app thread when needed, and a widget query that finds nothing (NoMatches)
is ignored.

Usage:
    from dynreducer import textual as dtx

    dtx.subscribe(app, reducer, lambda r: table.update_rows(list(r)))

    with dtx.pause(app):
        await container.remove_children()
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

# Module-owned pause state keyed by id(app); an id is present only inside pause().
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suppress bridged handlers while the widget tree is being rebuilt."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Whether widgets can be queried: app running and not paused."""
    return app.is_running and id(app) not in _paused_apps


def subscribe(app, reducer, handler: Callable[[Any], None]) -> Callable[[], None]:
    """reducer.subscribe(handler) bridged onto a Textual app.

    Returns the reducer's unsubscribe function.
    """
    app_thread = threading.get_ident()

    def _deliver(value) -> None:
        try:
            handler(value)
        except NoMatches:
            pass  # widget not mounted yet or already gone

    def _bridged(value) -> None:
        if not is_safe(app):
            return
        if threading.get_ident() == app_thread:
            _deliver(value)
        else:
            app.call_from_thread(_deliver, value)

    return reducer.subscribe(_bridged)
