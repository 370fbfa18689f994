"""Memoized deferred values.

A Lazy wraps a zero-argument function that runs at most once, on the
first force(). While it runs the value is marked in progress; forcing
it again from inside its own computation raises CycleDetected instead
of recursing until the interpreter gives up.

    static = Lazy(lambda: pkg.derive(arguments=...), name="hello.static")
    static.force()   # computed
    static.force()   # cached
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from pixgraph.errors import CycleDetected

_UNSET = object()


class Lazy:
    def __init__(self, fn: Callable[[], Any], name: str | None = None):
        self._fn = fn
        self.name = name or getattr(fn, "__qualname__", repr(fn))
        self._value: Any = _UNSET
        self._evaluating = False
        # reentrant: a self-demand must reach the in-progress check
        self._lock = threading.RLock()

    @property
    def evaluated(self) -> bool:
        return self._value is not _UNSET

    def force(self) -> Any:
        if self._value is not _UNSET:
            return self._value
        with self._lock:
            if self._value is not _UNSET:
                return self._value
            if self._evaluating:
                raise CycleDetected([self.name, self.name])
            self._evaluating = True
            try:
                self._value = self._fn()
            finally:
                self._evaluating = False
            self._fn = None
        return self._value

    def __repr__(self) -> str:
        state = "evaluated" if self.evaluated else "pending"
        return f"<Lazy {self.name} ({state})>"


def force(value: Any) -> Any:
    """Force ``value`` if it is a Lazy, else return it as is."""
    return value.force() if isinstance(value, Lazy) else value
