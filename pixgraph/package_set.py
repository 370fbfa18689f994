"""Lazy package sets composed from overlays.

Python version of Nix's lib.fix / lib.composeExtensions:

    Nix:    fix (self: { a = 1; b = self.a + 1; })
    Python: fix(lambda self: {"a": lambda: 1, "b": lambda: self.a + 1})

The set passed to ``fn`` is the finished fixed point, so thunks can refer
to any other attribute (open recursion). Each attribute is forced at most
once. An attribute that needs itself raises CycleDetected.

Overlays are ``(final, prev) -> dict of thunks``; ``prev`` holds the
thunks of the layers below, ``final`` is the composed set:

    pkgs = fix(compose_overlays([base_packages, lambda final, prev: {
        "zlib": lambda: final.zlib_base.override_args({"do_check": False}),
    }]))

``call`` injects attributes by parameter name, like callPackage:

    pkgs.call(lambda zlib, perl: make_package("hello", inputs=[zlib, perl]))
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Iterator

from pixgraph.errors import MissingKey
from pixgraph.lazy import Lazy

Thunks = dict[str, Callable[[], Any]]


class LazyAttrSet:
    """Attribute set whose values are computed on first access."""

    def __init__(self, thunks: Thunks | None = None):
        object.__setattr__(self, "_attrs", {})
        if thunks:
            self._bind(thunks)

    def _bind(self, thunks: Thunks) -> None:
        attrs = object.__getattribute__(self, "_attrs")
        # underscore names are reserved for the set's own attributes
        reserved = sorted(name for name in thunks if name.startswith("_"))
        if reserved:
            raise ValueError(f"package names cannot start with '_': {reserved}")
        attrs.clear()
        for name, thunk in thunks.items():
            attrs[name] = Lazy(thunk, name=name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        attrs = object.__getattribute__(self, "_attrs")
        if name not in attrs:
            raise AttributeError(f"no package {name!r} in this set")
        return attrs[name].force()

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("package sets are read-only")

    def __contains__(self, name: object) -> bool:
        return name in object.__getattribute__(self, "_attrs")

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(object.__getattribute__(self, "_attrs")))

    def __dir__(self) -> list[str]:
        return list(self)

    def call(self, fn: Callable[..., Any], **overrides: Any) -> Any:
        """Call ``fn`` with each parameter looked up on this set by name.

        Keyword ``overrides`` win over set attributes, like the second
        argument of callPackage. A parameter with a default may be absent
        from the set.

        Raises:
            MissingKey: a required parameter is neither in ``overrides``
                nor in the set.
        """
        kwargs = {}
        for name, param in inspect.signature(fn).parameters.items():
            if name in overrides:
                kwargs[name] = overrides[name]
            elif name in self:
                kwargs[name] = getattr(self, name)
            elif param.default is inspect.Parameter.empty:
                raise MissingKey(name)
        return fn(**kwargs)


def fix(fn: Callable[[LazyAttrSet], Thunks]) -> LazyAttrSet:
    """Fixed point of ``fn``: the set it returns is the set it was given."""
    result = LazyAttrSet()
    result._bind(fn(result))
    return result


def compose_overlays(
    overlays: list[Callable[[LazyAttrSet, Thunks], Thunks]],
) -> Callable[[LazyAttrSet], Thunks]:
    """Fold overlays left to right into one function for fix()."""
    def composed(final: LazyAttrSet) -> Thunks:
        prev: Thunks = {}
        for overlay in overlays:
            prev = {**prev, **overlay(final, prev)}
        return prev
    return composed


def all_packages(pkgs: LazyAttrSet) -> dict[str, Any]:
    """Force every attribute of ``pkgs``."""
    return {name: getattr(pkgs, name) for name in pkgs}
