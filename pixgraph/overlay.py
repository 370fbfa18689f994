"""Argument overlays: override some keys of a base mapping, keep the rest.

The Python side of ``pkg.overrideAttrs (old: { ... })``. An overlay maps
keys to either a literal (replaces the base value) or a Transform (maps
the base value, or a declared default, to a new one):

    apply_overlay(base, {
        "do_check": False,
        "configure_flags": Transform(lambda old: old + ("--disable-nls",), default=()),
        "phases": edit_phases(lambda p: p.delete("check")),
    })

An overlay may also be a function of the base mapping returning such a
mapping, for overrides that need to look at other keys.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Union

from pixgraph.errors import MissingKey

PHASES_KEY = "phases"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True)
class Transform:
    """Overlay entry computing the new value from the old one."""

    fn: Callable[[Any], Any]
    default: Any = MISSING


Overlay = Union[Mapping[str, Any], Callable[[Mapping[str, Any]], Mapping[str, Any]]]


def apply_overlay(base: Mapping[str, Any], overlay: Overlay) -> dict[str, Any]:
    """Return a new dict: ``base`` with the overlay's keys replaced.

    Raises:
        MissingKey: a Transform's key is absent from ``base`` and the
            Transform has no default.
    """
    entries = overlay(base) if callable(overlay) else overlay
    result = dict(base)
    for key, entry in entries.items():
        if isinstance(entry, Transform):
            if key in base:
                old = base[key]
            elif entry.default is not MISSING:
                old = entry.default
            else:
                raise MissingKey(key)
            result[key] = entry.fn(old)
        else:
            result[key] = entry
    return result


def apply_overlays(base: Mapping[str, Any], *overlays: Overlay) -> dict[str, Any]:
    """Apply overlays left to right; each sees the result of the previous."""
    result = dict(base)
    for overlay in overlays:
        result = apply_overlay(result, overlay)
    return result


def edit_phases(*edits: Callable[[Any], Any], default: Any = MISSING) -> Transform:
    """A Transform for the ``phases`` key running PhaseList edits in order.

        edit_phases(
            lambda p: p.delete("check"),
            lambda p: p.add_after("build", "check2", check2),
        )
    """
    def run(phases):
        for edit in edits:
            phases = edit(phases)
        return phases

    return Transform(run, default)
