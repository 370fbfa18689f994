"""Immutable package nodes and their dependency edges.

A Package is the graph node every other module works on. It is built
bottom-up from packages that already exist:

    zlib = make_package(name="zlib", version="1.3")
    perl = make_package(name="perl", version="5.38",
                        native_inputs=[zlib], propagated_inputs=[zlib])

Packages are never mutated. ``derive()`` (inherit with field overrides)
and ``override_args()`` (overlay on the arguments) return new nodes.

Identity is reference identity: two packages with the same name and
version are still different nodes, and graph algorithms key on the
object itself (dataclass eq=False keeps the default id-based __eq__ and
__hash__).
"""

from __future__ import annotations

import enum
import weakref
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable

from pixgraph.errors import CycleDetected, DanglingEdge
from pixgraph.lazy import Lazy, force
from pixgraph.overlay import PHASES_KEY, Overlay, apply_overlays


class EdgeKind(enum.Enum):
    NATIVE = "native"            # build time only, on the build host
    DIRECT = "direct"            # build and run time, not exposed to consumers
    PROPAGATED = "propagated"    # also visible to everything depending on us


@dataclass(frozen=True)
class DependencyEdge:
    kind: EdgeKind
    target: Package

    def __repr__(self) -> str:
        return f"DependencyEdge({self.kind.name}, {self.target.full_name})"


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Variant:
    """A property computed from the package that carries it.

    Stored in ``properties`` by ``with_variant``. Every package holding it
    (including ones made by ``derive`` or a rewrite) computes its own
    value from itself, at most once.
    """
    fn: Callable[[Package], Any]


def _bind_variant(pkg: Package, key: str, variant: Variant) -> Lazy:
    return Lazy(lambda: variant.fn(pkg), name=f"{pkg.full_name}.{key}")


@dataclass(frozen=True, eq=False, repr=False)
class Package:
    name: str
    version: str = ""
    source: Any = None
    edges: tuple[DependencyEdge, ...] = ()
    arguments: Mapping[str, Any] = field(default_factory=dict)
    properties: Mapping[str, Any] = field(default_factory=dict)
    outputs: frozenset[str] = frozenset({"out"})

    def __post_init__(self) -> None:
        edges = tuple(self.edges)
        for edge in edges:
            if not isinstance(edge, DependencyEdge) or not isinstance(edge.target, Package):
                raise DanglingEdge(self.name, getattr(edge, "target", edge))
            if not isinstance(edge.kind, EdgeKind):
                raise TypeError(f"{self.name}: edge kind must be an EdgeKind, got {edge.kind!r}")
        outputs = frozenset(self.outputs)
        if not outputs:
            raise ValueError(f"{self.name}: a package needs at least one output")
        object.__setattr__(self, "edges", edges)
        object.__setattr__(self, "arguments", _freeze(self.arguments))
        object.__setattr__(self, "properties", _freeze(self.properties))
        object.__setattr__(self, "outputs", outputs)
        object.__setattr__(self, "_variants", {
            key: _bind_variant(self, key, value)
            for key, value in self.properties.items() if isinstance(value, Variant)
        })
        _check_new(self)

    @property
    def full_name(self) -> str:
        return f"{self.name}-{self.version}" if self.version else self.name

    def __repr__(self) -> str:
        return f"<Package {self.full_name} at {id(self):#x}>"

    def __str__(self) -> str:
        return self.full_name

    # --- edges by kind ---

    def targets(self, kind: EdgeKind) -> list[Package]:
        return [e.target for e in self.edges if e.kind is kind]

    @property
    def native_inputs(self) -> list[Package]:
        return self.targets(EdgeKind.NATIVE)

    @property
    def inputs(self) -> list[Package]:
        return self.targets(EdgeKind.DIRECT)

    @property
    def propagated_inputs(self) -> list[Package]:
        return self.targets(EdgeKind.PROPAGATED)

    @property
    def dependencies(self) -> list[Package]:
        """Distinct edge targets, in edge order."""
        seen: dict[Package, None] = {}
        for edge in self.edges:
            seen.setdefault(edge.target)
        return list(seen)

    # --- arguments and properties ---

    @property
    def phases(self):
        return self.arguments.get(PHASES_KEY)

    def prop(self, key: str) -> Any:
        """Look up a property, forcing it if it is lazy."""
        value = self.properties[key]
        if isinstance(value, Variant):
            return self._variants[key].force()
        return force(value)

    # --- derivation ---

    def derive(self, **changes) -> Package:
        """A new package with some fields replaced. Like Nix's ``//``."""
        return replace(self, **changes)

    def override_args(self, *overlays: Overlay) -> Package:
        """A new package whose arguments have the overlays applied.

        Like ``pkg.overrideAttrs``; see pixgraph.overlay.
        """
        return self.derive(arguments=apply_overlays(self.arguments, *overlays))

    def with_variant(self, key: str, fn: Callable[[Package], Package]) -> Package:
        """A new package carrying a lazily computed variant of itself.

        ``fn`` receives the package on first use of ``variant(key)``.
        Packages derived or rewritten from the result recompute the
        variant from themselves. A variant that demands itself raises
        CycleDetected.
        """
        return self.derive(properties={**self.properties, key: Variant(fn)})

    def variant(self, key: str) -> Package:
        return self.prop(key)


def make_package(
    name: str,
    version: str = "",
    *,
    source: Any = None,
    native_inputs: Iterable[Package] = (),
    inputs: Iterable[Package] = (),
    propagated_inputs: Iterable[Package] = (),
    edges: Iterable[DependencyEdge] = (),
    arguments: Mapping[str, Any] | None = None,
    properties: Mapping[str, Any] | None = None,
    outputs: Iterable[str] = ("out",),
) -> Package:
    """Create a Package.

    Edges come from ``edges`` first, then one edge per entry of
    ``native_inputs``, ``inputs`` and ``propagated_inputs`` in that order.

    Raises:
        DanglingEdge: an input is not a constructed Package.
        CycleDetected: the new node's edges lead back into a cycle.
    """
    all_edges = list(edges)
    for kind, targets in (
        (EdgeKind.NATIVE, native_inputs),
        (EdgeKind.DIRECT, inputs),
        (EdgeKind.PROPAGATED, propagated_inputs),
    ):
        for target in targets:
            if not isinstance(target, Package):
                raise DanglingEdge(name, target)
            all_edges.append(DependencyEdge(kind, target))
    return Package(
        name=name,
        version=version,
        source=source,
        edges=tuple(all_edges),
        arguments=arguments or {},
        properties=properties or {},
        outputs=frozenset(outputs),
    )


_IN_PROGRESS = 1
_DONE = 2

# Nodes whose subgraph already passed a walk.
_verified: weakref.WeakSet[Package] = weakref.WeakSet()


def check_acyclic(root: Package) -> None:
    """Walk everything reachable from ``root``; raise CycleDetected on a cycle.

    Iterative depth-first walk: a node reached again while still marked
    in progress closes a cycle. Deep chains do not touch the Python
    recursion limit.
    """
    _walk_for_cycles(root, skip_verified=False)


def _check_new(pkg: Package) -> None:
    # Inputs were verified when they were built, so this visits pkg only.
    _walk_for_cycles(pkg, skip_verified=True)


def _walk_for_cycles(root: Package, skip_verified: bool) -> int:
    """Return the number of nodes visited."""
    state: dict[Package, int] = {root: _IN_PROGRESS}
    path: list[Package] = [root]
    stack: list[Any] = [iter(root.edges)]
    while stack:
        edge = next(stack[-1], None)
        if edge is None:
            stack.pop()
            state[path.pop()] = _DONE
            continue
        target = edge.target
        mark = state.get(target)
        if mark == _DONE or (skip_verified and mark is None and target in _verified):
            continue
        if mark == _IN_PROGRESS:
            start = path.index(target)
            raise CycleDetected([p.full_name for p in path[start:]] + [target.full_name])
        state[target] = _IN_PROGRESS
        path.append(target)
        stack.append(iter(target.edges))
    _verified.update(state)
    return len(state)
