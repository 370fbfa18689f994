"""Whole-graph rewrites with memoized structural sharing.

"Rebuild everything that depends on python3 against python3_12":

    rewriter = GraphRewriter(replace_by_identity({python3: python3_12}))
    new_root = rewriter.rewrite(root)

For each distinct node reachable from the root:
  - if ``predicate(node)`` returns a package, that package replaces the
    node as is; its own subgraph is not walked;
  - otherwise the node's edges are rewritten first and
    ``transform(node, new_edges)`` builds the new node.

A memo keyed on the original node makes each node rewrite exactly once,
so diamonds stay diamonds: every edge that pointed at D points at the
same D' afterwards.

With ``deep=False``, PROPAGATED edges keep pointing at their original
targets. NATIVE and DIRECT edges are always followed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Callable

from pixgraph.config import Config
from pixgraph.errors import CycleDetected, RewriteTypeMismatch
from pixgraph.package import DependencyEdge, EdgeKind, Package

logger = logging.getLogger(__name__)

Predicate = Callable[[Package], "Package | None"]
Rebuild = Callable[[Package, tuple[DependencyEdge, ...]], Package]
Check = Callable[[Package, Package], "str | None"]


def copy_with_edges(node: Package, edges: tuple[DependencyEdge, ...]) -> Package:
    """Default transform: same fields, new edges."""
    return node.derive(edges=edges)


def keep_unchanged(transform: Rebuild = copy_with_edges) -> Rebuild:
    """Wrap ``transform`` to return the original node when no edge changed."""
    def wrapped(node: Package, edges: tuple[DependencyEdge, ...]) -> Package:
        if all(new.target is old.target for new, old in zip(edges, node.edges)):
            return node
        return transform(node, edges)
    return wrapped


def replace_by_identity(mapping: Mapping[Package, Package]) -> Predicate:
    return lambda node: mapping.get(node)


def replace_by_name(mapping: Mapping[str, Package]) -> Predicate:
    """Replace every node whose ``name`` is a key of ``mapping``.

    Replacements are never walked, so a replacement may share its name
    with the node it replaces.
    """
    return lambda node: mapping.get(node.name)


def outputs_compatible(original: Package, replacement: Package) -> str | None:
    """Check that ``replacement`` provides every output of ``original``."""
    missing = original.outputs - replacement.outputs
    if missing:
        return f"replacement lacks outputs {sorted(missing)}"
    return None


class GraphRewriter:
    """A configured rewrite; each ``rewrite`` call uses a fresh memo.

    Args:
        predicate: ``predicate(node)`` returns a replacement or None.
        transform: ``transform(node, edges)`` rebuilds a non-matching node
            from its rewritten edges. Defaults to ``copy_with_edges``.
        deep: Follow PROPAGATED edges too.
        check: ``check(original, replacement)`` returns None when the
            replacement is acceptable, else a reason.
        config: When given, the default transform also sets
            ``arguments["system"]`` to ``config.system``.
    """

    def __init__(
        self,
        predicate: Predicate,
        transform: Rebuild | None = None,
        *,
        deep: bool = True,
        check: Check | None = None,
        config: Config | None = None,
    ):
        self.predicate = predicate
        self.deep = deep
        self.check = check
        self.config = config
        if transform is None:
            transform = copy_with_edges if config is None else self._copy_for_system
        self.transform = transform

    def _copy_for_system(self, node: Package, edges: tuple[DependencyEdge, ...]) -> Package:
        arguments = {**node.arguments, "system": self.config.system}
        return node.derive(edges=edges, arguments=arguments)

    def _follows(self, edge: DependencyEdge) -> bool:
        return self.deep or edge.kind is not EdgeKind.PROPAGATED

    def _match(self, node: Package) -> Package | None:
        replacement = self.predicate(node)
        if replacement is None:
            return None
        if not isinstance(replacement, Package):
            raise RewriteTypeMismatch(node, replacement, "predicate did not return a Package")
        if self.check is not None:
            reason = self.check(node, replacement)
            if reason is not None:
                raise RewriteTypeMismatch(node, replacement, reason)
        return replacement

    def rewrite(self, root: Package) -> Package:
        return self.rewrite_all([root])[0]

    def rewrite_all(self, roots: Iterable[Package]) -> list[Package]:
        """Rewrite several roots with one shared memo."""
        memo: dict[Package, Package] = {}
        stats = {"rebuilt": 0, "replaced": 0}
        roots = list(roots)
        for root in roots:
            self._walk(root, memo, stats)
        logger.debug(
            "rewrote %d nodes (%d replaced, %d rebuilt)",
            len(memo), stats["replaced"], stats["rebuilt"],
        )
        return [memo[root] for root in roots]

    def _walk(self, root: Package, memo: dict[Package, Package], stats: dict[str, int]) -> None:
        # (node, expanded): a node is rebuilt on its second visit, once
        # every edge it follows has a memo entry.
        in_progress: set[Package] = set()
        path: list[Package] = []
        stack: list[tuple[Package, bool]] = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                in_progress.discard(node)
                path.pop()
                memo[node] = self._rebuild(node, memo)
                stats["rebuilt"] += 1
                continue
            if node in memo:
                continue
            if node in in_progress:
                start = path.index(node)
                raise CycleDetected([p.full_name for p in path[start:]] + [node.full_name])
            replacement = self._match(node)
            if replacement is not None:
                memo[node] = replacement
                stats["replaced"] += 1
                continue
            in_progress.add(node)
            path.append(node)
            stack.append((node, True))
            for edge in reversed(node.edges):
                if self._follows(edge) and edge.target not in memo:
                    stack.append((edge.target, False))

    def _rebuild(self, node: Package, memo: dict[Package, Package]) -> Package:
        edges = tuple(
            DependencyEdge(edge.kind, memo[edge.target]) if self._follows(edge) else edge
            for edge in node.edges
        )
        result = self.transform(node, edges)
        if not isinstance(result, Package):
            raise RewriteTypeMismatch(node, result, "transform did not return a Package")
        return result


def rewrite(
    root: Package,
    predicate: Predicate,
    transform: Rebuild | None = None,
    *,
    deep: bool = True,
    check: Check | None = None,
    config: Config | None = None,
) -> Package:
    return GraphRewriter(predicate, transform, deep=deep, check=check, config=config).rewrite(root)


def replace_dependency(root: Package, old: Package, new: Package, *, deep: bool = True) -> Package:
    """Swap ``old`` for ``new`` under ``root``, rebuilding only its dependents.

    Nodes that do not reach ``old`` are shared with the original graph.
    """
    return rewrite(root, replace_by_identity({old: new}), keep_unchanged(), deep=deep)


def same_shape(a: Package, b: Package) -> bool:
    """True when the graphs under ``a`` and ``b`` match node for node.

    Compares names, versions, outputs and edge kinds in order, pairing
    nodes by position; a node shared in one graph must be shared in the
    other.
    """
    pairs: dict[Package, Package] = {}
    todo: list[tuple[Package, Package]] = [(a, b)]
    while todo:
        x, y = todo.pop()
        if x in pairs:
            if pairs[x] is not y:
                return False
            continue
        pairs[x] = y
        if (x.name, x.version, x.outputs) != (y.name, y.version, y.outputs):
            return False
        if [e.kind for e in x.edges] != [e.kind for e in y.edges]:
            return False
        todo.extend((ex.target, ey.target) for ex, ey in zip(x.edges, y.edges))
    return len(set(pairs.values())) == len(pairs)
