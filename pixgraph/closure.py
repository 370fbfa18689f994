"""Walking a package graph: closures, propagated inputs, build order.

The ordering contract for whoever schedules builds is simple: every
package's dependencies come before it. ``build_batches`` groups the
closure into waves whose members only depend on earlier waves, so a
scheduler may run each wave's members concurrently.
"""

from __future__ import annotations

from pixgraph.errors import CycleDetected
from pixgraph.package import DependencyEdge, EdgeKind, Package


def closure(root: Package) -> list[Package]:
    """Every distinct package reachable from ``root``, dependencies first.

    ``root`` is last. Iterative post-order walk keyed on node identity.
    """
    order: list[Package] = []
    done: set[Package] = set()
    visiting: list[Package] = [root]
    on_path: set[Package] = {root}
    stack = [iter(root.dependencies)]
    while stack:
        dep = next(stack[-1], None)
        if dep is None:
            stack.pop()
            node = visiting.pop()
            on_path.discard(node)
            done.add(node)
            order.append(node)
            continue
        if dep in done:
            continue
        if dep in on_path:
            start = visiting.index(dep)
            raise CycleDetected([p.full_name for p in visiting[start:]] + [dep.full_name])
        visiting.append(dep)
        on_path.add(dep)
        stack.append(iter(dep.dependencies))
    return order


def propagated_closure(pkg: Package) -> list[Package]:
    """What ``pkg`` leaks to its consumers.

    Its propagated inputs, their propagated inputs, and so on. Native and
    direct inputs of those packages are not included.
    """
    seen: dict[Package, None] = {}
    todo = list(reversed(pkg.propagated_inputs))
    while todo:
        node = todo.pop()
        if node in seen:
            continue
        seen[node] = None
        todo.extend(reversed(node.propagated_inputs))
    return list(seen)


def effective_edges(pkg: Package) -> list[DependencyEdge]:
    """``pkg``'s edges plus the inputs its dependencies propagate to it.

    A package propagated by a dependency arrives with the kind of the edge
    that reached that dependency: the propagated inputs of a native input
    are native. Each (kind, target) pair appears once.
    """
    result: dict[tuple[EdgeKind, Package], DependencyEdge] = {}
    for edge in pkg.edges:
        result.setdefault((edge.kind, edge.target), edge)
        for leaked in propagated_closure(edge.target):
            result.setdefault((edge.kind, leaked), DependencyEdge(edge.kind, leaked))
    return list(result.values())


def build_batches(root: Package) -> list[list[Package]]:
    """The closure of ``root`` grouped into waves of independent packages.

    A package's wave is one more than the latest wave among its
    dependencies; leaves are in wave 0.
    """
    depth: dict[Package, int] = {}
    for node in closure(root):
        depth[node] = 1 + max((depth[d] for d in node.dependencies), default=-1)
    waves: list[list[Package]] = [[] for _ in range(max(depth.values()) + 1)]
    for node, level in depth.items():
        waves[level].append(node)
    return waves
