"""Tests for closures, propagated inputs and build batches."""

import pytest

from pixgraph.closure import build_batches, closure, effective_edges, propagated_closure
from pixgraph.errors import CycleDetected
from pixgraph.package import DependencyEdge, EdgeKind, make_package


def diamond():
    d = make_package("d")
    b = make_package("b", inputs=[d])
    c = make_package("c", native_inputs=[d])
    a = make_package("a", inputs=[b, c])
    return a, b, c, d


class TestClosure:
    def test_dependencies_first(self):
        a, b, c, d = diamond()
        order = closure(a)
        assert order[-1] is a
        assert order.index(d) < order.index(b)
        assert order.index(d) < order.index(c)

    def test_shared_node_once(self):
        a, b, c, d = diamond()
        assert len(closure(a)) == 4

    def test_same_name_nodes_are_distinct(self):
        old = make_package("python", "3.11")
        new = make_package("python", "3.11")
        root = make_package("root", inputs=[old], native_inputs=[new])
        assert len(closure(root)) == 3

    def test_leaf(self):
        leaf = make_package("leaf")
        assert closure(leaf) == [leaf]

    def test_cycle(self):
        a, b, c, d = diamond()
        object.__setattr__(d, "edges", (DependencyEdge(EdgeKind.DIRECT, a),))
        with pytest.raises(CycleDetected):
            closure(a)


class TestPropagation:
    def test_propagated_closure_is_transitive(self):
        libffi = make_package("libffi")
        glib = make_package("glib", propagated_inputs=[libffi])
        gtk = make_package("gtk", propagated_inputs=[glib])
        assert propagated_closure(gtk) == [glib, libffi]

    def test_only_propagated_edges_leak(self):
        zlib = make_package("zlib")
        pcre = make_package("pcre")
        glib = make_package("glib", inputs=[zlib], propagated_inputs=[pcre])
        assert propagated_closure(glib) == [pcre]

    def test_effective_edges_inherit_edge_kind(self):
        pcre = make_package("pcre")
        glib = make_package("glib", propagated_inputs=[pcre])
        pkgconfig = make_package("pkg-config")
        app = make_package("app", native_inputs=[pkgconfig], inputs=[glib])
        edges = [(e.kind, e.target) for e in effective_edges(app)]
        assert edges == [
            (EdgeKind.NATIVE, pkgconfig),
            (EdgeKind.DIRECT, glib),
            (EdgeKind.DIRECT, pcre),
        ]

    def test_effective_edges_dedupe(self):
        pcre = make_package("pcre")
        glib = make_package("glib", propagated_inputs=[pcre])
        app = make_package("app", inputs=[glib, pcre])
        assert len(effective_edges(app)) == 2


class TestBatches:
    def test_waves(self):
        a, b, c, d = diamond()
        waves = build_batches(a)
        assert waves[0] == [d]
        assert set(waves[1]) == {b, c}
        assert waves[2] == [a]

    def test_predecessors_in_earlier_waves(self):
        leaves = [make_package(f"leaf{i}") for i in range(3)]
        mid = make_package("mid", inputs=leaves[:2])
        top = make_package("top", inputs=[mid, leaves[2]])
        wave_of = {pkg: i for i, wave in enumerate(build_batches(top)) for pkg in wave}
        for pkg, level in wave_of.items():
            for dep in pkg.dependencies:
                assert wave_of[dep] < level
