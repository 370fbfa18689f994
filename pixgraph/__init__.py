"""pixgraph: editable build pipelines over a rewritable package graph.

Packages are immutable nodes linked by NATIVE/DIRECT/PROPAGATED edges.
Their ``arguments`` hold a PhaseList that derived packages edit through
overlays, and whole subgraphs are rebuilt with GraphRewriter.
"""

from pixgraph.build_systems import BUILD_SYSTEMS, BuildSystem, Step, get_build_system
from pixgraph.closure import build_batches, closure, effective_edges, propagated_closure
from pixgraph.config import Config, configure_logging
from pixgraph.errors import (
    BuildCancelled,
    ConfigurationError,
    CycleDetected,
    DanglingEdge,
    DuplicatePhaseName,
    InvalidPhaseName,
    GraphError,
    MissingKey,
    PhaseExecutionError,
    PhaseNotFound,
    PixGraphError,
    RewriteTypeMismatch,
    UnknownBuildSystem,
)
from pixgraph.lazy import Lazy
from pixgraph.mk_package import mk_package
from pixgraph.overlay import MISSING, PHASES_KEY, Transform, apply_overlay, apply_overlays, edit_phases
from pixgraph.package import DependencyEdge, EdgeKind, Package, Variant, check_acyclic, make_package
from pixgraph.package_set import LazyAttrSet, all_packages, compose_overlays, fix
from pixgraph.phases import Phase, PhaseList
from pixgraph.realize import phase_skips, realize, realize_closure
from pixgraph.rewrite import (
    GraphRewriter,
    keep_unchanged,
    outputs_compatible,
    replace_by_identity,
    replace_by_name,
    replace_dependency,
    rewrite,
)

__all__ = [
    "BUILD_SYSTEMS", "BuildSystem", "Step", "get_build_system",
    "build_batches", "closure", "effective_edges", "propagated_closure",
    "Config", "configure_logging",
    "BuildCancelled", "ConfigurationError", "CycleDetected", "DanglingEdge",
    "DuplicatePhaseName", "GraphError", "InvalidPhaseName", "MissingKey", "PhaseExecutionError",
    "PhaseNotFound", "PixGraphError", "RewriteTypeMismatch", "UnknownBuildSystem",
    "Lazy",
    "mk_package",
    "MISSING", "PHASES_KEY", "Transform", "apply_overlay", "apply_overlays", "edit_phases",
    "DependencyEdge", "EdgeKind", "Package", "Variant", "check_acyclic", "make_package",
    "LazyAttrSet", "all_packages", "compose_overlays", "fix",
    "Phase", "PhaseList",
    "phase_skips", "realize", "realize_closure",
    "GraphRewriter", "keep_unchanged", "outputs_compatible", "replace_by_identity",
    "replace_by_name", "replace_dependency", "rewrite",
]
