"""Run packages' phases through an external executor.

pixgraph never runs a build command itself. An executor does:

    def executor(pkg, phase, state):
        ...  # interpret phase.action (e.g. a build_systems.Step) for pkg

    realize(hello, executor)             # hello only
    realize_closure(hello, executor)     # dependencies first, then hello
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pixgraph.closure import closure
from pixgraph.errors import MissingKey
from pixgraph.overlay import PHASES_KEY
from pixgraph.package import Package
from pixgraph.phases import Phase

logger = logging.getLogger(__name__)

PackageExecutor = Callable[[Package, Phase, Any], Any]

# flag argument -> phase it disables when false
_ENABLE_FLAGS = {
    "do_check": "check",
    "do_install_check": "install_check",
}


def phase_skips(pkg: Package) -> set[str]:
    """Phases of ``pkg`` that its arguments switch off.

    ``do_check=False`` skips ``check``, ``do_install_check=False`` skips
    ``install_check``, and ``dont_<phase>=True`` skips ``<phase>``. Only
    phases the package actually has are returned.
    """
    phases = pkg.phases
    if phases is None:
        return set()
    args = pkg.arguments
    skips = {
        phase for flag, phase in _ENABLE_FLAGS.items()
        if flag in args and not args[flag] and phase in phases
    }
    skips.update(p.name for p in phases if args.get(f"dont_{p.name}"))
    return skips


def realize(
    pkg: Package,
    executor: PackageExecutor,
    state: Any = None,
    *,
    cancel: Any = None,
    acquire: Callable | None = None,
) -> Any:
    """Run ``pkg``'s phases through ``executor`` and return the final state.

    Raises:
        MissingKey: ``pkg`` has no ``phases`` argument.
        PhaseExecutionError: a phase failed (see PhaseList.apply).
    """
    phases = pkg.phases
    if phases is None:
        raise MissingKey(PHASES_KEY)
    logger.info("realizing %s", pkg.full_name)
    return phases.apply(
        state,
        executor=lambda phase, st: executor(pkg, phase, st),
        skip=phase_skips(pkg),
        cancel=cancel,
        acquire=acquire,
    )


def realize_closure(
    root: Package,
    executor: PackageExecutor,
    *,
    make_state: Callable[[Package], Any] | None = None,
    cancel: Any = None,
    acquire: Callable | None = None,
) -> dict[Package, Any]:
    """Realize every package under ``root``, dependencies first.

    Packages without phases have nothing to run and are left out of the
    result. The first failure propagates; nothing after it is started.
    """
    results: dict[Package, Any] = {}
    for node in closure(root):
        if node.phases is None:
            logger.debug("%s has no phases, nothing to realize", node.full_name)
            continue
        state = make_state(node) if make_state is not None else None
        results[node] = realize(node, executor, state, cancel=cancel, acquire=acquire)
    return results
