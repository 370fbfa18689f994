"""Python equivalent of stdenv.mkDerivation.

Wraps make_package() with what every ordinary package gets: the argument
defaults of its build system, the build system's phases, and the
platform and check settings of the configuration in effect.

    hello = mk_package(
        pname="hello", version="2.12.2",
        source=src, native_inputs=[perl],
        arguments={
            "configure_flags": ("--disable-nls",),
            "phases": edit_phases(lambda p: p.delete("install_check")),
        },
        config=cfg,
    )

``arguments`` is an overlay (see pixgraph.overlay) applied on top of the
defaults, so it can use Transform as well as literals.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pixgraph.build_systems import BuildSystem, get_build_system
from pixgraph.config import Config
from pixgraph.overlay import PHASES_KEY, Overlay, apply_overlay
from pixgraph.package import Package, make_package


def mk_package(
    *,
    pname: str | None = None,
    version: str = "",
    name: str | None = None,
    build_system: str | BuildSystem = "generic",
    source: Any = None,
    native_inputs: Iterable[Package] = (),
    inputs: Iterable[Package] = (),
    propagated_inputs: Iterable[Package] = (),
    outputs: Iterable[str] = ("out",),
    arguments: Overlay | None = None,
    properties: Mapping[str, Any] | None = None,
    config: Config | None = None,
) -> Package:
    """Create a package the way most packages are created.

    Supports two naming conventions (like real mkDerivation):
      - ``pname`` + ``version``: name is pname, version kept separately
      - ``name`` directly: the whole name, no version

    Args:
        build_system: Build system name or value; supplies phases and
            argument defaults.
        arguments: Overlay applied after the defaults.
        config: Supplies ``system`` and the ``do_check`` default.
            Defaults to ``Config()``.
    """
    if pname is not None and name is not None:
        raise ValueError("pname and name are mutually exclusive")
    if pname is None and name is None:
        raise ValueError("either name or pname is required")
    if name is not None:
        pname, version = name, ""

    config = config or Config()
    if isinstance(build_system, str):
        build_system = get_build_system(build_system)

    base = build_system.argument_defaults()
    base[PHASES_KEY] = build_system.default_phases()
    base["build_system"] = build_system.name
    base["system"] = config.system
    base["do_check"] = config.do_check and "check" in base[PHASES_KEY]
    base["strict_deps"] = config.strict_deps

    return make_package(
        pname,
        version,
        source=source,
        native_inputs=native_inputs,
        inputs=inputs,
        propagated_inputs=propagated_inputs,
        arguments=apply_overlay(base, arguments) if arguments else base,
        properties=properties,
        outputs=outputs,
    )
