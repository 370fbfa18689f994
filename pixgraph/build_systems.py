"""Build-system descriptors.

Each technology (autotools, CMake, Meson, Python, plain commands) is a
BuildSystem value, not a subclass: a tag, its phase names and the
arguments it understands. Two capabilities matter to the rest of the
package:

    get_build_system("cmake").default_phases()     # PhaseList of Steps
    get_build_system("cmake").describe_arguments() # {key: ArgumentSpec}

The phase actions are Step values. They do nothing by themselves; an
executor passed to PhaseList.apply (or realize) decides what running
``Step("cmake", "configure")`` means.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pixgraph.errors import UnknownBuildSystem
from pixgraph.phases import PhaseList


@dataclass(frozen=True)
class Step:
    build_system: str
    phase: str


@dataclass(frozen=True)
class ArgumentSpec:
    type: type
    default: Any
    doc: str = ""


# Arguments every build system accepts.
COMMON_ARGUMENTS: dict[str, ArgumentSpec] = {
    "system": ArgumentSpec(str, "", "platform the package is built for"),
    "patches": ArgumentSpec(tuple, (), "patches applied in the patch phase"),
    "do_check": ArgumentSpec(bool, False, "run the check phase"),
    "do_install_check": ArgumentSpec(bool, False, "run the install_check phase"),
    "strict_deps": ArgumentSpec(bool, False, "keep native inputs off the host search path"),
}

GENERIC_PHASES = (
    "unpack", "patch", "configure", "build", "check", "install", "fixup", "install_check",
)


@dataclass(frozen=True)
class BuildSystem:
    name: str
    phase_names: tuple[str, ...]
    arguments: dict[str, ArgumentSpec] = field(default_factory=dict)

    def default_phases(self) -> PhaseList:
        return PhaseList.of(*((p, Step(self.name, p)) for p in self.phase_names))

    def describe_arguments(self) -> dict[str, ArgumentSpec]:
        return {**COMMON_ARGUMENTS, **self.arguments}

    def argument_defaults(self) -> dict[str, Any]:
        return {key: spec.default for key, spec in self.describe_arguments().items()}


GENERIC = BuildSystem(
    "generic",
    GENERIC_PHASES,
    {
        "configure_flags": ArgumentSpec(tuple, (), "passed to ./configure"),
        "make_flags": ArgumentSpec(tuple, (), "passed to every make invocation"),
        "configure_script": ArgumentSpec(str, "./configure"),
    },
)

CMAKE = BuildSystem(
    "cmake",
    GENERIC_PHASES,
    {
        "cmake_flags": ArgumentSpec(tuple, (), "passed to cmake at configure time"),
        "cmake_build_type": ArgumentSpec(str, "Release"),
        "make_flags": ArgumentSpec(tuple, ()),
    },
)

MESON = BuildSystem(
    "meson",
    GENERIC_PHASES,
    {
        "meson_flags": ArgumentSpec(tuple, (), "passed to meson setup"),
        "meson_build_type": ArgumentSpec(str, "plain"),
        "ninja_flags": ArgumentSpec(tuple, ()),
    },
)

PYTHON = BuildSystem(
    "python",
    ("unpack", "patch", "configure", "build", "install", "fixup", "install_check",
     "imports_check"),
    {
        "python_imports_check": ArgumentSpec(tuple, (), "modules that must import after install"),
        "pyproject": ArgumentSpec(bool, True, "build with the PEP 517 frontend"),
    },
)

TRIVIAL = BuildSystem(
    "trivial",
    ("build",),
    {"command": ArgumentSpec(str, "", "shell command producing $out")},
)

BUILD_SYSTEMS: dict[str, BuildSystem] = {
    bs.name: bs for bs in (GENERIC, CMAKE, MESON, PYTHON, TRIVIAL)
}


def get_build_system(name: str) -> BuildSystem:
    try:
        return BUILD_SYSTEMS[name]
    except KeyError:
        raise UnknownBuildSystem(name) from None
