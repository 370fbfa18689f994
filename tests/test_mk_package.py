"""Tests for build systems, mk_package and realize."""

import threading

import pytest

from pixgraph.build_systems import BUILD_SYSTEMS, Step, get_build_system
from pixgraph.config import Config
from pixgraph.errors import (
    BuildCancelled,
    ConfigurationError,
    MissingKey,
    PhaseExecutionError,
    UnknownBuildSystem,
)
from pixgraph.mk_package import mk_package
from pixgraph.overlay import Transform, edit_phases
from pixgraph.package import make_package
from pixgraph.realize import phase_skips, realize, realize_closure


def log_executor(pkg, phase, state):
    """Record (package, phase) instead of running anything."""
    state.append((pkg.name, phase.name))


class TestBuildSystems:
    def test_generic_phases(self):
        phases = get_build_system("generic").default_phases()
        assert phases.names == [
            "unpack", "patch", "configure", "build", "check", "install", "fixup", "install_check",
        ]
        assert phases["configure"].action == Step("generic", "configure")

    def test_actions_tagged_by_build_system(self):
        for name, bs in BUILD_SYSTEMS.items():
            for phase in bs.default_phases():
                assert phase.action == Step(name, phase.name)

    def test_describe_arguments_includes_common(self):
        schema = get_build_system("cmake").describe_arguments()
        assert schema["cmake_build_type"].default == "Release"
        assert "do_check" in schema
        assert "system" in schema

    def test_default_phases_fresh_each_time(self):
        bs = get_build_system("meson")
        edited = bs.default_phases().delete("check")
        assert "check" in bs.default_phases()
        assert "check" not in edited

    def test_unknown(self):
        with pytest.raises(UnknownBuildSystem) as exc:
            get_build_system("scons")
        assert exc.value.name == "scons"
        assert isinstance(exc.value, ConfigurationError)


class TestMkPackage:
    def test_pname_version(self):
        pkg = mk_package(pname="hello", version="2.12.2")
        assert pkg.name == "hello"
        assert pkg.full_name == "hello-2.12.2"

    def test_name_only(self):
        pkg = mk_package(name="setup-hook")
        assert pkg.full_name == "setup-hook"

    def test_naming_conflicts(self):
        with pytest.raises(ValueError):
            mk_package()
        with pytest.raises(ValueError):
            mk_package(pname="a", name="b")

    def test_defaults_from_build_system_and_config(self):
        cfg = Config(system="aarch64-linux", do_check=True)
        pkg = mk_package(pname="zlib", version="1.3", build_system="cmake", config=cfg)
        assert pkg.arguments["build_system"] == "cmake"
        assert pkg.arguments["system"] == "aarch64-linux"
        assert pkg.arguments["cmake_build_type"] == "Release"
        assert pkg.arguments["do_check"] is True
        assert pkg.phases.names == get_build_system("cmake").default_phases().names

    def test_do_check_off_without_check_phase(self):
        pkg = mk_package(pname="requests", version="2.31", build_system="python")
        assert pkg.arguments["do_check"] is False

    def test_config_disables_checks(self):
        pkg = mk_package(pname="zlib", config=Config(do_check=False))
        assert pkg.arguments["do_check"] is False

    def test_arguments_overlay(self):
        pkg = mk_package(
            pname="hello", version="2.12.2",
            arguments={
                "configure_flags": Transform(lambda old: old + ("--disable-nls",)),
                "phases": edit_phases(
                    lambda p: p.delete("install_check"),
                    lambda p: p.add_after("install", "smoke", "run hello"),
                ),
            },
        )
        assert pkg.arguments["configure_flags"] == ("--disable-nls",)
        assert pkg.phases.names == [
            "unpack", "patch", "configure", "build", "check", "install", "smoke", "fixup",
        ]

    def test_edges(self):
        perl = mk_package(pname="perl", version="5.38")
        zlib = mk_package(pname="zlib", version="1.3")
        pkg = mk_package(pname="git", native_inputs=[perl], propagated_inputs=[zlib])
        assert pkg.native_inputs == [perl]
        assert pkg.propagated_inputs == [zlib]

    def test_unknown_build_system(self):
        with pytest.raises(UnknownBuildSystem):
            mk_package(pname="x", build_system="bazel")


class TestRealize:
    def test_runs_through_executor(self):
        pkg = mk_package(name="tool", build_system="trivial")
        assert realize(pkg, log_executor, []) == [("tool", "build")]

    def test_skips_follow_arguments(self):
        pkg = mk_package(pname="hello", config=Config(do_check=False), arguments={"dont_fixup": True})
        assert phase_skips(pkg) == {"check", "install_check", "fixup"}
        phases_run = [name for _, name in realize(pkg, log_executor, [])]
        assert "check" not in phases_run
        assert "fixup" not in phases_run
        assert "install" in phases_run

    def test_skips_ignore_absent_phases(self):
        pkg = mk_package(pname="requests", build_system="python", arguments={"do_check": False})
        assert "check" not in phase_skips(pkg)

    def test_no_phases(self):
        with pytest.raises(MissingKey):
            realize(make_package("plain"), log_executor, [])
        assert phase_skips(make_package("plain")) == set()

    def test_failure_carries_phase(self):
        def executor(pkg, phase, state):
            if phase.name == "configure":
                raise RuntimeError("configure: error: C compiler cannot create executables")
            state.append(phase.name)

        state = []
        pkg = mk_package(pname="hello")
        with pytest.raises(PhaseExecutionError) as exc:
            realize(pkg, executor, state)
        assert exc.value.phase_name == "configure"
        assert state == ["unpack", "patch"]

    def test_cancel(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(BuildCancelled):
            realize(mk_package(pname="hello"), log_executor, [], cancel=cancel)

    def test_closure_order(self):
        zlib = mk_package(name="zlib", build_system="trivial")
        marker = make_package("marker")
        app = mk_package(name="app", build_system="trivial", inputs=[zlib, marker])
        log = []
        results = realize_closure(app, log_executor, make_state=lambda pkg: log)
        assert log == [("zlib", "build"), ("app", "build")]
        assert set(results) == {zlib, app}

    def test_closure_stops_at_first_failure(self):
        def executor(pkg, phase, state):
            if pkg.name == "zlib":
                raise RuntimeError("boom")
            state.append(pkg.name)

        zlib = mk_package(name="zlib", build_system="trivial")
        app = mk_package(name="app", build_system="trivial", inputs=[zlib])
        log = []
        with pytest.raises(PhaseExecutionError):
            realize_closure(app, executor, make_state=lambda pkg: log)
        assert log == []
