"""Exception hierarchy for pixgraph.

Every failure mode is its own class so callers can tell them apart
without parsing messages:

    PixGraphError
    ├── ConfigurationError       raised while editing phases/arguments
    │   ├── DuplicatePhaseName
    │   ├── InvalidPhaseName
    │   ├── PhaseNotFound
    │   ├── MissingKey
    │   └── UnknownBuildSystem
    ├── GraphError               raised while constructing/rewriting graphs
    │   ├── DanglingEdge
    │   └── CycleDetected
    ├── PhaseExecutionError      raised only from PhaseList.apply
    │   └── BuildCancelled
    └── RewriteTypeMismatch      raised by GraphRewriter
"""

from __future__ import annotations

from typing import Any


class PixGraphError(Exception):
    pass


class ConfigurationError(PixGraphError):
    pass


class DuplicatePhaseName(ConfigurationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"phase {name!r} already exists")


class InvalidPhaseName(ConfigurationError):
    def __init__(self, name: Any):
        self.name = name
        super().__init__(f"phase name must be a non-empty string, got {name!r}")


class PhaseNotFound(ConfigurationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no phase named {name!r}")


class MissingKey(ConfigurationError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"no value for {key!r} and no default given")


class UnknownBuildSystem(ConfigurationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown build system {name!r}")


class GraphError(PixGraphError):
    pass


class DanglingEdge(GraphError):
    """An edge points at something that is not a constructed Package."""

    def __init__(self, package: str, target: Any):
        self.package = package
        self.target = target
        super().__init__(
            f"{package}: edge target {target!r} is not a constructed package"
        )


class CycleDetected(GraphError):
    """A walk reached a node that is still being visited.

    ``path`` lists the labels from the first occurrence of the repeated
    node to its second occurrence.
    """

    def __init__(self, path: list[str]):
        self.path = list(path)
        super().__init__("dependency cycle: " + " -> ".join(self.path))


class PhaseExecutionError(PixGraphError):
    """A phase (or one of its hooks) raised while the pipeline was running."""

    def __init__(self, phase_name: str | None, cause: BaseException | None,
                 completed: tuple[str, ...] = ()):
        self.phase_name = phase_name
        self.cause = cause
        self.completed = tuple(completed)
        super().__init__(self._message())

    def _message(self) -> str:
        return f"phase {self.phase_name!r} failed: {self.cause!r}"


class BuildCancelled(PhaseExecutionError):
    """Cancellation was requested; ``phase_name`` is the last phase attempted."""

    def __init__(self, phase_name: str | None, completed: tuple[str, ...] = ()):
        super().__init__(phase_name, None, completed)

    def _message(self) -> str:
        if self.phase_name is None:
            return "build cancelled before any phase ran"
        return f"build cancelled after phase {self.phase_name!r}"


class RewriteTypeMismatch(PixGraphError):
    def __init__(self, original: Any, replacement: Any, reason: str):
        self.original = original
        self.replacement = replacement
        self.reason = reason
        super().__init__(f"cannot substitute {replacement!r} for {original!r}: {reason}")
