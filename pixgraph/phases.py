"""Ordered, named build phases.

Like stdenv's genericBuild: a build is a fixed sequence of named phases
(unpack, configure, build, check, install, ...) run one after another.
Derived packages edit the sequence instead of restating it:

    base = PhaseList.of(("unpack", unpack), ("configure", configure),
                        ("build", build), ("check", check),
                        ("install", install))
    mine = base.delete("check").add_after("build", "check2", my_check)

Every edit returns a new PhaseList and leaves the receiver untouched, so
one list can serve as the base of any number of derived packages.

A phase's ``action`` is opaque to the list. ``apply()`` either calls it
with the working state, or hands it to an executor that knows what the
action means (see pixgraph.build_systems.Step).
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Iterator

from pixgraph.errors import (
    BuildCancelled,
    DuplicatePhaseName,
    InvalidPhaseName,
    PhaseExecutionError,
    PhaseNotFound,
)

logger = logging.getLogger(__name__)

Hook = Callable[[Any], Any]
Executor = Callable[["Phase", Any], Any]


@dataclass(frozen=True)
class Phase:
    """A named step plus the pre/post hooks that run around it."""

    name: str
    action: Any
    pre: tuple[Hook, ...] = ()
    post: tuple[Hook, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidPhaseName(self.name)


def _call_action(phase: Phase, state: Any) -> Any:
    return phase.action(state)


def _is_set(cancel: Any) -> bool:
    return cancel is not None and cancel.is_set()


@dataclass(frozen=True)
class PhaseList:
    """An ordered sequence of uniquely named phases."""

    phases: tuple[Phase, ...] = ()

    def __post_init__(self) -> None:
        phases = tuple(self.phases)
        seen: set[str] = set()
        for phase in phases:
            if not isinstance(phase, Phase):
                raise TypeError(f"expected Phase, got {type(phase).__name__}")
            if phase.name in seen:
                raise DuplicatePhaseName(phase.name)
            seen.add(phase.name)
        object.__setattr__(self, "phases", phases)

    @classmethod
    def of(cls, *items: Phase | tuple[str, Any]) -> PhaseList:
        """Build a list from Phase values or ``(name, action)`` pairs."""
        return cls(tuple(p if isinstance(p, Phase) else Phase(*p) for p in items))

    # --- read access ---

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.phases]

    def __len__(self) -> int:
        return len(self.phases)

    def __iter__(self) -> Iterator[Phase]:
        return iter(self.phases)

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self.phases)

    def index(self, name: str) -> int:
        for i, phase in enumerate(self.phases):
            if phase.name == name:
                return i
        raise PhaseNotFound(name)

    def __getitem__(self, name: str) -> Phase:
        return self.phases[self.index(name)]

    # --- edits ---

    def _insert(self, pos: int, name: str, action: Any) -> PhaseList:
        if name in self:
            raise DuplicatePhaseName(name)
        phases = list(self.phases)
        phases.insert(pos, Phase(name, action))
        return PhaseList(tuple(phases))

    def add_before(self, anchor: str, name: str, action: Any) -> PhaseList:
        return self._insert(self.index(anchor), name, action)

    def add_after(self, anchor: str, name: str, action: Any) -> PhaseList:
        return self._insert(self.index(anchor) + 1, name, action)

    def append(self, name: str, action: Any) -> PhaseList:
        return self._insert(len(self.phases), name, action)

    def replace(self, name: str, action: Any) -> PhaseList:
        """Swap the action of ``name`` in place. Its hooks are kept."""
        i = self.index(name)
        phases = list(self.phases)
        phases[i] = replace(phases[i], action=action)
        return PhaseList(tuple(phases))

    def delete(self, name: str) -> PhaseList:
        i = self.index(name)
        return PhaseList(self.phases[:i] + self.phases[i + 1:])

    def hook(self, name: str, pre: Hook | None = None, post: Hook | None = None) -> PhaseList:
        """Add a pre and/or post hook to ``name``, after any it already has.

        Like preConfigure/postInstall: hooks take the working state and run
        immediately before/after the phase's action.
        """
        i = self.index(name)
        phase = self.phases[i]
        phases = list(self.phases)
        phases[i] = replace(
            phase,
            pre=phase.pre + ((pre,) if pre is not None else ()),
            post=phase.post + ((post,) if post is not None else ()),
        )
        return PhaseList(tuple(phases))

    # --- execution ---

    def apply(
        self,
        initial_state: Any = None,
        *,
        executor: Executor | None = None,
        skip: Iterable[str] = (),
        cancel: Any = None,
        acquire: Callable[[Any], contextlib.AbstractContextManager] | None = None,
    ) -> Any:
        """Run the phases in order and return the final working state.

        Args:
            initial_state: Working state handed to the first phase.
            executor: ``executor(phase, state)`` runs a phase's action. When
                omitted, the action itself is called as ``action(state)``.
            skip: Phase names not to run. Unknown names raise PhaseNotFound
                before anything runs.
            cancel: Object with ``is_set()`` (e.g. threading.Event), checked
                before every phase and hook.
            acquire: Context-manager factory; ``acquire(initial_state)`` yields
                the working state and is exited on every path out of apply.

        A step returning something other than None replaces the working
        state for the steps after it.

        Raises:
            PhaseExecutionError: a phase or hook raised. Nothing after it runs.
            BuildCancelled: ``cancel`` was set. Nothing after it runs.
        """
        skip = frozenset(skip)
        for name in sorted(skip):
            if name not in self:
                raise PhaseNotFound(name)

        run = executor if executor is not None else _call_action
        completed: list[str] = []
        attempted: str | None = None

        scope = acquire(initial_state) if acquire is not None else contextlib.nullcontext(initial_state)
        with scope as state:
            for phase in self.phases:
                if phase.name in skip:
                    logger.debug("skipping phase %s", phase.name)
                    continue
                if _is_set(cancel):
                    logger.warning("build cancelled (last phase: %s)", attempted)
                    raise BuildCancelled(attempted, tuple(completed))
                attempted = phase.name
                logger.info("running phase %s", phase.name)
                for i, step in enumerate((*phase.pre, None, *phase.post)):
                    if i and _is_set(cancel):
                        logger.warning("build cancelled during phase %s", attempted)
                        raise BuildCancelled(attempted, tuple(completed))
                    try:
                        result = run(phase, state) if step is None else step(state)
                    except BuildCancelled:
                        raise
                    except Exception as exc:
                        logger.error("phase %s failed: %s", phase.name, exc)
                        raise PhaseExecutionError(phase.name, exc, tuple(completed)) from exc
                    if result is not None:
                        state = result
                completed.append(phase.name)
        return state
