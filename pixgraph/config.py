"""Explicit configuration context.

There is no ambient "current system": a Config value is passed to the
calls that need it (mk_package, GraphRewriter), and a variant config is
made with derive().

    cfg = Config.from_env()
    cross = cfg.derive(system="aarch64-linux")
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

DEFAULT_SYSTEM = "x86_64-linux"

_TRUTHY = {"1", "true", "yes", "on"}
_CONFIGURED = False


def _truthy(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Config:
    system: str = DEFAULT_SYSTEM
    do_check: bool = True
    strict_deps: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Read PIXGRAPH_SYSTEM, PIXGRAPH_DO_CHECK and PIXGRAPH_STRICT_DEPS."""
        env = os.environ if environ is None else environ
        system = env.get("PIXGRAPH_SYSTEM", "").strip() or DEFAULT_SYSTEM
        return cls(
            system=system,
            do_check=_truthy(env.get("PIXGRAPH_DO_CHECK"), True),
            strict_deps=_truthy(env.get("PIXGRAPH_STRICT_DEPS"), False),
        )

    def derive(self, **changes) -> Config:
        return replace(self, **changes)


def configure_logging(level: int | None = None) -> None:
    """Attach a stderr handler to the ``pixgraph`` logger, once.

    ``level`` defaults to PIXGRAPH_LOG_LEVEL: 0 (or unset) leaves logging
    silent, 1 is INFO, 2 and above is DEBUG.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    if level is None:
        try:
            level = int(os.environ.get("PIXGRAPH_LOG_LEVEL", "0"))
        except ValueError:
            level = 0
    _CONFIGURED = True
    if level <= 0:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("pixgraph")
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if level >= 2 else logging.INFO)
