"""Tests for the configuration context."""

import logging

from pixgraph import config
from pixgraph.config import DEFAULT_SYSTEM, Config, configure_logging


def test_defaults():
    cfg = Config()
    assert cfg.system == DEFAULT_SYSTEM
    assert cfg.do_check is True
    assert cfg.strict_deps is False


def test_from_env():
    cfg = Config.from_env({
        "PIXGRAPH_SYSTEM": "aarch64-linux",
        "PIXGRAPH_DO_CHECK": "no",
        "PIXGRAPH_STRICT_DEPS": "Yes",
    })
    assert cfg == Config(system="aarch64-linux", do_check=False, strict_deps=True)


def test_from_env_blank_values_use_defaults():
    cfg = Config.from_env({"PIXGRAPH_SYSTEM": "  ", "PIXGRAPH_DO_CHECK": ""})
    assert cfg == Config()


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("PIXGRAPH_SYSTEM", "riscv64-linux")
    assert Config.from_env().system == "riscv64-linux"


def test_derive():
    cfg = Config()
    cross = cfg.derive(system="aarch64-linux")
    assert cross.system == "aarch64-linux"
    assert cfg.system == DEFAULT_SYSTEM


def test_configure_logging_once(monkeypatch):
    logger = logging.getLogger("pixgraph")
    monkeypatch.setattr(config, "_CONFIGURED", False)
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "level", logging.NOTSET)
    configure_logging(2)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    configure_logging(1)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_configure_logging_silent_by_default(monkeypatch):
    logger = logging.getLogger("pixgraph")
    monkeypatch.setattr(config, "_CONFIGURED", False)
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.delenv("PIXGRAPH_LOG_LEVEL", raising=False)
    configure_logging()
    assert logger.handlers == []
