# tests/test_logger.py
import logging
import pytest

from portwarden.utils.logger import Logger


@pytest.fixture
def fresh_logger(monkeypatch):
    """Builds new singletons for the test; the shared logging state is restored afterwards."""
    shared = logging.getLogger("portwarden")
    saved_level, saved_handlers = shared.level, list(shared.handlers)
    monkeypatch.setattr(Logger, "_instance", None)
    monkeypatch.delenv("PORTWARDEN_LOG_FILE", raising=False)

    def build(level=None):
        if level is None:
            monkeypatch.delenv("PORTWARDEN_LOG_LEVEL", raising=False)
        else:
            monkeypatch.setenv("PORTWARDEN_LOG_LEVEL", level)
        Logger._instance = None
        return Logger()

    yield build
    shared.setLevel(saved_level)
    shared.handlers[:] = saved_handlers


def test_default_level_is_warning(fresh_logger):
    assert fresh_logger().logger.level == logging.WARNING


def test_level_from_environment(fresh_logger):
    assert fresh_logger("debug").logger.level == logging.DEBUG
    assert fresh_logger("ERROR").logger.level == logging.ERROR


@pytest.mark.parametrize("level", ["basicConfig", "BASIC_FORMAT", "noisy", ""])
def test_unknown_level_falls_back_to_warning(fresh_logger, level):
    assert fresh_logger(level).logger.level == logging.WARNING


def test_singleton_and_stderr_handler(fresh_logger):
    logger = fresh_logger()
    assert Logger() is logger
    assert logger.logger.propagate is False
    assert len(logger.logger.handlers) == 1
