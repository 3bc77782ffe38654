"""Tests for the loguru configuration helpers."""

from unittest.mock import MagicMock, patch

from loguru import logger

from personagraph import log_config
from personagraph.log_config import get_logger, log_timing


def record(component: str, level: str) -> dict:
    return {"extra": {"name": component}, "level": logger.level(level)}


class TestStderrFilter:
    def test_global_level(self):
        with patch.object(log_config, "_LEVEL", "INFO"), patch.dict(log_config._OVERRIDES, {"merge": ""}):
            assert log_config._stderr_filter(record("merge", "INFO"))
            assert not log_config._stderr_filter(record("merge", "DEBUG"))

    def test_component_override(self):
        overrides = {"merge": "", "batch": "", "db.": "DEBUG"}
        with patch.object(log_config, "_LEVEL", "WARNING"), patch.dict(log_config._OVERRIDES, overrides):
            assert log_config._stderr_filter(record("db.memory", "DEBUG"))
            assert not log_config._stderr_filter(record("search", "INFO"))

    def test_invalid_override_falls_back_to_global(self):
        with patch.object(log_config, "_LEVEL", "INFO"), patch.dict(log_config._OVERRIDES, {"db.": "LOUD"}):
            assert not log_config._stderr_filter(record("db.falkor", "DEBUG"))
            assert log_config._stderr_filter(record("db.falkor", "INFO"))


class TestLogTiming:
    def test_records_elapsed_and_logs(self):
        log = MagicMock()

        with log_timing("batch", log) as timing:
            pass

        assert timing["elapsed_ms"] >= 0
        message = log.debug.call_args.args[0]
        assert message.startswith("batch: ") and message.endswith("ms")

    def test_custom_level(self):
        log = MagicMock()
        with log_timing("slow", log, level="info"):
            pass
        log.info.assert_called_once()


def test_get_logger_binds_component_name():
    messages = []
    sink = logger.add(lambda m: messages.append(m.record["extra"]["name"]), level="INFO")
    try:
        get_logger("reaper").info("hello")
    finally:
        logger.remove(sink)
    assert messages == ["reaper"]
