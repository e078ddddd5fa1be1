"""Unit tests for logging utilities."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from boxinit.utils import create_supervisor_logger
from boxinit.utils._logging import _log_level_from_string

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


@pytest.fixture(autouse=True)
def no_debug_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BOXINIT_DEBUG", raising=False)


class TestLogLevelFromString:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
            ("nonsense", logging.INFO),
        ],
    )
    def test_maps_names(self, level: str, expected: int) -> None:
        assert _log_level_from_string(level) == expected

    def test_debug_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BOXINIT_DEBUG", "1")

        assert _log_level_from_string("error") == logging.DEBUG
        assert _log_level_from_string("error", respect_env=False) == logging.ERROR


class TestCreateSupervisorLogger:
    def test_text_format(self) -> None:
        stream = io.StringIO()
        logger = create_supervisor_logger(stream=stream)

        logger.info("launched", service="sshd", pid=42)

        line = stream.getvalue()
        assert "launched" in line
        assert "service=sshd" in line
        assert "pid=42" in line

    def test_json_format(self) -> None:
        stream = io.StringIO()
        logger = create_supervisor_logger(log_format="json", stream=stream)

        logger.warning("not ready", service="udevd")

        record = json.loads(stream.getvalue())
        assert record["event"] == "not ready"
        assert record["service"] == "udevd"
        assert record["level"] == "warning"
        assert "timestamp" in record

    def test_filters_below_level(self) -> None:
        stream = io.StringIO()
        logger = create_supervisor_logger(level="warning", stream=stream)

        logger.info("hidden")
        logger.error("shown")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown" in output

    def test_debug_env_enables_debug(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BOXINIT_DEBUG", "1")
        stream = io.StringIO()
        logger = create_supervisor_logger(level="error", stream=stream)

        logger.debug("verbose")

        assert "verbose" in stream.getvalue()

    def test_bound_context_is_rendered(self) -> None:
        stream = io.StringIO()
        logger = create_supervisor_logger(log_format="json", stream=stream)

        logger.bind(service="haveged").info("ready")

        assert json.loads(stream.getvalue())["service"] == "haveged"

    def test_appends_to_log_file(self, fs: FakeFilesystem) -> None:
        log_path = Path("/log/boxinit.log")
        fs.create_file(log_path, contents="previous\n")
        stream = io.StringIO()
        logger = create_supervisor_logger(log_file=log_path, stream=stream)

        logger.info("exiting", exit_code=0)

        content = log_path.read_text()
        assert content.startswith("previous\n")
        assert "exiting" in content
        assert "exiting" in stream.getvalue()

    def test_creates_log_directory(self, fs: FakeFilesystem) -> None:
        stream = io.StringIO()
        logger = create_supervisor_logger(log_file="/var/log/boxinit/run.log", stream=stream)

        logger.info("starting")

        assert Path("/var/log/boxinit/run.log").exists()

    def test_empty_log_file_disables_file_logging(self, fs: FakeFilesystem) -> None:
        stream = io.StringIO()
        logger = create_supervisor_logger(log_file="", stream=stream)

        logger.info("starting")

        assert "starting" in stream.getvalue()

    def test_loggers_do_not_share_handlers(self) -> None:
        first = io.StringIO()
        second = io.StringIO()
        logger_a = create_supervisor_logger(stream=first)
        _ = create_supervisor_logger(stream=second)

        logger_a.info("only first")

        assert "only first" in first.getvalue()
        assert second.getvalue() == ""
