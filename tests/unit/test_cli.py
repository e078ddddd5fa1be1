from __future__ import annotations

import io
import json
import sys
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from boxinit.cli import create_app
from boxinit.cli._check import describe_readiness
from boxinit.supervisor import ReadinessCheck

if TYPE_CHECKING:
    from pathlib import Path

    from cyclopts import App
    from pytest_mock import MockerFixture


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BOXINIT_CONFIG", "BOXINIT_DEBUG", "BOXINIT_LOGGING__LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def err() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def app(out: io.StringIO, err: io.StringIO) -> App:
    return create_app(
        console=Console(file=out, width=200, color_system=None),
        error_console=Console(file=err, width=200, color_system=None),
        exit_on_error=False,
    )


def write_config(path: Path, foreground_code: str) -> Path:
    command = json.dumps([sys.executable, "-c", foreground_code])
    path.write_text(
        "[supervisor]\n"
        'reap_orphans = "never"\n'
        "\n"
        "[[services]]\n"
        'name = "main"\n'
        f"command = {command}\n"
        "foreground = true\n"
    )
    return path


class TestDescribeReadiness:
    def test_delay(self) -> None:
        assert describe_readiness(ReadinessCheck.fixed_delay(1.5)) == "delay 1.5s"

    def test_file(self, tmp_path: Path) -> None:
        check = ReadinessCheck.file_exists(tmp_path / "ready", timeout=30.0)

        assert describe_readiness(check) == f"file {tmp_path / 'ready'} (timeout 30s)"

    def test_alive(self) -> None:
        assert describe_readiness(ReadinessCheck.process_alive()) == "alive (timeout 10s)"
        assert (
            describe_readiness(ReadinessCheck.process_alive(0.5, timeout=5.0))
            == "alive after 0.5s (timeout 5s)"
        )


class TestCheckCommand:
    def test_prints_plan_for_valid_config(
        self, app: App, out: io.StringIO, tmp_path: Path
    ) -> None:
        config = write_config(tmp_path / "boxinit.toml", "pass")

        with pytest.raises(SystemExit) as exc_info:
            app(["check", "--config", str(config)])

        assert exc_info.value.code == 0
        output = out.getvalue()
        assert str(config) in output
        assert "Sources: file, default" in output
        assert "main" in output
        assert "foreground" in output

    def test_lists_environment_source(
        self,
        app: App,
        out: io.StringIO,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("BOXINIT_LOGGING__LEVEL", "debug")
        config = write_config(tmp_path / "boxinit.toml", "pass")

        with pytest.raises(SystemExit):
            app(["check", "--config", str(config)])

        assert "Sources: env, file, default" in out.getvalue()

    def test_invalid_config_exits_with_two(
        self, app: App, err: io.StringIO, tmp_path: Path
    ) -> None:
        config = tmp_path / "boxinit.toml"
        config.write_text('[logging]\nlevel = "loud"\n')

        with pytest.raises(SystemExit) as exc_info:
            app(["check", "--config", str(config)])

        assert exc_info.value.code == 2
        assert "logging.level" in err.getvalue()

    def test_missing_config_exits_with_two(
        self, app: App, err: io.StringIO, tmp_path: Path
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            app(["check", "--config", str(tmp_path / "missing.toml")])

        assert exc_info.value.code == 2
        assert "Config file not found" in err.getvalue()

    def test_invalid_service_order_exits_with_two(
        self, app: App, err: io.StringIO, tmp_path: Path
    ) -> None:
        config = tmp_path / "boxinit.toml"
        config.write_text(
            '[[services]]\nname = "a"\ncommand = ["/bin/a"]\n'
            '[[services]]\nname = "b"\ncommand = ["/bin/b"]\n'
        )

        with pytest.raises(SystemExit) as exc_info:
            app(["check", "--config", str(config)])

        assert exc_info.value.code == 2
        assert "foreground" in err.getvalue()

    def test_strict_rejects_unknown_keys(
        self, app: App, err: io.StringIO, tmp_path: Path
    ) -> None:
        config = tmp_path / "boxinit.toml"
        config.write_text("[supervisor]\nrestart = true\n")

        with pytest.raises(SystemExit) as exc_info:
            app(["check", "--strict", "--config", str(config)])

        assert exc_info.value.code == 2
        assert "supervisor.restart" in err.getvalue()


class TestRunCommand:
    def test_exits_with_foreground_exit_code(
        self, app: App, out: io.StringIO, tmp_path: Path
    ) -> None:
        config = write_config(tmp_path / "boxinit.toml", "print('hi'); raise SystemExit(3)")

        with pytest.raises(SystemExit) as exc_info:
            app(["run", "--config", str(config), "--log-level", "error"])

        assert exc_info.value.code == 3
        assert "[main:" in out.getvalue()
        assert "hi" in out.getvalue()

    def test_run_is_the_default_command(self, app: App, tmp_path: Path) -> None:
        config = write_config(tmp_path / "boxinit.toml", "raise SystemExit(4)")

        with pytest.raises(SystemExit) as exc_info:
            app(["--config", str(config), "--log-level", "error"])

        assert exc_info.value.code == 4

    def test_invalid_config_launches_nothing(
        self, app: App, err: io.StringIO, tmp_path: Path, mocker: MockerFixture
    ) -> None:
        run = mocker.patch("boxinit.cli._run.anyio.run")
        config = tmp_path / "boxinit.toml"
        config.write_text('[supervisor]\nreap_orphans = "sometimes"\n')

        with pytest.raises(SystemExit) as exc_info:
            app(["run", "--config", str(config)])

        assert exc_info.value.code == 2
        run.assert_not_called()

    def test_logging_options_override_config(
        self, app: App, tmp_path: Path, mocker: MockerFixture
    ) -> None:
        run = mocker.patch("boxinit.cli._run.anyio.run", return_value=0)
        config = write_config(tmp_path / "boxinit.toml", "pass")
        log_file = tmp_path / "boxinit.log"

        with pytest.raises(SystemExit) as exc_info:
            app(
                [
                    "run",
                    "--config",
                    str(config),
                    "--log-level",
                    "debug",
                    "--log-format",
                    "json",
                    "--log-file",
                    str(log_file),
                ]
            )

        assert exc_info.value.code == 0
        loaded = run.call_args.args[1]
        assert loaded.logging.level == "debug"
        assert loaded.logging.format == "json"
        assert loaded.logging.file == str(log_file)

    def test_writes_log_file(self, app: App, tmp_path: Path) -> None:
        config = write_config(tmp_path / "boxinit.toml", "pass")
        log_file = tmp_path / "logs" / "boxinit.log"

        with pytest.raises(SystemExit):
            app(["run", "--config", str(config), "--log-file", str(log_file)])

        assert "exiting" in log_file.read_text()
