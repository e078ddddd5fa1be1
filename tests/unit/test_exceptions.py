from pathlib import Path

import pytest

from boxinit.exceptions import (
    BoxinitError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    ServiceLaunchError,
    ServiceSpecError,
    ServiceStartupError,
    ServiceStopError,
    ShutdownTimeout,
    SupervisorError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_type",
        [ConfigLoadError, ConfigValidationError],
    )
    def test_config_errors(self, error_type: type[Exception]) -> None:
        assert issubclass(error_type, ConfigError)
        assert issubclass(error_type, BoxinitError)

    @pytest.mark.parametrize(
        "error_type",
        [
            ServiceSpecError,
            ServiceLaunchError,
            ServiceStartupError,
            ServiceStopError,
            ShutdownTimeout,
        ],
    )
    def test_supervisor_errors(self, error_type: type[Exception]) -> None:
        assert issubclass(error_type, SupervisorError)
        assert issubclass(error_type, BoxinitError)


class TestContext:
    def test_config_load_error_location(self) -> None:
        error = ConfigLoadError("bad", path=Path("/etc/boxinit.toml"), line=3, column=7)

        assert str(error) == "bad"
        assert error.path == Path("/etc/boxinit.toml")
        assert (error.line, error.column) == (3, 7)

    def test_config_validation_error_fields(self) -> None:
        error = ConfigValidationError(
            "invalid", key="logging.level", value="loud", expected="debug, info"
        )

        assert error.key == "logging.level"
        assert error.value == "loud"
        assert error.expected == "debug, info"
        assert error.source is None

    def test_launch_error_keeps_cause(self) -> None:
        cause = FileNotFoundError("no such file")
        error = ServiceLaunchError("failed", service_name="sshd", cause=cause)

        assert error.service_name == "sshd"
        assert error.cause is cause

    def test_startup_error_keeps_reason(self) -> None:
        error = ServiceStartupError("failed", service_name="haveged", reason="timeout")

        assert error.reason == "timeout"

    def test_shutdown_timeout_keeps_grace_period(self) -> None:
        error = ShutdownTimeout("killed", service_name="udevd", grace_period=5.0)

        assert error.grace_period == 5.0
