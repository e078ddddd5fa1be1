"""boxinit exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class BoxinitError(Exception):
    """Base exception for boxinit errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(BoxinitError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class SupervisorError(BoxinitError):
    """Base exception for supervisor errors."""


class ServiceSpecError(SupervisorError, ValueError):
    """Raised when a sequence of service specs is not runnable.

    Raised at supervisor construction, before any process is launched.

    Attributes:
        service_name: The offending service, if the problem is local to one.
    """

    def __init__(self, message: str, *, service_name: str | None = None) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The offending service, if any.
        """
        super().__init__(message)
        self.service_name: str | None = service_name


class ServiceLaunchError(SupervisorError):
    """Raised when the OS refuses to create a service process.

    Attributes:
        service_name: The name of the service that could not be launched.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The name of the service that could not be launched.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.service_name: str | None = service_name
        self.cause: Exception | None = cause


class ServiceStartupError(SupervisorError):
    """Raised when a required auxiliary service never becomes ready.

    Attributes:
        service_name: The name of the service that failed readiness.
        reason: Why the readiness check did not pass.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The name of the service that failed readiness.
            reason: Why the readiness check did not pass.
        """
        super().__init__(message)
        self.service_name: str | None = service_name
        self.reason: str | None = reason


class ServiceStopError(SupervisorError):
    """Raised when a service fails to stop.

    Attributes:
        service_name: The name of the service that failed to stop.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The name of the service that failed to stop.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.service_name: str | None = service_name
        self.cause: Exception | None = cause


class ShutdownTimeout(SupervisorError):  # noqa: N818
    """Reported when a service ignored SIGTERM and had to be killed.

    Never raised out of the supervisor; it is logged and does not change
    the exit code.

    Attributes:
        service_name: The name of the service that was force-killed.
        grace_period: Seconds the service was given to exit after SIGTERM.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        grace_period: float | None = None,
    ) -> None:
        """Initialize with error message and shutdown context."""
        super().__init__(message)
        self.service_name: str | None = service_name
        self.grace_period: float | None = grace_period
