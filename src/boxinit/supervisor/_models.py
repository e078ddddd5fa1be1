"""Data models for the supervisor system.

This module defines the core data types for service management:
- ServiceState: Lifecycle states for managed services
- ServiceEventType: Types of lifecycle events
- ServiceEvent: Immutable event records
- ReadinessKind / ReadinessCheck: How a started service proves it is usable
- ServiceSpec: Immutable service description
- ServiceStatus: Mutable runtime status
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Self

DEFAULT_READINESS_TIMEOUT: float = 10.0
"""Seconds a readiness check may take before it counts as failed."""

DEFAULT_SHUTDOWN_TIMEOUT: float = 5.0
"""Seconds a service gets between SIGTERM and SIGKILL."""


class ServiceState(StrEnum):
    """Service lifecycle states.

    - PENDING: Not launched yet
    - STARTING: Process spawned, readiness check in progress
    - READY: Readiness check passed
    - RUNNING: Foreground service launched; the process is serving
    - EXITED: Process terminated (see ServiceStatus.exit_code)
    - FAILED: Launch refused or readiness never passed (see
      ServiceStatus.failure_reason)
    """

    PENDING = "pending"
    STARTING = "starting"
    READY = "ready"
    RUNNING = "running"
    EXITED = "exited"
    FAILED = "failed"


class ServiceEventType(StrEnum):
    """Types of service lifecycle events.

    - LAUNCHED: Service process has been spawned
    - READY: Readiness check passed
    - NOT_READY: Readiness check did not pass
    - SIGNALED: A signal was forwarded to the service
    - EXITED: Service process terminated
    - KILLED: Service ignored SIGTERM and was sent SIGKILL
    """

    LAUNCHED = "launched"
    READY = "ready"
    NOT_READY = "not_ready"
    SIGNALED = "signaled"
    EXITED = "exited"
    KILLED = "killed"


class ReadinessKind(StrEnum):
    """Supported readiness probes."""

    DELAY = "delay"
    FILE = "file"
    ALIVE = "alive"


@dataclass(frozen=True, slots=True)
class ServiceEvent:
    """Immutable service lifecycle event.

    Attributes:
        service_name: Name of the service that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        exit_code: Exit code if process terminated.
        message: Optional human-readable message.
    """

    service_name: str
    event_type: ServiceEventType
    timestamp: str
    pid: int | None = None
    exit_code: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class ReadinessCheck:
    """How to decide that a freshly launched service is usable.

    - DELAY: wait ``delay`` seconds; ready unless the process failed.
    - FILE: poll for ``path`` every ``interval`` seconds.
    - ALIVE: ready if the process is still running after ``delay`` seconds.

    A process that exits with code 0 while a DELAY or FILE check is pending
    is treated as a daemon that forked into the background, not as a
    failure. Any non-zero exit fails the check immediately.

    Attributes:
        kind: Which probe to run.
        timeout: Upper bound in seconds for the whole check.
        delay: Fixed delay (DELAY) or settle time (ALIVE) in seconds.
        path: File whose existence signals readiness (FILE).
        interval: Poll period in seconds (FILE).
    """

    kind: ReadinessKind = ReadinessKind.ALIVE
    timeout: float = DEFAULT_READINESS_TIMEOUT
    delay: float = 0.0
    path: Path | None = None
    interval: float = 0.1

    @classmethod
    def fixed_delay(cls, seconds: float) -> Self:
        """Ready after a fixed delay."""
        return cls(kind=ReadinessKind.DELAY, delay=seconds, timeout=seconds + 1.0)

    @classmethod
    def file_exists(
        cls,
        path: Path,
        *,
        timeout: float = DEFAULT_READINESS_TIMEOUT,
        interval: float = 0.1,
    ) -> Self:
        """Ready once ``path`` exists."""
        return cls(kind=ReadinessKind.FILE, path=path, timeout=timeout, interval=interval)

    @classmethod
    def process_alive(
        cls,
        settle: float = 0.0,
        *,
        timeout: float = DEFAULT_READINESS_TIMEOUT,
    ) -> Self:
        """Ready if the process survives ``settle`` seconds."""
        return cls(kind=ReadinessKind.ALIVE, delay=settle, timeout=timeout)


@dataclass(frozen=True, slots=True)
class ServiceSpec:
    """Immutable description of a managed service.

    Attributes:
        name: Unique identifier for the service.
        command: Executable path and arguments.
        readiness: Check applied after launch (ignored for the foreground
            service).
        required: Abort startup if this service does not become ready.
        foreground: This service's exit ends the supervisor. Exactly one
            spec in a run must set it, and it must be the last one.
        cwd: Working directory for the process.
        env: Additional environment variables.
        shutdown_timeout: Seconds between SIGTERM and SIGKILL on teardown.
        capture_output: Stream stdout/stderr through the output sink instead
            of inheriting the supervisor's streams.
    """

    name: str
    command: tuple[str, ...]
    readiness: ReadinessCheck = field(default_factory=ReadinessCheck)
    required: bool = True
    foreground: bool = False
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    capture_output: bool = True


@dataclass(slots=True)
class ServiceStatus:
    """Mutable runtime status of a service.

    Attributes:
        state: Current service state.
        pid: Process ID of the running service, if any.
        exit_code: Exit code from process termination (negative when the
            process was killed by a signal).
        failure_reason: Why the service ended up FAILED.
        started_at: ISO 8601 timestamp of launch.
        stopped_at: ISO 8601 timestamp of termination.
    """

    state: ServiceState = ServiceState.PENDING
    pid: int | None = None
    exit_code: int | None = None
    failure_reason: str | None = None
    started_at: str | None = None
    stopped_at: str | None = None
