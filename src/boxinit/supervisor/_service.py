"""Service manager for subprocess lifecycle management.

This module provides the ServiceManager class that handles launching,
probing, signaling and stopping a single subprocess service.
"""

from __future__ import annotations

import os
import signal
import subprocess
from typing import TYPE_CHECKING, Literal, final

import anyio
import anyio.abc
import structlog
from anyio.streams.text import TextReceiveStream

from boxinit.exceptions import ServiceLaunchError, ServiceStopError, ShutdownTimeout

from ._models import (
    ServiceEvent,
    ServiceEventType,
    ServiceSpec,
    ServiceState,
    ServiceStatus,
)
from ._readiness import wait_for_exit, wait_ready

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._protocol import OutputSink


def _get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


def describe_returncode(returncode: int) -> str:
    """Return a human-readable description of a process return code."""
    if returncode == 0:
        return "Exited normally"
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"Killed by signal {name}"
    return f"Exited with code {returncode}"


@final
class ServiceManager:
    """Manages the lifecycle of a subprocess service.

    Launches a single subprocess, runs its readiness check, relays signals
    to it and stops it. Streams stdout/stderr to an OutputSink when the
    spec captures output, and tracks service state.

    Each manager launches its process at most once.

    Attributes:
        spec: Immutable description of this service.
        status: Mutable runtime status tracking.
    """

    __slots__ = (
        "_logger",
        "_output_sink",
        "_process",
        "spec",
        "status",
    )

    def __init__(
        self,
        spec: ServiceSpec,
        output_sink: OutputSink,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the service manager.

        Args:
            spec: Description of the service.
            output_sink: Sink for service output and events.
            logger: Structured logger for supervisor diagnostics.
        """
        self.spec = spec
        self.status = ServiceStatus()
        self._output_sink = output_sink
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else structlog.get_logger("boxinit")
        ).bind(service=spec.name)
        self._process: anyio.abc.Process | None = None

    @property
    def name(self) -> str:
        """Return the unique name of this service."""
        return self.spec.name

    @property
    def state(self) -> ServiceState:
        """Return the current state of this service."""
        return self.status.state

    @property
    def pid(self) -> int | None:
        """Return the process ID if running, None otherwise."""
        return self.status.pid

    async def emit_event(
        self,
        event_type: ServiceEventType,
        *,
        message: str | None = None,
        exit_code: int | None = None,
        pid: int | None = None,
    ) -> None:
        """Emit a service lifecycle event to the output sink.

        Args:
            event_type: Type of event to emit.
            message: Optional message for the event.
            exit_code: Exit code if process terminated.
            pid: Process ID to report; defaults to the current pid.
        """
        event = ServiceEvent(
            service_name=self.name,
            event_type=event_type,
            timestamp=_get_timestamp(),
            pid=pid if pid is not None else self.status.pid,
            exit_code=exit_code,
            message=message,
        )
        try:  # noqa: SIM105
            await self._output_sink.write_event(self.name, event)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not crash the service
            pass

    async def _stream_output(
        self,
        stream: TextReceiveStream,
        stream_name: Literal["stdout", "stderr"],
        pid: int,
    ) -> None:
        """Stream output from a text stream to the output sink.

        Args:
            stream: The text stream to read from.
            stream_name: Name of the stream ("stdout" or "stderr").
            pid: Process ID reported with each line.
        """
        buffer = ""
        try:
            async for chunk in stream:
                buffer += chunk
                *lines, buffer = buffer.split("\n")
                for raw_line in lines:
                    await self._write_line(pid, stream_name, raw_line.rstrip("\r"))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass
        if buffer:
            await self._write_line(pid, stream_name, buffer.rstrip("\r"))

    async def _write_line(
        self,
        pid: int,
        stream_name: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        try:  # noqa: SIM105
            await self._output_sink.write_line(self.name, pid, stream_name, line)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not crash streaming
            pass

    async def launch(self, task_group: anyio.abc.TaskGroup) -> None:
        """Launch the service subprocess.

        Spawns the subprocess and, when output is captured, starts streaming
        it in ``task_group``. Does not wait for readiness or completion.

        Args:
            task_group: Task group that owns the output streaming tasks.

        Raises:
            ServiceLaunchError: If the OS refuses to create the process, or
                the service was already launched.
        """
        if self.status.state != ServiceState.PENDING:
            msg = f"Service '{self.name}' has already been launched"
            raise ServiceLaunchError(msg, service_name=self.name)

        self.status.state = ServiceState.STARTING
        self.status.started_at = _get_timestamp()

        env: dict[str, str] | None = None
        if self.spec.env:
            env = {**os.environ, **self.spec.env}

        output = subprocess.PIPE if self.spec.capture_output else None

        try:
            self._process = await anyio.open_process(
                self.spec.command,
                cwd=self.spec.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
            )
        except OSError as e:
            self.status.state = ServiceState.FAILED
            self.status.failure_reason = str(e)
            self.status.stopped_at = _get_timestamp()
            self._logger.error("launch failed", error=str(e))
            msg = f"Failed to launch service '{self.name}': {e}"
            raise ServiceLaunchError(msg, service_name=self.name, cause=e) from e

        pid = self._process.pid
        self.status.pid = pid
        self._logger.info("launched", pid=pid, command=" ".join(self.spec.command))
        await self.emit_event(
            ServiceEventType.LAUNCHED,
            message=f"Started with command: {' '.join(self.spec.command)}",
        )

        if self._process.stdout is not None:
            stdout_stream = TextReceiveStream(self._process.stdout, errors="replace")
            task_group.start_soon(self._stream_output, stdout_stream, "stdout", pid)
        if self._process.stderr is not None:
            stderr_stream = TextReceiveStream(self._process.stderr, errors="replace")
            task_group.start_soon(self._stream_output, stderr_stream, "stderr", pid)

    def _readiness_failure_reason(self) -> str:
        """Describe why the readiness check did not pass."""
        process = self._process
        if process is not None and process.returncode is not None:
            return describe_returncode(process.returncode).lower()
        check = self.spec.readiness
        return f"{check.kind.value} readiness check timed out after {check.timeout:g}s"

    async def wait_ready(self) -> bool:
        """Apply the spec's readiness check to the launched process.

        Returns:
            True if the service became READY, False if it ended up FAILED.

        Raises:
            ServiceLaunchError: If the service has not been launched.
        """
        if self._process is None:
            msg = f"Service '{self.name}' must be launched before probing"
            raise ServiceLaunchError(msg, service_name=self.name)

        ready = await wait_ready(self.spec.readiness, self._process)
        if ready:
            self.status.state = ServiceState.READY
            self._logger.info("ready", pid=self._process.pid)
            await self.emit_event(ServiceEventType.READY)
            return True

        reason = self._readiness_failure_reason()
        self.status.state = ServiceState.FAILED
        self.status.failure_reason = reason
        self._logger.warning("not ready", reason=reason, required=self.spec.required)
        await self.emit_event(ServiceEventType.NOT_READY, message=reason)
        return False

    def mark_running(self) -> None:
        """Move a READY or STARTING service to RUNNING."""
        if self.status.state in (ServiceState.READY, ServiceState.STARTING):
            self.status.state = ServiceState.RUNNING

    async def _record_exit(self, returncode: int) -> None:
        """Record process termination exactly once."""
        if self.status.exit_code is not None:
            return

        pid = self.status.pid
        self.status.exit_code = returncode
        self.status.stopped_at = _get_timestamp()
        self.status.pid = None
        if self.status.state != ServiceState.FAILED:
            self.status.state = ServiceState.EXITED

        message = describe_returncode(returncode)
        self._logger.info("exited", pid=pid, exit_code=returncode)
        await self.emit_event(
            ServiceEventType.EXITED,
            exit_code=returncode,
            message=message,
            pid=pid,
        )

    async def wait(self) -> int:
        """Wait for the launched process to terminate.

        Returns:
            The process return code (negative if killed by a signal).

        Raises:
            ServiceLaunchError: If the service has not been launched.
        """
        if self._process is None:
            msg = f"Service '{self.name}' has not been launched"
            raise ServiceLaunchError(msg, service_name=self.name)

        returncode = await wait_for_exit(self._process)
        await self._record_exit(returncode)
        return returncode

    async def send_signal(self, signum: int) -> bool:
        """Forward a signal to the running process.

        Args:
            signum: The signal to deliver.

        Returns:
            True if the signal was delivered, False if the process is gone.
        """
        if not self.is_running() or self._process is None:
            return False

        try:
            self._process.send_signal(signum)
        except ProcessLookupError:
            return False

        name = signal.Signals(signum).name
        self._logger.info("forwarded signal", pid=self._process.pid, signal=name)
        await self.emit_event(ServiceEventType.SIGNALED, message=f"Forwarded {name}")
        return True

    async def stop(self, graceful_timeout: float | None = None) -> int | None:
        """Stop the service gracefully.

        Sends SIGTERM and waits for graceful shutdown. If the process
        doesn't exit within the timeout, sends SIGKILL.

        Args:
            graceful_timeout: Seconds to wait for graceful shutdown.
                Uses the spec's shutdown_timeout if None.

        Returns:
            The process return code, or None if it was never launched.

        Raises:
            ShutdownTimeout: If the process had to be killed. The process
                has exited and its status is recorded when this is raised.
            ServiceStopError: If the service could not be signaled.
        """
        process = self._process
        if process is None:
            return None

        if process.returncode is not None:
            await self._record_exit(process.returncode)
            return process.returncode

        actual_timeout = (
            graceful_timeout
            if graceful_timeout is not None
            else self.spec.shutdown_timeout
        )

        killed = False
        try:
            process.send_signal(signal.SIGTERM)

            with anyio.move_on_after(actual_timeout):
                _ = await wait_for_exit(process)

            if process.returncode is None:
                process.kill()
                killed = True

        except ProcessLookupError:
            # Process already exited
            pass

        except OSError as e:
            msg = f"Failed to stop service '{self.name}': {e}"
            raise ServiceStopError(msg, service_name=self.name, cause=e) from e

        returncode = await wait_for_exit(process)
        if killed:
            await self.emit_event(
                ServiceEventType.KILLED,
                message=f"Did not exit within {actual_timeout:g}s of SIGTERM",
            )
        await self._record_exit(returncode)

        if killed:
            msg = f"Service '{self.name}' ignored SIGTERM and was killed"
            raise ShutdownTimeout(
                msg,
                service_name=self.name,
                grace_period=actual_timeout,
            )
        return returncode

    def is_running(self) -> bool:
        """Check if the service process is alive."""
        return self._process is not None and self._process.returncode is None
