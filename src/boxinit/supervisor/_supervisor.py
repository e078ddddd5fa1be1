"""Entrypoint supervisor that sequences and supervises container services.

This module provides the Supervisor class: it brings auxiliary services up
one at a time in list order, launches the foreground service, relays
signals to it, and turns its exit status into the container's exit code.
"""

from __future__ import annotations

import os
import signal
from typing import TYPE_CHECKING, Literal, final

import anyio
import anyio.abc
import structlog

from boxinit.exceptions import (
    ServiceLaunchError,
    ServiceStartupError,
    ServiceStopError,
    ShutdownTimeout,
)

from ._exit_codes import (
    EXIT_LAUNCH_FAILURE,
    EXIT_STARTUP_FAILURE,
    exit_code_for_signal,
    exit_code_from_returncode,
)
from ._output import ConcatenatedOutputSink
from ._reaper import OrphanReaper
from ._service import ServiceManager
from ._validation import validate_specs

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.typing import FilteringBoundLogger

    from ._models import ServiceSpec
    from ._protocol import OutputSink

FORWARDED_SIGNALS: tuple[signal.Signals, ...] = (
    signal.SIGTERM,
    signal.SIGINT,
    signal.SIGHUP,
    signal.SIGQUIT,
    signal.SIGUSR1,
    signal.SIGUSR2,
)
"""Signals relayed to the foreground service."""

STOP_SIGNALS: frozenset[signal.Signals] = frozenset(
    {signal.SIGTERM, signal.SIGINT, signal.SIGQUIT}
)
"""Signals that abort startup when received before the foreground launches."""

ReapMode = Literal["auto", "always", "never"]


@final
class Supervisor:
    """Sequences auxiliary services and supervises one foreground service.

    Auxiliary services are launched strictly in list order, each one
    reaching READY (or being skipped, if optional) before the next is
    launched. The foreground service, which must be last, is launched once
    all of them are up; its exit ends the run. Remaining services are then
    stopped in reverse launch order.

    The supervisor never retries a launch.

    Example:
        >>> specs = [
        ...     ServiceSpec(name="haveged", command=("/usr/sbin/haveged", "-F")),
        ...     ServiceSpec(
        ...         name="sshd",
        ...         command=("/usr/sbin/sshd", "-D", "-e"),
        ...         foreground=True,
        ...     ),
        ... ]
        >>> exit_code = await Supervisor(specs).run()
    """

    __slots__ = (
        "_foreground",
        "_handle_signals",
        "_launched",
        "_logger",
        "_orphan_grace",
        "_output_sink",
        "_reap_interval",
        "_reap_mode",
        "_reaper",
        "_received_signal",
        "_services",
        "_startup_scope",
        "_stopping",
    )

    def __init__(  # noqa: PLR0913
        self,
        specs: Sequence[ServiceSpec],
        output_sink: OutputSink | None = None,
        *,
        logger: FilteringBoundLogger | None = None,
        handle_signals: bool = True,
        reap_orphans: ReapMode = "auto",
        reap_interval: float = 1.0,
        orphan_grace: float = 5.0,
    ) -> None:
        """Initialize the supervisor.

        Args:
            specs: Services in startup order; exactly one, the last, must be
                foreground.
            output_sink: Sink for service output. Uses ConcatenatedOutputSink
                if None.
            logger: Structured logger for supervisor diagnostics.
            handle_signals: Install the OS signal relay while running.
            reap_orphans: Reap unmanaged children: "auto" only when running
                as PID 1.
            reap_interval: Seconds between orphan reaping passes.
            orphan_grace: Seconds orphans get between SIGTERM and SIGKILL at
                shutdown.

        Raises:
            ServiceSpecError: If specs violate the ordering constraints.
        """
        validated = validate_specs(specs)

        self._output_sink: OutputSink = output_sink or ConcatenatedOutputSink()
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else structlog.get_logger("boxinit")
        )
        self._services: tuple[ServiceManager, ...] = tuple(
            ServiceManager(spec, self._output_sink, self._logger) for spec in validated
        )
        self._foreground: ServiceManager = self._services[-1]
        self._launched: list[ServiceManager] = []
        self._handle_signals = handle_signals
        self._reap_mode: ReapMode = reap_orphans
        self._reap_interval = reap_interval
        self._orphan_grace = orphan_grace
        self._reaper = OrphanReaper(self._managed_pids, self._logger)
        self._received_signal: int | None = None
        self._startup_scope: anyio.CancelScope | None = None
        self._stopping = False

    @property
    def services(self) -> tuple[ServiceManager, ...]:
        """Return the managed services in startup order."""
        return self._services

    @property
    def foreground(self) -> ServiceManager:
        """Return the foreground service."""
        return self._foreground

    @property
    def auxiliary(self) -> tuple[ServiceManager, ...]:
        """Return the auxiliary services in startup order."""
        return self._services[:-1]

    @property
    def launch_order(self) -> tuple[str, ...]:
        """Return the names of launched services in launch order."""
        return tuple(service.name for service in self._launched)

    def _managed_pids(self) -> set[int]:
        return {s.pid for s in self._services if s.pid is not None}

    def _reaping_enabled(self) -> bool:
        if self._reap_mode == "always":
            return True
        if self._reap_mode == "never":
            return False
        return os.getpid() == 1

    async def deliver_signal(self, signum: int) -> None:
        """Handle a signal received by the supervisor.

        Before the foreground service is launched, stop signals abort the
        startup sequence and other signals are ignored. Afterwards every
        signal is forwarded to the foreground service.

        Args:
            signum: The received signal.
        """
        name = signal.Signals(signum).name
        if self._foreground.is_running():
            _ = await self._foreground.send_signal(signum)
            return

        if signum not in STOP_SIGNALS:
            self._logger.debug("ignoring signal during startup", signal=name)
            return

        self._logger.warning("startup interrupted", signal=name)
        if self._received_signal is None:
            self._received_signal = signum
        if self._startup_scope is not None:
            self._startup_scope.cancel()

    async def _relay_signals(
        self,
        *,
        task_status: anyio.abc.TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        """Relay OS signals to deliver_signal until cancelled."""
        with anyio.open_signal_receiver(*FORWARDED_SIGNALS) as signals:
            task_status.started()
            async for signum in signals:
                await self.deliver_signal(signum)

    async def _launch(
        self,
        service: ServiceManager,
        task_group: anyio.abc.TaskGroup,
    ) -> None:
        async with self._reaper.spawn_lock:
            self._launched.append(service)
            await service.launch(task_group)

    async def _watch_auxiliary(self, service: ServiceManager) -> None:
        """Handle an auxiliary service that fails on its own.

        A non-zero exit or death by signal outside of teardown is logged, and
        with reaping enabled the orphans it left behind are terminated.
        """
        returncode = await service.wait()
        if returncode == 0 or self._stopping:
            return

        self._logger.warning(
            "auxiliary service exited",
            service=service.name,
            exit_code=returncode,
            required=service.spec.required,
        )
        if self._reaping_enabled():
            _ = await self._reaper.sweep_leftovers(service.name, self._orphan_grace)

    async def _start_auxiliary(self, task_group: anyio.abc.TaskGroup) -> None:
        """Bring auxiliary services up, strictly in list order.

        Raises:
            ServiceLaunchError: If a service cannot be launched.
            ServiceStartupError: If a required service does not become ready.
        """
        for service in self.auxiliary:
            await self._launch(service, task_group)
            task_group.start_soon(self._watch_auxiliary, service)

            if await service.wait_ready():
                continue

            reason = service.status.failure_reason
            if service.spec.required:
                msg = f"Required service '{service.name}' did not become ready: {reason}"
                raise ServiceStartupError(msg, service_name=service.name, reason=reason)

            self._logger.warning(
                "optional service not ready, continuing",
                service=service.name,
                reason=reason,
            )

    async def _run_foreground(self, task_group: anyio.abc.TaskGroup) -> int:
        """Launch the foreground service and wait for it to exit.

        Returns:
            The supervisor exit code derived from the foreground exit.
        """
        await self._launch(self._foreground, task_group)
        for service in self._services:
            service.mark_running()

        # A signal that arrived while the foreground was being launched
        if self._received_signal is not None:
            _ = await self._foreground.send_signal(self._received_signal)

        returncode = await self._foreground.wait()
        exit_code = exit_code_from_returncode(returncode)
        self._logger.info(
            "foreground service exited",
            service=self._foreground.name,
            returncode=returncode,
            exit_code=exit_code,
        )
        return exit_code

    async def _sequence(self, task_group: anyio.abc.TaskGroup) -> int:
        """Run the startup sequence and the foreground service.

        Returns:
            The supervisor exit code.
        """
        self._startup_scope = anyio.CancelScope()
        try:
            with self._startup_scope:
                await self._start_auxiliary(task_group)
        except ServiceStartupError as e:
            self._logger.error("startup failed", service=e.service_name, error=str(e))
            return EXIT_STARTUP_FAILURE
        except ServiceLaunchError as e:
            self._logger.error("launch failed", service=e.service_name, error=str(e))
            return EXIT_LAUNCH_FAILURE
        finally:
            self._startup_scope = None

        if self._received_signal is not None:
            self._logger.warning(
                "not launching foreground service",
                service=self._foreground.name,
                signal=signal.Signals(self._received_signal).name,
            )
            return exit_code_for_signal(self._received_signal)

        try:
            return await self._run_foreground(task_group)
        except ServiceLaunchError as e:
            self._logger.error("launch failed", service=e.service_name, error=str(e))
            return EXIT_LAUNCH_FAILURE

    async def _stop_service(self, service: ServiceManager) -> None:
        try:
            returncode = await service.stop()
        except ShutdownTimeout as e:
            self._logger.warning(
                "shutdown timeout",
                service=service.name,
                grace_period=e.grace_period,
                exit_code=service.status.exit_code,
            )
        except ServiceStopError as e:
            self._logger.error("stop failed", service=service.name, error=str(e))
        else:
            if returncode is not None:
                self._logger.debug(
                    "stopped", service=service.name, exit_code=returncode
                )

    async def _teardown(self) -> None:
        """Stop every launched service in reverse launch order."""
        self._stopping = True
        for service in reversed(self._launched):
            await self._stop_service(service)

        if self._reaping_enabled():
            await self._reaper.terminate(self._orphan_grace)

    async def run(self) -> int:
        """Run the startup sequence and supervise the foreground service.

        Blocks until the foreground service exits, startup fails, or a stop
        signal interrupts startup. All launched services are stopped before
        returning.

        Returns:
            The exit code for the container: the foreground's own exit code,
            EXIT_STARTUP_FAILURE, EXIT_LAUNCH_FAILURE, or 128 + signal.

        Raises:
            ServiceLaunchError: If the supervisor has already been run.
        """
        if self._launched:
            msg = "Supervisor can only be run once"
            raise ServiceLaunchError(msg)

        self._logger.info(
            "starting",
            services=[service.name for service in self._services],
            pid=os.getpid(),
        )

        exit_code = EXIT_STARTUP_FAILURE
        async with anyio.create_task_group() as tg:
            if self._handle_signals:
                await tg.start(self._relay_signals)
            if self._reaping_enabled():
                tg.start_soon(self._reaper.run, self._reap_interval)

            try:
                exit_code = await self._sequence(tg)
            finally:
                with anyio.CancelScope(shield=True):
                    await self._teardown()
                tg.cancel_scope.cancel()

        self._logger.debug("final status", services=self.get_status())
        self._logger.info("exiting", exit_code=exit_code)
        return exit_code

    def get_status(self) -> dict[str, dict[str, object]]:
        """Get status summary for all services.

        Returns:
            Dictionary mapping service names to status dictionaries.
        """
        return {
            service.name: {
                "state": service.status.state.value,
                "pid": service.status.pid,
                "exit_code": service.status.exit_code,
                "failure_reason": service.status.failure_reason,
                "started_at": service.status.started_at,
                "stopped_at": service.status.stopped_at,
            }
            for service in self._services
        }


async def run(
    specs: Sequence[ServiceSpec],
    output_sink: OutputSink | None = None,
    *,
    logger: FilteringBoundLogger | None = None,
    handle_signals: bool = True,
    reap_orphans: ReapMode = "auto",
) -> int:
    """Validate ``specs``, run them under a Supervisor and return the exit code.

    Args:
        specs: Services in startup order.
        output_sink: Sink for service output.
        logger: Structured logger for supervisor diagnostics.
        handle_signals: Install the OS signal relay while running.
        reap_orphans: Orphan reaping mode.

    Returns:
        The supervisor exit code.

    Raises:
        ServiceSpecError: If specs violate the ordering constraints.
    """
    supervisor = Supervisor(
        specs,
        output_sink,
        logger=logger,
        handle_signals=handle_signals,
        reap_orphans=reap_orphans,
    )
    return await supervisor.run()
