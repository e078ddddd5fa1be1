"""Reaping of orphaned child processes.

When the supervisor runs as PID 1 it inherits every process whose parent
dies, e.g. the children of daemons that fork into the background. Their
exit statuses must be collected or they linger as zombies, and any still
running at shutdown must be terminated so nothing outlives the container.
When a service fails, the children it leaves behind are terminated right
away instead of waiting for shutdown.

Processes managed as services are always excluded: their exit statuses
belong to the supervisor's own bookkeeping.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self, final

import anyio
import anyio.to_thread
import psutil
import structlog

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from structlog.typing import FilteringBoundLogger


@dataclass(frozen=True, slots=True)
class Carcass:
    """Exit status of a reaped orphan.

    Attributes:
        pid: Process ID of the reaped process.
        returncode: Exit code, negative if killed by a signal.
    """

    pid: int
    returncode: int

    @classmethod
    def from_wait_status(cls, pid: int, status: int) -> Self:
        """Build a Carcass from an ``os.waitpid`` status."""
        return cls(pid=pid, returncode=os.waitstatus_to_exitcode(status))


@dataclass(frozen=True, slots=True)
class Sweep:
    """Outcome of terminating a group of orphans.

    Attributes:
        signaled: Orphans sent SIGTERM.
        killed: Orphans that outlived the grace period and were sent SIGKILL.
        lingering: Pids still alive after SIGKILL.
    """

    signaled: int = 0
    killed: int = 0
    lingering: tuple[int, ...] = ()


def list_orphans(exclude: Collection[int]) -> list[psutil.Process]:
    """List direct children of this process that are not in ``exclude``."""
    try:
        children = psutil.Process().children()
    except psutil.Error:
        return []
    return [child for child in children if child.pid not in exclude]


def reap_zombies(exclude: Collection[int]) -> list[Carcass]:
    """Collect the exit status of every zombie orphan.

    Args:
        exclude: Process IDs that must not be reaped.

    Returns:
        The reaped processes.
    """
    carcasses: list[Carcass] = []
    for child in list_orphans(exclude):
        try:
            if child.status() != psutil.STATUS_ZOMBIE:
                continue
        except psutil.NoSuchProcess:
            continue

        try:
            pid, status = os.waitpid(child.pid, os.WNOHANG)
        except ChildProcessError:
            continue
        if pid == 0:
            continue
        carcasses.append(Carcass.from_wait_status(pid, status))
    return carcasses


def terminate_orphans(exclude: Collection[int], grace: float) -> Sweep:
    """Terminate every running orphan, escalating to SIGKILL.

    Blocks for up to twice ``grace`` seconds.

    Args:
        exclude: Process IDs that must not be signaled.
        grace: Seconds to wait after SIGTERM before sending SIGKILL.

    Returns:
        How many orphans were signaled and killed, and which survived.
    """
    orphans = list_orphans(exclude)
    if not orphans:
        return Sweep()

    for orphan in orphans:
        try:
            orphan.terminate()
        except psutil.NoSuchProcess:
            continue

    _, alive = psutil.wait_procs(orphans, timeout=grace)
    if not alive:
        return Sweep(signaled=len(orphans))

    for orphan in alive:
        try:
            orphan.kill()
        except psutil.NoSuchProcess:
            continue
    _, lingering = psutil.wait_procs(alive, timeout=grace)

    return Sweep(
        signaled=len(orphans),
        killed=len(alive),
        lingering=tuple(orphan.pid for orphan in lingering),
    )


@final
class OrphanReaper:
    """Periodically reaps orphans that are not managed services.

    Reaping and service launches must not interleave: a service that exits
    immediately could otherwise be reaped before its pid is known. Both sides
    therefore hold ``spawn_lock``.

    Every pass also remembers the orphans that were running, so that
    ``sweep_leftovers`` can tell the children left behind by a service that
    just failed from orphans that were already there.
    """

    __slots__ = ("_known", "_logger", "_managed_pids", "spawn_lock")

    def __init__(
        self,
        managed_pids: Callable[[], Collection[int]],
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the reaper.

        Args:
            managed_pids: Returns the pids of currently managed services.
            logger: Structured logger for reaped orphans.
        """
        self._managed_pids = managed_pids
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else structlog.get_logger("boxinit")
        )
        self._known: frozenset[int] = frozenset()
        self.spawn_lock = anyio.Lock()

    async def reap(self) -> list[Carcass]:
        """Reap zombie orphans once."""
        async with self.spawn_lock:
            managed = set(self._managed_pids())
            carcasses = reap_zombies(managed)
            self._known = frozenset(orphan.pid for orphan in list_orphans(managed))
        for carcass in carcasses:
            self._logger.info(
                "reaped orphan", pid=carcass.pid, returncode=carcass.returncode
            )
        return carcasses

    async def run(self, interval: float) -> None:
        """Reap every ``interval`` seconds until cancelled."""
        while True:
            _ = await self.reap()
            await anyio.sleep(interval)

    def _log_sweep(self, sweep: Sweep, event: str, **context: object) -> None:
        if sweep.signaled:
            self._logger.info(
                event, count=sweep.signaled, killed=sweep.killed, **context
            )
        for pid in sweep.lingering:
            self._logger.warning("orphan lingering after SIGKILL", pid=pid)

    async def sweep_leftovers(self, service_name: str, grace: float) -> Sweep:
        """Terminate orphans that appeared since the last reaping pass.

        Called after a managed service exits with a failure: its children
        have been handed to the supervisor and must not keep running.

        Args:
            service_name: The service that failed, for diagnostics.
            grace: Seconds to wait after SIGTERM before sending SIGKILL.

        Returns:
            The outcome of the sweep.
        """
        exclude = set(self._managed_pids()) | self._known
        sweep = await anyio.to_thread.run_sync(terminate_orphans, exclude, grace)
        self._log_sweep(sweep, "terminated leftovers", service=service_name)
        _ = await self.reap()
        return sweep

    async def terminate(self, grace: float) -> Sweep:
        """Terminate orphans still running at shutdown, then reap them."""
        sweep = await anyio.to_thread.run_sync(
            terminate_orphans, set(self._managed_pids()), grace
        )
        self._log_sweep(sweep, "terminated orphans")
        _ = await self.reap()
        return sweep
