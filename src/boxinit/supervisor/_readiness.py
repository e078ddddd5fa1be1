"""Readiness probes for freshly launched services.

Each probe watches a running process and decides whether dependents may
proceed. All probes are bounded by the check's timeout and fail early when
the process exits with a non-zero code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import anyio

from ._models import ReadinessKind

if TYPE_CHECKING:
    import anyio.abc

    from ._models import ReadinessCheck

POLL_INTERVAL: float = 0.05
"""Seconds between process status polls."""


def has_failed(process: anyio.abc.Process) -> bool:
    """Return True if the process has exited with a non-zero code."""
    return process.returncode is not None and process.returncode != 0


async def wait_for_exit(process: anyio.abc.Process) -> int:
    """Wait for the process to terminate and return its return code.

    Process.wait() also waits for the output pipes to close, which a forked
    grandchild can hold open indefinitely, so the return code is polled.
    """
    while process.returncode is None:
        await anyio.sleep(POLL_INTERVAL)
    return process.returncode


async def _sleep_while_healthy(process: anyio.abc.Process, seconds: float) -> bool:
    """Sleep for ``seconds``, returning False as soon as the process fails."""
    deadline = anyio.current_time() + seconds
    while (remaining := deadline - anyio.current_time()) > 0:
        if has_failed(process):
            return False
        await anyio.sleep(min(POLL_INTERVAL, remaining))
    return not has_failed(process)


async def _probe_delay(check: ReadinessCheck, process: anyio.abc.Process) -> bool:
    return await _sleep_while_healthy(process, check.delay)


async def _probe_alive(check: ReadinessCheck, process: anyio.abc.Process) -> bool:
    if not await _sleep_while_healthy(process, check.delay):
        return False
    return process.returncode is None


async def _probe_file(check: ReadinessCheck, process: anyio.abc.Process) -> bool:
    if check.path is None:
        return False

    path = anyio.Path(check.path)
    while True:
        if await path.exists():
            return True
        if has_failed(process):
            return False
        await anyio.sleep(check.interval)


async def wait_ready(check: ReadinessCheck, process: anyio.abc.Process) -> bool:
    """Run a readiness check against a launched process.

    Args:
        check: The readiness check to apply.
        process: The process being probed.

    Returns:
        True if the check passed within its timeout, False otherwise.
    """
    with anyio.move_on_after(check.timeout):
        if check.kind == ReadinessKind.DELAY:
            return await _probe_delay(check, process)
        if check.kind == ReadinessKind.FILE:
            return await _probe_file(check, process)
        return await _probe_alive(check, process)
    return False
