"""Supervisor package for sequencing and supervising container services.

This package brings a fixed, ordered list of auxiliary services up one at
a time, then runs a single foreground service whose exit status becomes
the container's exit code.

Key Components:
    - ServiceSpec: Immutable service description
    - ReadinessCheck: Readiness probe description (delay, file, alive)
    - ServiceState: Lifecycle state enumeration
    - ServiceStatus: Runtime status tracking
    - ServiceEvent: Lifecycle event records
    - OutputSink: Protocol for output consumption
    - ConcatenatedOutputSink: Console output implementation
    - ServiceManager: Single service lifecycle manager
    - OrphanReaper: Reaper for unmanaged child processes
    - Sweep: Outcome of terminating orphans
    - Supervisor: Startup sequencer and foreground supervisor

Example:
    >>> from boxinit.supervisor import ReadinessCheck, ServiceSpec, Supervisor
    >>> specs = [
    ...     ServiceSpec(
    ...         name="haveged",
    ...         command=("/usr/sbin/haveged", "-F"),
    ...         readiness=ReadinessCheck.process_alive(settle=0.5),
    ...     ),
    ...     ServiceSpec(
    ...         name="sshd",
    ...         command=("/usr/sbin/sshd", "-D", "-e"),
    ...         foreground=True,
    ...     ),
    ... ]
    >>> exit_code = await Supervisor(specs).run()
"""

from ._exit_codes import (
    EXIT_LAUNCH_FAILURE,
    EXIT_STARTUP_FAILURE,
    exit_code_for_signal,
    exit_code_from_returncode,
)
from ._models import (
    ReadinessCheck,
    ReadinessKind,
    ServiceEvent,
    ServiceEventType,
    ServiceSpec,
    ServiceState,
    ServiceStatus,
)
from ._output import ConcatenatedOutputSink
from ._protocol import OutputSink
from ._reaper import Carcass, OrphanReaper, Sweep, reap_zombies, terminate_orphans
from ._service import ServiceManager
from ._supervisor import FORWARDED_SIGNALS, ReapMode, Supervisor, run
from ._validation import validate_specs

__all__ = [
    "EXIT_LAUNCH_FAILURE",
    "EXIT_STARTUP_FAILURE",
    "FORWARDED_SIGNALS",
    "Carcass",
    "ConcatenatedOutputSink",
    "OrphanReaper",
    "OutputSink",
    "ReadinessCheck",
    "ReadinessKind",
    "ReapMode",
    "ServiceEvent",
    "ServiceEventType",
    "ServiceManager",
    "ServiceSpec",
    "ServiceState",
    "ServiceStatus",
    "Supervisor",
    "Sweep",
    "exit_code_for_signal",
    "exit_code_from_returncode",
    "reap_zombies",
    "run",
    "terminate_orphans",
    "validate_specs",
]
