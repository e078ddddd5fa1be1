"""Exit codes returned by the supervisor.

Codes:
    N       - The foreground service exited with code N
    125     - A required auxiliary service failed its readiness check
    126     - The OS refused to launch a service
    128 + N - The foreground service was killed by signal N, or signal N
              interrupted startup before the foreground service launched
"""

import signal

EXIT_STARTUP_FAILURE: int = 125
"""A required auxiliary service never became ready."""

EXIT_LAUNCH_FAILURE: int = 126
"""A service process could not be created."""

SIGNAL_EXIT_BASE: int = 128
"""Offset added to a signal number to form an exit code."""


def exit_code_for_signal(signum: int | signal.Signals) -> int:
    """Return the shell-style exit code for death by signal ``signum``."""
    return SIGNAL_EXIT_BASE + int(signum)


def exit_code_from_returncode(returncode: int) -> int:
    """Translate a subprocess return code into a process exit code.

    Return codes are negative when the child was killed by a signal.

    Args:
        returncode: The child's return code.

    Returns:
        The return code itself when non-negative, else ``128 + signal``.
    """
    if returncode < 0:
        return exit_code_for_signal(-returncode)
    return returncode
