import signal

from boxinit.supervisor import (
    EXIT_LAUNCH_FAILURE,
    EXIT_STARTUP_FAILURE,
    exit_code_for_signal,
    exit_code_from_returncode,
)


class TestExitCodes:
    def test_reserved_codes_are_distinct(self) -> None:
        assert EXIT_STARTUP_FAILURE == 125
        assert EXIT_LAUNCH_FAILURE == 126

    def test_signal_exit_code(self) -> None:
        assert exit_code_for_signal(signal.SIGTERM) == 143
        assert exit_code_for_signal(2) == 130

    def test_returncode_passes_through(self) -> None:
        assert exit_code_from_returncode(0) == 0
        assert exit_code_from_returncode(3) == 3

    def test_negative_returncode_maps_to_signal_code(self) -> None:
        assert exit_code_from_returncode(-signal.SIGKILL) == 137
