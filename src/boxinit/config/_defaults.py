"""Default configuration values.

This module defines the built-in configuration used when no configuration
file is found. The default service list mirrors the container image:
entropy first, then device nodes, then SSH host keys, then the SSH daemon
in the foreground.

Note: DEFAULT_CONFIG is intentionally a plain dict for type compatibility
with functions like deep_merge. The merge functions create copies, so mutation
of the original is not a concern in practice.
"""

from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH: Path = Path("/etc/boxinit.toml")
"""Configuration file used when neither --config nor BOXINIT_CONFIG is set."""

CONFIG_PATH_ENV_VAR: str = "BOXINIT_CONFIG"
"""Environment variable naming the configuration file."""

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "text",
        "file": "",
    },
    "supervisor": {
        "shutdown_grace": 5.0,
        "reap_orphans": "auto",
        "reap_interval": 1.0,
        "orphan_grace": 5.0,
        "capture_output": True,
    },
    "services": [
        {
            "name": "haveged",
            "command": ["/usr/sbin/haveged", "-F"],
            "required": True,
            "readiness": {"kind": "alive", "delay": 0.5, "timeout": 5.0},
        },
        {
            "name": "udevd",
            "command": ["/lib/systemd/systemd-udevd"],
            "required": False,
            "readiness": {
                "kind": "file",
                "path": "/run/udev/control",
                "timeout": 10.0,
            },
        },
        {
            "name": "ssh-keygen",
            "command": ["/usr/bin/ssh-keygen", "-A"],
            "required": True,
            "readiness": {
                "kind": "file",
                "path": "/etc/ssh/ssh_host_ed25519_key",
                "timeout": 30.0,
            },
        },
        {
            "name": "sshd",
            "command": ["/usr/sbin/sshd", "-D", "-e"],
            "foreground": True,
            "capture_output": False,
            "shutdown_timeout": 10.0,
        },
    ],
}
