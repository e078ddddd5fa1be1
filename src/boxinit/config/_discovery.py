"""Configuration file discovery."""

import os
from pathlib import Path

from ._defaults import CONFIG_PATH_ENV_VAR, DEFAULT_CONFIG_PATH


def find_config_file(
    explicit: Path | None = None,
    *,
    environ: dict[str, str] | None = None,
    default_path: Path = DEFAULT_CONFIG_PATH,
) -> Path | None:
    """Locate the configuration file to load.

    Lookup order:
        1. ``explicit`` (the --config option), which must exist
        2. The file named by ``$BOXINIT_CONFIG``, which must exist
        3. ``default_path`` if it exists

    Args:
        explicit: Path given on the command line.
        environ: Environment to read (defaults to os.environ).
        default_path: Fallback location.

    Returns:
        Path to the config file, or None to use the built-in defaults.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
    """
    env = os.environ if environ is None else environ

    named = explicit
    if named is None and env.get(CONFIG_PATH_ENV_VAR):
        named = Path(env[CONFIG_PATH_ENV_VAR])

    if named is not None:
        if not named.is_file():
            msg = f"Config file not found: {named}"
            raise FileNotFoundError(msg)
        return named

    if default_path.is_file():
        return default_path
    return None
