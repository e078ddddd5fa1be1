"""Configuration loading for boxinit.

Configuration is read from a single TOML file merged over built-in defaults,
then overridden by ``BOXINIT_*`` environment variables and command-line
options.

Example:
    >>> from boxinit.config import Config
    >>> config = Config.load()
    >>> specs = config.to_specs()
"""

from ._defaults import CONFIG_PATH_ENV_VAR, DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from ._discovery import find_config_file
from ._loader import deep_merge, parse_env_vars, read_toml_file
from ._models import (
    Config,
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ReadinessConfig,
    ReapOrphans,
    ServiceConfig,
    SupervisorConfig,
)
from ._validation import ValidationIssue, raise_if_validation_errors, validate_config

__all__ = [
    "CONFIG_PATH_ENV_VAR",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_PATH",
    "Config",
    "ConfigSource",
    "ConfigSourceName",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ReadinessConfig",
    "ReapOrphans",
    "ServiceConfig",
    "SupervisorConfig",
    "ValidationIssue",
    "deep_merge",
    "find_config_file",
    "parse_env_vars",
    "raise_if_validation_errors",
    "read_toml_file",
    "validate_config",
]
