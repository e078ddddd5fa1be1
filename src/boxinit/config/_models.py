# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration models.

This module provides the Pydantic models for each configuration section and
the Config container that ties them together and converts the service list
into supervisor ServiceSpecs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from boxinit.config._defaults import DEFAULT_CONFIG
from boxinit.config._loader import deep_merge, parse_env_vars, read_toml_file
from boxinit.supervisor import ReadinessCheck, ReadinessKind, ServiceSpec, validate_specs

if TYPE_CHECKING:
    from collections.abc import Mapping


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ReapOrphans(StrEnum):
    """When to reap orphaned child processes."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class ConfigSourceName(StrEnum):
    """Configuration source names in precedence order.

    Values are ordered from highest precedence (CLI) to lowest (DEFAULT).
    """

    CLI = "cli"
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """Represents a configuration source.

    Attributes:
        name: The source type identifier.
        path: Path to the config file, or None for non-file sources.
        exists: Whether the source exists (file exists, or values are present).
        values: Configuration values from this source.
    """

    name: ConfigSourceName
    path: Path | None
    exists: bool
    values: dict[str, Any]


# -----------------------------------------------------------------------------
# Section models
# -----------------------------------------------------------------------------


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty disables file logging).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    file: str = ""


class SupervisorConfig(BaseModel):
    """Supervisor configuration section.

    Attributes:
        shutdown_grace: Default seconds between SIGTERM and SIGKILL.
        reap_orphans: When to reap unmanaged child processes.
        reap_interval: Seconds between reaping passes.
        orphan_grace: Seconds orphans get between SIGTERM and SIGKILL.
        capture_output: Default for services that do not set it.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    shutdown_grace: float = Field(default=5.0, ge=0)
    reap_orphans: ReapOrphans = ReapOrphans.AUTO
    reap_interval: float = Field(default=1.0, gt=0)
    orphan_grace: float = Field(default=5.0, ge=0)
    capture_output: bool = True


class ReadinessConfig(BaseModel):
    """Readiness probe of a service."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    kind: ReadinessKind = ReadinessKind.ALIVE
    timeout: float = Field(default=10.0, gt=0)
    delay: float = Field(default=0.0, ge=0)
    path: str | None = None
    interval: float = Field(default=0.1, gt=0)

    @model_validator(mode="after")
    def _check_path(self) -> Self:
        if self.kind is ReadinessKind.FILE and not self.path:
            msg = "file readiness requires a path"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _check_delay(self) -> Self:
        if self.kind is ReadinessKind.FILE or not self._timeout_is_explicit():
            return self
        if self.delay >= self.timeout:
            msg = (
                f"{self.kind} readiness delay ({self.delay:g}s) must be shorter "
                f"than its timeout ({self.timeout:g}s)"
            )
            raise ValueError(msg)
        return self

    def _timeout_is_explicit(self) -> bool:
        # A delay check without a timeout gets one derived from its delay
        return self.kind is not ReadinessKind.DELAY or "timeout" in self.model_fields_set

    @property
    def effective_timeout(self) -> float:
        """Return the timeout, derived from the delay when not set for a delay check."""
        if self._timeout_is_explicit():
            return self.timeout
        return ReadinessCheck.fixed_delay(self.delay).timeout

    def to_check(self) -> ReadinessCheck:
        """Convert to a supervisor ReadinessCheck."""
        return ReadinessCheck(
            kind=self.kind,
            timeout=self.effective_timeout,
            delay=self.delay,
            path=Path(self.path) if self.path else None,
            interval=self.interval,
        )


class ServiceConfig(BaseModel):
    """One entry of the ``[[services]]`` array.

    ``shutdown_timeout`` and ``capture_output`` fall back to the
    ``[supervisor]`` section when unset.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    command: list[str] = Field(min_length=1)
    readiness: ReadinessConfig = ReadinessConfig()
    required: bool = True
    foreground: bool = False
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    shutdown_timeout: float | None = Field(default=None, ge=0)
    capture_output: bool | None = None

    def to_spec(self, defaults: SupervisorConfig) -> ServiceSpec:
        """Convert to a supervisor ServiceSpec.

        Args:
            defaults: Supervisor section supplying unset per-service values.

        Returns:
            The immutable service description.
        """
        return ServiceSpec(
            name=self.name,
            command=tuple(self.command),
            readiness=self.readiness.to_check(),
            required=self.required,
            foreground=self.foreground,
            cwd=Path(self.cwd) if self.cwd else None,
            env=dict(self.env),
            shutdown_timeout=(
                self.shutdown_timeout
                if self.shutdown_timeout is not None
                else defaults.shutdown_grace
            ),
            capture_output=(
                self.capture_output
                if self.capture_output is not None
                else defaults.capture_output
            ),
        )


# -----------------------------------------------------------------------------
# Config container
# -----------------------------------------------------------------------------


class Config(BaseModel):
    """Configuration container with typed access.

    This class provides immutable, type-safe access to boxinit configuration.
    Use factory methods to create instances rather than the constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())
    _logging: LoggingConfig = PrivateAttr(default_factory=LoggingConfig)
    _supervisor: SupervisorConfig = PrivateAttr(default_factory=SupervisorConfig)
    _services: tuple[ServiceConfig, ...] = PrivateAttr(default=())

    def __init__(
        self,
        *,
        _data: dict[str, Any] | None = None,
        _sources: tuple[ConfigSource, ...] = (),
    ) -> None:
        """Initialize configuration container.

        This constructor is intended for internal use. Use factory methods
        like from_dict(), from_file(), or load() to create Config instances.

        Args:
            _data: The complete merged and validated configuration dictionary.
            _sources: Sources that contributed to this configuration.
        """
        super().__init__()
        data = _data if _data is not None else deep_merge(DEFAULT_CONFIG, {})
        self._data = data
        self._sources = _sources
        self._logging = LoggingConfig.model_validate(data.get("logging", {}))
        self._supervisor = SupervisorConfig.model_validate(data.get("supervisor", {}))
        self._services = tuple(
            ServiceConfig.model_validate(entry) for entry in data.get("services", [])
        )

    @classmethod
    def _build(
        cls,
        merged: dict[str, Any],
        sources: tuple[ConfigSource, ...],
        *,
        validate: bool,
        strict: bool = False,
        source: str | None = None,
    ) -> Self:
        # Deferred import to avoid circular dependency
        from boxinit.config._validation import (  # noqa: PLC0415
            raise_if_validation_errors,
            validate_config,
        )

        if validate:
            issues = validate_config(merged, strict=strict)
            raise_if_validation_errors(issues, source=source)
        return cls(_data=merged, _sources=sources)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        validate: bool = True,
    ) -> Self:
        """Create configuration from a dictionary.

        Args:
            data: Dictionary of configuration values.
            validate: Whether to validate the configuration.

        Returns:
            Configuration object from the dictionary merged over the defaults.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return cls._build(deep_merge(DEFAULT_CONFIG, data), (), validate=validate)

    @classmethod
    def from_file(
        cls,
        path: Path,
        *,
        validate: bool = True,
    ) -> Self:
        """Load configuration from a specific file.

        Args:
            path: Path to the TOML config file.
            validate: Whether to validate the loaded config.

        Returns:
            Configuration object from the file merged over the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        source = ConfigSource(
            name=ConfigSourceName.FILE, path=path, exists=True, values=data
        )
        return cls._build(
            deep_merge(DEFAULT_CONFIG, data),
            (source,),
            validate=validate,
            source=str(path),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
        cli_overrides: dict[str, Any] | None = None,
        strict: bool = False,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources are merged in precedence order: defaults, then the config
        file, then ``BOXINIT_*`` environment variables, then CLI overrides.

        Args:
            config_path: Explicit config file (--config). Must exist.
            environ: Environment to read (defaults to os.environ).
            cli_overrides: Values from command-line options.
            strict: Reject unknown keys instead of ignoring them.

        Returns:
            Merged configuration object.

        Raises:
            FileNotFoundError: If an explicitly named config file is missing.
            ConfigLoadError: If the config file cannot be parsed.
            ConfigValidationError: If the merged config fails validation.
        """
        # Deferred import to avoid circular dependency
        from boxinit.config._discovery import find_config_file  # noqa: PLC0415

        env = dict(environ) if environ is not None else None
        path = find_config_file(config_path, environ=env)

        file_values: dict[str, Any] = read_toml_file(path) if path is not None else {}
        env_values = parse_env_vars(env)
        cli_values = cli_overrides or {}

        # Lowest to highest precedence
        sources = (
            ConfigSource(ConfigSourceName.DEFAULT, None, True, DEFAULT_CONFIG),
            ConfigSource(ConfigSourceName.FILE, path, path is not None, file_values),
            ConfigSource(ConfigSourceName.ENV, None, bool(env_values), env_values),
            ConfigSource(ConfigSourceName.CLI, None, bool(cli_values), cli_values),
        )

        merged: dict[str, Any] = {}
        for source in sources:
            if source.values:
                merged = deep_merge(merged, source.values)

        return cls._build(
            merged,
            tuple(reversed(sources)),
            validate=True,
            strict=strict,
            source=str(path) if path is not None else None,
        )

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources that contributed to this configuration.

        Returns:
            List of ConfigSource objects, highest precedence first.
        """
        return list(self._sources)

    @property
    def config_file(self) -> Path | None:
        """Return the configuration file that was read, if any."""
        for source in self._sources:
            if source.name is ConfigSourceName.FILE and source.exists:
                return source.path
        return None

    @property
    def logging(self) -> LoggingConfig:
        """Return the logging configuration section."""
        return self._logging

    @property
    def supervisor(self) -> SupervisorConfig:
        """Return the supervisor configuration section."""
        return self._supervisor

    @property
    def services(self) -> tuple[ServiceConfig, ...]:
        """Return the configured services in startup order."""
        return self._services

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Examples:
            >>> config.get("logging.level")
            'info'
            >>> config.get("nonexistent", "fallback")
            'fallback'
        """
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_specs(self) -> tuple[ServiceSpec, ...]:
        """Build the supervisor's service list.

        Returns:
            Validated ServiceSpecs in startup order.

        Raises:
            ServiceSpecError: If the list has no single trailing foreground
                service or repeats a name.
        """
        return validate_specs(
            [service.to_spec(self._supervisor) for service in self._services]
        )
