"""
Global configuration for the ymetrika client.

Users can optionally call YMETRIKA.configure() at application startup to
customize defaults. If not called, sensible defaults are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to YMetrikaClient
2. Values set via YMETRIKA.configure()
3. Environment variables (YMETRIKA_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from ymetrika import YMETRIKA
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> YMETRIKA.config.throttle.max_active_clients
    2
    >>>
    >>> # Custom configuration
    >>> YMETRIKA.configure(
    ...     auth={"token": "y0_AgAAAA..."},
    ...     throttle={"max_active_clients": 3, "max_wait_timeout": 30.0},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Self

_UNLIMITED_VALUES = ("none", "null", "unlimited")


# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Reads environment variables with type conversion.

    Example:
        >>> EnvVars.get("YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS", type_hint=int)
        4
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563).
        """
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


def _to_optional_seconds(raw_value: str) -> float | None:
    """Convert 'unlimited'/'none'/'null' to None, anything else to float."""
    if raw_value.lower() in _UNLIMITED_VALUES:
        return None
    return float(raw_value)


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration sections.

    Subclasses declare their env var in each field's metadata and may list
    fields that accept None in `_NULLABLE_FIELDS`.

    Example:
        >>> config = ThrottleConfig()
        >>> custom = config.with_overrides({"max_active_clients": 4})
        >>> custom.max_active_clients
        4
    """

    _NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset()

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, except for nullable fields where None
        (or the strings "unlimited"/"none"/"null") is a meaningful value.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields
        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered: dict[str, Any] = {}
        for name, value in overrides.items():
            if name in self._NULLABLE_FIELDS:
                if isinstance(value, str) and value.lower() in _UNLIMITED_VALUES:
                    value = None
                filtered[name] = value
            elif value is not None:
                filtered[name] = value

        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return new instance with environment variables applied.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if not env_var:
                continue
            value = EnvVars.get(
                var_name=env_var,
                type_hint=f.type,
                converter=f.metadata.get("converter"),
            )
            if value is not None or (f.name in self._NULLABLE_FIELDS and os.environ.get(env_var)):
                overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class AuthConfig(OverridableConfig):
    """
    Authentication configuration.

    Attributes:
        token: OAuth token sent as `oauth_token` on every request. Used when
            YMetrikaClient is created without an explicit token.
            Env var: YMETRIKA_AUTH_TOKEN
    """

    token: str | None = field(default=None, metadata={"env": "YMETRIKA_AUTH_TOKEN"})

    def has_token(self) -> bool:
        """Check if a token is set."""
        return bool(self.token)

    def validate(self) -> Self:
        """Validate auth configuration fields."""
        if self.token is not None and self.token.strip() == "":
            raise ConfigValidationError(
                "token", self.token,
                "Must not be empty string.", section="auth"
            )
        return self


@dataclass(frozen=True)
class ClientConfig(OverridableConfig):
    """
    Configuration for YMetrikaClient instances.

    Attributes:
        host: API host name.
            Env var: YMETRIKA_CLIENT_HOST

        port: API port (HTTPS).
            Env var: YMETRIKA_CLIENT_PORT

        request_timeout: HTTP timeout in seconds for connecting and reading.
            Env var: YMETRIKA_CLIENT_REQUEST_TIMEOUT

        max_workers: Threads used by submit() and request_many().
            Env var: YMETRIKA_CLIENT_MAX_WORKERS

    Example:
        >>> from ymetrika import YMETRIKA
        >>> YMETRIKA.config.client.host
        'api-metrika.yandex.ru'
    """

    host: str = field(default="api-metrika.yandex.ru", metadata={"env": "YMETRIKA_CLIENT_HOST"})
    port: int = field(default=443, metadata={"env": "YMETRIKA_CLIENT_PORT"})
    request_timeout: float = field(default=30.0, metadata={"env": "YMETRIKA_CLIENT_REQUEST_TIMEOUT"})
    max_workers: int = field(default=8, metadata={"env": "YMETRIKA_CLIENT_MAX_WORKERS"})

    @property
    def base_url(self) -> str:
        """HTTPS base URL built from host and port."""
        return f"https://{self.host}:{self.port}"

    def validate(self) -> Self:
        """Validate client configuration fields."""
        if not self.host or "/" in self.host:
            raise ConfigValidationError(
                "host", self.host,
                "Must be a bare host name (no scheme or path).", section="client"
            )
        if not 0 < self.port < 65536:
            raise ConfigValidationError(
                "port", self.port,
                "Must be between 1 and 65535.", section="client"
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="client"
            )
        if self.max_workers <= 0:
            raise ConfigValidationError(
                "max_workers", self.max_workers,
                "Must be greater than 0.", section="client"
            )
        return self


@dataclass(frozen=True)
class ThrottleConfig(OverridableConfig):
    """
    Admission control for in-flight requests.

    Attributes:
        max_active_clients: Maximum number of requests admitted at once.
            Env var: YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS

        max_wait_timeout: Maximum seconds a caller waits for a free slot before
            AdmissionTimeoutError. None means wait indefinitely.
            Env var: YMETRIKA_THROTTLE_MAX_WAIT_TIMEOUT

        poll_interval: Seconds between admission checks.
            Env var: YMETRIKA_THROTTLE_POLL_INTERVAL

    Example:
        >>> from ymetrika import YMETRIKA
        >>> YMETRIKA.configure(throttle={"max_active_clients": 1, "max_wait_timeout": "unlimited"})
    """

    _NULLABLE_FIELDS = frozenset({"max_wait_timeout"})

    max_active_clients: int = field(default=2, metadata={"env": "YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS"})
    max_wait_timeout: float | None = field(
        default=60.0,
        metadata={"env": "YMETRIKA_THROTTLE_MAX_WAIT_TIMEOUT", "converter": _to_optional_seconds},
    )
    poll_interval: float = field(default=0.1, metadata={"env": "YMETRIKA_THROTTLE_POLL_INTERVAL"})

    def validate(self) -> Self:
        """Validate throttle configuration fields."""
        if self.max_active_clients < 1:
            raise ConfigValidationError(
                "max_active_clients", self.max_active_clients,
                "Must be at least 1.", section="throttle"
            )
        if self.max_wait_timeout is not None and self.max_wait_timeout <= 0:
            raise ConfigValidationError(
                "max_wait_timeout", self.max_wait_timeout,
                "Must be greater than 0 (or None for unlimited).", section="throttle"
            )
        if self.poll_interval <= 0:
            raise ConfigValidationError(
                "poll_interval", self.poll_interval,
                "Must be greater than 0.", section="throttle"
            )
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A configuration field with its resolved value and source.

    Attributes:
        name: The field name (e.g., "poll_interval").
        value: The resolved value.
        source: "default", "env:VAR_NAME" or "configure".

    Example:
        >>> ConfigEntry("token", "y0_AgAAAAABCDEFGH", "configure").formatted_value
        'y0_A********EFGH'
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """Value formatted for display, with the token masked."""
        if self.name == "token" and self.value is not None:
            secret = str(self.value)
            if len(secret) >= 12:
                return f"{secret[:4]}********{secret[-4:]}"
            return "********"

        if self.value is None:
            return "None"

        str_value = str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."
        return str_value


_SECTIONS = ("auth", "client", "throttle")


@dataclass(frozen=True)
class YMetrikaConfig:
    """
    Root configuration aggregating the auth, client and throttle sections.

    `sources` records where each non-default value came from, as
    {"section": {"field": "env:VAR" | "configure"}}.
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    sources: dict[str, dict[str, str]] = field(default_factory=dict, repr=False, compare=False)

    def with_env_vars(self) -> YMetrikaConfig:
        """Return a new config with YMETRIKA_* environment variables applied."""
        sources = {section: dict(values) for section, values in self.sources.items()}
        for section_name in _SECTIONS:
            for f in fields(getattr(self, section_name)):
                env_var = f.metadata.get("env")
                if env_var and os.environ.get(env_var):
                    sources.setdefault(section_name, {})[f.name] = f"env:{env_var}"

        return YMetrikaConfig(
            auth=self.auth.with_env_vars(),
            client=self.client.with_env_vars(),
            throttle=self.throttle.with_env_vars(),
            sources=sources,
        )

    def with_section_overrides(
        self,
        *,
        auth: dict[str, Any] | None = None,
        client: dict[str, Any] | None = None,
        throttle: dict[str, Any] | None = None,
    ) -> YMetrikaConfig:
        """Return a new config with per-section overrides applied."""
        sources = {section: dict(values) for section, values in self.sources.items()}
        for section_name, overrides in (("auth", auth), ("client", client), ("throttle", throttle)):
            for name in overrides or {}:
                sources.setdefault(section_name, {})[name] = "configure"

        return YMetrikaConfig(
            auth=self.auth.with_overrides(auth or {}),
            client=self.client.with_overrides(client or {}),
            throttle=self.throttle.with_overrides(throttle or {}),
            sources=sources,
        )

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """Return every config value with its source, grouped by section."""
        return {
            section_name: [
                ConfigEntry(
                    name=f.name,
                    value=getattr(getattr(self, section_name), f.name),
                    source=self.sources.get(section_name, {}).get(f.name, "default"),
                )
                for f in fields(getattr(self, section_name))
            ]
            for section_name in _SECTIONS
        }


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _YMetrika:
    """
    Singleton holding the current configuration.

    Example:
        >>> from ymetrika import YMETRIKA
        >>> YMETRIKA.configure(throttle={"max_active_clients": 1})
        >>> YMETRIKA.config.throttle.max_active_clients
        1
    """

    def __init__(self) -> None:
        self._config: YMetrikaConfig = YMetrikaConfig().with_env_vars()

    def configure(
        self,
        *,
        auth: dict[str, Any] | None = None,
        client: dict[str, Any] | None = None,
        throttle: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> YMetrikaConfig:
        """
        Configure client defaults.

        Args:
            auth: Auth overrides (token).
            client: Client overrides (host, port, request_timeout, max_workers).
            throttle: Throttle overrides (max_active_clients, max_wait_timeout, poll_interval).
            allow_env_override: If True (default), env vars fill the fields
                NOT provided here. If False, env vars are ignored.

        Returns:
            The configured YMetrikaConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = YMetrikaConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(
            auth=auth,
            client=client,
            throttle=throttle,
        )
        return self.validate()

    @property
    def config(self) -> YMetrikaConfig:
        """Current configuration (read-only)."""
        return self._config

    def reset(self) -> YMetrikaConfig:
        """Reset configuration to defaults + env vars. Useful between tests."""
        self._config = YMetrikaConfig().with_env_vars()
        return self.validate()

    def validate(self) -> YMetrikaConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.auth.validate()
        self._config.client.validate()
        self._config.throttle.validate()
        return self._config

    def explain(
        self,
        output: Callable[[str], None] = print,
    ) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `YMETRIKA.explain(logger.info)`
        """
        name_width = 22
        value_width = 50
        total_width = 2 + name_width + 2 + (value_width + 2) + 1 + 8

        output("YMetrika Configuration:")
        output("=" * total_width)
        output(f"  {'Field':<{name_width}} │ {'Value':<{value_width}} │ Source")
        output(f"--{'-' * name_width}-+{'-' * (value_width + 2)}+--------")

        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                value_padded = entry.formatted_value.ljust(value_width)
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {value_padded} {marker} {entry.source}")

        output("=" * total_width)

    def __repr__(self) -> str:
        return f"YMETRIKA(config={self._config!r})"


# Global singleton instance - always reflects current configuration
YMETRIKA: _YMetrika = _YMetrika()
YMETRIKA.validate()
