"""
Global configuration for the companycam SDK.

This module provides a simple configuration system following Convention over Configuration (CoC).
Users can optionally call COMPANYCAM.configure() at application startup to customize defaults.
If not called, sensible defaults are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to HttpClient / create_client()
2. Values set via COMPANYCAM.configure()
3. Environment variables (COMPANYCAM_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from companycam import COMPANYCAM
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> timeout = COMPANYCAM.config.http.timeout
    >>>
    >>> # Custom configuration
    >>> COMPANYCAM.configure(
    ...     http={"auth_token": "my-token", "timeout": 10},
    ...     retry={"retries": 5},
    ...     rate_limit={"tokens_per_interval": 60, "interval": 60.0},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

DEFAULT_BASE_URL = "https://api.companycam.com/v2"


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
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("COMPANYCAM_HTTP_TIMEOUT", type_hint=float)
        30.0
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
        if not raw_value:  # None or empty string
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
            return _parse_bool
        return str


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` for creating new instances with partial
    field updates and `.with_env_vars()` for applying the environment
    variables declared in field metadata.

    Example:
        >>> config = HttpConfig()
        >>> custom = config.with_overrides({"timeout": 10})
        >>> custom.timeout
        10
    """

    def with_overrides(
        self,
        overrides: dict[str, Any],
        allow_none_fields: set[str] | None = None,
    ) -> Self:
        """
        Return a new instance with specified fields overridden.

        Args:
            overrides: Dict of field names to new values.
                       Only existing fields are allowed.
            allow_none_fields: Set of field names that accept None as a valid value.
                       By default, None values are filtered out.

        Returns:
            New instance with updated values.

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

        allow_none = allow_none_fields or set()
        filtered = {k: v for k, v in overrides.items() if v is not None or k in allow_none}
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
            if env_var:
                value = EnvVars.get(
                    var_name=env_var,
                    type_hint=f.type,
                    converter=f.metadata.get("converter"),
                )
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class HttpConfig(OverridableConfig):
    """
    Transport defaults used by HttpClient when no argument is given.

    Attributes:
        base_url: Base URL of the CompanyCam API.
            Env var: COMPANYCAM_HTTP_BASE_URL

        timeout: Per-attempt request timeout in seconds.
            Env var: COMPANYCAM_HTTP_TIMEOUT

        auth_token: Default bearer token.
            Env var: COMPANYCAM_HTTP_AUTH_TOKEN

    Example:
        >>> from companycam import COMPANYCAM
        >>> COMPANYCAM.config.http.timeout
        30.0
    """

    base_url: str = field(default=DEFAULT_BASE_URL, metadata={"env": "COMPANYCAM_HTTP_BASE_URL"})
    timeout: float = field(default=30.0, metadata={"env": "COMPANYCAM_HTTP_TIMEOUT", "converter": float})
    auth_token: str | None = field(default=None, metadata={"env": "COMPANYCAM_HTTP_AUTH_TOKEN"})

    def validate(self) -> Self:
        """Validate HTTP configuration fields."""
        if self.base_url and not (self.base_url.startswith("http://") or self.base_url.startswith("https://")):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="http"
            )
        if self.timeout <= 0:
            raise ConfigValidationError(
                "timeout", self.timeout,
                "Must be greater than 0.", section="http"
            )
        if self.auth_token is not None and self.auth_token == "":
            raise ConfigValidationError(
                "auth_token", self.auth_token,
                "Must not be empty string.", section="http"
            )
        return self


@dataclass(frozen=True)
class RetryConfig(OverridableConfig):
    """
    Retry defaults used by HttpClient when no RetryOptions are given.

    Attributes:
        retries: Maximum retry attempts per request.
            Use 0 to disable retries (single attempt only).
            Env var: COMPANYCAM_RETRY_RETRIES

        allow_post_retry: Whether POST requests may be retried.
            Env var: COMPANYCAM_RETRY_ALLOW_POST_RETRY
    """

    retries: int = field(default=3, metadata={"env": "COMPANYCAM_RETRY_RETRIES"})
    allow_post_retry: bool = field(default=False, metadata={"env": "COMPANYCAM_RETRY_ALLOW_POST_RETRY"})

    def validate(self) -> Self:
        """Validate retry configuration fields."""
        if self.retries < 0:
            raise ConfigValidationError(
                "retries", self.retries,
                "Must be >= 0.", section="retry"
            )
        return self


@dataclass(frozen=True)
class RateLimitConfig(OverridableConfig):
    """
    Settings of the RateLimiter that HttpClient creates for itself.

    Only used when HttpClient is built without an explicit ``rate_limiter``.

    Attributes:
        enabled: Whether an owned rate limiter is created.
            Env var: COMPANYCAM_RATE_LIMIT_ENABLED

        tokens_per_interval: Maximum requests started per interval.
            Env var: COMPANYCAM_RATE_LIMIT_TOKENS_PER_INTERVAL

        interval: Interval length in seconds.
            Env var: COMPANYCAM_RATE_LIMIT_INTERVAL

    Example:
        >>> from companycam import COMPANYCAM
        >>> COMPANYCAM.configure(rate_limit={"tokens_per_interval": 10, "interval": 1.0})
    """

    enabled: bool = field(default=True, metadata={"env": "COMPANYCAM_RATE_LIMIT_ENABLED"})
    tokens_per_interval: int = field(default=100, metadata={"env": "COMPANYCAM_RATE_LIMIT_TOKENS_PER_INTERVAL"})
    interval: float = field(default=60.0, metadata={"env": "COMPANYCAM_RATE_LIMIT_INTERVAL", "converter": float})

    def validate(self) -> Self:
        """Validate rate limit configuration fields."""
        if self.tokens_per_interval <= 0:
            raise ConfigValidationError(
                "tokens_per_interval", self.tokens_per_interval,
                "Must be greater than 0.", section="rate_limit"
            )
        if self.interval <= 0:
            raise ConfigValidationError(
                "interval", self.interval,
                "Must be greater than 0.", section="rate_limit"
            )
        return self


@dataclass(frozen=True)
class CompanyCamConfig:
    """
    Global configuration for the companycam SDK.

    Aggregates all configuration sections. Access via `COMPANYCAM.config`.

    Attributes:
        http: Transport defaults (base URL, timeout, auth token).
        retry: Retry defaults.
        rate_limit: Settings for the HttpClient-owned rate limiter.
    """

    http: HttpConfig = field(default_factory=HttpConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    def with_env_vars(self) -> CompanyCamConfig:
        """Return a new config with COMPANYCAM_* environment variables applied on top."""
        return CompanyCamConfig(
            http=self.http.with_env_vars(),
            retry=self.retry.with_env_vars(),
            rate_limit=self.rate_limit.with_env_vars(),
        )

    def with_section_overrides(
        self,
        *,
        http: dict[str, Any] | None = None,
        retry: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
    ) -> CompanyCamConfig:
        """Return a new config with overrides applied to nested sections."""
        return CompanyCamConfig(
            http=self.http.with_overrides(http or {}),
            retry=self.retry.with_overrides(retry or {}),
            rate_limit=self.rate_limit.with_overrides(rate_limit or {}),
        )


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _CompanyCam:
    """
    Singleton for SDK configuration.

    Use `COMPANYCAM.configure()` to customize settings and `COMPANYCAM.config`
    to access current configuration.

    Example:
        >>> from companycam import COMPANYCAM
        >>> COMPANYCAM.configure(http={"auth_token": "..."})
        >>> print(COMPANYCAM.config.http.timeout)
    """

    def __init__(self) -> None:
        """Initialize with defaults and environment variables."""
        self._config: CompanyCamConfig = CompanyCamConfig().with_env_vars()

    def configure(
        self,
        *,
        http: dict[str, Any] | None = None,
        retry: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> CompanyCamConfig:
        """
        Configure SDK settings.

        Call at application startup to customize defaults. Clients created
        afterwards pick up the new values.

        Args:
            http: HTTP config overrides (base_url, timeout, auth_token).
            retry: Retry config overrides (retries, allow_post_retry).
            rate_limit: Rate limiting overrides (enabled, tokens_per_interval, interval).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, ignores env vars entirely.

        Returns:
            The configured CompanyCamConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = CompanyCamConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(
            http=http,
            retry=retry,
            rate_limit=rate_limit,
        )

        return self.validate()

    @property
    def config(self) -> CompanyCamConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> CompanyCamConfig:
        """
        Reset configuration to defaults + env vars.

        Useful for testing to ensure clean state between tests.
        """
        self._config = CompanyCamConfig().with_env_vars()
        return self.validate()

    def validate(self) -> CompanyCamConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.http.validate()
        self._config.retry.validate()
        self._config.rate_limit.validate()
        return self._config

    def __repr__(self) -> str:
        return f"COMPANYCAM(config={self._config!r})"


# Global singleton instance - always reflects current configuration
COMPANYCAM: _CompanyCam = _CompanyCam()
COMPANYCAM.validate()  # Validate defaults + env vars on module load
