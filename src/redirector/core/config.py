"""Configuration types with environment variable support.

Top-level scalar settings missing from the config file can be supplied via
environment variables with the REDIRECTOR_ prefix.
Example: REDIRECTOR_ADDRESS=127.0.0.1:9000 sets address.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from redirector.core.exceptions import ConfigError
from redirector.routing.config import RouteConfig, build_route_table
from redirector.routing.engine import NotFoundPolicy, RedirectEngine, RouteTable


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML, JSON or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, .json or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        elif path.suffix == ".toml":
            data = tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


class RedirectorConfig(BaseSettings):
    """Master configuration: routes plus server settings.

    Example:
        config = load_redirector_config("config.yaml")
        engine = config.to_engine()
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIRECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    routes: dict[str, RouteConfig] = Field(
        default_factory=dict,
        description="Routes keyed by route name.",
    )
    address: str = Field(
        default=":8080",
        description="Bind address as host:port. An empty host binds all interfaces.",
    )
    debug: bool = Field(
        default=False,
        description="Log every condition evaluation.",
    )
    log_level: str = Field(
        default="info",
        pattern="^(debug|info|warning|error)$",
        description="Log level when debug is off.",
    )
    not_found_redirect: str | None = Field(
        default=None,
        description="Redirect target for requests that match no route.",
    )
    not_found_redirect_status: int | None = Field(
        default=None,
        ge=300,
        le=399,
        description="HTTP status for the not-found redirect.",
    )
    handle_method_not_allowed: bool = Field(
        default=True,
        description="Answer 405 when the path is routed but the method is not.",
    )
    demo_routes: bool = Field(
        default=False,
        description="Serve the /panel and /bye demo pages.",
    )
    control_address: str | None = Field(
        default=None,
        description="Bind address for /health and /metrics. Disabled when unset.",
    )

    @field_validator("address", "control_address", mode="before")
    @classmethod
    def _port_only_address(cls, value: Any) -> Any:
        if isinstance(value, int):
            return f":{value}"
        return value

    @field_validator("address", "control_address")
    @classmethod
    def _check_bind(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                parse_bind(value)
            except ValueError:
                raise ValueError(f"expected host:port, got {value!r}") from None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @model_validator(mode="after")
    def _check_not_found_pair(self) -> RedirectorConfig:
        if bool(self.not_found_redirect) != bool(self.not_found_redirect_status):
            raise ValueError(
                "not_found_redirect and not_found_redirect_status must be set together"
            )
        return self

    @property
    def effective_log_level(self) -> str:
        return "debug" if self.debug else self.log_level

    def not_found_policy(self) -> NotFoundPolicy:
        return NotFoundPolicy(
            redirect=self.not_found_redirect,
            status=self.not_found_redirect_status,
        )

    def to_route_table(self) -> RouteTable:
        """Compile all routes. Raises ConditionError or ConfigError."""
        return build_route_table(self.routes)

    def to_engine(self) -> RedirectEngine:
        """Create a RedirectEngine from this config."""
        return RedirectEngine(
            self.to_route_table(),
            not_found=self.not_found_policy(),
            handle_method_not_allowed=self.handle_method_not_allowed,
        )


def parse_bind(bind: str) -> tuple[str, int]:
    """Parse bind address into host and port.

    ":8080" and "8080" both bind all interfaces. IPv6 hosts are written in
    brackets, e.g. "[::1]:8080".
    """
    host, _, port_text = bind.rpartition(":")
    port = int(port_text)
    if not 0 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    if host.startswith("[") or host.endswith("]"):
        if not (host.startswith("[") and host.endswith("]")) or len(host) < 3:
            raise ValueError(f"Malformed IPv6 host: {host!r}")
        host = host[1:-1]
    return host or "0.0.0.0", port


def load_redirector_config(path: str | Path, **overrides: Any) -> RedirectorConfig:
    """Load and validate a config file.

    Args:
        path: Config file path.
        **overrides: Top-level settings that take precedence over the file.

    Raises:
        ConfigError: If the file cannot be read or fails validation.
    """
    try:
        data = load_config_from_file(path)
    except (FileNotFoundError, ValueError) as e:
        raise ConfigError(str(e)) from e

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return RedirectorConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {_format_validation_error(e)}") from e


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
