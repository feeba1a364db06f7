"""Pydantic settings models for Synse client connection options."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_PATH_ENV = "SYNSE_CONFIG_PATH"


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads values from a YAML file.

    The YAML file path is determined by the SYNSE_CONFIG_PATH environment variable.
    """

    def get_field_value(
        self, field: Any, field_name: str
    ) -> Tuple[Any, str, bool]:
        """Get field value from YAML config."""
        yaml_config = self._load_yaml_config()
        field_value = yaml_config.get(field_name)
        return field_value, field_name, False

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        config_path = os.environ.get(CONFIG_PATH_ENV)
        if not config_path:
            return {}

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (FileNotFoundError, yaml.YAMLError, PermissionError):
            # Errors will be handled by loader.py
            return {}

    def __call__(self) -> Dict[str, Any]:
        """Return the YAML config values."""
        return self._load_yaml_config()


class RetryOptions(BaseModel):
    """Backoff retry policy for HTTP requests."""

    model_config = ConfigDict(frozen=True)

    count: int = Field(
        default=3,
        description="Number of retries after the first attempt",
        ge=0,
    )
    wait_time: float = Field(
        default=0.1,
        description="Initial wait between retries in seconds",
        ge=0,
    )
    max_wait_time: float = Field(
        default=2.0,
        description="Upper bound on the wait between retries in seconds",
        ge=0,
    )

    @model_validator(mode="after")
    def validate_wait_bounds(self) -> "RetryOptions":
        """Ensure the wait cap is not below the initial wait."""
        if self.max_wait_time < self.wait_time:
            raise ValueError("max_wait_time must be greater than or equal to wait_time")
        return self


class TLSOptions(BaseModel):
    """TLS settings for both transports."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Use https/wss")
    cert_file: Optional[str] = Field(default=None, description="Client certificate (PEM)")
    key_file: Optional[str] = Field(default=None, description="Client private key (PEM)")
    skip_verify: bool = Field(
        default=False,
        description="Skip server certificate verification",
    )

    @model_validator(mode="after")
    def validate_certificates(self) -> "TLSOptions":
        """Certificates must be given and present on disk when TLS is enabled."""
        if not self.enabled:
            return self
        if not self.cert_file and not self.key_file:
            raise ValueError("no certificates are specified")
        if not self.cert_file or not self.key_file:
            raise ValueError("both cert_file and key_file are required when TLS is enabled")
        for path in (self.cert_file, self.key_file):
            if not Path(path).is_file():
                raise ValueError(f"certificate file not found: {path}")
        return self


class WebSocketOptions(BaseModel):
    """WebSocket connection settings."""

    model_config = ConfigDict(frozen=True)

    handshake_timeout: float = Field(
        default=10.0,
        description="Time limit for the opening handshake in seconds",
        gt=0,
    )
    ping_interval: Optional[float] = Field(
        default=20.0,
        description="Keepalive ping interval in seconds (None disables pings)",
    )
    stream_buffer_size: int = Field(
        default=128,
        description="Capacity of the sink created for a stream when none is given",
        ge=1,
    )


class ClientOptions(BaseSettings):
    """Synse client options.

    Options are loaded in the following precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (SYNSE_ prefix, ``__`` for nested fields)
    3. .env file
    4. YAML configuration file (via SYNSE_CONFIG_PATH)
    5. Default values

    Options are immutable once built.
    """

    model_config = SettingsConfigDict(
        env_prefix="SYNSE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    address: str = Field(
        ...,
        description="Synse Server address in host[:port] form",
    )
    timeout: float = Field(
        default=2.0,
        description="Per-request time limit in seconds",
        gt=0,
    )
    retry: RetryOptions = Field(default_factory=RetryOptions)
    tls: TLSOptions = Field(default_factory=TLSOptions)
    websocket: WebSocketOptions = Field(default_factory=WebSocketOptions)

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format: json (production) or text (development)",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to set precedence.

        Order (first = highest priority):
        1. init_settings (constructor arguments)
        2. env_settings (environment variables with SYNSE_ prefix)
        3. dotenv_settings (.env file)
        4. yaml_settings (SYNSE_CONFIG_PATH YAML file)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate address is not empty."""
        if not v or not v.strip():
            raise ValueError("no address is specified")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized
