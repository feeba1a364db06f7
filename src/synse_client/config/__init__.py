"""Configuration management for the Synse client."""

from synse_client.api.exceptions import ConfigurationError
from synse_client.config.loader import (
    build_options,
    get_options,
    load_options,
    reload_options,
)
from synse_client.config.settings import (
    ClientOptions,
    RetryOptions,
    TLSOptions,
    WebSocketOptions,
)

__all__ = [
    "ClientOptions",
    "ConfigurationError",
    "RetryOptions",
    "TLSOptions",
    "WebSocketOptions",
    "build_options",
    "get_options",
    "load_options",
    "reload_options",
]
