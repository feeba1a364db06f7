"""
Synse Client - Python client for the Synse Server v3 API.

This package talks to Synse Server over HTTP or over a single persistent
WebSocket connection, with the same operations on both transports.

Features:
- Configuration via YAML with environment variable overrides
- Structured logging (JSON for production, text for development)
- Robust connection handling with retry and backoff
- Concurrent requests and reading streams multiplexed over one WebSocket
"""

__version__ = "3.0.0"
__all__ = ["__version__"]
