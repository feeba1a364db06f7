"""Synse Server route and event definitions.

The HTTP API has two unversioned routes (status and version); every other
route lives under the API version segment reported by ``/version``. The
WebSocket API is a single versioned entry route carrying JSON envelopes.
"""

from dataclasses import dataclass
from typing import Optional

# The WebSocket entry route cannot be discovered over the socket itself.
DEFAULT_API_VERSION = "v3"


@dataclass(frozen=True)
class Endpoints:
    """Collection of HTTP API routes.

    Unversioned routes are absolute; versioned routes are relative to
    ``/{api_version}/``. ``{id}`` placeholders take a plugin, device or
    transaction id.

    Attributes:
        status: Status check endpoint (GET, unversioned)
        version: Version endpoint (GET, unversioned)
        config: Unified config endpoint (GET)
        plugins: Plugin summary endpoint (GET)
        plugin: Single plugin endpoint (GET)
        plugin_health: Plugin health endpoint (GET)
        scan: Device scan endpoint (GET)
        tags: Tag listing endpoint (GET)
        info: Device info endpoint (GET)
        read: Read endpoint (GET)
        read_device: Single-device read endpoint (GET)
        read_cache: Cached readings endpoint (GET, newline-delimited JSON)
        write_async: Asynchronous write endpoint (POST)
        write_sync: Synchronous write endpoint (POST)
        transactions: Transaction listing endpoint (GET)
        transaction: Single transaction endpoint (GET)
        connect: WebSocket entry route
    """

    status: str
    version: str
    config: str
    plugins: str
    plugin: str
    plugin_health: str
    scan: str
    tags: str
    info: str
    read: str
    read_device: str
    read_cache: str
    write_async: str
    write_sync: str
    transactions: str
    transaction: str
    connect: str


ENDPOINTS = Endpoints(
    status="/test",
    version="/version",
    config="config",
    plugins="plugin",
    plugin="plugin/{id}",
    plugin_health="plugin/health",
    scan="scan",
    tags="tags",
    info="info/{id}",
    read="read",
    read_device="read/{id}",
    read_cache="readcache",
    write_async="write/{id}",
    write_sync="write/wait/{id}",
    transactions="transaction",
    transaction="transaction/{id}",
    connect="connect",
)


def build_url(scheme: str, address: str, *path: str) -> str:
    """Build a complete URL from a scheme, a host[:port] address and path parts.

    Example:
        >>> build_url("ws", "localhost:5000", "v3", "connect")
        'ws://localhost:5000/v3/connect'
    """
    parts = [p.strip("/") for p in path if p and p.strip("/")]
    if not parts:
        return f"{scheme}://{address}"
    return f"{scheme}://{address}/" + "/".join(parts)


def versioned_path(api_version: str, route: str, item_id: Optional[str] = None) -> str:
    """Return the absolute path for a versioned route.

    Example:
        >>> versioned_path("v3", ENDPOINTS.info, "abc")
        '/v3/info/abc'
    """
    if item_id is not None:
        route = route.format(id=item_id)
    return f"/{api_version.strip('/')}/{route.lstrip('/')}"
