"""Server-level records: status, version and unified config."""

from typing import Dict, List

from pydantic import Field

from .base import WireModel


class Status(WireModel):
    """Response for the status check (``/test``)."""

    status: str = ""
    timestamp: str = ""


class Version(WireModel):
    """Response for ``/version``.

    ``api_version`` is the path segment that prefixes every versioned route.
    """

    version: str = ""
    api_version: str = ""


class KubernetesEndpoints(WireModel):
    labels: Dict[str, str] = Field(default_factory=dict)


class KubernetesDiscovery(WireModel):
    namespace: str = ""
    endpoints: KubernetesEndpoints = Field(default_factory=KubernetesEndpoints)


class DiscoveryConfig(WireModel):
    kubernetes: KubernetesDiscovery = Field(default_factory=KubernetesDiscovery)


class PluginConfig(WireModel):
    tcp: List[str] = Field(default_factory=list)
    unix: List[str] = Field(default_factory=list)
    discover: DiscoveryConfig = Field(default_factory=DiscoveryConfig)


class TTLConfig(WireModel):
    ttl: int = 0


class CacheConfig(WireModel):
    device: TTLConfig = Field(default_factory=TTLConfig)
    transaction: TTLConfig = Field(default_factory=TTLConfig)


class GRPCTLSConfig(WireModel):
    cert: str = ""


class GRPCConfig(WireModel):
    timeout: int = 0
    tls: GRPCTLSConfig = Field(default_factory=GRPCTLSConfig)


class MetricsConfig(WireModel):
    enabled: bool = False


class TransportConfig(WireModel):
    http: bool = False
    websocket: bool = False


class Config(WireModel):
    """Unified configuration reported by Synse Server (``/config``)."""

    locale: str = ""
    logging: str = ""
    pretty_json: bool = False
    plugin: PluginConfig = Field(default_factory=PluginConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    grpc: GRPCConfig = Field(default_factory=GRPCConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
