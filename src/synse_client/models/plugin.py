"""Plugin records: summaries, details and aggregate health."""

from typing import List

from pydantic import Field

from .base import WireModel


class PluginVersion(WireModel):
    plugin_version: str = ""
    sdk_version: str = ""
    build_date: str = ""
    git_commit: str = ""
    git_tag: str = ""
    arch: str = ""
    os: str = ""


class PluginNetwork(WireModel):
    protocol: str = ""
    address: str = ""


class HealthCheck(WireModel):
    name: str = ""
    status: str = ""
    message: str = ""
    timestamp: str = ""
    type: str = ""


class PluginHealthDetail(WireModel):
    timestamp: str = ""
    status: str = ""
    message: str = ""
    checks: List[HealthCheck] = Field(default_factory=list)


class PluginMeta(WireModel):
    """Summary entry returned by the plugin listing."""

    active: bool = False
    id: str = ""
    name: str = ""
    description: str = ""
    maintainer: str = ""
    tag: str = ""
    vcs: str = ""
    version: PluginVersion = Field(default_factory=PluginVersion)


class Plugin(PluginMeta):
    """Full detail for a single plugin."""

    network: PluginNetwork = Field(default_factory=PluginNetwork)
    health: PluginHealthDetail = Field(default_factory=PluginHealthDetail)


class PluginHealth(WireModel):
    """Aggregate health of every registered plugin."""

    status: str = ""
    updated: str = ""
    healthy: List[str] = Field(default_factory=list)
    unhealthy: List[str] = Field(default_factory=list)
    active: int = 0
    inactive: int = 0
