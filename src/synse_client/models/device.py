"""Device records returned by scan and info."""

from typing import Any, Dict, List

from pydantic import Field

from .base import WireModel
from .reading import Unit


class Scan(WireModel):
    """One device entry from a scan."""

    id: str = ""
    alias: str = ""
    info: str = ""
    type: str = ""
    plugin: str = ""
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WriteCapability(WireModel):
    actions: List[str] = Field(default_factory=list)


class Capabilities(WireModel):
    mode: str = ""
    read: Dict[str, Any] = Field(default_factory=dict)
    write: WriteCapability = Field(default_factory=WriteCapability)


class Output(WireModel):
    name: str = ""
    type: str = ""
    precision: int = 0
    scaling_factor: float = 0.0
    units: List[Unit] = Field(default_factory=list)


class Info(WireModel):
    """Full meta info and capabilities for one device."""

    timestamp: str = ""
    id: str = ""
    type: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    plugin: str = ""
    info: str = ""
    tags: List[str] = Field(default_factory=list)
    capabilities: Capabilities = Field(default_factory=Capabilities)
    output: List[Output] = Field(default_factory=list)
