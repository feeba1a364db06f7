"""Reading records."""

from typing import Any, Dict, Optional

from pydantic import Field

from .base import WireModel


class Unit(WireModel):
    system: str = ""
    name: str = ""
    symbol: str = ""


class Read(WireModel):
    """A single device reading."""

    device: str = ""
    device_type: str = ""
    type: str = ""
    value: Any = None
    timestamp: str = ""
    unit: Optional[Unit] = None
    context: Dict[str, Any] = Field(default_factory=dict)
