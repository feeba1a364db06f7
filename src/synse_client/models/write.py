"""Write payloads and the transactions they produce."""

from typing import Any

from pydantic import Field

from .base import WireModel


class WriteData(WireModel):
    """One write instruction sent to a device."""

    transaction: str = ""
    action: str = ""
    data: Any = None


class Write(WireModel):
    """Transaction handle returned by an asynchronous write."""

    id: str = ""
    device: str = ""
    transaction: str = ""
    timeout: str = ""
    context: WriteData = Field(default_factory=WriteData)


class Transaction(WireModel):
    """State and status of a write transaction."""

    id: str = ""
    timeout: str = ""
    device: str = ""
    context: WriteData = Field(default_factory=WriteData)
    status: str = ""
    created: str = ""
    updated: str = ""
    message: str = ""
