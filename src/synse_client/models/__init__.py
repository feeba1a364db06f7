"""Data models for the Synse client."""

from .base import WireModel
from .device import Capabilities, Info, Output, Scan, WriteCapability
from .enums import ConnectionState, Transport
from .error import ErrorResponse
from .options import (
    ReadCacheOptions,
    ReadOptions,
    ReadStreamOptions,
    ScanOptions,
    TagsOptions,
)
from .plugin import (
    HealthCheck,
    Plugin,
    PluginHealth,
    PluginHealthDetail,
    PluginMeta,
    PluginNetwork,
    PluginVersion,
)
from .reading import Read, Unit
from .server import Config, Status, Version
from .write import Transaction, Write, WriteData

__all__ = [
    "Capabilities",
    "Config",
    "ConnectionState",
    "ErrorResponse",
    "HealthCheck",
    "Info",
    "Output",
    "Plugin",
    "PluginHealth",
    "PluginHealthDetail",
    "PluginMeta",
    "PluginNetwork",
    "PluginVersion",
    "Read",
    "ReadCacheOptions",
    "ReadOptions",
    "ReadStreamOptions",
    "ScanOptions",
    "Status",
    "TagsOptions",
    "Transaction",
    "Transport",
    "Unit",
    "Version",
    "WireModel",
    "Write",
    "WriteCapability",
    "WriteData",
]
