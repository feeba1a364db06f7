"""Build and version information for the Synse client.

Values are captured once at import time from the installed package
metadata and from ``SYNSE_CLIENT_*`` environment variables set by the
build (for example in a container image).
"""

from __future__ import annotations

import os
import platform
import sys
from dataclasses import asdict, dataclass
from importlib import metadata
from typing import Any, Dict

from synse_client import __version__

DISTRIBUTION_NAME = "synse-client"
ENV_PREFIX = "SYNSE_CLIENT_"


@dataclass(frozen=True)
class BuildInfo:
    """Version and build details of the running client.

    Attributes:
        version: Package version.
        git_commit: Commit the build came from, if known.
        git_tag: Tag the build came from, if known.
        build_date: When the build was made, if known.
        python_version: Interpreter version.
        os: Operating system name.
        arch: Machine architecture.
    """

    version: str
    git_commit: str
    git_tag: str
    build_date: str
    python_version: str
    os: str
    arch: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _package_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return __version__


def _build_value(name: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", "")


_BUILD_INFO = BuildInfo(
    version=_package_version(),
    git_commit=_build_value("GIT_COMMIT"),
    git_tag=_build_value("GIT_TAG"),
    build_date=_build_value("BUILD_DATE"),
    python_version=platform.python_version(),
    os=sys.platform,
    arch=platform.machine(),
)


def get_build_info() -> BuildInfo:
    """Return the build information captured at import time."""
    return _BUILD_INFO
