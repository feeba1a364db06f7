"""Request options for filtered operations.

Each options type renders itself two ways:
- ``to_query_params()`` for the HTTP API: lower-cased field names mapped to
  strings, lists joined with ``,``, booleans as ``true``/``false``. Empty
  strings and empty lists are left out.
- ``to_payload()`` for the ``data`` object of a WebSocket request event.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


def _join(values: List[str]) -> str:
    return ",".join(values)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class _Options(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_payload(self) -> Dict[str, Any]:
        """Return the WebSocket ``data`` object, omitting unset fields."""
        return self.model_dump(mode="json", exclude_defaults=True)


class ScanOptions(_Options):
    """Filters for a device scan."""

    ns: str = ""
    tags: List[str] = Field(default_factory=list)
    force: bool = False
    sort: List[str] = Field(default_factory=list)

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.ns:
            params["ns"] = self.ns
        if self.tags:
            params["tags"] = _join(self.tags)
        params["force"] = _flag(self.force)
        if self.sort:
            params["sort"] = _join(self.sort)
        return params


class TagsOptions(_Options):
    """Filters for the tag listing. No namespace means the default one."""

    ns: List[str] = Field(default_factory=list)
    ids: bool = False

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.ns:
            params["ns"] = _join(self.ns)
        params["ids"] = _flag(self.ids)
        return params


class ReadOptions(_Options):
    """Filters for reads by namespace and tags."""

    ns: str = ""
    tags: List[str] = Field(default_factory=list)

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.ns:
            params["ns"] = self.ns
        if self.tags:
            params["tags"] = _join(self.tags)
        return params


class ReadCacheOptions(_Options):
    """Time bounds for a cache replay. Empty bounds are open-ended."""

    start: str = ""
    end: str = ""

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.start:
            params["start"] = self.start
        if self.end:
            params["end"] = self.end
        return params


class ReadStreamOptions(_Options):
    """Filters for a continuous reading stream.

    ``ids`` also filters delivery on the client side: readings for other
    devices are not forwarded to the subscription.
    """

    ids: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    stop: bool = False

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.ids:
            params["ids"] = _join(self.ids)
        if self.tags:
            params["tags"] = _join(self.tags)
        if self.stop:
            params["stop"] = _flag(self.stop)
        return params
