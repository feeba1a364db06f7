"""Shared base model for Synse wire records."""

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Base for every record exchanged with Synse Server.

    Unknown fields are kept so a record round-trips to the wire verbatim.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize to a JSON-ready dict using wire field names."""
        return self.model_dump(mode="json", by_alias=True)
