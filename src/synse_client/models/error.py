"""Error payload returned by Synse Server."""

from .base import WireModel


class ErrorResponse(WireModel):
    """Error body of a failed HTTP call or a ``response/error`` event."""

    http_code: int = 0
    description: str = ""
    timestamp: str = ""
    context: str = ""

    def is_empty(self) -> bool:
        """Return True when no error field carries a value."""
        return not (self.http_code or self.description or self.timestamp or self.context)
