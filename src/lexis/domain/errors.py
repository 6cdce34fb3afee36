"""
Error taxonomy for catalog interactions.

Adapters translate transport-specific failures into these types so the
application layer never depends on httpx (or any other client library).
"""


class CatalogError(Exception):
    """Base class for every failure reported by a CatalogClient."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class TransportError(CatalogError):
    """Network, connectivity, timeout or unparseable response."""


class NotFoundError(CatalogError):
    """The referenced vocabulary item (or tag) no longer exists."""


class ValidationError(CatalogError):
    """The catalog rejected the payload (e.g. a malformed review outcome)."""
