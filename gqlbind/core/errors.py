"""Exception types raised by gqlbind.

Setup-time misconfiguration raises ConfigurationError and aborts startup.
Generation-time failures (SchemaLoadError, GenerationError) abort the current
generation pass and leave the previously generated output in place.
RuntimeRequestError is raised by the transport on a failed GraphQL response
and is captured by the dispatch layer rather than surfaced to callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .transport import GqlError


class GqlBindError(Exception):
    """Base class for all gqlbind errors."""


class ConfigurationError(GqlBindError):
    """Raised when the client configuration cannot be resolved."""

    def __init__(
        self,
        message: str,
        client: str | None = None,
        variable: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.client = client
        self.variable = variable


class SchemaLoadError(GqlBindError):
    """Raised when a client's schema cannot be loaded or introspected."""

    def __init__(self, message: str, client: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.client = client


class GenerationError(GqlBindError):
    """Raised when code generation fails."""


class RuntimeRequestError(GqlBindError):
    """Raised by the transport for a non-2xx or GraphQL-error response."""

    def __init__(self, message: str, error: GqlError) -> None:
        super().__init__(message)
        self.message = message
        self.error = error
