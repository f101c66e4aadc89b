"""Runtime client registry.

Holds the live request state of every configured client (headers, CORS
options and the bound transport) together with the shared error slot.
A registry is created once by the application and passed to whatever needs
to read or patch client state.

Example usage:
    registry = ClientRegistry(resolved)
    registry.set_token(TokenOptions(token="abc", client="blog"))
    registry.set_headers(HeaderOptions(headers={}, respect_defaults=True))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

import structlog

from .auth import DEFAULT_TOKEN_NAME, token_header_value
from .config import DEFAULT_CLIENT, ClientDescriptor, ResolvedConfig
from .errors import ConfigurationError
from .transport import GqlError, GraphQLTransport, inbound_cookie

log = structlog.get_logger()

TransportFactory = Callable[[str, Mapping[str, str]], GraphQLTransport]
ErrorHandler = Callable[[GqlError], Any]


@dataclass
class ClientState:
    """Live request state for one client."""
    transport: GraphQLTransport
    headers: dict[str, str] = field(default_factory=dict)
    cors_mode: Optional[str] = None
    cors_credentials: Optional[str] = None

    def options(self) -> dict[str, Any]:
        return {
            "headers": dict(self.headers),
            "mode": self.cors_mode,
            "credentials": self.cors_credentials,
        }


@dataclass
class TokenOptions:
    """Arguments for ClientRegistry.set_token.

    Attributes:
        token: The token; a falsy value removes the auth header
        client: Target client name
        name: Header name (defaults to the client's configured name, then Authorization)
        type: Auth scheme (defaults to the client's configured type, then Bearer)
    """
    token: Optional[str] = None
    client: str = DEFAULT_CLIENT
    name: Optional[str] = None
    type: Optional[str] = None


@dataclass
class HeaderOptions:
    """Arguments for ClientRegistry.set_headers."""
    headers: Optional[Mapping[str, Optional[str]]] = None
    client: str = DEFAULT_CLIENT
    respect_defaults: bool = False


@dataclass
class CorsOptions:
    mode: Optional[str] = None
    credentials: Optional[str] = None
    client: str = DEFAULT_CLIENT


class ErrorSlot:
    """Most recent captured GraphQL error plus an optional handler.

    A handler sees each captured error at most once. A handler registered
    after an error was captured receives that error immediately.
    """

    def __init__(self):
        self._error: Optional[GqlError] = None
        self._handler: Optional[ErrorHandler] = None
        # Handlers that already saw the current error
        self._delivered: list[ErrorHandler] = []

    @property
    def error(self) -> Optional[GqlError]:
        return self._error

    def capture(self, error: GqlError) -> None:
        """Record an error and forward it to the handler, if one is set."""
        self._error = error
        self._delivered = []
        if self._handler is None:
            log.error(
                "graphql_error",
                client=error.client,
                status=error.status,
                operation=error.operation_name,
                errors=error.gql_errors,
            )
            return
        self._deliver()

    def on_error(self, handler: ErrorHandler) -> None:
        """Register the error handler, replaying a pending error to it."""
        self._handler = handler
        if self._error is not None and handler not in self._delivered:
            self._deliver()

    def clear(self) -> None:
        self._error = None
        self._delivered = []

    def _deliver(self) -> None:
        handler = self._handler
        self._delivered.append(handler)
        handler(self._error)


class ClientRegistry:
    """Per-client runtime state seeded from the resolved configuration.

    Args:
        resolved: The resolved configuration
        server: Whether this registry serves a server context. Server-only
            headers and non-retained tokens are only applied on the server,
            and the server always talks to `host` rather than `client_host`.
        transport_factory: Builds a transport from (url, headers)
    """

    def __init__(
        self,
        resolved: ResolvedConfig,
        server: bool = True,
        transport_factory: TransportFactory = GraphQLTransport,
    ):
        self.resolved = resolved
        self.server = server
        self.errors = ErrorSlot()
        self._transport_factory = transport_factory
        self._states: dict[str, ClientState] = {
            name: self._initial_state(client) for name, client in resolved.clients.items()
        }

    def _initial_state(self, client: ClientDescriptor) -> ClientState:
        url = client.host
        if not self.server and client.client_host:
            url = client.client_host
        headers = client.request_headers(self.server)
        state = ClientState(transport=self._transport_factory(url, headers), headers=headers)
        state.transport.set_options(
            {**state.options(), "proxy_cookies": self.server and client.proxy_cookies}
        )
        return state

    @property
    def clients(self) -> list[str]:
        return list(self._states)

    def descriptor(self, client: str = DEFAULT_CLIENT) -> ClientDescriptor:
        self.get_state(client)
        return self.resolved.clients[client]

    def get_state(self, client: str = DEFAULT_CLIENT) -> ClientState:
        """Return the live state slot for a client (not a copy)."""
        try:
            return self._states[client]
        except KeyError:
            raise ConfigurationError(
                f"Unknown GraphQL client: {client}. Configured clients: "
                f"{', '.join(self._states) or 'none'}",
                client=client,
            ) from None

    def transport(self, client: str = DEFAULT_CLIENT) -> GraphQLTransport:
        return self.get_state(client).transport

    def patch(self, client: str, partial: Mapping[str, Any]) -> ClientState:
        """Merge a partial state into a client's state.

        Header entries are added or replaced key by key; a header set to None
        is removed. `mode` and `credentials` are replaced when present. Keys
        absent from the patch are left untouched.
        """
        state = self.get_state(client)
        headers = dict(state.headers)
        for key, value in (partial.get("headers") or {}).items():
            if value is None:
                headers.pop(key, None)
            else:
                headers[key] = value
        mode = partial["mode"] if "mode" in partial else state.cors_mode
        credentials = partial["credentials"] if "credentials" in partial else state.cors_credentials

        # Apply in one step so no half-merged state is observable
        state.headers, state.cors_mode, state.cors_credentials = headers, mode, credentials
        state.transport.set_options(state.options())
        return state

    def set_token(self, options: TokenOptions) -> None:
        """Set or remove the auth header of a client."""
        configured = self.descriptor(options.client).token
        name = options.name or configured.name or DEFAULT_TOKEN_NAME
        scheme = options.type if options.type is not None else configured.type
        self.patch(options.client, {"headers": {name: token_header_value(options.token, scheme)}})

    def set_headers(self, options: HeaderOptions) -> None:
        """Add, reset or clear the headers of a client.

        A non-empty mapping is merged key by key. An empty mapping resets the
        headers to the configured defaults when respect_defaults is set, and
        clears them otherwise.
        """
        if options.headers:
            self.patch(options.client, {"headers": options.headers})
            return

        state = self.get_state(options.client)
        if options.respect_defaults:
            defaults = self.descriptor(options.client).request_headers(self.server)
            state.headers = dict(defaults)
        else:
            state.headers = {}
        state.transport.set_options(state.options())

    def set_cors(self, options: CorsOptions) -> None:
        self.patch(options.client, {"mode": options.mode, "credentials": options.credentials})

    def proxy_cookies(self, cookie_header: Optional[str]) -> None:
        """Forward an incoming request's cookies to clients that allow it.

        The cookie is bound to the current context (the task serving the
        inbound request), never to the shared client state. Passing None
        stops forwarding for the rest of the context.
        """
        if not self.server:
            return
        inbound_cookie.set(cookie_header or None)

    async def aclose(self) -> None:
        """Close every client transport."""
        for state in self._states.values():
            await state.transport.close()
