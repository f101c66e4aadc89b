"""Operation dispatch.

Routes an operation name to the client that owns it and calls the generated
binding on that client's transport. Failed GraphQL responses are captured
into the registry's error slot instead of being raised to the caller.

Example usage:
    dispatcher = OperationDispatcher(registry, gql_sdk.get_sdk, GQL_OPERATIONS)
    post = await dispatcher.invoke("GetPost", {"id": 1})
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Callable, Mapping, MutableMapping, Optional, Sequence

import structlog

from .config import DEFAULT_CLIENT
from .errors import RuntimeRequestError
from .generator import safe_name
from .registry import ClientRegistry
from .transport import GqlError, GraphQLTransport, ResponseErrorContext

log = structlog.get_logger()

SdkFactory = Callable[[GraphQLTransport], Any]


def cache_key(operation: str, client: str, variables: Optional[Mapping[str, Any]] = None) -> str:
    """Stable key for an operation call, independent of variable ordering."""
    payload = json.dumps(
        {"operation": operation, "client": client, "variables": variables},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class DocumentSdk:
    """Bindings that send raw operation sources, used when codegen is off.

    Example:
        sdk = DocumentSdk(transport, {"GetPost": "query GetPost($id: ID!) { ... }"})
        data = await sdk.GetPost({"id": 1})
    """

    def __init__(self, transport: GraphQLTransport, sources: Mapping[str, str]):
        self._transport = transport
        self._sources = dict(sources)

    def __getattr__(self, name: str):
        sources = self.__dict__.get("_sources", {})
        operation = name if name in sources else name.rstrip("_")
        if operation not in sources:
            raise AttributeError(f"Unknown operation: {name}")

        async def call(variables: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
            return await self._transport.request(
                sources[operation], variables, operation_name=operation
            )

        call.__name__ = operation
        return call


class OperationDispatcher:
    """Calls generated bindings on the transport of the owning client.

    Args:
        registry: The runtime client registry
        sdk_factory: Builds the bindings for a transport (the generated get_sdk)
        client_operations: Client name to the operation names it owns
    """

    def __init__(
        self,
        registry: ClientRegistry,
        sdk_factory: SdkFactory,
        client_operations: Mapping[str, Sequence[str]],
    ):
        self.registry = registry
        self.sdk_factory = sdk_factory
        self.client_operations = {k: list(v) for k, v in client_operations.items()}
        self._in_flight: dict[str, int] = {}

    def owner_of(self, operation: str) -> str:
        for client, operations in self.client_operations.items():
            if operation in operations:
                return client
        return DEFAULT_CLIENT

    def _observer(self, client: str) -> Callable[[ResponseErrorContext], None]:
        def on_response_error(context: ResponseErrorContext) -> None:
            self.registry.errors.capture(
                GqlError(
                    client=client,
                    status=context.status,
                    operation_name=context.operation_name,
                    gql_errors=context.gql_errors,
                )
            )

        return on_response_error

    def _attach(self, client: str, transport: GraphQLTransport) -> None:
        # One observer per client while any of its operations is in flight
        count = self._in_flight.get(client, 0)
        if count == 0:
            transport.set_middleware(on_response_error=self._observer(client))
        self._in_flight[client] = count + 1

    def _detach(self, client: str, transport: GraphQLTransport) -> None:
        count = self._in_flight.pop(client) - 1
        if count:
            self._in_flight[client] = count
        else:
            transport.set_middleware(on_response_error=None)

    async def invoke(self, operation: str, variables: Optional[Any] = None) -> Any:
        """Run an operation on its owning client.

        The response-error observer is attached to the owning transport for
        the duration of the call only.

        Returns:
            The binding's result, or None when the response failed and the
            error was captured

        Raises:
            ConfigurationError: If the owning client is not registered
        """
        client = self.owner_of(operation)
        transport = self.registry.transport(client)

        sdk = self.sdk_factory(transport)
        try:
            method = getattr(sdk, safe_name(operation))
        except AttributeError:
            raise AttributeError(f"No binding for operation {operation!r}") from None

        log.debug("operation_dispatched", operation=operation, client=client)
        self._attach(client, transport)
        try:
            return await method(variables)
        except RuntimeRequestError as e:
            log.debug("operation_failed", operation=operation, client=client, status=e.error.status)
            return None
        finally:
            self._detach(client, transport)

    async def fetch(
        self,
        operation: str,
        variables: Optional[Mapping[str, Any]] = None,
        cache: Optional[MutableMapping[str, Any]] = None,
    ) -> Any:
        """Invoke an operation, memoizing successful results in `cache`."""
        key = cache_key(operation, self.owner_of(operation), variables)
        if cache is not None and key in cache:
            return cache[key]
        result = await self.invoke(operation, variables)
        if cache is not None and result is not None:
            cache[key] = result
        return result
