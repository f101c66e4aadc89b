"""HTTP transport for executing GraphQL operations.

Handles HTTP communication, per-client request options, response-error
middleware and response parsing.
"""

from __future__ import annotations

import inspect
import json
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Union

import httpx
from graphql import GraphQLError, OperationDefinitionNode, parse

from .errors import RuntimeRequestError

# Cookie header of the inbound request served in the current context
inbound_cookie: ContextVar[str | None] = ContextVar("gqlbind_inbound_cookie", default=None)


@dataclass
class GqlError:
    """A captured GraphQL failure."""
    client: str | None = None
    status: int | None = None
    operation_name: str | None = None
    gql_errors: list[Any] = field(default_factory=list)


@dataclass
class ResponseErrorContext:
    """What a response-error hook receives."""
    request_body: str
    status: int
    payload: Any

    @property
    def operation_name(self) -> str | None:
        """Operation name taken from the outgoing request body."""
        try:
            query = json.loads(self.request_body).get("query") or ""
        except (ValueError, AttributeError):
            return None
        return extract_operation_name(query)

    @property
    def gql_errors(self) -> list[Any]:
        if isinstance(self.payload, dict) and isinstance(self.payload.get("errors"), list):
            return list(self.payload["errors"])
        return [self.payload]


ResponseErrorHook = Callable[[ResponseErrorContext], Union[None, Awaitable[None]]]


def extract_operation_name(query: str) -> str | None:
    """Return the name of the first named operation in a query document."""
    try:
        document = parse(query)
    except GraphQLError:
        return None
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode) and definition.name:
            return definition.name.value
    return None


class GraphQLTransport:
    """Executes GraphQL documents against an endpoint.

    Examples:
        transport = GraphQLTransport("https://api.example.com/graphql")
        transport.set_options({"headers": {"Authorization": "Bearer abc"}})
        data = await transport.request("query Me { me { id } }")
    """

    def __init__(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the transport.

        Args:
            url: GraphQL endpoint URL
            headers: Initial request headers
            timeout: Request timeout in seconds
            client: Optional pre-built httpx client (not closed by close())
        """
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.options: dict[str, Any] = {
            "headers": dict(headers or {}),
            "mode": None,
            "credentials": None,
            "proxy_cookies": False,
        }
        self._on_response_error: ResponseErrorHook | None = None

    @property
    def headers(self) -> dict[str, str]:
        return dict(self.options["headers"])

    def set_options(self, patch: Mapping[str, Any]) -> None:
        """Replace the given options. Header entries set to None are dropped."""
        for key, value in patch.items():
            if key == "headers":
                self.options["headers"] = {
                    k: v for k, v in (value or {}).items() if v is not None
                }
            else:
                self.options[key] = value

    def set_middleware(self, on_response_error: ResponseErrorHook | None = None) -> None:
        """Install the response-error hook, replacing any previous one."""
        self._on_response_error = on_response_error

    def _request_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self.options["headers"]}
        cookie = inbound_cookie.get()
        if cookie and self.options.get("proxy_cookies"):
            headers["Cookie"] = cookie
        if self.options.get("credentials") == "omit":
            headers = {k: v for k, v in headers.items() if k.lower() != "cookie"}
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        document: str,
        variables: Mapping[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL document.

        Returns:
            The 'data' portion of the response

        Raises:
            RuntimeRequestError: On a non-2xx status or a response with errors,
                after the response-error hook has run
            httpx.HTTPError: On a transport failure
        """
        payload: dict[str, Any] = {"query": document}
        if variables:
            payload["variables"] = dict(variables)
        if operation_name:
            payload["operationName"] = operation_name
        body = json.dumps(payload)

        client = await self._get_client()
        response = await client.post(self.url, content=body, headers=self._request_headers())

        try:
            result = response.json()
        except ValueError:
            result = response.text or None

        errors = result.get("errors") if isinstance(result, dict) else None
        if response.is_success and not errors and isinstance(result, dict):
            return result.get("data") or {}

        context = ResponseErrorContext(request_body=body, status=response.status_code, payload=result)
        if self._on_response_error is not None:
            outcome = self._on_response_error(context)
            if inspect.isawaitable(outcome):
                await outcome

        error = GqlError(
            status=context.status,
            operation_name=context.operation_name,
            gql_errors=context.gql_errors,
        )
        raise RuntimeRequestError(
            f"GraphQL request failed with status {context.status}", error
        )
