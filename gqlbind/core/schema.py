"""Schema resolution for code generation.

Each client's schema comes from either a local schema file or live
introspection of the client's host, with the client's auth and static
headers applied. Schemas are emitted as independent specs, or loaded and
stitched into a single SDL document when stitching is enabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

import httpx
import structlog
from graphql import (
    GraphQLError,
    GraphQLSchema,
    build_ast_schema,
    build_client_schema,
    get_introspection_query,
    parse,
)

from .auth import HeaderAuth, TokenAuth, combine_headers
from .config import ClientDescriptor, StitchOptions
from .errors import SchemaLoadError
from .stitching import stitch_schemas

log = structlog.get_logger()


@dataclass
class SchemaSpec:
    """Where one client's schema comes from."""
    client: str
    path: Path | None = None
    host: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def pointer(self) -> str | dict[str, Any]:
        """The local path, the bare host, or {host: {"headers": {...}}}."""
        if self.path is not None:
            return str(self.path)
        if not self.headers:
            return self.host
        return {self.host: {"headers": dict(self.headers)}}


def introspection_headers(client: ClientDescriptor) -> dict[str, str]:
    """Headers used to introspect a client's host.

    Static headers, then server-only headers, then the auth header.
    """
    return combine_headers(
        HeaderAuth(client.headers),
        HeaderAuth(client.server_only_headers),
        TokenAuth(client.token.value, name=client.token.name, scheme=client.token.type),
    )


def schema_spec(client: ClientDescriptor) -> SchemaSpec:
    """Build the schema spec for a single client."""
    if client.schema_path is not None:
        return SchemaSpec(client=client.name, path=client.schema_path)
    return SchemaSpec(client=client.name, host=client.host, headers=introspection_headers(client))


def schema_specs(clients: Mapping[str, ClientDescriptor]) -> list[SchemaSpec]:
    """One independent schema spec per client, in declaration order."""
    return [schema_spec(client) for client in clients.values()]


class Introspector(Protocol):
    """Fetches and executes the introspection query against an endpoint."""

    async def __call__(self, url: str, headers: Mapping[str, str]) -> dict[str, Any]:
        """Return the `data` portion of the introspection response."""
        ...


class HttpIntrospector:
    """Introspects a GraphQL endpoint over HTTP."""

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._client = client

    async def __call__(self, url: str, headers: Mapping[str, str]) -> dict[str, Any]:
        payload = {"query": get_introspection_query(descriptions=True)}
        request_headers = {"Content-Type": "application/json", **headers}
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=request_headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload, headers=request_headers)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise SchemaLoadError(f"Introspection of {url} failed: {e}") from e
        except ValueError as e:
            raise SchemaLoadError(f"Introspection of {url} returned invalid JSON") from e

        if result.get("errors"):
            messages = "; ".join(err.get("message", str(err)) for err in result["errors"])
            raise SchemaLoadError(f"Introspection of {url} returned errors: {messages}")
        data = result.get("data")
        if not isinstance(data, dict) or "__schema" not in data:
            raise SchemaLoadError(f"Introspection of {url} returned no __schema")
        return data


class SchemaResolver:
    """Resolves client schemas for the generation engine."""

    def __init__(self, introspector: Introspector | None = None):
        self.introspector = introspector or HttpIntrospector()

    async def load(self, spec: SchemaSpec) -> GraphQLSchema:
        """Load one client's schema as a GraphQLSchema.

        Raises:
            SchemaLoadError: If the file cannot be read or parsed, or
                introspection fails
        """
        if spec.path is not None:
            return self.load_file(spec.path, client=spec.client)

        log.debug("introspecting_schema", client=spec.client, host=spec.host)
        try:
            data = await self.introspector(spec.host, spec.headers)
        except SchemaLoadError as e:
            e.client = spec.client
            raise
        try:
            return build_client_schema(data)
        except (GraphQLError, TypeError) as e:
            raise SchemaLoadError(
                f"Invalid introspection result for client ({spec.client}): {e}",
                client=spec.client,
            ) from e

    @staticmethod
    def load_file(path: Path, client: str | None = None) -> GraphQLSchema:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaLoadError(
                f"Cannot read schema file {path} for client ({client}): {e}",
                client=client,
            ) from e
        try:
            return build_ast_schema(parse(content))
        except (GraphQLError, TypeError) as e:
            raise SchemaLoadError(
                f"Invalid schema file {path} for client ({client}): {e}",
                client=client,
            ) from e

    async def load_all(self, specs: Sequence[SchemaSpec]) -> list[tuple[SchemaSpec, GraphQLSchema]]:
        """Load every spec sequentially, in order."""
        return [(spec, await self.load(spec)) for spec in specs]

    async def resolve(
        self,
        clients: Mapping[str, ClientDescriptor],
        stitch: StitchOptions | None = None,
    ) -> list[SchemaSpec] | str:
        """Produce the schema input for the generation engine.

        Without stitching, returns one spec per client. With stitching,
        loads every client schema, applies prefixes and returns the SDL of
        the unified schema.
        """
        specs = schema_specs(clients)
        if stitch is None:
            return specs

        loaded = await self.load_all(specs)
        named = [(clients[spec.client], schema) for spec, schema in loaded]
        return stitch_schemas(named, stitch)
