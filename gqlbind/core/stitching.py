"""Schema stitching.

Merges several client schemas into one. Before merging, each schema's root
operation types are normalized to Query/Mutation/Subscription and optional
prefixes are applied:

    prefix_types:  User        -> BlogUser     (every reference follows)
    prefix_fields: Query.posts -> Query.blog_posts

Same-named types are then merged field by field (first definition wins on a
field collision).
"""

from __future__ import annotations

import re
from typing import Sequence

import structlog
from graphql import (
    DefinitionNode,
    DirectiveDefinitionNode,
    DocumentNode,
    EnumTypeDefinitionNode,
    GraphQLError,
    GraphQLSchema,
    InputObjectTypeDefinitionNode,
    InterfaceTypeDefinitionNode,
    NamedTypeNode,
    NameNode,
    ObjectTypeDefinitionNode,
    ScalarTypeDefinitionNode,
    SchemaDefinitionNode,
    TypeDefinitionNode,
    UnionTypeDefinitionNode,
    Visitor,
    build_ast_schema,
    parse,
    print_schema,
    visit,
)

from .config import ClientDescriptor, StitchOptions
from .errors import GenerationError

log = structlog.get_logger()

ROOT_TYPES = ("Query", "Mutation", "Subscription")
BUILTIN_SCALARS = {"String", "Int", "Float", "Boolean", "ID"}


def pascal_case(name: str) -> str:
    """Convert a client name like 'blog-api' or 'blog_api' to 'BlogApi'."""
    parts = re.split(r"[^0-9A-Za-z]+", name)
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def type_prefix(client: ClientDescriptor) -> str:
    return pascal_case(client.prefix if client.prefix is not None else client.name)


def field_prefix(client: ClientDescriptor) -> str:
    prefix = client.prefix if client.prefix is not None else client.name
    return f"{prefix}_" if prefix else ""


def _replace(node, **changes):
    """Copy of an AST node with some attributes replaced."""
    values = {key: getattr(node, key) for key in node.keys if key != "loc"}
    values.update(changes)
    return type(node)(**values)


class _SchemaRewriter(Visitor):
    """Renames types (definitions and every reference) and prefixes root fields.

    Nodes are never changed in place: each enter method returns a new node
    and `visit` builds the edited document around it.
    """

    def __init__(self, renames: dict[str, str], fields_prefix: str = "") -> None:
        super().__init__()
        self.renames = renames
        self.fields_prefix = fields_prefix

    def enter_named_type(self, node: NamedTypeNode, *_args):
        new_name = self.renames.get(node.name.value)
        if new_name:
            return NamedTypeNode(name=NameNode(value=new_name))
        return None

    def _rename(self, node: TypeDefinitionNode, **changes):
        new_name = self.renames.get(node.name.value)
        if new_name:
            changes["name"] = NameNode(value=new_name)
        return _replace(node, **changes) if changes else None

    def enter_object_type_definition(self, node: ObjectTypeDefinitionNode, *_args):
        name = self.renames.get(node.name.value, node.name.value)
        changes = {}
        if self.fields_prefix and name in ROOT_TYPES:
            changes["fields"] = tuple(
                _replace(f, name=NameNode(value=f"{self.fields_prefix}{f.name.value}"))
                for f in node.fields or ()
            )
        return self._rename(node, **changes)

    def enter_interface_type_definition(self, node, *_args):
        return self._rename(node)

    def enter_union_type_definition(self, node, *_args):
        return self._rename(node)

    def enter_enum_type_definition(self, node, *_args):
        return self._rename(node)

    def enter_input_object_type_definition(self, node, *_args):
        return self._rename(node)

    def enter_scalar_type_definition(self, node, *_args):
        return self._rename(node)


def _root_type_names(schema: GraphQLSchema) -> dict[str, str]:
    """Map canonical root names to the schema's actual root type names."""
    roots = {
        "Query": schema.query_type,
        "Mutation": schema.mutation_type,
        "Subscription": schema.subscription_type,
    }
    return {canonical: t.name for canonical, t in roots.items() if t is not None}


def prepare_definitions(
    schema: GraphQLSchema,
    types_prefix: str = "",
    fields_prefix: str = "",
) -> list[DefinitionNode]:
    """Print, re-parse and rename one schema ready for merging."""
    document = parse(print_schema(schema))
    roots = _root_type_names(schema)

    renames = {actual: canonical for canonical, actual in roots.items() if actual != canonical}
    if types_prefix:
        root_names = set(roots.values())
        for name in schema.type_map:
            if name.startswith("__") or name in BUILTIN_SCALARS or name in root_names:
                continue
            renames[name] = f"{types_prefix}{name}"

    if renames or fields_prefix:
        document = visit(document, _SchemaRewriter(renames, fields_prefix))

    # Roots are canonical after renaming
    return [
        definition
        for definition in document.definitions
        if not isinstance(definition, SchemaDefinitionNode)
    ]


def _merge_named(existing: tuple, incoming: tuple, type_name: str, client: str) -> tuple:
    """Append incoming named nodes whose names are not already present."""
    names = {node.name.value for node in existing}
    merged = list(existing)
    for node in incoming:
        if node.name.value in names:
            log.warning("field_collision", type=type_name, field=node.name.value, client=client)
            continue
        names.add(node.name.value)
        merged.append(node)
    return tuple(merged)


def _merge_into(existing: DefinitionNode, incoming: DefinitionNode, client: str) -> DefinitionNode:
    """Return the union of a same-named definition and the one already collected."""
    name = existing.name.value
    if type(existing) is not type(incoming):
        raise GenerationError(
            f"Cannot stitch type {name}: defined as different kinds across clients"
        )
    if isinstance(existing, (ObjectTypeDefinitionNode, InterfaceTypeDefinitionNode)):
        return _replace(
            existing,
            fields=_merge_named(existing.fields or (), incoming.fields or (), name, client),
            interfaces=_merge_named(existing.interfaces or (), incoming.interfaces or (), name, client),
        )
    if isinstance(existing, InputObjectTypeDefinitionNode):
        return _replace(
            existing,
            fields=_merge_named(existing.fields or (), incoming.fields or (), name, client),
        )
    if isinstance(existing, EnumTypeDefinitionNode):
        return _replace(
            existing,
            values=_merge_named(existing.values or (), incoming.values or (), name, client),
        )
    if isinstance(existing, UnionTypeDefinitionNode):
        return _replace(
            existing,
            types=_merge_named(existing.types or (), incoming.types or (), name, client),
        )
    # Scalars and directives: first definition wins
    return existing


def merge_definitions(
    groups: Sequence[tuple[str, list[DefinitionNode]]],
    merge_types: bool = True,
) -> DocumentNode:
    """Merge per-client definitions into one document.

    Raises:
        GenerationError: On a kind mismatch, or a duplicate non-root type
            when merge_types is False
    """
    merged: dict[tuple[str, str], DefinitionNode] = {}
    for client, definitions in groups:
        for definition in definitions:
            kind = "directive" if isinstance(definition, DirectiveDefinitionNode) else "type"
            key = (kind, definition.name.value)
            existing = merged.get(key)
            if existing is None:
                merged[key] = definition
                continue
            mergeable = (
                merge_types
                or definition.name.value in ROOT_TYPES
                or isinstance(definition, (DirectiveDefinitionNode, ScalarTypeDefinitionNode))
            )
            if not mergeable:
                raise GenerationError(
                    f"Type {definition.name.value} is defined by more than one client; "
                    "enable merge_types or a type prefix."
                )
            merged[key] = _merge_into(existing, definition, client)
    return DocumentNode(definitions=tuple(merged.values()))


def _build(document: DocumentNode) -> GraphQLSchema:
    try:
        return build_ast_schema(document)
    except (GraphQLError, TypeError) as e:
        raise GenerationError(f"Stitched schema is invalid: {e}") from e


def merge_schemas(schemas: Sequence[tuple[str, GraphQLSchema]]) -> GraphQLSchema:
    """Merge named schemas without any prefixing."""
    groups = [(name, prepare_definitions(schema)) for name, schema in schemas]
    return _build(merge_definitions(groups))


def stitch_schemas(
    schemas: Sequence[tuple[ClientDescriptor, GraphQLSchema]],
    options: StitchOptions,
) -> str:
    """Stitch client schemas into one and return its SDL."""
    groups = [
        (
            client.name,
            prepare_definitions(
                schema,
                types_prefix=type_prefix(client) if options.prefix_types else "",
                fields_prefix=field_prefix(client) if options.prefix_fields else "",
            ),
        )
        for client, schema in schemas
    ]
    unified = _build(merge_definitions(groups, merge_types=options.merge_types))
    log.debug("schemas_stitched", clients=[name for name, _ in groups])
    return print_schema(unified)
