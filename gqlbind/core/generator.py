"""Code generation engine for GraphQL client bindings.

Produces a single Python module from a schema and a set of documents. The
output is assembled from plugins:

    types       scalars, enums and input models (plus object, interface
                and union models unless only_operation_types is set)
    operations  a variables model and selection-set result models per
                operation
    sdk         document constants and an `Sdk` class with one async
                method per operation, rendered from `sdk.py.j2`

Supports custom templates via the template_dir parameter:
    engine = TemplateCodegenEngine(template_dir="./my_templates")

Template lookup order:
1. User's template directory (if provided)
2. Package default templates
"""

import ast
import keyword
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLEnumType,
    GraphQLError,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLUnionType,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionSetNode,
    build_ast_schema,
    get_named_type,
    is_composite_type,
    is_list_type,
    is_non_null_type,
    is_scalar_type,
    parse,
    type_from_ast,
    validate,
)
from graphql.pyutils import Undefined
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from .documents import DocumentDiscoverer
from .errors import GenerationError
from .ir import DocumentOperation, DocumentSet
from .scalars import ScalarRegistry
from .schema import SchemaResolver, SchemaSpec
from .stitching import merge_schemas

PLUGIN_TYPES = "types"
PLUGIN_OPERATIONS = "operations"
PLUGIN_SDK = "sdk"

MODULE_HEADER = '''"""Generated GraphQL bindings."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
'''

BASE_MODEL = '''

class GqlModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())
'''


def snake_case(name: str) -> str:
    """Convert PascalCase or camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def pascal_case(name: str) -> str:
    """Upper-case the first letter of each underscore-separated word, keeping the rest."""
    return "".join(word[:1].upper() + word[1:] for word in name.split("_") if word)


def safe_name(name: str) -> str:
    """Make a GraphQL name usable as a Python attribute.

    Keywords get a trailing underscore; leading underscores (private in
    pydantic) are moved to the end.
    """
    stripped = name.lstrip("_")
    if stripped != name:
        return f"{stripped or 'field'}_"
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def safe_docstring(text: str) -> str:
    """Escape text for use in docstrings."""
    if not text:
        return ""
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text += " "
    return text


def template_environment(template_dir: Optional[str] = None) -> Environment:
    """Jinja2 environment with user templates taking precedence."""
    loaders = []
    if template_dir:
        template_path = Path(template_dir)
        if template_path.is_dir():
            loaders.append(FileSystemLoader(str(template_path)))
    loaders.append(PackageLoader("gqlbind", "templates"))

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["snake_case"] = snake_case
    env.filters["pascal_case"] = pascal_case
    env.filters["repr"] = repr
    env.filters["safe_name"] = safe_name
    return env


def validate_python(code: str, filename: str) -> None:
    """Raise GenerationError if generated code is not valid Python."""
    try:
        ast.parse(code)
    except SyntaxError as e:
        raise GenerationError(f"Generated invalid Python for {filename}: {e}") from e


@dataclass
class GenerationRequest:
    """Input to a codegen engine."""
    schema: Union[str, List[SchemaSpec]]
    documents: List[Path] = field(default_factory=list)
    plugins: List[str] = field(default_factory=lambda: [PLUGIN_TYPES])
    config: Dict[str, Any] = field(default_factory=dict)


class CodegenEngine(Protocol):
    """Turns a schema, documents and a plugin list into module source."""

    async def generate(self, request: GenerationRequest) -> str:
        ...


@dataclass
class _Selected:
    node: FieldNode
    owner: Any
    conditional: bool


class ModuleEmitter:
    """Emits Python source for the types and operations plugins."""

    def __init__(
        self,
        schema: GraphQLSchema,
        scalars: ScalarRegistry,
        only_operation_types: bool = True,
        skip_typename: bool = True,
    ):
        self.schema = schema
        self.scalars = scalars
        self.only_operation_types = only_operation_types
        self.skip_typename = skip_typename
        self.models: Dict[str, List[str]] = {}
        self.aliases: List[str] = []
        self.used_scalars: set[str] = set()

    # -- annotations -------------------------------------------------------

    def annotation(self, gtype, override: Optional[str] = None) -> str:
        """Python annotation for a GraphQL input or output type."""
        if is_non_null_type(gtype):
            return self._inner_annotation(gtype.of_type, override)
        return f"Optional[{self._inner_annotation(gtype, override)}]"

    def _inner_annotation(self, gtype, override: Optional[str]) -> str:
        if is_list_type(gtype):
            return f"List[{self.annotation(gtype.of_type, override)}]"
        if override:
            return override
        if is_scalar_type(gtype):
            self.used_scalars.add(gtype.name)
            return self.scalars.python_type(gtype.name)
        return gtype.name

    @staticmethod
    def field_line(name: str, annotation: str, required: bool) -> str:
        attr = safe_name(name)
        if attr != name:
            default = "..." if required else "None"
            return f"    {attr}: {annotation} = Field(default={default}, alias={name!r})"
        if required:
            return f"    {attr}: {annotation}"
        return f"    {attr}: {annotation} = None"

    # -- types plugin ------------------------------------------------------

    def emit_types(self) -> None:
        for name, gtype in self.schema.type_map.items():
            if name.startswith("__"):
                continue
            if isinstance(gtype, GraphQLEnumType):
                self._emit_enum(gtype)
            elif isinstance(gtype, GraphQLInputObjectType):
                self._emit_fields_model(gtype)
            elif self.only_operation_types:
                continue
            elif isinstance(gtype, (GraphQLObjectType, GraphQLInterfaceType)):
                self._emit_fields_model(gtype, typename=not self.skip_typename)
            elif isinstance(gtype, GraphQLUnionType):
                members = ", ".join(t.name for t in gtype.types)
                self.aliases.append(f"{name} = Union[{members}]")
            elif is_scalar_type(gtype):
                self.used_scalars.add(name)

    def _emit_enum(self, gtype: GraphQLEnumType) -> None:
        lines = [f"class {gtype.name}(str, Enum):"]
        if gtype.description:
            lines.append(f'    """{safe_docstring(gtype.description)}"""')
        for value_name in gtype.values:
            lines.append(f"    {safe_name(value_name)} = {value_name!r}")
        if len(lines) == 1:
            lines.append("    pass")
        self.models[gtype.name] = lines

    def _emit_fields_model(self, gtype, typename: bool = False) -> None:
        lines = [f"class {gtype.name}(GqlModel):"]
        if gtype.description:
            lines.append(f'    """{safe_docstring(gtype.description)}"""')
        if typename:
            lines.append(self.field_line("__typename", "Optional[str]", required=False))
        for field_name, field_def in gtype.fields.items():
            required = is_non_null_type(field_def.type)
            if isinstance(gtype, GraphQLInputObjectType) and field_def.default_value is not Undefined:
                required = False
            lines.append(self.field_line(field_name, self.annotation(field_def.type), required))
        if len(lines) == 1:
            lines.append("    pass")
        self.models[gtype.name] = lines

    # -- operations plugin -------------------------------------------------

    def emit_operation(self, operation: DocumentOperation, document: DocumentNode) -> None:
        """Emit the variables and result models for one operation."""
        op_node = next(
            d for d in document.definitions
            if isinstance(d, OperationDefinitionNode) and d.name and d.name.value == operation.name
        )
        fragments = {
            d.name.value: d for d in document.definitions if isinstance(d, FragmentDefinitionNode)
        }
        base_name = f"{operation.name}{operation.type_suffix}"

        variables = [f"class {base_name}Variables(GqlModel):"]
        for var in op_node.variable_definitions or ():
            var_type = type_from_ast(self.schema, var.type)
            if var_type is None:
                raise GenerationError(
                    f"Unknown type for ${var.variable.name.value} in {operation.name}"
                )
            required = is_non_null_type(var_type) and var.default_value is None
            variables.append(
                self.field_line(var.variable.name.value, self.annotation(var_type), required)
            )
        if len(variables) == 1:
            variables.append("    pass")
        self.models[f"{base_name}Variables"] = variables

        root = self.schema.get_root_type(op_node.operation)
        if root is None:
            raise GenerationError(
                f"Schema has no {operation.kind} type for operation {operation.name}"
            )
        self._emit_selection_model(base_name, root, op_node.selection_set, fragments)

    def _collect(
        self,
        parent,
        selection_set: SelectionSetNode,
        fragments: Dict[str, FragmentDefinitionNode],
        conditional: bool = False,
    ) -> Dict[str, List[_Selected]]:
        """Group selected fields by response key, flattening fragments."""
        grouped: Dict[str, List[_Selected]] = {}

        def add(selection_set, owner, is_conditional):
            for selection in selection_set.selections:
                if isinstance(selection, FieldNode):
                    key = (selection.alias or selection.name).value
                    grouped.setdefault(key, []).append(_Selected(selection, owner, is_conditional))
                elif isinstance(selection, InlineFragmentNode):
                    target = owner
                    if selection.type_condition is not None:
                        target = self.schema.get_type(selection.type_condition.name.value)
                    add(selection.selection_set, target, is_conditional or target is not owner)
                elif isinstance(selection, FragmentSpreadNode):
                    fragment = fragments.get(selection.name.value)
                    if fragment is None:
                        raise GenerationError(f"Unknown fragment {selection.name.value}")
                    target = self.schema.get_type(fragment.type_condition.name.value)
                    add(fragment.selection_set, target, is_conditional or target is not owner)

        add(selection_set, parent, conditional)
        return grouped

    def _emit_selection_model(self, model_name, parent, selection_set, fragments) -> None:
        lines = [f"class {model_name}(GqlModel):"]
        self.models[model_name] = lines
        grouped = self._collect(parent, selection_set, fragments)

        if not self.skip_typename and "__typename" not in grouped:
            lines.append(self.field_line("__typename", "Optional[str]", required=False))

        for key, selected in grouped.items():
            first = selected[0]
            conditional = all(s.conditional for s in selected)
            if first.node.name.value == "__typename":
                lines.append(self.field_line(key, "str", required=not conditional))
                continue

            owner_fields = getattr(first.owner, "fields", None) or {}
            field_def = owner_fields.get(first.node.name.value)
            if field_def is None:
                raise GenerationError(
                    f"Cannot query field {first.node.name.value!r} on type {first.owner}"
                )

            override = None
            named = get_named_type(field_def.type)
            if is_composite_type(named):
                override = f"{model_name}{pascal_case(key)}"
                merged = SelectionSetNode(
                    selections=tuple(
                        sel for s in selected if s.node.selection_set
                        for sel in s.node.selection_set.selections
                    )
                )
                self._emit_selection_model(override, named, merged, fragments)

            annotation = self.annotation(field_def.type, override)
            required = is_non_null_type(field_def.type) and not conditional
            if conditional and not annotation.startswith("Optional["):
                annotation = f"Optional[{annotation}]"
            lines.append(self.field_line(key, annotation, required))

        if len(lines) == 1:
            lines.append("    pass")

    # -- output ------------------------------------------------------------

    def render(self) -> str:
        parts = [MODULE_HEADER]
        for statement in sorted(self.scalars.imports_for(self.used_scalars)):
            parts.append(statement + "\n")
        parts.append(BASE_MODEL)
        for lines in self.models.values():
            parts.append("\n\n" + "\n".join(lines) + "\n")
        if self.aliases:
            parts.append("\n\n" + "\n".join(self.aliases) + "\n")
        model_names = [
            name for name, lines in self.models.items() if lines[0].endswith("(GqlModel):")
        ]
        if model_names:
            parts.append("\n\nfor _model in (\n")
            parts.extend(f"    {name},\n" for name in model_names)
            parts.append("):\n    _model.model_rebuild()\n")
        return "".join(parts)


class TemplateCodegenEngine:
    """Default codegen engine.

    Example:
        engine = TemplateCodegenEngine()
        code = await engine.generate(GenerationRequest(schema=sdl, documents=paths,
                                                       plugins=["types", "operations", "sdk"]))
    """

    def __init__(
        self,
        schema_resolver: Optional[SchemaResolver] = None,
        scalars: Optional[ScalarRegistry] = None,
        template_dir: Optional[str] = None,
    ):
        self.schema_resolver = schema_resolver or SchemaResolver()
        self.scalars = scalars or ScalarRegistry()
        self.env = template_environment(template_dir)

    async def load_schema(self, schema: Union[str, Sequence[SchemaSpec]]) -> GraphQLSchema:
        """Build the schema from SDL, or load and merge schema specs."""
        if isinstance(schema, str):
            try:
                return build_ast_schema(parse(schema))
            except (GraphQLError, TypeError) as e:
                raise GenerationError(f"Invalid schema: {e}") from e
        loaded = await self.schema_resolver.load_all(schema)
        if len(loaded) == 1:
            return loaded[0][1]
        return merge_schemas([(spec.client, s) for spec, s in loaded])

    @staticmethod
    def validate_documents(schema: GraphQLSchema, documents: DocumentSet) -> None:
        if not documents.files:
            return
        combined = parse("\n\n".join(documents.sources.values()))
        errors = validate(schema, combined)
        if errors:
            messages = "; ".join(e.message for e in errors)
            raise GenerationError(f"Invalid documents: {messages}")

    async def generate(self, request: GenerationRequest) -> str:
        schema = await self.load_schema(request.schema)
        documents = DocumentSet(files=[DocumentDiscoverer.parse_file(p) for p in request.documents])
        self.validate_documents(schema, documents)

        emitter = ModuleEmitter(
            schema,
            self.scalars,
            only_operation_types=request.config.get("only_operation_types", True),
            skip_typename=request.config.get("skip_typename", True),
        )
        if PLUGIN_TYPES in request.plugins:
            emitter.emit_types()

        with_operations = PLUGIN_OPERATIONS in request.plugins
        if with_operations:
            for operation in documents.operations:
                emitter.emit_operation(operation, parse(documents.operation_source(operation.name)))

        code = emitter.render()
        if PLUGIN_SDK in request.plugins:
            code += self.render_sdk(documents, typed=with_operations)

        validate_python(code, "gql_sdk.py")
        return code

    def render_sdk(self, documents: DocumentSet, typed: bool = True) -> str:
        operations = []
        for operation in documents.operations:
            base_name = f"{operation.name}{operation.type_suffix}"
            operations.append({
                "name": operation.name,
                "method": safe_name(operation.name),
                "source": documents.operation_source(operation.name),
                "variables_model": f"{base_name}Variables" if typed else "Any",
                "result_model": base_name if typed else None,
            })
        return self.env.get_template("sdk.py.j2").render(operations=operations)


def render_mock_sdk(documents: DocumentSet, env: Optional[Environment] = None) -> str:
    """Bindings used when code generation is disabled.

    Maps each operation name to its source text without consulting any
    schema or engine.
    """
    env = env or template_environment()
    sources = {op.name: documents.operation_source(op.name) for op in documents.operations}
    code = env.get_template("mock_sdk.py.j2").render(sources=sources)
    validate_python(code, "gql_sdk.py")
    return code
