"""Generation context.

The context is what one successful generation pass publishes: which client
owns which operation, the auto-import function list, the codegen options and
the generated bindings module (the "template").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from jinja2 import Environment

from .generator import template_environment, validate_python
from .ir import DocumentSet


@dataclass
class FunctionImport:
    """One auto-imported operation function (e.g. GqlGetPost -> GetPost)."""
    name: str
    operation: str
    client: str
    variables_type: str
    result_type: str


@dataclass
class GenerationContext:
    """Everything one generation pass publishes.

    Attributes:
        client_operations: Client name to owned operation names
        fn_imports: Auto-import functions, one per operation
        codegen: Codegen options used for the pass ({} when disabled)
        template: The generated gql_sdk.py source
    """
    client_operations: dict[str, list[str]] = field(default_factory=dict)
    fn_imports: list[FunctionImport] = field(default_factory=list)
    codegen: dict[str, Any] = field(default_factory=dict)
    template: str = ""
    env: Optional[Environment] = field(default=None, repr=False, compare=False)

    @property
    def clients(self) -> list[str]:
        return list(self.client_operations)

    @property
    def typed(self) -> bool:
        return bool(self.codegen)

    def _env(self) -> Environment:
        if self.env is None:
            self.env = template_environment()
        return self.env

    def prepare_functions(self, documents: DocumentSet, function_prefix: str) -> None:
        """Build the auto-import list from the ownership map."""
        owners = {
            name: client
            for client, operations in self.client_operations.items()
            for name in operations
        }
        self.fn_imports = []
        for operation in documents.operations:
            client = owners.get(operation.name)
            if client is None:
                continue
            base = f"{operation.name}{operation.type_suffix}"
            self.fn_imports.append(
                FunctionImport(
                    name=f"{function_prefix}{operation.name}",
                    operation=operation.name,
                    client=client,
                    variables_type=f"{base}Variables",
                    result_type=base,
                )
            )

    def prepare_template(self) -> None:
        """Embed the ownership map in the bindings module (multi-client mode)."""
        lines = ["CLIENT_OPERATIONS = {"]
        for client, operations in self.client_operations.items():
            lines.append(f"    {client!r}: {operations!r},")
        lines.append("}")
        self.template = self.template.rstrip("\n") + "\n\n\n" + "\n".join(lines) + "\n"

    def generate_imports(self) -> str:
        """Render the auto-import manifest (gql.py)."""
        code = self._env().get_template("gql.py.j2").render(
            clients=self.clients,
            client_operations=self.client_operations,
            fn_imports=self.fn_imports,
        )
        validate_python(code, "gql.py")
        return code

    def generate_declarations(self) -> str:
        """Render the type declarations for the manifest (gql.pyi)."""
        code = self._env().get_template("gql.pyi.j2").render(
            clients=self.clients,
            fn_imports=self.fn_imports,
            typed=self.typed,
        )
        validate_python(code, "gql.pyi")
        return code
