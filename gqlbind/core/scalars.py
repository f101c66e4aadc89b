"""Scalar type mapping for generated bindings.

Maps GraphQL scalars to the Python annotations used in generated models.
Built-in GraphQL scalars always map to Python builtins; custom scalars are
looked up in a ScalarRegistry and fall back to Any.

Example usage:
    registry = ScalarRegistry()
    registry.register("Money", ScalarMapping("Decimal", "from decimal import Decimal"))
"""

from dataclasses import dataclass
from typing import Optional

BUILTIN_SCALARS = {
    "String": "str",
    "Int": "int",
    "Float": "float",
    "Boolean": "bool",
    "ID": "str",
}


@dataclass(frozen=True)
class ScalarMapping:
    """How a GraphQL scalar appears in generated Python.

    Attributes:
        python_type: The annotation (e.g., "datetime")
        import_statement: The import needed for it, or None
    """
    python_type: str
    import_statement: Optional[str] = None


DATETIME = ScalarMapping("datetime", "from datetime import datetime")
DATE = ScalarMapping("date", "from datetime import date")
UUID = ScalarMapping("UUID", "from uuid import UUID")
JSON = ScalarMapping("Any")


class ScalarRegistry:
    """Registry for custom scalar mappings.

    Example:
        registry = ScalarRegistry()
        registry.get("DateTime").python_type  # "datetime"
        registry.python_type("Unknown")       # "Any"
    """

    def __init__(self):
        self._mappings: dict[str, ScalarMapping] = {}
        self._register_defaults()

    def _register_defaults(self):
        """Register built-in default mappings."""
        self.register("DateTime", DATETIME)
        self.register("Date", DATE)
        self.register("UUID", UUID)
        self.register("JSON", JSON)
        self.register("JSONObject", JSON)

    def register(self, scalar_name: str, mapping: ScalarMapping):
        """Register a mapping for a scalar type."""
        self._mappings[scalar_name] = mapping

    def get(self, scalar_name: str) -> Optional[ScalarMapping]:
        """Get the mapping for a scalar type, or None if not registered."""
        return self._mappings.get(scalar_name)

    def has(self, scalar_name: str) -> bool:
        return scalar_name in self._mappings

    def python_type(self, scalar_name: str) -> str:
        """Annotation for a scalar; builtins first, then registered, then Any."""
        if scalar_name in BUILTIN_SCALARS:
            return BUILTIN_SCALARS[scalar_name]
        mapping = self._mappings.get(scalar_name)
        return mapping.python_type if mapping else "Any"

    def imports_for(self, scalar_names) -> set[str]:
        """Import statements needed for the given scalars."""
        imports = set()
        for name in scalar_names:
            mapping = self._mappings.get(name)
            if mapping and mapping.import_statement:
                imports.add(mapping.import_statement)
        return imports
