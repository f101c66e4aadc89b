"""Tests for scalar type mapping."""

from gqlbind.core.scalars import BUILTIN_SCALARS, ScalarMapping, ScalarRegistry


class TestScalarRegistry:
    """Tests for ScalarRegistry."""

    def test_default_mappings_registered(self):
        registry = ScalarRegistry()
        for name in ("DateTime", "Date", "UUID", "JSON", "JSONObject"):
            assert registry.has(name)

    def test_get_mapping(self):
        mapping = ScalarRegistry().get("DateTime")
        assert mapping == ScalarMapping("datetime", "from datetime import datetime")

    def test_get_nonexistent(self):
        assert ScalarRegistry().get("NonExistent") is None

    def test_builtins(self):
        registry = ScalarRegistry()
        for name, annotation in BUILTIN_SCALARS.items():
            assert registry.python_type(name) == annotation

    def test_unknown_falls_back_to_any(self):
        assert ScalarRegistry().python_type("Cursor") == "Any"

    def test_register_custom(self):
        registry = ScalarRegistry()
        registry.register("Money", ScalarMapping("Decimal", "from decimal import Decimal"))
        assert registry.python_type("Money") == "Decimal"
        assert registry.imports_for(["Money"]) == {"from decimal import Decimal"}

    def test_override_default(self):
        registry = ScalarRegistry()
        registry.register("DateTime", ScalarMapping("str"))
        assert registry.python_type("DateTime") == "str"
        assert registry.imports_for(["DateTime"]) == set()

    def test_imports_for(self):
        imports = ScalarRegistry().imports_for(["DateTime", "Date", "UUID", "JSON", "String"])
        assert imports == {
            "from datetime import datetime",
            "from datetime import date",
            "from uuid import UUID",
        }
