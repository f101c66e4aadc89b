"""Intermediate Representation (IR) for discovered GraphQL documents.

This module defines dataclasses describing the operations and fragments
found in a project's document files, independent of any schema.
"""

from dataclasses import dataclass, field
from pathlib import Path

OPERATION_KINDS = ("query", "mutation", "subscription")


@dataclass
class DocumentOperation:
    """A named top-level definition in a document file.

    For fragments, `kind` is "fragment"; otherwise it is the operation type.
    `source` is the exact source text span of the definition.
    """
    name: str
    kind: str
    source: str
    path: Path
    # Fragment names spread anywhere inside this definition
    fragment_refs: list[str] = field(default_factory=list)

    @property
    def is_fragment(self) -> bool:
        return self.kind == "fragment"

    @property
    def type_suffix(self) -> str:
        """Suffix used for generated type names, e.g. 'Query' for GetUserQuery."""
        return self.kind.capitalize()


@dataclass
class DocumentFile:
    """A document file and the definitions parsed from it."""
    path: Path
    definitions: list[DocumentOperation] = field(default_factory=list)


@dataclass
class DocumentSet:
    """All documents discovered across the search roots."""
    files: list[DocumentFile] = field(default_factory=list)

    @property
    def paths(self) -> list[Path]:
        return [f.path for f in self.files]

    @property
    def operations(self) -> list[DocumentOperation]:
        """Return all named queries, mutations and subscriptions."""
        return [d for f in self.files for d in f.definitions if not d.is_fragment]

    @property
    def fragments(self) -> list[DocumentOperation]:
        return [d for f in self.files for d in f.definitions if d.is_fragment]

    @property
    def sources(self) -> dict[str, str]:
        """Map every named definition to its raw source text."""
        return {d.name: d.source for f in self.files for d in f.definitions}

    def get(self, name: str) -> DocumentOperation | None:
        """Look up a definition by name."""
        for f in self.files:
            for d in f.definitions:
                if d.name == name:
                    return d
        return None

    def operation_source(self, name: str) -> str:
        """Operation source followed by every fragment it depends on, each once."""
        operation = self.get(name)
        if operation is None:
            raise KeyError(name)
        parts = [operation.source]
        seen: set[str] = set()
        pending = list(operation.fragment_refs)
        while pending:
            ref = pending.pop(0)
            if ref in seen:
                continue
            seen.add(ref)
            fragment = self.get(ref)
            if fragment is not None and fragment.is_fragment:
                parts.append(fragment.source)
                pending.extend(fragment.fragment_refs)
        return "\n\n".join(parts)
