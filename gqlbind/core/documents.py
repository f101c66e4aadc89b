"""GraphQL document discovery using graphql-core.

Scans the configured search roots for .gql/.graphql files, parses them and
produces a DocumentSet of named operations and fragments.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Sequence

import structlog
from graphql import (
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    OperationDefinitionNode,
    Visitor,
    parse,
    visit,
)

from .config import DEFAULT_CLIENT
from .errors import ConfigurationError, GenerationError
from .ir import DocumentFile, DocumentOperation, DocumentSet

log = structlog.get_logger()

DOCUMENT_SUFFIXES = (".gql", ".graphql")
# Directories never scanned for documents
SKIPPED_DIRS = {"schemas", "node_modules", "__pycache__"}


def is_document_path(path: str | os.PathLike[str]) -> bool:
    """Check if a path has a GraphQL document extension."""
    return Path(path).suffix.lower() in DOCUMENT_SUFFIXES


def allow_document(path: str | os.PathLike[str]) -> bool:
    """Check if a file should be treated as an operation document.

    Schema files (any file whose stem contains "schema") and empty files
    are excluded.
    """
    file_path = Path(path)
    if not is_document_path(file_path):
        return False
    if "schema" in file_path.stem.lower():
        return False
    try:
        return file_path.stat().st_size > 0
    except OSError:
        return False


def document_roots(root: Path, document_paths: Iterable[str]) -> list[Path]:
    """Return the project root plus every configured document path that exists."""
    roots = [root]
    for entry in document_paths:
        candidate = (root / entry).resolve()
        if candidate.exists():
            roots.append(candidate)
        else:
            log.warning("invalid_document_path", path=str(candidate))
    return roots


class _FragmentSpreadCollector(Visitor):
    """Collects the names of fragments spread within a definition."""

    def __init__(self) -> None:
        super().__init__()
        self.names: list[str] = []

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args) -> None:
        name = node.name.value
        if name not in self.names:
            self.names.append(name)


class DocumentDiscoverer:
    """Discovers and parses GraphQL documents under one or more roots."""

    def __init__(self, roots: Sequence[Path]):
        """Initialize a discoverer with the directories to search."""
        self.roots = list(roots)

    def discover(self) -> DocumentSet:
        """Parse all document files and return the complete DocumentSet."""
        documents = DocumentSet()
        for file_path in self._collect_document_files():
            documents.files.append(self.parse_file(file_path))
        return documents

    def _collect_document_files(self) -> list[Path]:
        """Collect all allowed document files, without following symlinked dirs."""
        found: set[Path] = set()
        for root in self.roots:
            if root.is_file():
                if allow_document(root):
                    found.add(root.resolve())
                continue
            for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
                dirnames[:] = [
                    d for d in dirnames if d not in SKIPPED_DIRS and not d.startswith(".")
                ]
                for filename in filenames:
                    file_path = Path(dirpath) / filename
                    if allow_document(file_path):
                        found.add(file_path.resolve())
        return sorted(found)

    @staticmethod
    def parse_file(file_path: Path) -> DocumentFile:
        """Parse one document file into its named definitions."""
        content = file_path.read_text(encoding="utf-8")
        try:
            ast = parse(content)
        except GraphQLError as e:
            raise GenerationError(f"Error parsing {file_path}: {e}") from e

        document = DocumentFile(path=file_path)
        for definition in ast.definitions:
            if isinstance(definition, OperationDefinitionNode):
                if definition.name is None:
                    log.debug("anonymous_operation_skipped", path=str(file_path))
                    continue
                kind = definition.operation.value
            elif isinstance(definition, FragmentDefinitionNode):
                kind = "fragment"
            else:
                continue

            collector = _FragmentSpreadCollector()
            visit(definition, collector)
            document.definitions.append(
                DocumentOperation(
                    name=definition.name.value,
                    kind=kind,
                    source=content[definition.loc.start:definition.loc.end],
                    path=file_path,
                    fragment_refs=collector.names,
                )
            )
        return document


def owner_for_path(path: Path, clients: Sequence[str]) -> str | None:
    """Return the client that explicitly owns a document, if any.

    A document is owned by client `blog` when it sits directly in a
    directory named `blog`.
    """
    parent = path.parent.name
    return parent if parent in clients else None


def assign_owners(documents: DocumentSet, clients: Sequence[str]) -> dict[str, list[str]]:
    """Map each client to the ordered list of operation names it owns.

    Raises:
        ConfigurationError: If one operation name is owned by two clients
    """
    owners: dict[str, list[str]] = {client: [] for client in clients}
    if not clients:
        return owners

    fallback = DEFAULT_CLIENT if DEFAULT_CLIENT in clients else clients[0]
    assigned: dict[str, str] = {}

    for operation in documents.operations:
        if len(clients) == 1:
            owner = clients[0]
        else:
            owner = owner_for_path(operation.path, clients)
            if owner is None:
                owner = fallback
                log.warning(
                    "ambiguous_operation_owner",
                    operation=operation.name,
                    path=str(operation.path),
                    assigned=owner,
                    candidates=list(clients),
                    default_configured=DEFAULT_CLIENT in clients,
                )

        previous = assigned.get(operation.name)
        if previous is not None:
            if previous != owner:
                raise ConfigurationError(
                    f"Operation {operation.name!r} is declared for both "
                    f"{previous!r} and {owner!r} clients.",
                    client=owner,
                )
            log.warning("duplicate_operation", operation=operation.name, client=owner)
            continue

        assigned[operation.name] = owner
        owners[owner].append(operation.name)

    return owners
