"""Tests for document discovery and operation ownership."""

from pathlib import Path

import pytest
from conftest import GET_POST, GET_USER, write

from gqlbind.core.documents import (
    DocumentDiscoverer,
    allow_document,
    assign_owners,
    document_roots,
    is_document_path,
    owner_for_path,
)
from gqlbind.core.errors import ConfigurationError, GenerationError


class TestAllowDocument:
    """Tests for document filtering."""

    def test_schema_file_excluded(self, tmp_path):
        path = write(tmp_path / "foo.schema.graphql", "type Query { a: Int }")
        assert allow_document(path) is False

    def test_schema_match_is_case_insensitive(self, tmp_path):
        path = write(tmp_path / "MySchema.gql", "type Query { a: Int }")
        assert allow_document(path) is False

    def test_empty_file_excluded(self, tmp_path):
        path = write(tmp_path / "empty.gql", "")
        assert allow_document(path) is False

    def test_non_empty_document_included(self, tmp_path):
        path = write(tmp_path / "queries.graphql", GET_USER)
        assert allow_document(path) is True

    def test_other_extensions_excluded(self, tmp_path):
        path = write(tmp_path / "queries.txt", GET_USER)
        assert allow_document(path) is False

    def test_missing_file_excluded(self, tmp_path):
        assert allow_document(tmp_path / "gone.gql") is False

    def test_is_document_path(self):
        assert is_document_path("a/b/Query.GQL")
        assert not is_document_path("a/b/query.py")


class TestDocumentRoots:
    """Tests for search root resolution."""

    def test_existing_paths_added(self, tmp_path):
        (tmp_path / "graphql").mkdir()
        roots = document_roots(tmp_path, ["graphql"])
        assert roots == [tmp_path, (tmp_path / "graphql").resolve()]

    def test_missing_path_skipped(self, tmp_path):
        assert document_roots(tmp_path, ["missing"]) == [tmp_path]


class TestDocumentDiscoverer:
    """Tests for DocumentDiscoverer."""

    def test_discovers_operations_and_fragments(self, project):
        documents = DocumentDiscoverer([project]).discover()
        assert sorted(op.name for op in documents.operations) == ["GetPost", "GetUser"]
        assert [f.name for f in documents.fragments] == ["PostFields"]

    def test_skips_schemas_directory(self, project):
        write(project / "schemas" / "Extra.graphql", GET_USER.replace("GetUser", "Hidden"))
        documents = DocumentDiscoverer([project]).discover()
        assert documents.get("Hidden") is None
        assert all("schemas" not in p.parts for p in documents.paths)

    def test_overlapping_roots_deduplicated(self, project):
        documents = DocumentDiscoverer([project, project / "blog"]).discover()
        assert len(documents.files) == 2

    def test_operation_kind_and_suffix(self, tmp_path):
        path = write(tmp_path / "m.gql", "mutation AddUser($name: String!) { createUser(name: $name) { id } }")
        operation = DocumentDiscoverer.parse_file(path).definitions[0]
        assert operation.kind == "mutation"
        assert operation.type_suffix == "Mutation"

    def test_anonymous_operation_skipped(self, tmp_path):
        path = write(tmp_path / "anon.gql", "{ users { id } }")
        assert DocumentDiscoverer.parse_file(path).definitions == []

    def test_invalid_document(self, tmp_path):
        path = write(tmp_path / "broken.gql", "query Broken {")
        with pytest.raises(GenerationError):
            DocumentDiscoverer.parse_file(path)

    def test_operation_source_includes_fragments(self, project):
        documents = DocumentDiscoverer([project]).discover()
        source = documents.operation_source("GetPost")
        assert source.startswith("query GetPost")
        assert source.count("fragment PostFields on Post") == 1


class TestOwnership:
    """Tests for operation ownership."""

    def test_directory_name_selects_client(self, project):
        documents = DocumentDiscoverer([project]).discover()
        owners = assign_owners(documents, ["default", "blog"])
        assert owners == {"default": ["GetUser"], "blog": ["GetPost"]}

    def test_single_client_owns_everything(self, project):
        documents = DocumentDiscoverer([project]).discover()
        owners = assign_owners(documents, ["blog"])
        assert sorted(owners["blog"]) == ["GetPost", "GetUser"]

    def test_unmatched_falls_back_to_default(self, tmp_path):
        write(tmp_path / "shared" / "GetPost.graphql", GET_POST)
        documents = DocumentDiscoverer([tmp_path]).discover()
        owners = assign_owners(documents, ["blog", "default"])
        assert owners == {"blog": [], "default": ["GetPost"]}

    def test_unmatched_without_default_uses_first_client(self, tmp_path):
        write(tmp_path / "shared" / "GetPost.graphql", GET_POST)
        documents = DocumentDiscoverer([tmp_path]).discover()
        owners = assign_owners(documents, ["users", "blog"])
        assert owners["users"] == ["GetPost"]

    def test_same_name_for_two_clients_rejected(self, tmp_path):
        write(tmp_path / "default" / "GetPost.graphql", GET_POST)
        write(tmp_path / "blog" / "GetPost.graphql", GET_POST)
        documents = DocumentDiscoverer([tmp_path]).discover()
        with pytest.raises(ConfigurationError):
            assign_owners(documents, ["default", "blog"])

    def test_owner_for_path(self):
        assert owner_for_path(Path("/app/blog/GetPost.gql"), ["default", "blog"]) == "blog"
        assert owner_for_path(Path("/app/queries/GetPost.gql"), ["default", "blog"]) is None
