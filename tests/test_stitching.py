"""Tests for schema stitching."""

import pytest
from conftest import BLOG_SDL, USERS_SDL
from graphql import build_schema, print_schema

from gqlbind.core.config import ClientDescriptor, StitchOptions
from gqlbind.core.errors import GenerationError
from gqlbind.core.stitching import (
    field_prefix,
    merge_schemas,
    pascal_case,
    stitch_schemas,
    type_prefix,
)


@pytest.fixture
def users():
    return ClientDescriptor(name="default", host="https://api.a/graphql"), build_schema(USERS_SDL)


@pytest.fixture
def blog():
    return ClientDescriptor(name="blog", host="https://api.b/graphql"), build_schema(BLOG_SDL)


class TestPrefixes:
    """Tests for prefix derivation."""

    def test_pascal_case(self):
        assert pascal_case("blog") == "Blog"
        assert pascal_case("blog-api") == "BlogApi"
        assert pascal_case("blog_api") == "BlogApi"

    def test_prefix_from_client_name(self):
        client = ClientDescriptor(name="blog", host="h")
        assert type_prefix(client) == "Blog"
        assert field_prefix(client) == "blog_"

    def test_explicit_prefix(self):
        client = ClientDescriptor(name="blog", host="h", prefix="cms")
        assert type_prefix(client) == "Cms"
        assert field_prefix(client) == "cms_"

    def test_empty_prefix_disables_field_prefix(self):
        client = ClientDescriptor(name="blog", host="h", prefix="")
        assert field_prefix(client) == ""


class TestStitchSchemas:
    """Tests for stitch_schemas."""

    def test_field_prefixes_keep_both_clients(self, users, blog):
        sdl = stitch_schemas([users, blog], StitchOptions(prefix_fields=True))
        schema = build_schema(sdl)
        fields = set(schema.query_type.fields)
        assert fields == {"default_user", "default_users", "blog_post", "blog_posts"}
        assert set(schema.mutation_type.fields) == {"default_createUser"}

    def test_type_prefixes_rename_references(self, users, blog):
        sdl = stitch_schemas([users, blog], StitchOptions(prefix_types=True))
        schema = build_schema(sdl)
        assert "BlogPost" in schema.type_map
        assert "DefaultUser" in schema.type_map
        assert "Post" not in schema.type_map
        assert schema.query_type.fields["post"].type.name == "BlogPost"
        assert schema.get_type("BlogPost").fields["author"].type.name == "BlogAuthor"
        assert str(schema.get_type("BlogPost").fields["status"].type) == "BlogPostStatus!"

    def test_builtin_scalars_not_prefixed(self, users, blog):
        sdl = stitch_schemas([users, blog], StitchOptions(prefix_types=True))
        assert "DefaultString" not in sdl
        assert "BlogID" not in sdl

    def test_same_type_merged(self):
        left = ClientDescriptor(name="a", host="h"), build_schema(
            "type Query { a: Shared } type Shared { id: ID! }"
        )
        right = ClientDescriptor(name="b", host="h"), build_schema(
            "type Query { b: Shared } type Shared { id: ID! name: String }"
        )
        schema = build_schema(stitch_schemas([left, right], StitchOptions()))
        assert set(schema.get_type("Shared").fields) == {"id", "name"}
        assert set(schema.query_type.fields) == {"a", "b"}

    def test_duplicate_type_without_merging(self):
        left = ClientDescriptor(name="a", host="h"), build_schema("type Query { a: Shared } type Shared { id: ID! }")
        right = ClientDescriptor(name="b", host="h"), build_schema("type Query { b: Shared } type Shared { id: ID! }")
        with pytest.raises(GenerationError):
            stitch_schemas([left, right], StitchOptions(merge_types=False))

    def test_kind_mismatch(self):
        left = ClientDescriptor(name="a", host="h"), build_schema("type Query { a: Thing } type Thing { id: ID! }")
        right = ClientDescriptor(name="b", host="h"), build_schema("type Query { b: Thing } enum Thing { ONE }")
        with pytest.raises(GenerationError):
            stitch_schemas([left, right], StitchOptions())

    def test_custom_root_names_normalized(self):
        client = ClientDescriptor(name="legacy", host="h"), build_schema(
            "schema { query: RootQuery } type RootQuery { ping: String }"
        )
        schema = build_schema(stitch_schemas([client], StitchOptions()))
        assert schema.query_type.name == "Query"
        assert "ping" in schema.query_type.fields


class TestMergeSchemas:
    """Tests for unprefixed merging."""

    def test_merges_roots(self):
        merged = merge_schemas([("default", build_schema(USERS_SDL)), ("blog", build_schema(BLOG_SDL))])
        assert {"user", "users", "post", "posts"} <= set(merged.query_type.fields)
        assert "Author" in merged.type_map

    def test_merge_leaves_inputs_untouched(self):
        left = build_schema("type Query { a: Shared } type Shared { id: ID! } enum Color { RED }")
        right = build_schema("type Query { b: Shared } type Shared { name: String } enum Color { BLUE }")
        before = (print_schema(left), print_schema(right))

        merged = merge_schemas([("a", left), ("b", right)])

        assert set(merged.get_type("Shared").fields) == {"id", "name"}
        assert set(merged.get_type("Color").values) == {"RED", "BLUE"}
        assert (print_schema(left), print_schema(right)) == before


SEARCH_SDL = """
interface Node { id: ID! }
type Article implements Node { id: ID! title: String }
type Video implements Node { id: ID! url: String }
union SearchResult = Article | Video
input SearchFilter { text: String }
type Query {
  search(filter: SearchFilter): [SearchResult!]!
  node(id: ID!): Node
}
"""


class TestAbstractTypes:
    """Interfaces, unions and inputs under stitching."""

    def test_type_prefix_follows_interfaces_and_unions(self):
        client = ClientDescriptor(name="cms", host="h"), build_schema(SEARCH_SDL)
        schema = build_schema(stitch_schemas([client], StitchOptions(prefix_types=True)))

        union = schema.get_type("CmsSearchResult")
        assert {t.name for t in union.types} == {"CmsArticle", "CmsVideo"}
        article = schema.get_type("CmsArticle")
        assert [i.name for i in article.interfaces] == ["CmsNode"]
        assert schema.query_type.fields["node"].type.name == "CmsNode"
        assert schema.query_type.fields["search"].args["filter"].type.name == "CmsSearchFilter"
        assert "Node" not in schema.type_map

    def test_unions_merge_members(self):
        left = ClientDescriptor(name="a", host="h"), build_schema(
            "type Query { a: Result } type A { id: ID! } union Result = A"
        )
        right = ClientDescriptor(name="b", host="h"), build_schema(
            "type Query { b: Result } type B { id: ID! } union Result = B"
        )
        schema = build_schema(stitch_schemas([left, right], StitchOptions()))
        assert {t.name for t in schema.get_type("Result").types} == {"A", "B"}

    def test_prefixes_combined(self):
        client = ClientDescriptor(name="cms", host="h"), build_schema(SEARCH_SDL)
        sdl = stitch_schemas([client], StitchOptions(prefix_types=True, prefix_fields=True))
        schema = build_schema(sdl)
        assert set(schema.query_type.fields) == {"cms_search", "cms_node"}
        assert schema.query_type.fields["cms_node"].type.name == "CmsNode"
