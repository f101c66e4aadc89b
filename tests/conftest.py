"""Shared test fixtures for the gqlbind test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import pytest
from graphql import build_schema, introspection_from_schema

from gqlbind.core.config import GqlConfig, ResolvedConfig, resolve_config

USERS_SDL = """
type Query {
  user(id: ID!): User
  users: [User!]!
}

type Mutation {
  createUser(name: String!): User
}

type User {
  id: ID!
  name: String!
  email: String
}
"""

BLOG_SDL = """
type Query {
  post(id: ID!): Post
  posts(status: PostStatus = PUBLISHED): [Post!]!
}

enum PostStatus {
  DRAFT
  PUBLISHED
}

type Post {
  id: ID!
  title: String!
  status: PostStatus!
  author: Author
}

type Author {
  id: ID!
  name: String!
}
"""

GET_USER = """
query GetUser($id: ID!) {
  user(id: $id) {
    id
    name
  }
}
"""

GET_POST = """
query GetPost($id: ID!) {
  post(id: $id) {
    ...PostFields
    author {
      name
    }
  }
}

fragment PostFields on Post {
  id
  title
}
"""

DEFAULT_HOST = "https://api.a/graphql"
BLOG_HOST = "https://api.b/graphql"


class FakeIntrospector:
    """Serves introspection results from SDL without any network access."""

    def __init__(self, schemas: Mapping[str, str]):
        self.schemas = dict(schemas)
        self.calls: list[tuple[str, dict[str, str]]] = []

    async def __call__(self, url: str, headers: Mapping[str, str]) -> dict[str, Any]:
        self.calls.append((url, dict(headers)))
        return introspection_from_schema(build_schema(self.schemas[url]))


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    """A project with local schemas and one document per client."""
    write(tmp_path / "schemas" / "default.graphql", USERS_SDL)
    write(tmp_path / "schemas" / "blog.graphql", BLOG_SDL)
    write(tmp_path / "default" / "GetUser.graphql", GET_USER)
    write(tmp_path / "blog" / "GetPost.graphql", GET_POST)
    return tmp_path


@pytest.fixture()
def two_clients() -> GqlConfig:
    return GqlConfig.model_validate(
        {
            "clients": {
                "default": {"host": DEFAULT_HOST, "schema": "schemas/default.graphql"},
                "blog": {"host": BLOG_HOST, "schema": "schemas/blog.graphql"},
            }
        }
    )


@pytest.fixture()
def resolved(project: Path, two_clients: GqlConfig) -> ResolvedConfig:
    return resolve_config(two_clients, env={}, root=project)


@pytest.fixture()
def fake_introspector() -> FakeIntrospector:
    return FakeIntrospector({DEFAULT_HOST: USERS_SDL, BLOG_HOST: BLOG_SDL})
