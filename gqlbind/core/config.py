"""Client configuration resolution.

Settings for each client are merged in priority order (highest first):
  1. Client-specific environment variables  (GQL_HOST, GQL_BLOG_HOST, ...)
  2. The client's entry in the user configuration
  3. Hardcoded defaults

The `default` client reads the un-suffixed variables (GQL_HOST, GQL_TOKEN);
any other client reads variables suffixed with its upper-cased name
(GQL_BLOG_HOST, GQL_BLOG_TOKEN).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .auth import DEFAULT_TOKEN_NAME, DEFAULT_TOKEN_TYPE, token_header_value
from .errors import ConfigurationError

log = structlog.get_logger()

DEFAULT_CLIENT = "default"
SERVER_ONLY_KEYS = ("serverOnly", "server_only")


class _ConfigModel(BaseModel):
    # Accept both camelCase and snake_case keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class TokenConfig(_ConfigModel):
    name: str = DEFAULT_TOKEN_NAME
    type: str = DEFAULT_TOKEN_TYPE
    value: str | None = None


class ClientConfig(_ConfigModel):
    """User configuration for one client. A bare string is taken as the host."""

    host: str | None = None
    client_host: str | None = None
    schema_path: str | None = Field(default=None, alias="schema")
    token: str | TokenConfig | None = None
    retain_token: bool = False
    proxy_cookies: bool = True
    headers: dict[str, str | dict[str, str]] = Field(default_factory=dict)
    prefix: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_host_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"host": data}
        return data


class StitchOptions(_ConfigModel):
    merge_types: bool = True
    prefix_types: bool = False
    prefix_fields: bool = False


class CodegenOptions(_ConfigModel):
    silent: bool = True
    only_operation_types: bool = True
    skip_typename: bool = True
    stitch_schemas: bool | StitchOptions = False

    @property
    def stitch(self) -> StitchOptions | None:
        """Effective stitching options, or None when stitching is off."""
        if self.stitch_schemas is True:
            return StitchOptions()
        if isinstance(self.stitch_schemas, StitchOptions):
            return self.stitch_schemas
        return None


class GqlConfig(_ConfigModel):
    clients: dict[str, ClientConfig] = Field(default_factory=dict)
    document_paths: list[str] = Field(default_factory=list)
    watch: bool = True
    codegen: bool | CodegenOptions = True
    auto_import: bool = True
    function_prefix: str = "Gql"
    only_operation_types: bool = True
    silent: bool = True


@dataclass
class ClientDescriptor:
    """Fully resolved settings for one named client."""

    name: str
    host: str
    client_host: str | None = None
    schema_path: Path | None = None
    token: TokenConfig = field(default_factory=TokenConfig)
    retain_token: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    server_only_headers: dict[str, str] = field(default_factory=dict)
    proxy_cookies: bool = True
    prefix: str | None = None

    def auth_header(self) -> tuple[str, str] | None:
        """Return (header name, value) for the configured token, if any."""
        value = token_header_value(self.token.value, self.token.type)
        if value is None:
            return None
        return self.token.name, value

    def request_headers(self, server: bool) -> dict[str, str]:
        """Headers a request starts with.

        Server-only headers are included only in a server context. The auth
        header is included in a server context, or anywhere when the token
        is retained.
        """
        headers = dict(self.headers)
        if server:
            headers.update(self.server_only_headers)
        auth = self.auth_header()
        if auth and (server or self.retain_token):
            headers[auth[0]] = auth[1]
        return headers

    def to_public(self) -> dict[str, Any]:
        """Client-exposed view: no server-only headers, token value stripped unless retained."""
        token: dict[str, Any] = {"name": self.token.name, "type": self.token.type}
        if self.retain_token and self.token.value:
            token["value"] = self.token.value
        public: dict[str, Any] = {
            "host": self.host,
            "token": token,
            "retain_token": self.retain_token,
            "proxy_cookies": self.proxy_cookies,
            "headers": dict(self.headers),
        }
        if self.client_host:
            public["client_host"] = self.client_host
        if self.schema_path:
            public["schema"] = str(self.schema_path)
        return public


@dataclass
class ResolvedConfig:
    """The merged configuration every other component is built from."""

    clients: dict[str, ClientDescriptor]
    root: Path
    document_paths: list[str] = field(default_factory=list)
    watch: bool = True
    codegen: CodegenOptions | None = None
    auto_import: bool = True
    function_prefix: str = "Gql"
    only_operation_types: bool = True
    silent: bool = True

    @property
    def multi_client(self) -> bool:
        return len(self.clients) > 1 or DEFAULT_CLIENT not in self.clients

    def public_clients(self) -> dict[str, dict[str, Any]]:
        return {name: client.to_public() for name, client in self.clients.items()}

    def server_clients(self) -> dict[str, dict[str, Any]]:
        """Server-only view: token settings for clients that have a token value."""
        return {
            name: {"token": client.token.model_dump()}
            for name, client in self.clients.items()
            if client.token.value
        }


def env_var(client: str, suffix: str) -> str:
    """Environment variable name for a client setting.

    Example:
        env_var("default", "HOST")  # "GQL_HOST"
        env_var("blog", "TOKEN")    # "GQL_BLOG_TOKEN"
    """
    if client == DEFAULT_CLIENT:
        return f"GQL_{suffix}"
    return f"GQL_{client.upper()}_{suffix}"


def split_headers(headers: Mapping[str, Any]) -> tuple[dict[str, str], dict[str, str]]:
    """Separate static headers from the nested server-only mapping."""
    static: dict[str, str] = {}
    server_only: dict[str, str] = {}
    for key, value in headers.items():
        if key in SERVER_ONLY_KEYS:
            if isinstance(value, Mapping):
                server_only.update(value)
        elif isinstance(value, str):
            static[key] = value
    return static, server_only


def _resolve_client(
    name: str,
    cfg: ClientConfig,
    env: Mapping[str, str],
    root: Path,
) -> ClientDescriptor:
    host_var = env_var(name, "HOST")
    host = env.get(host_var) or cfg.host
    if not host:
        raise ConfigurationError(
            f"GraphQL client ({name}) is missing its host. Set {host_var} "
            f"or clients.{name}.host.",
            client=name,
            variable=host_var,
        )

    client_host = env.get(env_var(name, "CLIENT_HOST")) or cfg.client_host

    if isinstance(cfg.token, TokenConfig):
        configured = cfg.token
    else:
        configured = TokenConfig(value=cfg.token)
    token = TokenConfig(
        name=env.get(env_var(name, "TOKEN_NAME")) or configured.name,
        type=configured.type,
        value=env.get(env_var(name, "TOKEN")) or configured.value,
    )

    schema_path = None
    if cfg.schema_path:
        candidate = (root / cfg.schema_path).resolve()
        if candidate.is_file():
            schema_path = candidate
        else:
            log.warning(
                "schema_file_missing",
                client=name,
                path=str(candidate),
                fallback=host,
            )

    headers, server_only = split_headers(cfg.headers)

    return ClientDescriptor(
        name=name,
        host=host,
        client_host=client_host,
        schema_path=schema_path,
        token=token,
        retain_token=cfg.retain_token,
        headers=headers,
        server_only_headers=server_only,
        proxy_cookies=cfg.proxy_cookies,
        prefix=cfg.prefix,
    )


def _effective_codegen(config: GqlConfig) -> CodegenOptions | None:
    if config.codegen is False:
        return None
    if config.codegen is True:
        return CodegenOptions(
            silent=config.silent,
            only_operation_types=config.only_operation_types,
        )
    options = config.codegen
    # Top-level flags apply unless the codegen block sets them itself
    inherited = {
        key: getattr(config, key)
        for key in ("silent", "only_operation_types")
        if key not in options.model_fields_set
    }
    return options.model_copy(update=inherited)


def resolve_config(
    config: GqlConfig,
    env: Mapping[str, str] | None = None,
    root: str | os.PathLike[str] | None = None,
) -> ResolvedConfig:
    """Merge defaults, user configuration and environment into per-client descriptors.

    Args:
        config: The user configuration
        env: Environment mapping (defaults to os.environ)
        root: Project root used to resolve relative paths (defaults to cwd)

    Raises:
        ConfigurationError: If any client ends up without a host
    """
    env = os.environ if env is None else env
    root_path = Path(root if root is not None else ".").resolve()

    clients = dict(config.clients)
    if not clients:
        # Implicit single-client mode, driven by the environment only
        host_var = env_var(DEFAULT_CLIENT, "HOST")
        if not env.get(host_var):
            raise ConfigurationError(
                f"{host_var} is not set and no clients are configured.",
                client=DEFAULT_CLIENT,
                variable=host_var,
            )
        clients = {DEFAULT_CLIENT: ClientConfig()}

    descriptors = {
        name: _resolve_client(name, cfg, env, root_path) for name, cfg in clients.items()
    }

    return ResolvedConfig(
        clients=descriptors,
        root=root_path,
        document_paths=list(config.document_paths),
        watch=config.watch,
        codegen=_effective_codegen(config),
        auto_import=config.auto_import,
        function_prefix=config.function_prefix,
        only_operation_types=config.only_operation_types,
        silent=config.silent,
    )


def load_config(path: str | os.PathLike[str]) -> GqlConfig:
    """Load a GqlConfig from a YAML file.

    The configuration may sit under a top-level `graphql-client` or `gql`
    key; otherwise the whole document is used.
    """
    config_path = Path(path)
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    for key in ("graphql-client", "gql"):
        if isinstance(raw.get(key), dict):
            raw = raw[key]
            break

    try:
        return GqlConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e
