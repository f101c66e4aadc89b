"""Core modules for gqlbind."""

from .auth import Auth, HeaderAuth, TokenAuth, combine_headers
from .config import (
    ClientConfig,
    ClientDescriptor,
    CodegenOptions,
    GqlConfig,
    ResolvedConfig,
    StitchOptions,
    TokenConfig,
    load_config,
    resolve_config,
)
from .context import FunctionImport, GenerationContext
from .dispatch import DocumentSdk, OperationDispatcher, cache_key
from .documents import DocumentDiscoverer, allow_document, assign_owners
from .errors import (
    ConfigurationError,
    GenerationError,
    GqlBindError,
    RuntimeRequestError,
    SchemaLoadError,
)
from .generator import CodegenEngine, GenerationRequest, TemplateCodegenEngine, render_mock_sdk
from .hooks import AddHeaderHook, HookRunner, PostGenerateHook
from .ir import DocumentFile, DocumentOperation, DocumentSet
from .orchestrator import GenerationOrchestrator
from .registry import (
    ClientRegistry,
    ClientState,
    CorsOptions,
    ErrorSlot,
    HeaderOptions,
    TokenOptions,
)
from .scalars import ScalarMapping, ScalarRegistry
from .schema import HttpIntrospector, Introspector, SchemaResolver, SchemaSpec
from .stitching import merge_schemas, stitch_schemas
from .transport import GqlError, GraphQLTransport, ResponseErrorContext

__all__ = [
    # Auth
    "Auth",
    "HeaderAuth",
    "TokenAuth",
    "combine_headers",
    # Config
    "ClientConfig",
    "ClientDescriptor",
    "CodegenOptions",
    "GqlConfig",
    "ResolvedConfig",
    "StitchOptions",
    "TokenConfig",
    "load_config",
    "resolve_config",
    # Errors
    "GqlBindError",
    "ConfigurationError",
    "SchemaLoadError",
    "GenerationError",
    "RuntimeRequestError",
    # Documents
    "DocumentDiscoverer",
    "DocumentFile",
    "DocumentOperation",
    "DocumentSet",
    "allow_document",
    "assign_owners",
    # Schema
    "HttpIntrospector",
    "Introspector",
    "SchemaResolver",
    "SchemaSpec",
    "merge_schemas",
    "stitch_schemas",
    # Generation
    "CodegenEngine",
    "GenerationRequest",
    "TemplateCodegenEngine",
    "render_mock_sdk",
    "ScalarMapping",
    "ScalarRegistry",
    "FunctionImport",
    "GenerationContext",
    "GenerationOrchestrator",
    # Hooks
    "PostGenerateHook",
    "AddHeaderHook",
    "HookRunner",
    # Runtime
    "ClientRegistry",
    "ClientState",
    "CorsOptions",
    "ErrorSlot",
    "HeaderOptions",
    "TokenOptions",
    "GqlError",
    "GraphQLTransport",
    "ResponseErrorContext",
    "DocumentSdk",
    "OperationDispatcher",
    "cache_key",
]
