"""Generation orchestrator.

Runs one generation pass end to end (document discovery, schema resolution,
code generation) and writes the generated artifacts:

    gql_sdk.py  the bindings module
    gql.py      the auto-import manifest (when auto_import is on)
    gql.pyi     type declarations for the manifest (when auto_import is on)

Passes are serialized: a pass requested while another is running waits for
it to finish. A failed pass leaves the previous artifacts and context in place.
"""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import Optional

import structlog

from .config import ResolvedConfig
from .context import GenerationContext
from .documents import (
    DocumentDiscoverer,
    allow_document,
    assign_owners,
    document_roots,
    is_document_path,
)
from .generator import (
    PLUGIN_OPERATIONS,
    PLUGIN_SDK,
    PLUGIN_TYPES,
    CodegenEngine,
    GenerationRequest,
    TemplateCodegenEngine,
    render_mock_sdk,
)
from .hooks import AddHeaderHook, HookRunner
from .ir import DocumentSet
from .schema import SchemaResolver

log = structlog.get_logger()

DEFAULT_OUTPUT_DIR = ".gqlbind"
SDK_FILE = "gql_sdk.py"
IMPORTS_FILE = "gql.py"
DECLARATIONS_FILE = "gql.pyi"


def select_plugins(documents: DocumentSet) -> list[str]:
    """Types always; operation models and the SDK only when there are operations."""
    plugins = [PLUGIN_TYPES]
    if documents.operations:
        plugins.extend([PLUGIN_OPERATIONS, PLUGIN_SDK])
    return plugins


class GenerationOrchestrator:
    """Owns the generation pipeline for one resolved configuration.

    Example:
        orchestrator = GenerationOrchestrator(resolve_config(config))
        context = await orchestrator.generate()
        print(context.client_operations)
    """

    def __init__(
        self,
        resolved: ResolvedConfig,
        engine: Optional[CodegenEngine] = None,
        schema_resolver: Optional[SchemaResolver] = None,
        output_dir: Optional[str | os.PathLike[str]] = None,
        hooks: Optional[HookRunner] = None,
    ):
        self.resolved = resolved
        self.schema_resolver = schema_resolver or SchemaResolver()
        self.engine = engine or TemplateCodegenEngine(schema_resolver=self.schema_resolver)
        self.output_dir = Path(output_dir) if output_dir else resolved.root / DEFAULT_OUTPUT_DIR
        self.hooks = hooks if hooks is not None else HookRunner([AddHeaderHook()])
        self.roots = document_roots(resolved.root, resolved.document_paths)
        self.context: Optional[GenerationContext] = None
        self._lock = asyncio.Lock()

    async def generate(self) -> GenerationContext:
        """Run one full pass, waiting for any pass already in flight."""
        async with self._lock:
            return await self._generate()

    async def _generate(self) -> GenerationContext:
        documents = DocumentDiscoverer(self.roots).discover()
        client_operations = assign_owners(documents, list(self.resolved.clients))
        plugins = select_plugins(documents)

        codegen = self.resolved.codegen
        if codegen is not None:
            schema = await self.schema_resolver.resolve(self.resolved.clients, codegen.stitch)
            request = GenerationRequest(
                schema=schema,
                documents=documents.paths,
                plugins=plugins,
                config={
                    "only_operation_types": codegen.only_operation_types,
                    "skip_typename": codegen.skip_typename,
                },
            )
            template = await self.engine.generate(request)
        else:
            template = render_mock_sdk(documents)

        context = GenerationContext(
            client_operations=client_operations,
            codegen=codegen.model_dump() if codegen is not None else {},
            template=template,
        )
        if self.resolved.multi_client:
            context.prepare_template()
        context.prepare_functions(documents, self.resolved.function_prefix)

        self._write(self._artifacts(context))
        self.context = context

        emit = log.debug if self.resolved.silent else log.info
        emit(
            "generation_finished",
            documents=len(documents.files),
            operations=len(documents.operations),
            plugins=plugins,
            output=str(self.output_dir),
        )
        return context

    def _artifacts(self, context: GenerationContext) -> dict[str, str]:
        artifacts = {SDK_FILE: context.template}
        if self.resolved.auto_import:
            artifacts[IMPORTS_FILE] = context.generate_imports()
            artifacts[DECLARATIONS_FILE] = context.generate_declarations()
        return {
            name: self.hooks.run_post_hooks(name, content) for name, content in artifacts.items()
        }

    def _write(self, artifacts: dict[str, str]) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        package_init = self.output_dir / "__init__.py"
        if not package_init.exists():
            package_init.write_text("", encoding="utf-8")
        for name, content in artifacts.items():
            (self.output_dir / name).write_text(content, encoding="utf-8")

    async def handle_event(self, kind: str, path: str | os.PathLike[str]) -> bool:
        """React to a file-watcher event.

        Returns:
            True if a regeneration ran
        """
        if not self.resolved.watch or not is_document_path(path):
            return False
        file_path = Path(path)
        if not file_path.is_absolute():
            file_path = self.resolved.root / file_path
        if kind != "unlink" and not allow_document(file_path):
            return False

        start = time.perf_counter()
        await self.generate()
        elapsed_ms = round((time.perf_counter() - start) * 1000)
        log.info("generation_completed", elapsed_ms=elapsed_ms, trigger=kind, path=str(file_path))
        return True
