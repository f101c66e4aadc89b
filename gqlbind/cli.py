"""Command-line interface for gqlbind."""

import asyncio
import json
from pathlib import Path

import click

from .core.config import GqlConfig, load_config, resolve_config
from .core.errors import GqlBindError
from .core.logging_setup import configure_logging
from .core.orchestrator import GenerationOrchestrator


def _resolve(config_file, root):
    config = load_config(config_file) if config_file else GqlConfig()
    return resolve_config(config, root=root)


@click.group()
@click.version_option()
def main():
    """Typed GraphQL client bindings for Python.

    Generate bindings from GraphQL documents for one or more named clients.
    """
    pass


@main.command()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file. Without it, clients come from GQL_* variables.",
)
@click.option(
    "--root",
    "-r",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Project root searched for documents (default: current directory).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False),
    help="Output directory for generated code (default: <root>/.gqlbind).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Log output format.",
)
def generate(config_file, root, output, verbose, log_format):
    """Generate bindings for every configured client.

    Examples:

        gqlbind generate --config gqlbind.yaml

        GQL_HOST=https://api.example.com/graphql gqlbind generate -o ./generated
    """
    configure_logging("DEBUG" if verbose else "INFO", log_format)
    try:
        resolved = _resolve(config_file, root)
        if verbose:
            click.echo(f"Root: {resolved.root}")
            for name, client in resolved.clients.items():
                source = client.schema_path or client.host
                click.echo(f"  Client {name}: {source}")

        click.echo("Generating bindings...")
        orchestrator = GenerationOrchestrator(resolved, output_dir=output)
        context = asyncio.run(orchestrator.generate())
    except GqlBindError as e:
        raise click.ClickException(str(e)) from e

    operations = sum(len(ops) for ops in context.client_operations.values())
    if verbose:
        for name, ops in context.client_operations.items():
            click.echo(f"  {name}: {len(ops)} operations")
    click.echo(
        f"Done! Generated {operations} operations for {len(context.clients)} clients "
        f"in {orchestrator.output_dir}"
    )


@main.command("config")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file.",
)
@click.option(
    "--root",
    "-r",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Project root.",
)
def show_config(config_file, root):
    """Print the client-exposed configuration as JSON (secrets stripped)."""
    configure_logging("WARNING")
    try:
        resolved = _resolve(config_file, root)
    except GqlBindError as e:
        raise click.ClickException(str(e)) from e

    public = {
        "clients": resolved.public_clients(),
        "root": str(Path(resolved.root)),
        "document_paths": resolved.document_paths,
        "auto_import": resolved.auto_import,
        "function_prefix": resolved.function_prefix,
        "codegen": resolved.codegen is not None,
    }
    click.echo(json.dumps(public, indent=2))


if __name__ == "__main__":
    main()
