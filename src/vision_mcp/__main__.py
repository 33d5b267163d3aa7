"""CLI entry point for Vision MCP."""

from __future__ import annotations

import asyncio
import json
import sys

import click

from . import __version__
from .exceptions import VisionMCPError
from .friendly_errors import format_friendly_error, friendly_error
from .logging_setup import setup_logging


def _load(config_path: str | None):
    """Load config or exit with a friendly message."""
    from .config import load_config
    from .providers.registry import build_default_registry

    registry = build_default_registry()
    try:
        return registry, load_config(registry, config_path)
    except VisionMCPError as e:
        click.echo(format_friendly_error(friendly_error(e)), err=True)
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="vision-mcp")
@click.option("--config", "config_path", default=None, help="Config file path (YAML)")
@click.option(
    "--transport", default=None, help="Override transport: stdio | streamable-http"
)
@click.option("--port", default=None, type=int, help="Override HTTP port")
@click.pass_context
def main(
    ctx: click.Context, config_path: str | None, transport: str | None, port: int | None
) -> None:
    """Vision MCP: give your agent eyes through any vision model."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is not None:
        return

    from .server import create_server

    registry, config = _load(config_path)
    overrides = {}
    if transport:
        overrides["transport"] = transport
    if port:
        overrides["port"] = port
    if overrides:
        config = config.model_copy(update=overrides)

    setup_logging(config.log_level)
    mcp_server = create_server(config, registry)
    mcp_server.run(transport=config.transport)


@main.command()
def templates() -> None:
    """List the built-in prompt templates."""
    from .prompts import list_templates

    for t in list_templates():
        click.echo(f"{t['id']:<24} {t['description']}")


@main.command()
def providers() -> None:
    """List supported model types and their defaults."""
    from .providers.registry import build_default_registry

    for d in build_default_registry().definitions():
        click.echo(f"{d.vendor:<12} {d.display_name:<18} {d.defaults.model_name}")


@main.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the resolved configuration (API key masked)."""
    from .analyzer import VisionAnalyzer

    registry, config = _load(ctx.obj.get("config_path"))
    analyzer = VisionAnalyzer(config, registry)
    click.echo(json.dumps(analyzer.config_info(), indent=2))


@main.command()
@click.argument("image")
@click.argument("prompt")
@click.option("--template", default=None, help="Prompt template id")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
@click.pass_context
def analyze(
    ctx: click.Context,
    image: str,
    prompt: str,
    template: str | None,
    output_format: str,
) -> None:
    """Analyze IMAGE (URL, data URL, or file path) with PROMPT."""
    from .analyzer import AnalyzeRequest, VisionAnalyzer

    registry, config = _load(ctx.obj.get("config_path"))
    setup_logging(config.log_level)

    async def _run() -> str:
        analyzer = VisionAnalyzer(config, registry)
        try:
            request = AnalyzeRequest(
                image=image, prompt=prompt, output_format=output_format, template=template
            )
            result = await analyzer.analyze(request)
            return result.content
        finally:
            await analyzer.close()

    try:
        click.echo(asyncio.run(_run()))
    except VisionMCPError as e:
        click.echo(format_friendly_error(friendly_error(e)), err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
