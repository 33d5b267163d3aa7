"""FastMCP server: tool registrations and lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult, TextContent

from . import tools
from .analyzer import VisionAnalyzer
from .config import VisionMCPConfig
from .providers.registry import ProviderRegistry

logger = logging.getLogger("vision-mcp")

INSTRUCTIONS = (
    "Vision MCP: image understanding through a configured vision model. "
    "Use analyze_image with an http(s) URL, a base64 data URL, or a local file "
    "path. Call list_templates to pick a prompt template for UI analysis, "
    "object detection, OCR, or structured extraction."
)


def _to_result(response: tools.ToolResponse) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=response.to_text())],
        isError=response.is_error,
    )


def create_server(
    config: VisionMCPConfig,
    registry: ProviderRegistry | None = None,
    analyzer: VisionAnalyzer | None = None,
) -> FastMCP:
    """Create the FastMCP server. The adapter is built here, so bad config fails fast."""
    analyzer = analyzer or VisionAnalyzer(config, registry)

    @asynccontextmanager
    async def app_lifespan(server: FastMCP):
        logger.info(
            "Vision MCP ready: %s / %s",
            config.model.vendor,
            config.model.name,
        )
        try:
            yield
        finally:
            await analyzer.close()

    mcp = FastMCP(
        "vision-mcp",
        instructions=INSTRUCTIONS,
        host=config.host,
        port=config.port,
        lifespan=app_lifespan,
    )

    @mcp.tool()
    async def analyze_image(
        image: str,
        prompt: str,
        output_format: str = "text",
        template: str | None = None,
    ) -> CallToolResult:
        """Analyze an image with the configured vision model.

        Args:
            image: Image URL, base64 data URL, or local file path
            prompt: Analysis prompt describing the task
            output_format: "text" (default) or "json"
            template: System prompt template id. Auto-selected from the
                prompt when omitted. Call list_templates() for ids.
        """
        return _to_result(
            await tools.analyze_image(analyzer, image, prompt, output_format, template)
        )

    @mcp.tool()
    async def list_templates() -> CallToolResult:
        """List the available system prompt templates and their use cases."""
        return _to_result(tools.list_templates())

    @mcp.tool()
    async def get_config() -> CallToolResult:
        """Show the current model configuration. The API key is masked."""
        return _to_result(tools.get_config(analyzer))

    return mcp
