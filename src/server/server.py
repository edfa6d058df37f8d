"""Server bootstrap for the GitLab MCP service.

Reads settings once, builds the GitLab client and the tool registry, wires
the registry into an MCP server and serves it over stdio. A missing access
token is fatal: the process exits before serving any request.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from clients.gitlab import GitLabClient
from config import load_settings
from core.errors import ConfigurationError
from core.registry import ToolRegistry

from tools.files import register as register_files
from tools.issues import register as register_issues
from tools.merge_requests import register as register_merge_requests
from tools.repositories import register as register_repositories
from tools.threads import register as register_threads

SERVER_NAME = "gitlab-mcp-server"

logger = logging.getLogger(__name__)


def build_registry(gitlab_client: GitLabClient) -> ToolRegistry:
    registry = ToolRegistry()
    register_files(registry, gitlab_client=gitlab_client)
    register_repositories(registry, gitlab_client=gitlab_client)
    register_issues(registry, gitlab_client=gitlab_client)
    register_merge_requests(registry, gitlab_client=gitlab_client)
    register_threads(registry, gitlab_client=gitlab_client)
    return registry


def create_server(registry: ToolRegistry) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return registry.list_tools()

    # Arguments are validated by the registry, which coerces numeric IDs
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Any) -> List[TextContent]:
        # Raised errors are reported to the caller as failed tool calls
        return await registry.dispatch(name, arguments)

    return server


async def run(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    # stdout carries the MCP stream; logs go to stderr
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Startup configuration error: %s", e)
        sys.exit(1)

    registry = build_registry(GitLabClient(settings))
    server = create_server(registry)

    logger.info("GitLab MCP Server running on stdio (%s, %s tools)", settings.api_url, len(registry.names))
    asyncio.run(run(server))


if __name__ == "__main__":
    main()
