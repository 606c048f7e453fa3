"""Base MCP server - Transport-agnostic MCP protocol implementation.

This module provides the core MCP server functionality independent of transport mechanism.
"""

import logging
from typing import Any, Dict, List, Optional
from mcp.server import Server
from mcp.types import TextContent

from core.dependencies import get_app_config
from core.error_handling import response_text
from core.exceptions import ToolExecutionError
from database.session_manager import SessionManager
from tools import get_all_tools
from tools.handlers import handle_tool_call

logger = logging.getLogger(__name__)


def to_text_content(response: Dict[str, Any]) -> List[TextContent]:
    """Convert a handler response dict into MCP text content blocks."""
    return [
        TextContent(type="text", text=block.get("text", ""))
        for block in response.get("content", [])
        if block.get("type") == "text"
    ]


class BaseMCPServer:
    """Base MCP server providing core protocol functionality.

    This class encapsulates the MCP protocol logic independent of
    the transport mechanism (STDIO, HTTP/SSE, etc.).
    """

    def __init__(self, session_manager: SessionManager, server_name: Optional[str] = None):
        """Initialize base MCP server.

        Args:
            session_manager: SessionManager that owns all database sessions
            server_name: Name of the MCP server (defaults to MCP_SERVER_NAME)
        """
        self.session_manager = session_manager
        if server_name is None:
            server_name = get_app_config().server_name
        self.server = Server(server_name)
        self._setup_handlers()
        logger.info(f"Initialized {server_name} MCP server")

    async def call_tool(self, name: str, arguments: Optional[dict]) -> List[TextContent]:
        """Dispatch one tool call; error responses are raised so the SDK flags them."""
        # Simple object instead of mcp.types.CallToolRequest, the SDK passes name/arguments directly
        request = type('CallToolRequest', (), {
            'name': name,
            'arguments': arguments or {}
        })()
        response = await handle_tool_call(request, self.session_manager)

        if response.get("isError"):
            raise ToolExecutionError(response_text(response))
        return to_text_content(response)

    def _setup_handlers(self):
        """Setup MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools():
            """List all available tools."""
            return get_all_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict):
            """Handle tool execution."""
            return await self.call_tool(name, arguments)

        @self.server.list_prompts()
        async def list_prompts():
            """List available prompts (currently none)."""
            return []

        @self.server.list_resources()
        async def list_resources():
            """List available resources (currently none)."""
            return []
