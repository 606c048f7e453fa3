"""STDIO transport MCP server."""

import logging
from typing import Optional
from mcp.server.stdio import stdio_server

from core.config import AppConfig
from core.dependencies import get_session_manager
from database.session_manager import SessionManager
from protocol.base_server import BaseMCPServer

logger = logging.getLogger(__name__)


class StdioMCPServer(BaseMCPServer):
    """MCP server using STDIO transport."""

    async def run(self):
        """Run the STDIO MCP server."""
        logger.info("Starting STDIO MCP server")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options()
            )


async def run_stdio_server(
    app_config: Optional[AppConfig] = None,
    session_manager: Optional[SessionManager] = None
):
    """Run STDIO MCP server; every session is closed when the transport ends.

    Args:
        app_config: App configuration (optional, defaults to env)
        session_manager: Session registry (optional, defaults to the singleton)
    """
    session_manager = session_manager or get_session_manager(app_config)
    server = StdioMCPServer(session_manager)
    try:
        await server.run()
    finally:
        await session_manager.disconnect_all()
        logger.info("STDIO MCP server stopped")
