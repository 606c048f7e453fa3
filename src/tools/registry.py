"""Tool registry for routing MCP tool calls to handlers."""

import logging
from typing import Dict, Any, Optional
from mcp.types import CallToolRequest

from core.config import QueryConfig
from tools.base import ToolHandler
from tools.handlers.connection_handler import ConnectionHandler
from tools.handlers.project_handler import ProjectHandler
from tools.handlers.query_handler import QueryHandler
from tools.handlers.schema_handler import SchemaHandler
from tools.handlers.session_handler import SessionHandler

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Central registry for MCP tool handlers.

    Routes tool calls to appropriate handlers based on tool name.
    """

    def __init__(self, query_config: Optional[QueryConfig] = None):
        self.query_config = query_config or QueryConfig.from_env()
        self.handlers: Dict[str, ToolHandler] = {}
        self._register_handlers()

    def _register_handlers(self):
        """Register all tool handlers."""
        handler_classes = [
            ConnectionHandler,
            QueryHandler,
            SchemaHandler,
            ProjectHandler,
            SessionHandler,
        ]

        for handler_class in handler_classes:
            handler = handler_class(self.query_config)
            for tool_name in handler.tool_names:
                self.handlers[tool_name] = handler
                logger.debug(f"Registered {tool_name} -> {handler_class.__name__}")

        logger.info(f"✅ Registered {len(self.handlers)} MCP tools across {len(handler_classes)} handlers")

    async def handle_tool(
        self,
        request: CallToolRequest,
        session_manager: Any
    ) -> Optional[Dict[str, Any]]:
        """
        Route tool call to appropriate handler.

        Args:
            request: MCP tool call request
            session_manager: SessionManager instance

        Returns:
            Tool execution result, or None when no handler owns the tool
        """
        handler = self.handlers.get(request.name)
        if handler is None:
            return None

        logger.debug(f"Routing {request.name} to {handler.__class__.__name__}")
        return await handler.handle(request, session_manager)

    def is_tool_registered(self, tool_name: str) -> bool:
        """Check if a tool has a registered handler."""
        return tool_name in self.handlers
