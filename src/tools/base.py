"""Base classes for MCP tool handlers."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.config import QueryConfig
from core.error_handling import ErrorFormat, format_success_response
from core.exceptions import ValidationError
from database.operations import MySQLOperations


class ToolHandler(ABC):
    """Abstract base class for MCP tool handlers."""

    def __init__(self, query_config: Optional[QueryConfig] = None):
        self.query_config = query_config or QueryConfig.from_env()

    @property
    @abstractmethod
    def tool_names(self) -> List[str]:
        """Return list of tool names this handler supports."""
        pass

    @abstractmethod
    async def handle(self, request: Any, session_manager: Any) -> Dict[str, Any]:
        """
        Handle tool invocation.

        Args:
            request: MCP tool call request (name and arguments)
            session_manager: SessionManager instance

        Returns:
            MCP response dictionary with 'content' key

        Raises:
            MCPMySQLError: formatted into an error response by the registry
        """
        pass

    def _operations(self, session_manager: Any) -> MySQLOperations:
        """Operations bound to the current session (raises if not connected)."""
        session = session_manager.require_current_session()
        return MySQLOperations(session.manager)

    @staticmethod
    def _arguments(request: Any) -> Dict[str, Any]:
        return getattr(request, "arguments", None) or {}

    def _require(self, request: Any, name: str) -> Any:
        value = self._arguments(request).get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Parameter '{name}' is required")
        return value

    def _error_response(self, error_message: str) -> Dict[str, Any]:
        """Create standardized error response."""
        return {
            "content": [{
                "type": "text",
                "text": f"❌ Error: {error_message}"
            }],
            "isError": True
        }

    def _success_response(self, text: str) -> Dict[str, Any]:
        """Create standardized success response."""
        return format_success_response(text, ErrorFormat.MCP_TOOL)
