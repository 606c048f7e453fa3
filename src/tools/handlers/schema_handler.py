"""Schema introspection handler."""

import logging
from typing import Any, Dict, List
from mcp.types import CallToolRequest

from core.exceptions import ValidationError
from tools.base import ToolHandler
from tools.definitions import make_tool_name, TOOL_GET_SCHEMA
from tools.formatting import format_schema
from tools.validators import InputValidator

logger = logging.getLogger(__name__)


class SchemaHandler(ToolHandler):
    """Handler for database schema operations."""

    @property
    def tool_names(self) -> List[str]:
        return [make_tool_name(TOOL_GET_SCHEMA)]

    async def handle(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        """
        Describe tables, indexes, foreign keys and views.

        Args:
            request: MCP tool call request (optional databaseName)
            session_manager: SessionManager instance

        Returns:
            Formatted schema text
        """
        database_name = self._arguments(request).get("databaseName")
        if database_name:
            is_valid, error_msg = InputValidator.validate_identifier(database_name, "Database name")
            if not is_valid:
                raise ValidationError(error_msg)

        operations = self._operations(session_manager)
        schema = await operations.get_schema(database_name)
        logger.debug(f"Schema loaded: {len(schema.tables)} tables, {len(schema.views)} views")

        return self._success_response(format_schema(schema))
