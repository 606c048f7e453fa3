"""Unified error handling for REST API and MCP protocol.

Provides standardized error response formats and exception handling.
"""

import json
import logging
import traceback
from typing import Dict, Any, Optional
from enum import Enum

from core.exceptions import MCPMySQLError

logger = logging.getLogger(__name__)


class ErrorFormat(Enum):
    """Error response format types."""
    REST_API = "rest_api"      # REST API format: {"success": false, "error": "..."}
    MCP_TOOL = "mcp_tool"       # MCP tool format: {"content": [{"type": "text", "text": "❌ Error: ..."}]}


def format_error_response(
    error: Exception,
    format_type: ErrorFormat = ErrorFormat.MCP_TOOL,
    include_stacktrace: bool = False,
    context: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Format error response in specified format.

    Args:
        error: The exception that occurred
        format_type: Desired response format (REST_API or MCP_TOOL)
        include_stacktrace: Whether to include stack trace (for debugging)
        context: Additional context information

    Returns:
        Formatted error response dict
    """
    error_message = error.message if isinstance(error, MCPMySQLError) else str(error)
    error_type = type(error).__name__

    if format_type == ErrorFormat.REST_API:
        response = {
            "success": False,
            "error": error_message,
            "error_type": error_type
        }

        if context:
            response["context"] = context

        if include_stacktrace:
            response["stacktrace"] = traceback.format_exc()

    else:
        error_text = f"❌ Error: {error_message}"

        if include_stacktrace:
            error_text += f"\n\nStack trace:\n{traceback.format_exc()}"

        if context:
            error_text += f"\n\nContext: {context}"

        response = {
            "content": [{
                "type": "text",
                "text": error_text
            }],
            "isError": True
        }

    # Expected domain errors are logged without a traceback
    if isinstance(error, MCPMySQLError):
        logger.warning(f"{error_type}: {error_message}")
    else:
        logger.error(f"{error_type}: {error_message}", exc_info=include_stacktrace)

    return response


def format_success_response(
    data: Any,
    format_type: ErrorFormat = ErrorFormat.REST_API,
    message: Optional[str] = None
) -> Dict[str, Any]:
    """Format success response in specified format.

    Args:
        data: The response data
        format_type: Desired response format
        message: Optional success message (REST only)

    Returns:
        Formatted success response dict
    """
    if format_type == ErrorFormat.REST_API:
        response = {
            "success": True,
            "data": data
        }
        if message:
            response["message"] = message
        return response

    # Already an MCP tool response
    if isinstance(data, dict) and "content" in data:
        return data

    if isinstance(data, str):
        text = data
    elif isinstance(data, (dict, list)):
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    else:
        text = str(data)

    return {
        "content": [{
            "type": "text",
            "text": text
        }]
    }


def response_text(response: Dict[str, Any]) -> str:
    """Join the text blocks of an MCP tool response."""
    return "\n".join(
        block.get("text", "") for block in response.get("content", [])
        if block.get("type") == "text"
    )
