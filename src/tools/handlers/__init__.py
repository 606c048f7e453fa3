"""Tool handlers package."""

import logging

from tools.handlers.connection_handler import ConnectionHandler
from tools.handlers.project_handler import ProjectHandler
from tools.handlers.query_handler import QueryHandler
from tools.handlers.schema_handler import SchemaHandler
from tools.handlers.session_handler import SessionHandler

__all__ = [
    'ConnectionHandler',
    'ProjectHandler',
    'QueryHandler',
    'SchemaHandler',
    'SessionHandler',
    'handle_tool_call',
    'reset_registry',
]

logger = logging.getLogger(__name__)

# Lazy import to avoid circular dependency with registry
_registry = None


def _get_registry():
    global _registry
    if _registry is None:
        from tools.registry import ToolRegistry
        _registry = ToolRegistry()
    return _registry


def reset_registry():
    """Drop the cached registry so the next call re-reads TOOL_PREFIX and query settings."""
    global _registry
    _registry = None


async def handle_tool_call(request, session_manager=None) -> dict:
    """Unified tool handler entry point via ToolRegistry.

    Idle sessions are swept before the call is routed. Errors raised by
    handlers come back as MCP error responses.
    """
    from core.error_handling import format_error_response

    if session_manager is None:
        from core.dependencies import get_session_manager
        session_manager = get_session_manager()

    try:
        expired = await session_manager.cleanup_expired_sessions()
        if expired:
            logger.info(f"🧹 Swept {len(expired)} idle sessions before {request.name}")

        result = await _get_registry().handle_tool(request, session_manager)
    except Exception as e:
        return format_error_response(e)

    if result is not None:
        return result
    return {
        "content": [{"type": "text", "text": f"Unknown tool: {request.name}"}],
        "isError": True
    }
