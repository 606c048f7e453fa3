"""MCP tools package for the MySQL MCP Server."""

from tools.base import ToolHandler
from tools.registry import ToolRegistry
from tools.definitions import get_all_tools, make_tool_name, get_tool_prefix
from tools.validators import SQLValidator, InputValidator

__all__ = [
    'ToolHandler',
    'ToolRegistry',
    'get_all_tools',
    'make_tool_name',
    'get_tool_prefix',
    'SQLValidator',
    'InputValidator',
]
