"""Database modules for the MySQL MCP Server."""

from .connection import MySQLConnectionManager, create_connection_manager
from .operations import MySQLOperations, split_sql_script

__all__ = [
    "MySQLConnectionManager",
    "create_connection_manager",
    "MySQLOperations",
    "split_sql_script"
]
