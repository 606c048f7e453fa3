"""Core modules for the MySQL MCP Server."""

from .exceptions import (
    MCPMySQLError,
    ConfigurationError,
    DatabaseConnectionError,
    ConnectionNotInitializedError,
    QueryExecutionError,
    NoActiveSessionError,
    SessionNotFoundError,
    EnvironmentNotFoundError,
    ProjectDetectionError,
    ToolExecutionError,
    ValidationError
)

__all__ = [
    "MCPMySQLError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "ConnectionNotInitializedError",
    "QueryExecutionError",
    "NoActiveSessionError",
    "SessionNotFoundError",
    "EnvironmentNotFoundError",
    "ProjectDetectionError",
    "ToolExecutionError",
    "ValidationError"
]
