"""Custom exceptions for the MySQL MCP Server."""


class MCPMySQLError(Exception):
    """Base exception for all MySQL MCP server errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(MCPMySQLError):
    """Exception raised when configuration is invalid."""
    pass


class DatabaseConnectionError(MCPMySQLError):
    """Exception raised when a database connection cannot be established."""
    pass


class ConnectionNotInitializedError(MCPMySQLError):
    """Exception raised when the connection pool is used before initialize()."""

    def __init__(self, message: str = "Connection pool is not initialized, call initialize() first",
                 details: dict = None):
        super().__init__(message, details)


class QueryExecutionError(MCPMySQLError):
    """Exception raised when SQL execution fails."""
    pass


class NoActiveSessionError(MCPMySQLError):
    """Exception raised when a tool needs a connection but none is selected."""

    def __init__(self, message: str = None, details: dict = None):
        super().__init__(
            message or "Not connected to a database. Use mysql_connect or "
                       "mysql_connect_environment first",
            details
        )


class SessionNotFoundError(MCPMySQLError):
    """Exception raised when a session id is unknown."""
    pass


class EnvironmentNotFoundError(MCPMySQLError):
    """Exception raised when a named environment was not detected."""
    pass


class ProjectDetectionError(MCPMySQLError):
    """Exception raised when project detection fails."""
    pass


class ToolExecutionError(MCPMySQLError):
    """Exception raised when tool execution fails."""
    pass


class ValidationError(MCPMySQLError):
    """Exception raised when tool arguments are invalid."""
    pass
