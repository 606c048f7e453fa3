"""Configuration management for the MySQL MCP Server."""

import os
from typing import Optional
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from core.exceptions import ConfigurationError

# Load .env, trying several locations
_env_loaded = False

# An explicit path from the environment wins
env_file = os.getenv('ENV_FILE_PATH')
if env_file and Path(env_file).exists():
    load_dotenv(env_file, override=False)
    _env_loaded = True
else:
    possible_paths = [
        Path.cwd() / '.env',  # current working directory
        Path(__file__).parent.parent.parent / '.env',  # project root
    ]
    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(str(env_path), override=False)
            _env_loaded = True
            break

if not _env_loaded:
    load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'")


class MySQLConfig(BaseModel):
    """Default MySQL connection parameters used when tool arguments are omitted."""

    host: str = Field(default="localhost", description="MySQL server hostname or IP")
    port: int = Field(default=3306, description="MySQL server port")
    user: str = Field(default="root", description="MySQL username")
    password: str = Field(default="", description="MySQL password")
    database: Optional[str] = Field(default=None, description="Default database name")
    connection_limit: int = Field(default=10, description="Maximum pool size per connection")
    acquire_timeout: int = Field(default=60, description="Seconds to wait for a pooled connection")
    timeout: int = Field(default=60, description="Connect timeout in seconds")
    charset: str = Field(default="utf8mb4", description="Connection character set")
    ssl: Optional[str] = Field(default=None, description="TLS: true, or a CA certificate path")

    @classmethod
    def from_env(cls) -> "MySQLConfig":
        """Create configuration from environment variables."""
        return cls(
            host=os.getenv("MYSQL_HOST", "localhost"),
            port=_env_int("MYSQL_PORT", 3306),
            user=os.getenv("MYSQL_USER", "root"),
            password=os.getenv("MYSQL_PASSWORD", ""),
            database=os.getenv("MYSQL_DATABASE") or None,
            connection_limit=_env_int("CONNECTION_LIMIT", 10),
            acquire_timeout=_env_int("ACQUIRE_TIMEOUT", 60),
            timeout=_env_int("TIMEOUT", 60),
            charset=os.getenv("MYSQL_CHARSET", "utf8mb4"),
            ssl=os.getenv("MYSQL_SSL") or None
        )


class SessionConfig(BaseModel):
    """Session registry and project detection configuration."""

    idle_timeout_minutes: int = 30  # 0 disables the idle sweep
    project_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Create session configuration from environment variables."""
        return cls(
            idle_timeout_minutes=_env_int("SESSION_IDLE_TIMEOUT_MINUTES", 30),
            project_dir=os.getenv("MYSQL_PROJECT_DIR") or None
        )

    def get_project_dir(self) -> Path:
        """Directory scanned by project detection."""
        if self.project_dir:
            return Path(self.project_dir).expanduser().resolve()
        return Path.cwd()


class QueryConfig(BaseModel):
    """Query validation and result rendering configuration."""

    max_query_length: int = 50000  # Maximum SQL length in characters
    max_display_rows: int = 200    # Rows rendered per result set
    read_only: bool = False

    @classmethod
    def from_env(cls) -> "QueryConfig":
        """Create query configuration from environment variables."""
        return cls(
            max_query_length=_env_int("MAX_QUERY_LENGTH", 50000),
            max_display_rows=_env_int("MAX_DISPLAY_ROWS", 200),
            read_only=_env_bool("MYSQL_READ_ONLY")
        )


class HTTPConfig(BaseModel):
    """HTTP server configuration including rate limiting and CORS."""

    rate_limit_default: str = Field(
        default="100/minute",
        description="Default rate limit for all endpoints"
    )
    rate_limit_tools: str = Field(
        default="30/minute",
        description="Rate limit for tool invocation endpoints"
    )
    cors_preflight_max_age: int = Field(
        default=600,
        description="CORS preflight max age in seconds"
    )

    @classmethod
    def from_env(cls) -> "HTTPConfig":
        """Create HTTP configuration from environment variables."""
        return cls(
            rate_limit_default=os.getenv("RATE_LIMIT_DEFAULT", "100/minute"),
            rate_limit_tools=os.getenv("RATE_LIMIT_TOOLS", "30/minute"),
            cors_preflight_max_age=_env_int("CORS_PREFLIGHT_MAX_AGE", 600)
        )


def get_http_config() -> HTTPConfig:
    """Get HTTP configuration from the environment."""
    return HTTPConfig.from_env()


class AppConfig(BaseModel):
    """Application configuration combining all configs."""

    mysql: MySQLConfig
    session_config: SessionConfig
    query_config: QueryConfig
    http_config: HTTPConfig
    tool_prefix: str = Field(default="mysql", description="Prefix for MCP tool names (e.g. mysql_connect)")
    server_name: str = Field(default="mysql-mcp-server", description="MCP server name identifier")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create full application configuration from environment variables."""
        return cls(
            mysql=MySQLConfig.from_env(),
            session_config=SessionConfig.from_env(),
            query_config=QueryConfig.from_env(),
            http_config=HTTPConfig.from_env(),
            tool_prefix=os.getenv("TOOL_PREFIX", "mysql"),
            server_name=os.getenv("MCP_SERVER_NAME", "mysql-mcp-server")
        )
