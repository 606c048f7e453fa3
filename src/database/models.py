"""Data models for MySQL connections, execution results and schema metadata."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

_SSL_ON = {"true", "1", "yes", "on", "required", "verify_ca", "verify_identity"}
_SSL_OFF = {"", "false", "0", "no", "off", "disabled", "preferred"}


class ConnectionType(str, Enum):
    """How the MySQL server is reached."""
    DIRECT = "direct"
    DOCKER = "docker"
    REMOTE = "remote"


class MySQLConnectionConfig(BaseModel):
    """Parameters for one MySQL connection pool."""

    host: str = Field(description="MySQL server hostname or IP")
    port: int = Field(default=3306, description="MySQL server port")
    user: str = Field(default="root", description="MySQL username")
    password: str = Field(default="", description="MySQL password")
    database: Optional[str] = Field(default=None, description="Database name")
    connection_limit: int = Field(default=10, description="Maximum pool size")
    acquire_timeout: int = Field(default=60, description="Seconds to wait for a pooled connection")
    timeout: int = Field(default=60, description="Connect timeout in seconds")
    charset: str = Field(default="utf8mb4", description="Connection character set")
    ssl: Optional[Union[bool, str]] = Field(
        default=None,
        description="True for TLS against the system CA bundle, or a CA certificate path"
    )

    @field_validator("ssl", mode="before")
    @classmethod
    def normalize_ssl(cls, value: Any) -> Optional[Union[bool, str]]:
        if isinstance(value, str):
            flag = value.strip().lower()
            if flag in _SSL_OFF:
                return None
            if flag in _SSL_ON:
                return True
            return value.strip()
        return value or None

    def safe_dict(self) -> Dict[str, Any]:
        """Connection parameters without the password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database
        }

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class DockerConnectionConfig(MySQLConnectionConfig):
    """Connection to a MySQL server running in a Docker container."""

    container_name: str = Field(description="Docker container name")
    docker_port: Optional[int] = Field(default=None, description="Host port published by the container")


class SQLExecutionResult(BaseModel):
    """Result of a single SQL statement."""

    success: bool
    data: Optional[List[Dict[str, Any]]] = None
    columns: List[str] = Field(default_factory=list)
    affected_rows: Optional[int] = None
    insert_id: Optional[int] = None
    field_count: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
    execution_time_ms: Optional[float] = None

    @property
    def has_result_set(self) -> bool:
        return self.data is not None


class SQLScriptResult(BaseModel):
    """Result of running several SQL statements."""

    success: bool
    results: List[SQLExecutionResult] = Field(default_factory=list)
    total_statements: int = 0
    successful_statements: int = 0
    failed_statements: int = 0
    execution_time_ms: float = 0
    errors: List[str] = Field(default_factory=list)
    rolled_back: bool = False


class ColumnInfo(BaseModel):
    name: str
    type: str
    nullable: bool
    default_value: Optional[Any] = None
    is_primary_key: bool = False
    is_auto_increment: bool = False
    comment: Optional[str] = None


class IndexInfo(BaseModel):
    name: str
    columns: List[str] = Field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False


class ForeignKeyInfo(BaseModel):
    name: str
    column: str
    referenced_table: str
    referenced_column: str
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


class TableInfo(BaseModel):
    name: str
    columns: List[ColumnInfo] = Field(default_factory=list)
    indexes: List[IndexInfo] = Field(default_factory=list)
    foreign_keys: List[ForeignKeyInfo] = Field(default_factory=list)


class ViewInfo(BaseModel):
    name: str
    definition: Optional[str] = None


class DatabaseSchema(BaseModel):
    database: Optional[str] = None
    tables: List[TableInfo] = Field(default_factory=list)
    views: List[ViewInfo] = Field(default_factory=list)


class ConnectionTestResult(BaseModel):
    """Outcome of a connectivity probe."""

    success: bool
    message: str
    connection_time_ms: Optional[float] = None
    server_version: Optional[str] = None
    error: Optional[str] = None
