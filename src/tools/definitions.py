"""MCP tool definitions for the MySQL MCP Server."""

import os
from typing import List
from mcp.types import Tool


def get_tool_prefix() -> str:
    """Get tool name prefix from environment or default."""
    return os.getenv("TOOL_PREFIX", "mysql")


def make_tool_name(suffix: str) -> str:
    """Generate a tool name with the configured prefix.

    Args:
        suffix: The tool suffix (e.g. 'connect', 'execute_sql')

    Returns:
        Full tool name (e.g. 'mysql_connect')
    """
    return f"{get_tool_prefix()}_{suffix}"


# Tool suffix constants (used for matching in handlers)
TOOL_CONNECT = "connect"
TOOL_EXECUTE_SQL = "execute_sql"
TOOL_EXECUTE_SCRIPT = "execute_script"
TOOL_EXECUTE_BATCH = "execute_batch"
TOOL_GET_SCHEMA = "get_schema"
TOOL_TEST_CONNECTION = "test_connection"
TOOL_DISCONNECT = "disconnect"
TOOL_DETECT_PROJECT = "detect_project"
TOOL_LIST_ENVIRONMENTS = "list_environments"
TOOL_CONNECT_ENVIRONMENT = "connect_environment"
TOOL_SWITCH_ENVIRONMENT = "switch_environment"
TOOL_LIST_SESSIONS = "list_sessions"
TOOL_GET_PROJECT_SUMMARY = "get_project_summary"
TOOL_CLEANUP_SESSIONS = "cleanup_sessions"


def _no_arguments() -> dict:
    return {
        "type": "object",
        "properties": {},
        "required": []
    }


def get_all_tools() -> List[Tool]:
    """Generate all MCP tool definitions with the configured prefix.

    Returns:
        List of Tool objects with prefixed names
    """
    prefix = get_tool_prefix()

    return [
        Tool(
            name=f"{prefix}_{TOOL_CONNECT}",
            description=(
                "Connect to a MySQL database with explicit parameters. "
                "Opens a new session and makes it the current one. "
                "Omitted parameters fall back to the server's MYSQL_* settings."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "host": {
                        "type": "string",
                        "description": "MySQL server address",
                        "default": "localhost"
                    },
                    "port": {
                        "type": "integer",
                        "description": "MySQL port",
                        "default": 3306
                    },
                    "user": {
                        "type": "string",
                        "description": "Username",
                        "default": "root"
                    },
                    "password": {
                        "type": "string",
                        "description": "Password"
                    },
                    "database": {
                        "type": "string",
                        "description": "Database name (optional)"
                    },
                    "connectionType": {
                        "type": "string",
                        "enum": ["direct", "docker", "remote"],
                        "description": "Connection type",
                        "default": "direct"
                    },
                    "containerName": {
                        "type": "string",
                        "description": "Docker container name (only for connectionType 'docker')"
                    },
                    "dockerPort": {
                        "type": "integer",
                        "description": "Host port published by the Docker container (optional)"
                    },
                    "ssl": {
                        "type": ["boolean", "string"],
                        "description": "Use TLS: true, or a CA certificate path (optional)"
                    },
                    "name": {
                        "type": "string",
                        "description": "Session name shown in mysql_list_sessions (optional)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_EXECUTE_SQL}",
            description=(
                "Execute a single SQL statement on the current session. "
                "Use %s placeholders together with 'params' for parameterized statements."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "sql": {
                        "type": "string",
                        "description": "The SQL statement to execute"
                    },
                    "params": {
                        "type": "array",
                        "description": "Optional statement parameters",
                        "items": {}
                    }
                },
                "required": ["sql"]
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_EXECUTE_SCRIPT}",
            description="Execute a SQL script file, statement by statement",
            inputSchema={
                "type": "object",
                "properties": {
                    "scriptPath": {
                        "type": "string",
                        "description": "Full path of the SQL script file"
                    },
                    "useTransaction": {
                        "type": "boolean",
                        "description": "Run all statements in one transaction and roll back on the first failure",
                        "default": False
                    }
                },
                "required": ["scriptPath"]
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_EXECUTE_BATCH}",
            description="Execute several SQL statements separated by semicolons",
            inputSchema={
                "type": "object",
                "properties": {
                    "sqlScript": {
                        "type": "string",
                        "description": "Script content containing multiple SQL statements"
                    },
                    "useTransaction": {
                        "type": "boolean",
                        "description": "Run all statements in one transaction and roll back on the first failure",
                        "default": False
                    }
                },
                "required": ["sqlScript"]
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_GET_SCHEMA}",
            description=(
                "Get database structure: tables with columns, indexes and foreign keys, plus views. "
                "Use this before writing queries to discover available tables."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "databaseName": {
                        "type": "string",
                        "description": "Database name (optional, defaults to the current session's database)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_TEST_CONNECTION}",
            description="Test the current database connection",
            inputSchema=_no_arguments()
        ),
        Tool(
            name=f"{prefix}_{TOOL_DISCONNECT}",
            description="Disconnect the current session, a specific session, or all sessions",
            inputSchema={
                "type": "object",
                "properties": {
                    "sessionId": {
                        "type": "string",
                        "description": "Session to disconnect (optional, defaults to the current session)"
                    },
                    "all": {
                        "type": "boolean",
                        "description": "Disconnect every session",
                        "default": False
                    }
                },
                "required": []
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_DETECT_PROJECT}",
            description=(
                "Detect the database configuration of a project "
                "(Spring Boot, Node.js, Laravel, Django or generic config files)"
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workingDirectory": {
                        "type": "string",
                        "description": "Project root directory (optional, defaults to the server's project directory)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_LIST_ENVIRONMENTS}",
            description="List the detected database environments",
            inputSchema={
                "type": "object",
                "properties": {
                    "testConnections": {
                        "type": "boolean",
                        "description": "Check whether each environment is reachable",
                        "default": False
                    }
                },
                "required": []
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_CONNECT_ENVIRONMENT}",
            description="Connect to a detected project environment (reuses an open session)",
            inputSchema={
                "type": "object",
                "properties": {
                    "environmentName": {
                        "type": "string",
                        "description": "Environment name (e.g. dev, test, prod)"
                    }
                },
                "required": ["environmentName"]
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_SWITCH_ENVIRONMENT}",
            description="Switch the current session to another environment or session id",
            inputSchema={
                "type": "object",
                "properties": {
                    "environmentName": {
                        "type": "string",
                        "description": "Environment to switch to (connects if needed)"
                    },
                    "sessionId": {
                        "type": "string",
                        "description": "Existing session to switch to"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name=f"{prefix}_{TOOL_LIST_SESSIONS}",
            description="List all open database sessions",
            inputSchema=_no_arguments()
        ),
        Tool(
            name=f"{prefix}_{TOOL_GET_PROJECT_SUMMARY}",
            description="Get a summary of the project's database configuration",
            inputSchema=_no_arguments()
        ),
        Tool(
            name=f"{prefix}_{TOOL_CLEANUP_SESSIONS}",
            description="Disconnect sessions that have been idle too long",
            inputSchema={
                "type": "object",
                "properties": {
                    "maxIdleMinutes": {
                        "type": "number",
                        "description": "Idle limit in minutes (optional, defaults to SESSION_IDLE_TIMEOUT_MINUTES)"
                    }
                },
                "required": []
            }
        )
    ]
