"""Project configuration detection for the MySQL MCP Server."""

from .project_detector import (
    ProjectDetector,
    ProjectEnvironment,
    ProjectInfo,
    ProjectType,
    extract_environment_name,
    parse_env_file,
    parse_jdbc_url,
    parse_properties,
)

__all__ = [
    "ProjectDetector",
    "ProjectEnvironment",
    "ProjectInfo",
    "ProjectType",
    "extract_environment_name",
    "parse_env_file",
    "parse_jdbc_url",
    "parse_properties",
]
