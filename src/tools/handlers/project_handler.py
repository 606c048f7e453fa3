"""Project detection and environment listing handler."""

import logging
from typing import Any, Dict, List
from mcp.types import CallToolRequest

from tools.base import ToolHandler
from tools.definitions import (
    make_tool_name,
    TOOL_DETECT_PROJECT,
    TOOL_GET_PROJECT_SUMMARY,
    TOOL_LIST_ENVIRONMENTS,
)

logger = logging.getLogger(__name__)


class ProjectHandler(ToolHandler):
    """Handler for project configuration detection."""

    @property
    def tool_names(self) -> List[str]:
        return [
            make_tool_name(TOOL_DETECT_PROJECT),
            make_tool_name(TOOL_LIST_ENVIRONMENTS),
            make_tool_name(TOOL_GET_PROJECT_SUMMARY),
        ]

    async def handle(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        if request.name == make_tool_name(TOOL_DETECT_PROJECT):
            return self._handle_detect_project(request, session_manager)
        elif request.name == make_tool_name(TOOL_LIST_ENVIRONMENTS):
            return await self._handle_list_environments(request, session_manager)
        elif request.name == make_tool_name(TOOL_GET_PROJECT_SUMMARY):
            return self._success_response(session_manager.get_environment_summary())
        else:
            return self._error_response(f"Unknown project operation: {request.name}")

    def _handle_detect_project(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        working_directory = self._arguments(request).get("workingDirectory")
        project_info = session_manager.detect_project(working_directory)

        output = "🔍 Project detection complete\n\n"
        output += f"📁 Root: {project_info.root_path}\n"
        output += f"🏷️ Project type: {project_info.type.value}\n"

        if project_info.config_files:
            output += f"\n📄 Config files ({len(project_info.config_files)}):\n"
            for config_file in project_info.config_files:
                output += f"  - {config_file}\n"

        if project_info.environments:
            output += f"\n🌍 Environments ({len(project_info.environments)}):\n"
            for env in project_info.environments:
                output += f"  - {env.name}: {env.display_name} ({env.source})\n"
        else:
            output += "\n⚠️ No database environments found\n"

        return self._success_response(output)

    async def _handle_list_environments(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        """
        List detected environments, optionally probing each one.

        Detection runs first if it has not happened yet.
        """
        if session_manager.get_project_info() is None:
            session_manager.detect_project()

        environments = session_manager.list_environments()
        if not environments:
            return self._success_response(
                "⚠️ No database environments detected. Use the detect_project tool with a project directory."
            )

        test_connections = bool(self._arguments(request).get("testConnections", False))

        output = f"🌍 Detected environments ({len(environments)}):\n\n"
        for env in environments:
            config = env.config
            session_id = session_manager.find_session_by_environment(env.name, detected_only=True)

            output += f"📌 {env.name}\n"
            output += f"   Name: {env.display_name}\n"
            output += f"   Server: {config.host}:{config.port}\n"
            output += f"   Database: {config.database or '(none)'}\n"
            output += f"   User: {config.user}\n"
            output += f"   Source: {env.source}\n"
            output += f"   Session: {session_id or 'not connected'}\n"

            if test_connections:
                reachable = await session_manager.test_environment_connection(env.name)
                output += f"   Reachable: {'✅ yes' if reachable else '❌ no'}\n"

            output += "\n"

        return self._success_response(output)
