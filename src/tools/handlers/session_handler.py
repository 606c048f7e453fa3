"""Environment session handler (connect, switch, list and sweep)."""

import logging
from typing import Any, Dict, List
from mcp.types import CallToolRequest

from core.exceptions import ValidationError
from tools.base import ToolHandler
from tools.definitions import (
    make_tool_name,
    TOOL_CLEANUP_SESSIONS,
    TOOL_CONNECT_ENVIRONMENT,
    TOOL_LIST_SESSIONS,
    TOOL_SWITCH_ENVIRONMENT,
)

logger = logging.getLogger(__name__)


class SessionHandler(ToolHandler):
    """Handler for sessions bound to detected environments."""

    @property
    def tool_names(self) -> List[str]:
        return [
            make_tool_name(TOOL_CONNECT_ENVIRONMENT),
            make_tool_name(TOOL_SWITCH_ENVIRONMENT),
            make_tool_name(TOOL_LIST_SESSIONS),
            make_tool_name(TOOL_CLEANUP_SESSIONS),
        ]

    async def handle(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        if request.name == make_tool_name(TOOL_CONNECT_ENVIRONMENT):
            environment_name = self._require(request, "environmentName")
            return await self._connect_environment(environment_name, session_manager, "Connected to environment")
        elif request.name == make_tool_name(TOOL_SWITCH_ENVIRONMENT):
            return await self._handle_switch(request, session_manager)
        elif request.name == make_tool_name(TOOL_LIST_SESSIONS):
            return self._handle_list_sessions(session_manager)
        elif request.name == make_tool_name(TOOL_CLEANUP_SESSIONS):
            return await self._handle_cleanup(request, session_manager)
        else:
            return self._error_response(f"Unknown session operation: {request.name}")

    async def _connect_environment(self, environment_name: str, session_manager: Any, title: str) -> Dict[str, Any]:
        session = await session_manager.connect_to_environment(environment_name)
        test = await session.manager.test_connection()
        config = session.manager.config

        output = f"✅ {title}: {session.environment.display_name}\n\n"
        output += f"🆔 Session: {session.id}\n"
        output += f"📡 Server: {config.host}:{config.port}\n"
        output += f"💾 Database: {config.database or '(none)'}\n"
        output += f"📄 Source: {session.environment.source}\n"
        if test.success:
            output += f"🔗 Connection test: OK ({test.connection_time_ms}ms)"
            if test.server_version:
                output += f", MySQL {test.server_version}"
            output += "\n"
        else:
            output += f"⚠️ Connection test failed: {test.error or test.message}\n"

        return self._success_response(output)

    async def _handle_switch(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        args = self._arguments(request)
        session_id = args.get("sessionId")
        environment_name = args.get("environmentName")

        if session_id:
            session = session_manager.switch_to_session(session_id)
            output = f"✅ Switched to session {session.id}\n"
            output += f"🌍 Environment: {session.environment.display_name}\n"
            return self._success_response(output)

        if environment_name:
            return await self._connect_environment(environment_name, session_manager, "Switched to environment")

        raise ValidationError("Either 'environmentName' or 'sessionId' is required")

    def _handle_list_sessions(self, session_manager: Any) -> Dict[str, Any]:
        sessions = session_manager.list_sessions()
        stats = session_manager.get_connection_stats()

        output = "📊 Session statistics\n"
        output += f"   Total: {stats['total_sessions']}\n"
        output += f"   Active: {stats['active_sessions']}\n"
        output += f"   Idle: {stats['idle_sessions']}\n"
        output += f"   Current environment: {stats['current_environment'] or '(none)'}\n"
        output += f"   Detected environments: {stats['detected_environments']}\n"

        if not sessions:
            output += "\nℹ️ No open sessions"
            return self._success_response(output)

        output += f"\n🔗 Sessions ({len(sessions)}):\n"
        for session in sessions:
            marker = " (current)" if session.id == session_manager.current_session_id else ""
            config = session.manager.config
            output += f"\n  🆔 {session.id}{marker}\n"
            output += f"     Environment: {session.environment.display_name}\n"
            output += f"     Server: {config.host}:{config.port}/{config.database or '-'}\n"
            output += f"     Created: {session.created_at.isoformat(timespec='seconds')}\n"
            output += f"     Last used: {session.last_used.isoformat(timespec='seconds')}"
            output += f" ({session.idle_minutes():.1f} min ago)\n"

        return self._success_response(output)

    async def _handle_cleanup(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        max_idle = self._arguments(request).get("maxIdleMinutes")
        if max_idle is not None:
            try:
                max_idle = float(max_idle)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid maxIdleMinutes: {max_idle}")

        expired = await session_manager.cleanup_expired_sessions(max_idle)
        if not expired:
            return self._success_response("✅ No idle sessions to clean up")

        output = f"🧹 Cleaned up {len(expired)} idle sessions:\n"
        output += "\n".join(f"  - {session_id}" for session_id in expired)
        return self._success_response(output)
