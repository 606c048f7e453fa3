"""Manual connection, connection testing and disconnect handler."""

import logging
from typing import Any, Dict, List
from mcp.types import CallToolRequest

from core.exceptions import ValidationError
from database.models import ConnectionType, DockerConnectionConfig, MySQLConnectionConfig
from tools.base import ToolHandler
from tools.definitions import (
    make_tool_name,
    TOOL_CONNECT,
    TOOL_DISCONNECT,
    TOOL_TEST_CONNECTION,
)
from tools.validators import InputValidator

logger = logging.getLogger(__name__)


class ConnectionHandler(ToolHandler):
    """Handler for opening, testing and closing sessions."""

    @property
    def tool_names(self) -> List[str]:
        return [
            make_tool_name(TOOL_CONNECT),
            make_tool_name(TOOL_TEST_CONNECTION),
            make_tool_name(TOOL_DISCONNECT),
        ]

    async def handle(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        if request.name == make_tool_name(TOOL_CONNECT):
            return await self._handle_connect(request, session_manager)
        elif request.name == make_tool_name(TOOL_TEST_CONNECTION):
            return await self._handle_test_connection(session_manager)
        elif request.name == make_tool_name(TOOL_DISCONNECT):
            return await self._handle_disconnect(request, session_manager)
        else:
            return self._error_response(f"Unknown connection operation: {request.name}")

    async def _handle_connect(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        """
        Open a manual session.

        Arguments missing from the call fall back to the MYSQL_* settings.
        """
        args = self._arguments(request)
        defaults = session_manager.app_config.mysql

        try:
            connection_type = ConnectionType(args.get("connectionType") or ConnectionType.DIRECT.value)
        except ValueError:
            raise ValidationError(f"Invalid connection type: {args.get('connectionType')}")

        port = args.get("port", defaults.port)
        is_valid, error_msg = InputValidator.validate_port(port)
        if not is_valid:
            raise ValidationError(error_msg)

        database = args.get("database", defaults.database)
        if database:
            is_valid, error_msg = InputValidator.validate_identifier(database, "Database name")
            if not is_valid:
                raise ValidationError(error_msg)

        params = {
            "host": args.get("host") or defaults.host,
            "port": int(port),
            "user": args.get("user") or defaults.user,
            "password": args.get("password", defaults.password) or "",
            "database": database or None,
            "connection_limit": defaults.connection_limit,
            "acquire_timeout": defaults.acquire_timeout,
            "timeout": defaults.timeout,
            "charset": defaults.charset,
            "ssl": args.get("ssl", defaults.ssl),
        }

        if connection_type == ConnectionType.DOCKER:
            container_name = self._require(request, "containerName")
            docker_port = args.get("dockerPort")
            if docker_port is not None:
                is_valid, error_msg = InputValidator.validate_port(docker_port)
                if not is_valid:
                    raise ValidationError(error_msg)
                docker_port = int(docker_port)
            if not args.get("host"):
                params["host"] = "localhost"
            config = DockerConnectionConfig(container_name=container_name, docker_port=docker_port, **params)
        else:
            config = MySQLConnectionConfig(**params)

        session = await session_manager.connect_manually(config, args.get("name"), connection_type)
        effective = session.manager.config

        output = "✅ Connected to MySQL\n\n"
        output += f"🆔 Session: {session.id}\n"
        output += f"📡 Server: {effective.host}:{effective.port}\n"
        output += f"👤 User: {effective.user}\n"
        output += f"💾 Database: {effective.database or '(none)'}\n"
        output += f"🔌 Connection type: {connection_type.value}\n"
        if isinstance(config, DockerConnectionConfig):
            output += f"🐳 Container: {config.container_name}\n"

        return self._success_response(output)

    async def _handle_test_connection(self, session_manager: Any) -> Dict[str, Any]:
        session = session_manager.require_current_session()
        result = await session.manager.test_connection()

        if not result.success:
            output = "❌ Connection test: Failed\n\n"
            output += f"💬 Message: {result.error or result.message}\n"
            output += f"🌍 Environment: {session.environment.display_name}\n"
            return {
                "content": [{"type": "text", "text": output}],
                "isError": True
            }

        config = session.manager.config
        output = "✅ Connection test: Success\n\n"
        output += f"🌍 Environment: {session.environment.display_name}\n"
        output += f"📡 Server: {config.host}:{config.port}\n"
        output += f"💾 Database: {config.database or '(none)'}\n"
        output += f"⏱️ Connection time: {result.connection_time_ms}ms\n"
        if result.server_version:
            output += f"📋 Server Version: {result.server_version}\n"

        return self._success_response(output)

    async def _handle_disconnect(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        args = self._arguments(request)

        if args.get("all"):
            count = len(session_manager.list_sessions())
            await session_manager.disconnect_all()
            return self._success_response(f"✅ Disconnected all sessions ({count})")

        session_id = args.get("sessionId") or session_manager.current_session_id
        if not session_id:
            return self._success_response("ℹ️ No active session to disconnect")

        if not await session_manager.disconnect_session(session_id):
            return self._error_response(f"Session not found: {session_id}")

        logger.info(f"Disconnected session {session_id}")
        return self._success_response(f"✅ Disconnected session {session_id}")
