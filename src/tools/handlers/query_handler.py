"""SQL execution handler (single statements, batches and script files)."""

import logging
from pathlib import Path
from typing import Any, Dict, List
from mcp.types import CallToolRequest

from core.exceptions import ValidationError
from database.models import SQLScriptResult
from database.operations import split_sql_script
from tools.base import ToolHandler
from tools.definitions import (
    make_tool_name,
    TOOL_EXECUTE_BATCH,
    TOOL_EXECUTE_SCRIPT,
    TOOL_EXECUTE_SQL,
)
from tools.formatting import format_execution_result, format_script_result
from tools.validators import InputValidator, SQLValidator

logger = logging.getLogger(__name__)


class QueryHandler(ToolHandler):
    """Handler for SQL execution on the current session."""

    @property
    def tool_names(self) -> List[str]:
        return [
            make_tool_name(TOOL_EXECUTE_SQL),
            make_tool_name(TOOL_EXECUTE_BATCH),
            make_tool_name(TOOL_EXECUTE_SCRIPT),
        ]

    async def handle(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        if request.name == make_tool_name(TOOL_EXECUTE_SQL):
            return await self._handle_execute_sql(request, session_manager)
        elif request.name == make_tool_name(TOOL_EXECUTE_BATCH):
            return await self._handle_execute_batch(request, session_manager)
        elif request.name == make_tool_name(TOOL_EXECUTE_SCRIPT):
            return await self._handle_execute_script(request, session_manager)
        else:
            return self._error_response(f"Unknown query operation: {request.name}")

    def _validate(self, sql: str):
        is_valid, error_msg = SQLValidator.validate_statement(sql, self.query_config)
        if not is_valid:
            logger.warning(f"SQL blocked by validation: {error_msg}")
            raise ValidationError(error_msg)

    async def _handle_execute_sql(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        """
        Execute one SQL statement with optional %s parameters.

        Args:
            request: MCP tool call request
            session_manager: SessionManager instance

        Returns:
            Rows as JSON, or affected rows and insert id
        """
        sql = self._require(request, "sql")
        params = self._arguments(request).get("params")
        if params is not None and not isinstance(params, list):
            raise ValidationError("Parameter 'params' must be an array")

        self._validate(sql)

        operations = self._operations(session_manager)
        result = await operations.execute_sql(sql, params)

        if not result.success:
            return self._error_response(result.error or result.message)

        return self._success_response(
            format_execution_result(result, self.query_config.max_display_rows)
        )

    async def _handle_execute_batch(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        sql_script = self._require(request, "sqlScript")
        use_transaction = bool(self._arguments(request).get("useTransaction", False))

        # Checked per statement so read-only mode covers every piece of the batch
        for statement in split_sql_script(sql_script):
            self._validate(statement)

        operations = self._operations(session_manager)
        result = await operations.execute_batch(sql_script, use_transaction)
        return self._script_response(result, "Batch execution complete")

    async def _handle_execute_script(self, request: CallToolRequest, session_manager: Any) -> Dict[str, Any]:
        script_path = self._require(request, "scriptPath")
        use_transaction = bool(self._arguments(request).get("useTransaction", False))

        is_valid, error_msg = InputValidator.validate_script_path(script_path)
        if not is_valid:
            raise ValidationError(error_msg)

        path = Path(script_path).expanduser()
        if self.query_config.read_only:
            try:
                script = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                # Unreadable files are reported by execute_script
                script = ""
            for statement in split_sql_script(script):
                self._validate(statement)

        operations = self._operations(session_manager)
        result = await operations.execute_script(str(path), use_transaction)
        return self._script_response(result, f"Script execution complete: {path.name}")

    def _script_response(self, result: SQLScriptResult, title: str) -> Dict[str, Any]:
        text = format_script_result(result, title)
        if result.success:
            return self._success_response(text)
        return {
            "content": [{"type": "text", "text": text}],
            "isError": True
        }
