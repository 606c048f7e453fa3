"""MySQL operations exposed as MCP tools.

Wraps a MySQLConnectionManager with statement execution, script/batch
execution and schema introspection.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.exceptions import MCPMySQLError, QueryExecutionError
from database.connection import MySQLConnectionManager
from database.models import (
    ColumnInfo,
    ConnectionTestResult,
    DatabaseSchema,
    ForeignKeyInfo,
    IndexInfo,
    SQLExecutionResult,
    SQLScriptResult,
    TableInfo,
    ViewInfo,
)

logger = logging.getLogger(__name__)

_LINE_COMMENT_PREFIXES = ("--", "#")


def split_sql_script(script: str) -> List[str]:
    """Split a SQL script into statements on semicolons.

    Leading comment lines of each statement are dropped and empty statements
    are skipped. Quoting is not understood: a semicolon inside a string
    literal ends the statement. MySQL conditional comments (/*! ... */) are
    kept because the server executes them.
    """
    statements = []
    for chunk in script.split(";"):
        lines = chunk.strip().splitlines()
        in_block_comment = False

        while lines:
            line = lines[0].strip()
            if in_block_comment:
                end = line.find("*/")
                if end == -1:
                    lines.pop(0)
                else:
                    lines[0] = line[end + 2:]
                    in_block_comment = False
                continue
            if not line or line.startswith(_LINE_COMMENT_PREFIXES):
                lines.pop(0)
                continue
            if line.startswith("/*") and not line.startswith("/*!"):
                end = line.find("*/", 2)
                if end == -1:
                    lines.pop(0)
                    in_block_comment = True
                else:
                    lines[0] = line[end + 2:]
                continue
            break

        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)

    return statements


def quote_identifier(name: str) -> str:
    """Backtick-quote a MySQL identifier."""
    return "`" + name.replace("`", "``") + "`"


class MySQLOperations:
    """SQL execution and schema tools bound to one connection manager."""

    def __init__(self, manager: MySQLConnectionManager):
        self.manager = manager

    async def execute_sql(
        self,
        sql: str,
        params: Optional[List[Any]] = None,
        connection=None
    ) -> SQLExecutionResult:
        """Execute a single SQL statement; failures are returned, not raised."""
        try:
            outcome = await self.manager.execute(sql, params, connection=connection)
        except MCPMySQLError as e:
            return SQLExecutionResult(
                success=False,
                error=e.message,
                message="SQL execution failed"
            )

        if outcome.rows is not None:
            return SQLExecutionResult(
                success=True,
                data=outcome.rows,
                columns=outcome.columns,
                field_count=len(outcome.columns),
                execution_time_ms=outcome.execution_time_ms,
                message=f"Query OK, {len(outcome.rows)} rows returned"
            )

        return SQLExecutionResult(
            success=True,
            affected_rows=outcome.affected_rows,
            insert_id=outcome.insert_id,
            field_count=0,
            execution_time_ms=outcome.execution_time_ms,
            message=f"Query OK, {outcome.affected_rows} rows affected"
        )

    async def execute_batch(self, sql_script: str, use_transaction: bool = False) -> SQLScriptResult:
        """Execute every statement of a script in order.

        Without a transaction all statements run and failures are collected.
        With use_transaction the first failure stops execution and rolls the
        whole batch back.
        """
        start = time.perf_counter()
        statements = split_sql_script(sql_script)

        if use_transaction and statements:
            result = await self._execute_in_transaction(statements)
        else:
            result = await self._execute_each(statements)

        result.execution_time_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            f"Batch executed: {result.successful_statements}/{result.total_statements} succeeded"
            f"{' (rolled back)' if result.rolled_back else ''}"
        )
        return result

    async def _execute_each(self, statements: List[str]) -> SQLScriptResult:
        results = []
        errors = []
        successful = 0

        for i, statement in enumerate(statements, start=1):
            result = await self.execute_sql(statement)
            results.append(result)
            if result.success:
                successful += 1
            else:
                errors.append(f"Statement {i}: {result.error}")

        failed = len(statements) - successful
        return SQLScriptResult(
            success=failed == 0,
            results=results,
            total_statements=len(statements),
            successful_statements=successful,
            failed_statements=failed,
            errors=errors
        )

    async def _execute_in_transaction(self, statements: List[str]) -> SQLScriptResult:
        total = len(statements)
        try:
            conn = await self.manager.begin_transaction()
        except MCPMySQLError as e:
            return SQLScriptResult(
                success=False,
                total_statements=total,
                failed_statements=total,
                errors=[e.message]
            )

        results = []
        errors = []
        for i, statement in enumerate(statements, start=1):
            result = await self.execute_sql(statement, connection=conn)
            results.append(result)
            if not result.success:
                errors.append(f"Statement {i}: {result.error}")
                break

        if errors:
            try:
                await self.manager.rollback_transaction(conn)
            except MCPMySQLError as e:
                errors.append(e.message)
            return SQLScriptResult(
                success=False,
                results=results,
                total_statements=total,
                successful_statements=0,
                failed_statements=total,
                errors=errors,
                rolled_back=True
            )

        try:
            await self.manager.commit_transaction(conn)
        except MCPMySQLError as e:
            return SQLScriptResult(
                success=False,
                results=results,
                total_statements=total,
                failed_statements=total,
                errors=[e.message]
            )

        return SQLScriptResult(
            success=True,
            results=results,
            total_statements=total,
            successful_statements=total
        )

    async def execute_script(self, script_path: str, use_transaction: bool = False) -> SQLScriptResult:
        """Read a SQL script file and execute it as a batch."""
        try:
            script = Path(script_path).expanduser().read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read script file {script_path}: {e}")
            return SQLScriptResult(
                success=False,
                total_statements=0,
                successful_statements=0,
                failed_statements=1,
                errors=[f"Failed to read script file: {e}"]
            )

        return await self.execute_batch(script, use_transaction=use_transaction)

    async def get_schema(self, database_name: Optional[str] = None) -> DatabaseSchema:
        """Get tables (with columns, indexes, foreign keys) and views."""
        try:
            if database_name is None:
                outcome = await self.manager.execute("SELECT DATABASE() AS db")
                database = outcome.rows[0]["db"] if outcome.rows else None
            else:
                database = database_name

            tables = []
            for table_name in await self._get_table_names(database_name):
                tables.append(TableInfo(
                    name=table_name,
                    columns=await self._get_columns(table_name, database_name),
                    indexes=await self._get_indexes(table_name, database_name),
                    foreign_keys=await self._get_foreign_keys(table_name, database_name)
                ))

            return DatabaseSchema(
                database=database,
                tables=tables,
                views=await self._get_views(database_name)
            )
        except MCPMySQLError as e:
            raise QueryExecutionError(f"Failed to get database schema: {e.message}", e.details) from e

    async def test_connection(self) -> ConnectionTestResult:
        return await self.manager.test_connection()

    async def close(self):
        await self.manager.close()

    def _qualified(self, table_name: str, database_name: Optional[str]) -> str:
        if database_name:
            return f"{quote_identifier(database_name)}.{quote_identifier(table_name)}"
        return quote_identifier(table_name)

    async def _get_table_names(self, database_name: Optional[str]) -> List[str]:
        sql = "SHOW FULL TABLES"
        if database_name:
            sql += f" FROM {quote_identifier(database_name)}"
        outcome = await self.manager.execute(sql)

        names = []
        for row in outcome.rows or []:
            values = list(row.values())
            table_type = row.get("Table_type", values[1] if len(values) > 1 else "BASE TABLE")
            if table_type != "VIEW":
                names.append(values[0])
        return names

    async def _get_columns(self, table_name: str, database_name: Optional[str]) -> List[ColumnInfo]:
        outcome = await self.manager.execute(
            f"SHOW FULL COLUMNS FROM {self._qualified(table_name, database_name)}"
        )
        return [
            ColumnInfo(
                name=row["Field"],
                type=row["Type"],
                nullable=row.get("Null") == "YES",
                default_value=row.get("Default"),
                is_primary_key=row.get("Key") == "PRI",
                is_auto_increment="auto_increment" in (row.get("Extra") or ""),
                comment=row.get("Comment") or None
            )
            for row in outcome.rows or []
        ]

    async def _get_indexes(self, table_name: str, database_name: Optional[str]) -> List[IndexInfo]:
        outcome = await self.manager.execute(
            f"SHOW INDEX FROM {self._qualified(table_name, database_name)}"
        )

        indexes: Dict[str, IndexInfo] = {}
        for row in outcome.rows or []:
            index_name = row["Key_name"]
            if index_name not in indexes:
                indexes[index_name] = IndexInfo(
                    name=index_name,
                    is_unique=int(row.get("Non_unique", 1)) == 0,
                    is_primary=index_name == "PRIMARY"
                )
            indexes[index_name].columns.append(row["Column_name"])
        return list(indexes.values())

    async def _get_foreign_keys(self, table_name: str, database_name: Optional[str]) -> List[ForeignKeyInfo]:
        schema_filter = "%s" if database_name else "DATABASE()"
        params = [table_name, database_name] if database_name else [table_name]
        outcome = await self.manager.execute(
            f"""
            SELECT
                k.CONSTRAINT_NAME AS name,
                k.COLUMN_NAME AS column_name,
                k.REFERENCED_TABLE_NAME AS referenced_table,
                k.REFERENCED_COLUMN_NAME AS referenced_column,
                r.DELETE_RULE AS on_delete,
                r.UPDATE_RULE AS on_update
            FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE k
            JOIN INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS r
              ON r.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA
             AND r.CONSTRAINT_NAME = k.CONSTRAINT_NAME
            WHERE k.TABLE_NAME = %s
              AND k.TABLE_SCHEMA = {schema_filter}
              AND k.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY k.CONSTRAINT_NAME, k.ORDINAL_POSITION
            """,
            params
        )
        return [
            ForeignKeyInfo(
                name=row["name"],
                column=row["column_name"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"],
                on_delete=row.get("on_delete"),
                on_update=row.get("on_update")
            )
            for row in outcome.rows or []
        ]

    async def _get_views(self, database_name: Optional[str]) -> List[ViewInfo]:
        if database_name:
            outcome = await self.manager.execute(
                "SELECT TABLE_NAME AS name, VIEW_DEFINITION AS definition "
                "FROM INFORMATION_SCHEMA.VIEWS WHERE TABLE_SCHEMA = %s ORDER BY TABLE_NAME",
                [database_name]
            )
        else:
            outcome = await self.manager.execute(
                "SELECT TABLE_NAME AS name, VIEW_DEFINITION AS definition "
                "FROM INFORMATION_SCHEMA.VIEWS WHERE TABLE_SCHEMA = DATABASE() ORDER BY TABLE_NAME"
            )
        return [
            ViewInfo(name=row["name"], definition=row.get("definition"))
            for row in outcome.rows or []
        ]
