"""Plain-text rendering of tool results."""

import json
from typing import Any, Dict, List

from database.models import DatabaseSchema, SQLExecutionResult, SQLScriptResult


def format_rows(rows: List[Dict[str, Any]], limit: int = 200) -> str:
    """Render rows as indented JSON, truncated to limit rows.

    Values JSON cannot encode (Decimal, datetime, bytes) are rendered with str().
    """
    text = json.dumps(rows[:limit], indent=2, ensure_ascii=False, default=str)
    if len(rows) > limit:
        text += f"\n... and {len(rows) - limit} more rows"
    return text


def format_execution_result(result: SQLExecutionResult, limit: int = 200) -> str:
    output = f"✅ {result.message}\n"
    output += f"⏱️ Execution time: {result.execution_time_ms}ms\n"

    if result.data:
        output += f"📋 Columns: {', '.join(result.columns)}\n"
        output += f"\n📊 Results:\n{format_rows(result.data, limit)}"
    elif result.has_result_set:
        output += "\n📋 No rows returned"
    else:
        output += f"\n📈 Affected rows: {result.affected_rows}"
        if result.insert_id:
            output += f"\n🆔 Insert ID: {result.insert_id}"

    return output


def format_script_result(result: SQLScriptResult, title: str) -> str:
    output = f"{title}\n"
    output += f"Total statements: {result.total_statements}\n"
    output += f"Succeeded: {result.successful_statements}\n"
    output += f"Failed: {result.failed_statements}\n"
    output += f"Execution time: {result.execution_time_ms}ms\n"

    if result.rolled_back:
        output += "↩️ Transaction rolled back\n"

    if result.errors:
        output += "\n❌ Errors:\n" + "\n".join(result.errors)

    prefix = "✅" if result.success else "⚠️"
    return f"{prefix} {output}"


def format_schema(schema: DatabaseSchema) -> str:
    output = "🗄️ Database schema"
    if schema.database:
        output += f": {schema.database}"
    output += "\n\n"

    output += f"📋 Tables ({len(schema.tables)}):\n"
    for table in schema.tables:
        output += f"\n  📊 {table.name}\n"
        output += f"    Columns: {len(table.columns)}\n"
        output += f"    Indexes: {len(table.indexes)}\n"
        output += f"    Foreign keys: {len(table.foreign_keys)}\n"

        if table.columns:
            output += "    Column details:\n"
            for column in table.columns:
                flags = []
                if column.is_primary_key:
                    flags.append("PK")
                if column.is_auto_increment:
                    flags.append("AI")
                if not column.nullable:
                    flags.append("NOT NULL")

                output += f"      - {column.name}: {column.type}"
                if flags:
                    output += f" [{', '.join(flags)}]"
                if column.comment:
                    output += f"  # {column.comment}"
                output += "\n"

        if table.indexes:
            output += "    Index details:\n"
            for index in table.indexes:
                kind = "PRIMARY" if index.is_primary else ("UNIQUE" if index.is_unique else "INDEX")
                output += f"      - {index.name} ({kind}): {', '.join(index.columns)}\n"

        if table.foreign_keys:
            output += "    Foreign key details:\n"
            for fk in table.foreign_keys:
                output += (
                    f"      - {fk.name}: {fk.column} -> {fk.referenced_table}.{fk.referenced_column}"
                    f" (ON DELETE {fk.on_delete or '-'}, ON UPDATE {fk.on_update or '-'})\n"
                )

    if schema.views:
        output += f"\n👁️ Views ({len(schema.views)}):\n"
        for view in schema.views:
            output += f"  - {view.name}\n"

    return output
