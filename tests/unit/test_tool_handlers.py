"""
Tool dispatcher unit tests

End-to-end tool calls through handle_tool_call against a session manager
backed by the in-memory pool.
"""

import json
from datetime import datetime, timedelta
from decimal import Decimal

import aiomysql
import pytest

from core.config import QueryConfig
from core.error_handling import response_text
from database.session_manager import SessionManager
from tools import get_all_tools
from tools.handlers import QueryHandler, handle_tool_call, reset_registry
from tools.registry import ToolRegistry


def make_request(name, **arguments):
    return type('CallToolRequest', (), {'name': name, 'arguments': arguments})()


async def call(session_manager, name, **arguments):
    response = await handle_tool_call(make_request(name, **arguments), session_manager)
    return response, response_text(response)


@pytest.fixture
def session_manager(spring_project, app_config, mock_create_pool):
    return SessionManager(spring_project, app_config)


@pytest.fixture
async def connected(session_manager):
    await session_manager.connect_to_environment("dev")
    return session_manager


class TestDefinitions:

    def test_all_tools_are_registered(self):
        """✅ Every declared tool has a handler"""
        registry = ToolRegistry(QueryConfig())
        names = [tool.name for tool in get_all_tools()]

        assert len(names) == 14
        assert all(name.startswith("mysql_") for name in names)
        assert all(registry.is_tool_registered(name) for name in names)

    def test_prefix_from_environment(self, monkeypatch):
        monkeypatch.setenv("TOOL_PREFIX", "db")
        assert "db_execute_sql" in [tool.name for tool in get_all_tools()]

    @pytest.mark.asyncio
    async def test_dispatch_follows_prefix(self, monkeypatch, session_manager):
        monkeypatch.setenv("TOOL_PREFIX", "db")
        reset_registry()
        try:
            response, text = await call(session_manager, "db_get_project_summary")
        finally:
            monkeypatch.delenv("TOOL_PREFIX")
            reset_registry()

        assert text == "No project configuration detected"


class TestDispatch:

    @pytest.mark.asyncio
    async def test_unknown_tool(self, session_manager):
        response, text = await call(session_manager, "mysql_nope")

        assert text == "Unknown tool: mysql_nope"
        assert response["isError"] is True

    @pytest.mark.asyncio
    async def test_no_active_session(self, session_manager):
        """❌ Domain errors become error responses"""
        response, text = await call(session_manager, "mysql_execute_sql", sql="SELECT 1")

        assert response["isError"] is True
        assert text.startswith("❌ Error: Not connected to a database")

    @pytest.mark.asyncio
    async def test_idle_sessions_are_swept_first(self, connected):
        session = connected.get_current_session()
        session.last_used = datetime.now() - timedelta(minutes=120)

        response, text = await call(connected, "mysql_list_sessions")

        assert "No open sessions" in text
        assert connected.list_sessions() == []

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, connected, monkeypatch):
        def explode():
            raise RuntimeError("kaboom")

        monkeypatch.setattr(connected, "get_connection_stats", explode)

        response, text = await call(connected, "mysql_list_sessions")

        assert response["isError"] is True
        assert text == "❌ Error: kaboom"


class TestConnectionTools:

    @pytest.mark.asyncio
    async def test_manual_connect_uses_defaults(self, session_manager, mock_create_pool):
        response, text = await call(session_manager, "mysql_connect", host="10.1.1.1", database="shop")

        assert "isError" not in response
        assert "✅ Connected to MySQL" in text
        kwargs = mock_create_pool.call_args.kwargs
        assert kwargs["host"] == "10.1.1.1"
        assert kwargs["port"] == 3306
        assert kwargs["user"] == "root"
        assert kwargs["db"] == "shop"
        assert session_manager.get_current_session().environment.type == "manual"

    @pytest.mark.asyncio
    async def test_connect_with_ssl(self, session_manager, mock_create_pool):
        response, text = await call(session_manager, "mysql_connect", host="10.1.1.1", ssl=True)

        assert "isError" not in response
        assert session_manager.get_current_session().manager.config.ssl is True
        assert mock_create_pool.call_args.kwargs["ssl"] is not None

    @pytest.mark.asyncio
    async def test_docker_connect(self, session_manager, mock_create_pool):
        response, text = await call(
            session_manager, "mysql_connect",
            connectionType="docker", containerName="mysql8", dockerPort=13306
        )

        assert "🐳 Container: mysql8" in text
        assert mock_create_pool.call_args.kwargs["port"] == 13306

    @pytest.mark.asyncio
    async def test_docker_requires_container(self, session_manager):
        response, text = await call(session_manager, "mysql_connect", connectionType="docker")

        assert response["isError"] is True
        assert "containerName" in text

    @pytest.mark.asyncio
    async def test_invalid_port(self, session_manager):
        response, text = await call(session_manager, "mysql_connect", port=70000)

        assert response["isError"] is True
        assert "Port out of range" in text

    @pytest.mark.asyncio
    async def test_test_connection(self, connected):
        response, text = await call(connected, "mysql_test_connection")

        assert "✅ Connection test: Success" in text
        assert "8.0.36" in text

    @pytest.mark.asyncio
    async def test_disconnect_current(self, connected):
        session_id = connected.current_session_id

        response, text = await call(connected, "mysql_disconnect")

        assert text == f"✅ Disconnected session {session_id}"
        assert connected.list_sessions() == []

    @pytest.mark.asyncio
    async def test_disconnect_all(self, connected):
        await connected.connect_to_environment("prod")

        response, text = await call(connected, "mysql_disconnect", all=True)

        assert text == "✅ Disconnected all sessions (2)"
        assert connected.list_sessions() == []

    @pytest.mark.asyncio
    async def test_disconnect_unknown(self, connected):
        response, text = await call(connected, "mysql_disconnect", sessionId="session_1_abc")

        assert response["isError"] is True
        assert "Session not found" in text


class TestQueryTools:

    @pytest.mark.asyncio
    async def test_select_renders_json(self, connected, fake_server):
        """✅ Rows are JSON; Decimal and datetime go through str()"""
        fake_server.on("FROM ORDERS", {"rows": [
            {"id": 1, "total": Decimal("19.90"), "created_at": datetime(2024, 5, 1, 12, 30)},
        ]})

        response, text = await call(connected, "mysql_execute_sql", sql="SELECT * FROM orders WHERE id = %s", params=[1])

        assert "isError" not in response
        assert "Query OK, 1 rows returned" in text
        rows = json.loads(text.split("📊 Results:\n", 1)[1])
        assert rows == [{"id": 1, "total": "19.90", "created_at": "2024-05-01 12:30:00"}]
        assert fake_server.executed[-1][1] == (1,)

    @pytest.mark.asyncio
    async def test_rows_are_truncated(self, connected, fake_server):
        fake_server.on("FROM BIG", {"rows": [{"n": i} for i in range(250)]})

        response, text = await call(connected, "mysql_execute_sql", sql="SELECT n FROM big")

        assert "... and 50 more rows" in text

    @pytest.mark.asyncio
    async def test_write_statement(self, connected, fake_server):
        fake_server.on("INSERT", {"rows": None, "rowcount": 1, "lastrowid": 99})

        response, text = await call(connected, "mysql_execute_sql", sql="INSERT INTO t (a) VALUES (1)")

        assert "📈 Affected rows: 1" in text
        assert "🆔 Insert ID: 99" in text

    @pytest.mark.asyncio
    async def test_sql_error(self, connected, fake_server):
        fake_server.on("FROM MISSING", aiomysql.ProgrammingError(1146, "Table 'app_dev.missing' doesn't exist"))

        response, text = await call(connected, "mysql_execute_sql", sql="SELECT * FROM missing")

        assert response["isError"] is True
        assert text.startswith("❌ Error: SQL execution failed")

    @pytest.mark.asyncio
    async def test_sql_required(self, connected):
        response, text = await call(connected, "mysql_execute_sql", sql="  ")

        assert response["isError"] is True
        assert "'sql' is required" in text

    @pytest.mark.asyncio
    async def test_batch_with_transaction(self, connected, fake_server):
        fake_server.on("FAILS", aiomysql.IntegrityError(1062, "Duplicate entry '1'"))

        response, text = await call(
            connected, "mysql_execute_batch",
            sqlScript="INSERT INTO a VALUES (1); INSERT INTO fails VALUES (1);", useTransaction=True
        )

        assert response["isError"] is True
        assert "Transaction rolled back" in text
        assert "Statement 2:" in text
        assert fake_server.events == ["begin", "rollback"]

    @pytest.mark.asyncio
    async def test_script(self, connected, tmp_path):
        script = tmp_path / "migrate.sql"
        script.write_text("CREATE TABLE a (id INT);\nINSERT INTO a VALUES (1);\n", encoding="utf-8")

        response, text = await call(connected, "mysql_execute_script", scriptPath=str(script))

        assert "isError" not in response
        assert "Script execution complete: migrate.sql" in text
        assert "Total statements: 2" in text

    @pytest.mark.asyncio
    async def test_script_not_found(self, connected, tmp_path):
        response, text = await call(connected, "mysql_execute_script", scriptPath=str(tmp_path / "nope.sql"))

        assert response["isError"] is True
        assert "Script file not found" in text


class TestReadOnlyMode:
    """Read-only mode is enforced per statement"""

    @pytest.fixture
    def handler(self):
        return QueryHandler(QueryConfig(read_only=True))

    @pytest.mark.asyncio
    async def test_select_allowed(self, handler, connected):
        response = await handler.handle(make_request("mysql_execute_sql", sql="SELECT 1"), connected)
        assert "isError" not in response

    @pytest.mark.asyncio
    async def test_write_blocked(self, handler, connected):
        from core.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            await handler.handle(make_request("mysql_execute_sql", sql="DELETE FROM users"), connected)

        assert exc_info.value.message.startswith("Read-only mode")

    @pytest.mark.asyncio
    async def test_batch_checked_per_statement(self, handler, connected, fake_server):
        from core.exceptions import ValidationError

        with pytest.raises(ValidationError):
            await handler.handle(
                make_request("mysql_execute_batch", sqlScript="SELECT 1; DROP TABLE users;"),
                connected
            )

        assert not any("DROP" in sql for sql, _ in fake_server.executed)


class TestSchemaTool:

    @pytest.mark.asyncio
    async def test_schema_output(self, connected, fake_server):
        fake_server.on("SELECT DATABASE() AS DB", {"rows": [{"db": "app_dev"}]})
        fake_server.on("SHOW FULL TABLES", {"rows": [{"Tables_in_app_dev": "users", "Table_type": "BASE TABLE"}]})
        fake_server.on("SHOW FULL COLUMNS", {"rows": [
            {"Field": "id", "Type": "int", "Null": "NO", "Key": "PRI", "Default": None,
             "Extra": "auto_increment", "Comment": ""},
        ]})
        fake_server.on("SHOW INDEX", {"rows": [{"Key_name": "PRIMARY", "Column_name": "id", "Non_unique": 0}]})
        fake_server.on("KEY_COLUMN_USAGE", {"rows": [], "columns": ["name"]})
        fake_server.on("INFORMATION_SCHEMA.VIEWS", {"rows": [], "columns": ["name"]})

        response, text = await call(connected, "mysql_get_schema")

        assert "🗄️ Database schema: app_dev" in text
        assert "- id: int [PK, AI, NOT NULL]" in text
        assert "- PRIMARY (PRIMARY): id" in text

    @pytest.mark.asyncio
    async def test_invalid_database_name(self, connected):
        response, text = await call(connected, "mysql_get_schema", databaseName="shop; DROP")

        assert response["isError"] is True
        assert "Invalid database name format" in text


class TestProjectTools:

    @pytest.mark.asyncio
    async def test_detect_project(self, session_manager):
        response, text = await call(session_manager, "mysql_detect_project")

        assert "🏷️ Project type: spring-boot" in text
        assert "dev: dev (Spring Boot)" in text

    @pytest.mark.asyncio
    async def test_detect_missing_directory(self, session_manager, tmp_path):
        response, text = await call(session_manager, "mysql_detect_project", workingDirectory=str(tmp_path / "x"))

        assert response["isError"] is True
        assert "Directory does not exist" in text

    @pytest.mark.asyncio
    async def test_list_environments_never_shows_passwords(self, session_manager):
        response, text = await call(session_manager, "mysql_list_environments")

        assert "📌 dev" in text
        assert "Server: dev-db:3307" in text
        assert "devpass" not in text

    @pytest.mark.asyncio
    async def test_list_environments_with_tests(self, session_manager):
        response, text = await call(session_manager, "mysql_list_environments", testConnections=True)

        assert text.count("Reachable: ✅ yes") == 3
        assert session_manager.list_sessions() == []

    @pytest.mark.asyncio
    async def test_summary(self, connected):
        response, text = await call(connected, "mysql_get_project_summary")

        assert "dev (Spring Boot) [connected]" in text


class TestSessionTools:

    @pytest.mark.asyncio
    async def test_connect_environment(self, session_manager):
        response, text = await call(session_manager, "mysql_connect_environment", environmentName="prod")

        assert "✅ Connected to environment: prod (Spring Boot)" in text
        assert "🔗 Connection test: OK" in text
        assert session_manager.get_current_session().environment.name == "prod"

    @pytest.mark.asyncio
    async def test_connect_unknown_environment(self, session_manager):
        response, text = await call(session_manager, "mysql_connect_environment", environmentName="qa")

        assert response["isError"] is True
        assert text == "❌ Error: Environment not found: qa"

    @pytest.mark.asyncio
    async def test_switch_by_session_id(self, connected):
        dev_id = connected.current_session_id
        await connected.connect_to_environment("prod")

        response, text = await call(connected, "mysql_switch_environment", sessionId=dev_id)

        assert text.startswith(f"✅ Switched to session {dev_id}")
        assert connected.current_session_id == dev_id

    @pytest.mark.asyncio
    async def test_switch_by_environment(self, connected):
        response, text = await call(connected, "mysql_switch_environment", environmentName="prod")

        assert "Switched to environment: prod (Spring Boot)" in text

    @pytest.mark.asyncio
    async def test_switch_requires_target(self, connected):
        response, text = await call(connected, "mysql_switch_environment")

        assert response["isError"] is True

    @pytest.mark.asyncio
    async def test_list_sessions(self, connected):
        response, text = await call(connected, "mysql_list_sessions")

        assert "Total: 1" in text
        assert "(current)" in text
        assert "dev-db:3307/app_dev" in text

    @pytest.mark.asyncio
    async def test_cleanup_sessions(self, connected):
        session = connected.get_current_session()
        session.last_used = datetime.now() - timedelta(minutes=10)

        response, text = await call(connected, "mysql_cleanup_sessions", maxIdleMinutes=5)

        assert text.startswith("🧹 Cleaned up 1 idle sessions")
        assert session.id in text
