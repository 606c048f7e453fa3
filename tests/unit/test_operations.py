"""
MySQL operations unit tests

Statement, batch and script execution and schema introspection.
"""

import aiomysql
import pytest

from core.exceptions import QueryExecutionError
from database.connection import MySQLConnectionManager
from database.operations import MySQLOperations


@pytest.fixture
async def operations(mock_create_pool, mysql_config):
    manager = MySQLConnectionManager(mysql_config)
    await manager.initialize()
    yield MySQLOperations(manager)
    await manager.close()


class TestExecuteSql:

    @pytest.mark.asyncio
    async def test_select(self, operations, fake_server):
        fake_server.on("FROM PRODUCTS", {"rows": [{"id": 1, "price": "9.99"}]})

        result = await operations.execute_sql("SELECT id, price FROM products")

        assert result.success is True
        assert result.data == [{"id": 1, "price": "9.99"}]
        assert result.columns == ["id", "price"]
        assert result.field_count == 2
        assert result.message == "Query OK, 1 rows returned"
        assert result.has_result_set

    @pytest.mark.asyncio
    async def test_write(self, operations, fake_server):
        fake_server.on("INSERT", {"rows": None, "rowcount": 3, "lastrowid": 7})

        result = await operations.execute_sql("INSERT INTO t VALUES (1),(2),(3)")

        assert result.success is True
        assert result.data is None
        assert result.affected_rows == 3
        assert result.insert_id == 7
        assert result.message == "Query OK, 3 rows affected"

    @pytest.mark.asyncio
    async def test_failure_is_returned(self, operations, fake_server):
        """❌ Errors come back in the result instead of being raised"""
        fake_server.on("NOPE", aiomysql.ProgrammingError(1064, "You have an error in your SQL syntax"))

        result = await operations.execute_sql("NOPE")

        assert result.success is False
        assert result.message == "SQL execution failed"
        assert "SQL syntax" in result.error

    @pytest.mark.asyncio
    async def test_param_count_mismatch_is_returned(self, operations, fake_server):
        """❌ Too few params for the placeholders is a failed result, not an exception"""
        result = await operations.execute_sql("SELECT %s, %s", ["only-one"])

        assert result.success is False
        assert result.message == "SQL execution failed"
        assert "not enough arguments" in result.error
        assert "SELECT %s, %s" not in [sql for sql, _ in fake_server.executed]


class TestExecuteBatch:

    @pytest.mark.asyncio
    async def test_all_statements_run(self, operations, fake_server):
        fake_server.on("FAILS", aiomysql.ProgrammingError(1146, "Table 'shop.x' doesn't exist"))

        result = await operations.execute_batch(
            "INSERT INTO a VALUES (1);\nSELECT * FROM fails;\nINSERT INTO a VALUES (2);"
        )

        assert result.success is False
        assert result.total_statements == 3
        assert result.successful_statements == 2
        assert result.failed_statements == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Statement 2: ")
        assert result.rolled_back is False
        assert fake_server.events == []

    @pytest.mark.asyncio
    async def test_success_counts(self, operations):
        result = await operations.execute_batch("UPDATE a SET x = 1; UPDATE b SET y = 2")

        assert result.success is True
        assert result.successful_statements == 2
        assert result.failed_statements == 0
        assert result.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_transaction_commit(self, operations, fake_server):
        result = await operations.execute_batch("UPDATE a SET x = 1; UPDATE b SET y = 2", use_transaction=True)

        assert result.success is True
        assert result.successful_statements == 2
        assert fake_server.events == ["begin", "commit"]

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_first_failure(self, operations, fake_server):
        """✅ The first failure stops the batch and rolls everything back"""
        fake_server.on("FAILS", aiomysql.IntegrityError(1062, "Duplicate entry"))

        result = await operations.execute_batch(
            "INSERT INTO a VALUES (1); INSERT INTO fails VALUES (1); INSERT INTO a VALUES (2)",
            use_transaction=True
        )

        assert result.success is False
        assert result.rolled_back is True
        assert result.total_statements == 3
        assert result.successful_statements == 0
        assert result.failed_statements == 3
        assert result.errors[0].startswith("Statement 2: ")
        assert fake_server.events == ["begin", "rollback"]
        # The third statement never ran
        assert not any("VALUES (2)" in sql for sql, _ in fake_server.executed)

    @pytest.mark.asyncio
    async def test_empty_script(self, operations):
        result = await operations.execute_batch("-- only a comment\n")

        assert result.success is True
        assert result.total_statements == 0


class TestExecuteScript:

    @pytest.mark.asyncio
    async def test_runs_file(self, operations, tmp_path):
        script = tmp_path / "seed.sql"
        script.write_text("-- seed\nINSERT INTO a VALUES (1);\nINSERT INTO a VALUES (2);\n", encoding="utf-8")

        result = await operations.execute_script(str(script))

        assert result.success is True
        assert result.total_statements == 2

    @pytest.mark.asyncio
    async def test_missing_file(self, operations, tmp_path):
        """❌ Unreadable files give a failed result"""
        result = await operations.execute_script(str(tmp_path / "missing.sql"))

        assert result.success is False
        assert result.total_statements == 0
        assert result.failed_statements == 1
        assert result.errors[0].startswith("Failed to read script file: ")


class TestGetSchema:

    @pytest.fixture
    def shop_schema(self, fake_server):
        columns = {
            "USERS": [
                {"Field": "id", "Type": "int", "Null": "NO", "Key": "PRI", "Default": None,
                 "Extra": "auto_increment", "Comment": ""},
                {"Field": "email", "Type": "varchar(255)", "Null": "NO", "Key": "UNI", "Default": None,
                 "Extra": "", "Comment": "login"},
            ],
            "ORDERS": [
                {"Field": "id", "Type": "int", "Null": "NO", "Key": "PRI", "Default": None,
                 "Extra": "auto_increment", "Comment": ""},
                {"Field": "user_id", "Type": "int", "Null": "YES", "Key": "MUL", "Default": None,
                 "Extra": "", "Comment": ""},
            ],
        }
        indexes = {
            "USERS": [
                {"Key_name": "PRIMARY", "Column_name": "id", "Non_unique": 0},
                {"Key_name": "uq_email", "Column_name": "email", "Non_unique": 0},
            ],
            "ORDERS": [
                {"Key_name": "PRIMARY", "Column_name": "id", "Non_unique": 0},
                {"Key_name": "idx_user_created", "Column_name": "user_id", "Non_unique": 1},
                {"Key_name": "idx_user_created", "Column_name": "created_at", "Non_unique": 1},
            ],
        }

        def table_rows(lookup):
            def respond(sql, args):
                table = sql.upper().rsplit(".", 1)[-1].split()[-1].strip("`")
                return {"rows": lookup[table]}
            return respond

        def foreign_keys(sql, args):
            if args[0] != "orders":
                return {"rows": [], "columns": ["name"]}
            return {"rows": [{
                "name": "fk_orders_user", "column_name": "user_id", "referenced_table": "users",
                "referenced_column": "id", "on_delete": "CASCADE", "on_update": "RESTRICT",
            }]}

        fake_server.on("SELECT DATABASE() AS DB", {"rows": [{"db": "shop"}]})
        fake_server.on("SHOW FULL TABLES", {"rows": [
            {"Tables_in_shop": "orders", "Table_type": "BASE TABLE"},
            {"Tables_in_shop": "users", "Table_type": "BASE TABLE"},
            {"Tables_in_shop": "active_users", "Table_type": "VIEW"},
        ]})
        fake_server.on("SHOW FULL COLUMNS", table_rows(columns))
        fake_server.on("SHOW INDEX", table_rows(indexes))
        fake_server.on("KEY_COLUMN_USAGE", foreign_keys)
        fake_server.on("INFORMATION_SCHEMA.VIEWS", {"rows": [
            {"name": "active_users", "definition": "select ..."},
        ]})
        return fake_server

    @pytest.mark.asyncio
    async def test_current_database(self, operations, shop_schema):
        schema = await operations.get_schema()

        assert schema.database == "shop"
        assert [table.name for table in schema.tables] == ["orders", "users"]
        assert [view.name for view in schema.views] == ["active_users"]

        users = next(table for table in schema.tables if table.name == "users")
        user_id = users.columns[0]
        assert user_id.is_primary_key and user_id.is_auto_increment and not user_id.nullable
        assert users.columns[1].comment == "login"
        assert {index.name: index.is_unique for index in users.indexes} == {"PRIMARY": True, "uq_email": True}

        orders = next(table for table in schema.tables if table.name == "orders")
        composite = next(index for index in orders.indexes if index.name == "idx_user_created")
        assert composite.columns == ["user_id", "created_at"]
        assert composite.is_unique is False
        assert orders.indexes[0].is_primary is True

        assert len(orders.foreign_keys) == 1
        fk = orders.foreign_keys[0]
        assert (fk.column, fk.referenced_table, fk.referenced_column) == ("user_id", "users", "id")
        assert fk.on_delete == "CASCADE"

    @pytest.mark.asyncio
    async def test_named_database_is_quoted(self, operations, shop_schema):
        """✅ Identifiers are backtick-quoted and the schema is a parameter"""
        schema = await operations.get_schema("shop")

        assert schema.database == "shop"
        executed = [sql for sql, _ in shop_schema.executed]
        assert "SHOW FULL TABLES FROM `shop`" in executed
        assert "SHOW FULL COLUMNS FROM `shop`.`users`" in executed
        fk_args = [args for sql, args in shop_schema.executed if "KEY_COLUMN_USAGE" in sql]
        assert ("orders", "shop") in fk_args

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self, operations, fake_server):
        """❌ Any failing step raises QueryExecutionError"""
        fake_server.on("SHOW FULL TABLES", aiomysql.OperationalError(1049, "Unknown database 'nope'"))

        with pytest.raises(QueryExecutionError) as exc_info:
            await operations.get_schema("nope")

        assert exc_info.value.message.startswith("Failed to get database schema")
