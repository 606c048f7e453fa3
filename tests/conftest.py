"""
pytest configuration

Test environment setup, an in-memory stand-in for the aiomysql pool, and
shared fixtures.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

# Add src directory to the Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


class FakeServer:
    """Answers SQL with canned results.

    Rules are (substring, response) pairs matched against the upper-cased
    SQL; the first match wins. A response is a dict with "rows" (list of
    dicts, None for statements without a result set), "columns", "rowcount"
    and "lastrowid", an exception instance to raise, or a callable taking
    (sql, args) and returning either of those.
    """

    def __init__(self):
        self.rules = []
        self.executed = []
        self.events = []
        self.pools = []

    def on(self, pattern, response):
        self.rules.insert(0, (pattern.upper(), response))
        return self

    def respond(self, sql, args):
        for pattern, response in self.rules:
            if pattern in sql.upper():
                if callable(response) and not isinstance(response, BaseException):
                    response = response(sql, args)
                if isinstance(response, BaseException):
                    raise response
                return response

        normalized = sql.strip().upper()
        if normalized.startswith("SELECT 1"):
            return {"rows": [{"ok": 1}]}
        if normalized.startswith("SELECT @@VERSION"):
            return {"rows": [{"version": "8.0.36"}]}
        return {"rows": None, "rowcount": 0}


class FakeCursor:
    def __init__(self, connection, as_dict):
        self.connection = connection
        self.as_dict = as_dict
        self.description = None
        self.rowcount = -1
        self.lastrowid = 0
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, sql, args=None):
        server = self.connection.server
        if args is not None:
            # Same interpolation check as aiomysql Cursor.mogrify
            sql % tuple(args)
        server.executed.append((sql, args))
        result = server.respond(sql, args)

        rows = result.get("rows")
        if rows is None:
            self.description = None
            self._rows = []
            self.rowcount = result.get("rowcount", 0)
            self.lastrowid = result.get("lastrowid", 0)
        else:
            columns = result.get("columns") or (list(rows[0].keys()) if rows else ["value"])
            self.description = [(column, None, None, None, None, None, None) for column in columns]
            self._rows = list(rows)
            self.rowcount = len(rows)
            self.lastrowid = 0
        return self.rowcount

    def _shape(self, row):
        return dict(row) if self.as_dict else tuple(row.values())

    async def fetchall(self):
        return [self._shape(row) for row in self._rows]

    async def fetchone(self):
        return self._shape(self._rows[0]) if self._rows else None


class FakeConnection:
    def __init__(self, server):
        self.server = server

    def cursor(self, cursor_class=None):
        return FakeCursor(self, as_dict=cursor_class is not None)

    async def begin(self):
        self.server.events.append("begin")

    async def commit(self):
        self.server.events.append("commit")

    async def rollback(self):
        self.server.events.append("rollback")


class FakePool:
    def __init__(self, server):
        self.server = server
        self.acquired = 0
        self.released = 0
        self.closed = False

    async def acquire(self):
        self.acquired += 1
        return FakeConnection(self.server)

    def release(self, conn):
        self.released += 1

    def close(self):
        self.closed = True

    async def wait_closed(self):
        return None


@pytest.fixture
def fake_server():
    """In-memory MySQL stand-in."""
    return FakeServer()


@pytest.fixture
def mock_create_pool(fake_server):
    """Patch aiomysql.create_pool to hand out FakePool instances."""

    async def create_pool(**kwargs):
        pool = FakePool(fake_server)
        pool.kwargs = kwargs
        fake_server.pools.append(pool)
        return pool

    with patch("database.connection.aiomysql.create_pool", new=AsyncMock(side_effect=create_pool)) as mocked:
        yield mocked


@pytest.fixture
def mysql_config():
    """Connection parameters used across tests."""
    from database.models import MySQLConnectionConfig
    return MySQLConnectionConfig(host="db.local", port=3307, user="app", password="secret", database="shop")


@pytest.fixture
def app_config(tmp_path):
    """AppConfig independent of the process environment."""
    from core.config import AppConfig, HTTPConfig, MySQLConfig, QueryConfig, SessionConfig
    return AppConfig(
        mysql=MySQLConfig(host="localhost", port=3306, user="root", password="", database=None),
        session_config=SessionConfig(idle_timeout_minutes=30, project_dir=str(tmp_path)),
        query_config=QueryConfig(),
        http_config=HTTPConfig()
    )


@pytest.fixture
def spring_project(tmp_path):
    """Spring Boot project with dev and prod datasources."""
    (tmp_path / "pom.xml").write_text("<project/>")
    resources = tmp_path / "src" / "main" / "resources"
    resources.mkdir(parents=True)
    (resources / "application.yml").write_text(
        "spring:\n"
        "  datasource:\n"
        "    url: jdbc:mysql://localhost:3306/app_default\n"
        "    username: root\n"
        "    password: root\n"
    )
    (resources / "application-dev.yml").write_text(
        "spring:\n"
        "  datasource:\n"
        "    url: jdbc:mysql://dev-db:3307/app_dev?useSSL=false\n"
        "    username: dev\n"
        "    password: devpass\n"
    )
    (resources / "application-prod.properties").write_text(
        "spring.datasource.url=jdbc:mysql://prod-db/app_prod\n"
        "spring.datasource.username=prod\n"
        "spring.datasource.password=prodpass\n"
    )
    return tmp_path
