"""Async MySQL connection manager with connection pooling.

Supports direct, Docker and remote connections through a single aiomysql pool
per manager.
"""

import asyncio
import logging
import ssl
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, NamedTuple, Optional, Union

import aiomysql

from core.exceptions import (
    ConnectionNotInitializedError,
    DatabaseConnectionError,
    QueryExecutionError,
)
from database.models import (
    ConnectionTestResult,
    ConnectionType,
    DockerConnectionConfig,
    MySQLConnectionConfig,
)

logger = logging.getLogger(__name__)


class ExecuteOutcome(NamedTuple):
    """Raw outcome of one statement."""
    rows: Optional[List[Dict[str, Any]]]  # None when the statement has no result set
    columns: List[str]
    affected_rows: int
    insert_id: Optional[int]
    execution_time_ms: float


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class MySQLConnectionManager:
    """MySQL connection pool facade."""

    def __init__(
        self,
        config: MySQLConnectionConfig,
        connection_type: ConnectionType = ConnectionType.DIRECT
    ):
        self.config = config
        self.connection_type = connection_type
        self._pool = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        """TLS context for the ssl option (True or a CA certificate path)."""
        option = self.config.ssl
        if not option:
            return None
        if option is True:
            return ssl.create_default_context()
        return ssl.create_default_context(cafile=option)

    async def initialize(self):
        """Create the connection pool and verify it with a test query."""
        if self._pool is not None:
            logger.warning(f"Connection pool for {self.config.address} already initialized")
            return

        try:
            self._pool = await aiomysql.create_pool(
                host=self.config.host,
                port=self.config.port,
                user=self.config.user,
                password=self.config.password,
                db=self.config.database,
                minsize=1,
                maxsize=self.config.connection_limit,
                connect_timeout=self.config.timeout,
                charset=self.config.charset,
                autocommit=True,
                ssl=self._ssl_context()
            )
        except Exception as e:
            logger.error(f"Failed to initialize MySQL pool for {self.config.address}: {e}")
            raise DatabaseConnectionError(
                f"Failed to initialize connection pool: {e}",
                self.config.safe_dict()
            ) from e

        result = await self.test_connection()
        if not result.success:
            await self.close()
            raise DatabaseConnectionError(
                f"Connection test failed: {result.error}",
                self.config.safe_dict()
            )

        logger.info(
            f"✅ MySQL connection pool initialized ({self.connection_type.value}, "
            f"{self.config.address}, size: {self.config.connection_limit})"
        )

    async def acquire(self):
        """Get a connection from the pool."""
        if self._pool is None:
            raise ConnectionNotInitializedError()

        try:
            return await asyncio.wait_for(
                self._pool.acquire(),
                timeout=self.config.acquire_timeout
            )
        except asyncio.TimeoutError as e:
            raise DatabaseConnectionError(
                f"Timed out after {self.config.acquire_timeout}s waiting for a pooled connection"
            ) from e
        except aiomysql.Error as e:
            raise DatabaseConnectionError(f"Failed to get database connection: {e}") from e

    def release(self, conn):
        """Return a connection to the pool."""
        if self._pool is not None:
            self._pool.release(conn)

    async def execute(
        self,
        sql: str,
        params: Optional[List[Any]] = None,
        connection=None
    ) -> ExecuteOutcome:
        """Execute one SQL statement.

        Args:
            sql: SQL statement, using %s placeholders for params
            params: Optional positional parameters
            connection: Connection to run on (inside a transaction); a pooled
                connection is used when omitted

        Returns:
            ExecuteOutcome with rows (or None), columns, affected rows, insert id
            and execution time
        """
        if connection is not None:
            return await self._execute_on(connection, sql, params)

        conn = await self.acquire()
        try:
            return await self._execute_on(conn, sql, params)
        finally:
            self.release(conn)

    async def _execute_on(self, conn, sql: str, params: Optional[List[Any]]) -> ExecuteOutcome:
        start = time.perf_counter()
        # Without params the SQL is sent verbatim, so a literal % is safe
        args = tuple(params) if params else None
        try:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(sql, args)

                if cursor.description:
                    columns = [desc[0] for desc in cursor.description]
                    rows = list(await cursor.fetchall())
                else:
                    columns = []
                    rows = None

                return ExecuteOutcome(
                    rows=rows,
                    columns=columns,
                    affected_rows=max(cursor.rowcount or 0, 0),
                    insert_id=cursor.lastrowid or None,
                    execution_time_ms=_elapsed_ms(start)
                )
        except aiomysql.Error as e:
            logger.error(f"SQL execution error: {e}")
            raise QueryExecutionError(f"SQL execution failed: {e}", {"sql": sql[:200]}) from e
        except (TypeError, ValueError) as e:
            # Raised while interpolating params, e.g. a placeholder count mismatch
            logger.error(f"SQL parameter error: {e}")
            raise QueryExecutionError(f"SQL execution failed: {e}", {"sql": sql[:200]}) from e

    async def test_connection(self) -> ConnectionTestResult:
        """Probe the server; never raises."""
        start = time.perf_counter()
        try:
            conn = await self.acquire()
            try:
                async with conn.cursor() as cursor:
                    await cursor.execute("SELECT 1 AS ok")
                    await cursor.fetchone()

                server_version = None
                try:
                    async with conn.cursor() as cursor:
                        await cursor.execute("SELECT @@version AS version")
                        row = await cursor.fetchone()
                        server_version = row[0] if row else None
                except aiomysql.Error as e:
                    # Connectivity is already proven by the probe
                    logger.debug(f"Could not read server version: {e}")

                return ConnectionTestResult(
                    success=True,
                    message="Connection successful",
                    connection_time_ms=_elapsed_ms(start),
                    server_version=server_version
                )
            finally:
                self.release(conn)
        except Exception as e:
            logger.error(f"MySQL connection test failed for {self.config.address}: {e}")
            return ConnectionTestResult(
                success=False,
                message="Connection failed",
                error=getattr(e, "message", None) or str(e)
            )

    async def begin_transaction(self):
        """Acquire a connection and start a transaction on it."""
        conn = await self.acquire()
        try:
            await conn.begin()
        except aiomysql.Error as e:
            self.release(conn)
            raise QueryExecutionError(f"Failed to begin transaction: {e}") from e
        return conn

    async def commit_transaction(self, conn):
        """Commit and release the connection."""
        try:
            await conn.commit()
        except aiomysql.Error as e:
            raise QueryExecutionError(f"Failed to commit transaction: {e}") from e
        finally:
            self.release(conn)

    async def rollback_transaction(self, conn):
        """Roll back and release the connection."""
        try:
            await conn.rollback()
        except aiomysql.Error as e:
            raise QueryExecutionError(f"Failed to roll back transaction: {e}") from e
        finally:
            self.release(conn)

    @asynccontextmanager
    async def transaction(self):
        """Run a block in a transaction, committing on success.

        Usage:
            async with manager.transaction() as conn:
                await manager.execute(sql, connection=conn)
        """
        conn = await self.begin_transaction()
        try:
            yield conn
        except BaseException:
            await self.rollback_transaction(conn)
            raise
        await self.commit_transaction(conn)

    async def close(self):
        """Close the connection pool."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        pool.close()
        await pool.wait_closed()
        logger.info(f"MySQL connection pool closed ({self.config.address})")

    def get_connection_info(self) -> Dict[str, Any]:
        """Connection type and parameters, without the password."""
        return {
            "type": self.connection_type.value,
            "config": self.config.safe_dict()
        }


def create_connection_manager(
    config: Union[MySQLConnectionConfig, DockerConnectionConfig],
    connection_type: Optional[ConnectionType] = None
) -> MySQLConnectionManager:
    """Factory function to create a connection manager.

    Docker connections go through the port the container publishes on the host.
    """
    connection_type = ConnectionType(connection_type or ConnectionType.DIRECT)

    if isinstance(config, DockerConnectionConfig) and connection_type == ConnectionType.DOCKER:
        docker_config = MySQLConnectionConfig(**{
            **config.model_dump(exclude={"container_name", "docker_port"}),
            "host": config.host or "localhost",
            "port": config.docker_port or config.port or 3306
        })
        logger.debug(f"Docker connection to container {config.container_name} via {docker_config.address}")
        return MySQLConnectionManager(docker_config, ConnectionType.DOCKER)

    return MySQLConnectionManager(config, connection_type)
