"""Session registry for multiple MySQL environments.

Keeps one pooled connection manager per session, a pointer to the current
session that tool calls run against, and sweeps sessions that sit idle.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from core.config import AppConfig
from core.exceptions import (
    EnvironmentNotFoundError,
    NoActiveSessionError,
    ProjectDetectionError,
    SessionNotFoundError,
)
from database.connection import MySQLConnectionManager, create_connection_manager
from database.models import ConnectionType, MySQLConnectionConfig
from detection.project_detector import ProjectDetector, ProjectEnvironment, ProjectInfo

logger = logging.getLogger(__name__)


@dataclass
class ConnectionSession:
    """An open connection pool bound to one environment."""

    id: str
    environment: ProjectEnvironment
    manager: MySQLConnectionManager
    created_at: datetime = field(default_factory=datetime.now)
    last_used: datetime = field(default_factory=datetime.now)

    def touch(self):
        self.last_used = datetime.now()

    def idle_minutes(self, now: Optional[datetime] = None) -> float:
        return ((now or datetime.now()) - self.last_used).total_seconds() / 60

    def is_idle(self, max_idle_minutes: float, now: Optional[datetime] = None) -> bool:
        return max_idle_minutes > 0 and self.idle_minutes(now) > max_idle_minutes

    def to_dict(self) -> Dict[str, Any]:
        """Session details safe to expose (no password)."""
        return {
            "id": self.id,
            "environment": self.environment.name,
            "display_name": self.environment.display_name,
            "source": self.environment.source,
            "connection": self.manager.get_connection_info(),
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat(),
            "idle_minutes": round(self.idle_minutes(), 1)
        }


class SessionManager:
    """Tracks connection sessions keyed by environment."""

    def __init__(
        self,
        working_directory: Optional[Union[str, Path]] = None,
        app_config: Optional[AppConfig] = None
    ):
        self.app_config = app_config or AppConfig.from_env()
        root = working_directory or self.app_config.session_config.get_project_dir()
        self.project_detector = ProjectDetector(root)
        self.project_info: Optional[ProjectInfo] = None
        self.sessions: Dict[str, ConnectionSession] = {}
        self.current_session_id: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def idle_timeout_minutes(self) -> int:
        return self.app_config.session_config.idle_timeout_minutes

    # ===========================================
    # Project detection
    # ===========================================

    def detect_project(self, working_directory: Optional[Union[str, Path]] = None) -> ProjectInfo:
        """Detect the project, optionally re-targeting another directory.

        Open sessions are kept when the directory changes.
        """
        if working_directory:
            path = Path(working_directory).expanduser()
            if not path.is_dir():
                raise ProjectDetectionError(f"Directory does not exist: {working_directory}")
            self.project_detector = ProjectDetector(path)

        self.project_info = self.project_detector.detect_project()
        return self.project_info

    def get_project_info(self) -> Optional[ProjectInfo]:
        return self.project_info

    def list_environments(self) -> List[ProjectEnvironment]:
        return list(self.project_info.environments) if self.project_info else []

    def _get_environment(self, environment_name: str) -> ProjectEnvironment:
        environment = self.project_info.find_environment(environment_name) if self.project_info else None
        if environment is None:
            available = [env.name for env in self.list_environments()]
            raise EnvironmentNotFoundError(
                f"Environment not found: {environment_name}",
                {"available_environments": available}
            )
        return environment

    def _with_pool_settings(self, config: MySQLConnectionConfig) -> MySQLConnectionConfig:
        """Apply the configured pool settings to detected connection parameters."""
        mysql = self.app_config.mysql
        return config.model_copy(update={
            "connection_limit": mysql.connection_limit,
            "acquire_timeout": mysql.acquire_timeout,
            "timeout": mysql.timeout,
            "charset": mysql.charset
        })

    # ===========================================
    # Session lifecycle
    # ===========================================

    async def connect_to_environment(self, environment_name: str) -> ConnectionSession:
        """Connect to a detected environment, reusing its session if one is open."""
        if self.project_info is None:
            self.detect_project()

        environment = self._get_environment(environment_name)

        async with self._lock:
            existing_id = self._find_reusable_session(environment)
            if existing_id:
                session = self.sessions[existing_id]
                session.touch()
                self.current_session_id = existing_id
                logger.info(f"Reusing session {existing_id} for environment {environment_name}")
                return session

            manager = create_connection_manager(
                self._with_pool_settings(environment.config),
                ConnectionType.DIRECT
            )
            await manager.initialize()
            return self._register(environment, manager)

    async def connect_manually(
        self,
        config: MySQLConnectionConfig,
        name: Optional[str] = None,
        connection_type: ConnectionType = ConnectionType.DIRECT
    ) -> ConnectionSession:
        """Open a session from explicit connection parameters."""
        manager = create_connection_manager(config, connection_type)
        await manager.initialize()

        effective = manager.config
        environment = ProjectEnvironment(
            name=name or "manual",
            display_name=f"Manual connection ({effective.host}:{effective.port}/{effective.database or '-'})",
            config=effective,
            source="manual",
            type="manual"
        )

        async with self._lock:
            return self._register(environment, manager)

    def _register(self, environment: ProjectEnvironment, manager: MySQLConnectionManager) -> ConnectionSession:
        session = ConnectionSession(
            id=self.generate_session_id(),
            environment=environment,
            manager=manager
        )
        self.sessions[session.id] = session
        self.current_session_id = session.id
        logger.info(f"Created session {session.id} for environment {environment.name}")
        return session

    def switch_to_session(self, session_id: str) -> ConnectionSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")

        session.touch()
        self.current_session_id = session_id
        return session

    def get_current_session(self) -> Optional[ConnectionSession]:
        if not self.current_session_id:
            return None
        return self.sessions.get(self.current_session_id)

    def get_current_manager(self) -> Optional[MySQLConnectionManager]:
        session = self.get_current_session()
        return session.manager if session else None

    def require_current_session(self) -> ConnectionSession:
        """Current session for a tool call; marks it as used."""
        session = self.get_current_session()
        if session is None:
            raise NoActiveSessionError()
        session.touch()
        return session

    def list_sessions(self) -> List[ConnectionSession]:
        return list(self.sessions.values())

    async def disconnect_session(self, session_id: str) -> bool:
        """Close and remove a session. Returns False if it did not exist."""
        async with self._lock:
            session = self.sessions.pop(session_id, None)
            if session is None:
                return False
            if self.current_session_id == session_id:
                self.current_session_id = None

        await self._close_session(session)
        return True

    async def disconnect_all(self):
        """Close every session."""
        async with self._lock:
            sessions = list(self.sessions.values())
            self.sessions.clear()
            self.current_session_id = None

        if sessions:
            await asyncio.gather(*(self._close_session(session) for session in sessions))
            logger.info(f"Disconnected {len(sessions)} sessions")

    async def _close_session(self, session: ConnectionSession):
        try:
            await session.manager.close()
            logger.info(f"Closed session {session.id} ({session.environment.name})")
        except Exception as e:
            logger.error(f"Error closing session {session.id}: {e}")

    async def test_environment_connection(self, environment_name: str) -> bool:
        """Test an environment with a throwaway pool."""
        if self.project_info is None or self.project_info.find_environment(environment_name) is None:
            return False

        environment = self.project_info.find_environment(environment_name)
        manager = create_connection_manager(self._with_pool_settings(environment.config), ConnectionType.DIRECT)
        try:
            await manager.initialize()
            result = await manager.test_connection()
            return result.success
        except Exception as e:
            logger.info(f"Environment {environment_name} is not reachable: {e}")
            return False
        finally:
            await manager.close()

    # ===========================================
    # Idle detection and statistics
    # ===========================================

    async def cleanup_expired_sessions(self, max_idle_minutes: Optional[float] = None) -> List[str]:
        """Disconnect sessions idle longer than max_idle_minutes.

        Defaults to SESSION_IDLE_TIMEOUT_MINUTES; a limit of 0 disables the sweep.
        """
        limit = self.idle_timeout_minutes if max_idle_minutes is None else max_idle_minutes
        if limit <= 0:
            return []

        now = datetime.now()
        expired = [
            session_id for session_id, session in self.sessions.items()
            if session.is_idle(limit, now)
        ]

        for session_id in expired:
            if await self.disconnect_session(session_id):
                logger.info(f"Session {session_id} expired after {limit} idle minutes")

        return expired

    def get_connection_stats(self) -> Dict[str, Any]:
        now = datetime.now()
        idle = sum(1 for session in self.sessions.values() if session.is_idle(self.idle_timeout_minutes, now))
        current = self.get_current_session()
        return {
            "total_sessions": len(self.sessions),
            "active_sessions": len(self.sessions) - idle,
            "idle_sessions": idle,
            "current_environment": current.environment.name if current else None,
            "detected_environments": len(self.project_info.environments) if self.project_info else 0
        }

    def find_session_by_environment(self, environment_name: str, detected_only: bool = False) -> Optional[str]:
        for session_id, session in self.sessions.items():
            if session.environment.name != environment_name:
                continue
            if detected_only and session.environment.type != "detected":
                continue
            return session_id
        return None

    def _find_reusable_session(self, environment: ProjectEnvironment) -> Optional[str]:
        """Open session for the same environment name, config file and server."""
        for session_id, session in self.sessions.items():
            current = session.environment
            if current.type != "detected" or current.name != environment.name:
                continue
            if current.source != environment.source:
                continue
            if (current.config.address, current.config.database, current.config.user) != (
                environment.config.address, environment.config.database, environment.config.user
            ):
                continue
            return session_id
        return None

    @staticmethod
    def generate_session_id() -> str:
        return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

    def get_environment_summary(self) -> str:
        if not self.project_info:
            return "No project configuration detected"

        environments = self.project_info.environments
        summary = f"Project type: {self.project_info.type.value}\n"
        summary += f"Detected {len(environments)} environments:\n"

        for env in environments:
            status = "connected" if self.find_session_by_environment(env.name, detected_only=True) else "not connected"
            summary += f"  - {env.display_name} [{status}]\n"

        current = self.get_current_session()
        if current:
            summary += f"\nCurrent environment: {current.environment.display_name}"

        return summary
