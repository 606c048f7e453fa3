"""Dependency injection and singleton management for the MySQL MCP Server."""

from typing import Generator, Optional
import logging

logger = logging.getLogger(__name__)

# Global singletons
_app_config: Optional["AppConfig"] = None
_session_manager: Optional["SessionManager"] = None


def get_app_config() -> "AppConfig":
    """Get singleton AppConfig instance."""
    global _app_config
    if _app_config is None:
        from core.config import AppConfig
        _app_config = AppConfig.from_env()
        logger.info("Initialized AppConfig singleton")
    return _app_config


def get_session_manager(app_config: Optional["AppConfig"] = None) -> "SessionManager":
    """Get singleton SessionManager instance.

    Args:
        app_config: Optional AppConfig. If None, uses get_app_config()

    Returns:
        SessionManager instance (singleton)
    """
    global _session_manager

    if _session_manager is None:
        from database.session_manager import SessionManager

        app_cfg = app_config if app_config is not None else get_app_config()
        _session_manager = SessionManager(app_config=app_cfg)
        logger.info("Initialized SessionManager singleton")

    return _session_manager


def set_session_manager(session_manager: Optional["SessionManager"]):
    """Replace the SessionManager singleton (used by entry points and tests)."""
    global _session_manager
    _session_manager = session_manager


def reset_singletons():
    """Reset all singletons (useful for testing)."""
    global _app_config, _session_manager
    _app_config = None
    _session_manager = None
    logger.info("Reset all singletons")


# FastAPI Dependency Injection helpers
def get_session_manager_dependency() -> Generator["SessionManager", None, None]:
    """FastAPI dependency for SessionManager.

    Usage:
        @router.get("/endpoint")
        async def endpoint(sessions: SessionManager = Depends(get_session_manager_dependency)):
            ...
    """
    yield get_session_manager()
