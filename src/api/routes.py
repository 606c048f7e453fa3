"""FastAPI routes for the MySQL MCP REST API."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from api.middleware import TOOL_RATE_LIMIT, limiter
from core.dependencies import get_session_manager_dependency
from core.error_handling import format_success_response, response_text
from database.session_manager import SessionManager
from tools import get_all_tools
from tools.handlers import handle_tool_call

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class ToolCallBody(BaseModel):
    arguments: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    sessions: int
    current_environment: Optional[str] = None


class ToolInfo(BaseModel):
    name: str
    description: str
    parameters: Dict[str, Any]


class APIResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: str


router = APIRouter(prefix="/api/v1")


@router.get("/health", response_model=HealthResponse)
async def health_check(sessions: SessionManager = Depends(get_session_manager_dependency)):
    """Health check endpoint."""
    current = sessions.get_current_session()
    return HealthResponse(
        status="ok",
        timestamp=datetime.now().isoformat(),
        version=API_VERSION,
        sessions=len(sessions.list_sessions()),
        current_environment=current.environment.name if current else None
    )


@router.get("/tools", response_model=List[ToolInfo])
async def list_tools():
    """List all available MCP tools."""
    return [
        ToolInfo(
            name=tool.name,
            description=tool.description or "",
            parameters=tool.inputSchema
        )
        for tool in get_all_tools()
    ]


@router.post("/tools/{tool_name}", response_model=APIResponse)
@limiter.limit(TOOL_RATE_LIMIT)
async def call_tool(
    request: Request,
    tool_name: str,
    body: ToolCallBody,
    sessions: SessionManager = Depends(get_session_manager_dependency)
):
    """Invoke an MCP tool by name and return its text output."""
    tool_request = type('CallToolRequest', (), {
        'name': tool_name,
        'arguments': body.arguments
    })()
    response = await handle_tool_call(tool_request, sessions)
    text = response_text(response)

    if response.get("isError"):
        return APIResponse(success=False, error=text, timestamp=datetime.now().isoformat())
    return APIResponse(**format_success_response(text), timestamp=datetime.now().isoformat())


@router.get("/sessions", response_model=APIResponse)
async def list_sessions(sessions: SessionManager = Depends(get_session_manager_dependency)):
    """Session statistics and open sessions (passwords are never included)."""
    return APIResponse(
        **format_success_response({
            "stats": sessions.get_connection_stats(),
            "current_session_id": sessions.current_session_id,
            "sessions": [session.to_dict() for session in sessions.list_sessions()]
        }),
        timestamp=datetime.now().isoformat()
    )


@router.get("/environments", response_model=APIResponse)
async def list_environments(sessions: SessionManager = Depends(get_session_manager_dependency)):
    """Detected project environments (detection runs on first use)."""
    project_info = sessions.get_project_info() or sessions.detect_project()
    return APIResponse(
        **format_success_response({
            "project_type": project_info.type.value,
            "root_path": str(project_info.root_path),
            "environments": [
                {
                    "name": env.name,
                    "display_name": env.display_name,
                    "source": env.source,
                    "connection": env.config.safe_dict()
                }
                for env in project_info.environments
            ]
        }),
        timestamp=datetime.now().isoformat()
    )
