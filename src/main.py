"""Unified entry point for the MySQL MCP Server.

This module provides a single entry point that can run in either:
- STDIO mode: For use with MCP clients via stdio transport
- HTTP mode: For use with REST API and SSE MCP transport

Usage:
    # STDIO mode (default)
    mysql-mcp-server

    # HTTP mode
    mysql-mcp-server --http

    # HTTP mode with custom host/port
    mysql-mcp-server --http --host 0.0.0.0 --port 8000
"""

import asyncio
import logging
import os
import sys

# stdout carries the MCP protocol in STDIO mode, so logs go to stderr
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


async def run_stdio_mode():
    """Run MCP server in STDIO mode.

    This mode is used for direct MCP client communication via stdio transport.
    Typically used when the server is spawned as a subprocess by an MCP client.
    """
    logger.info("Starting MySQL MCP Server in STDIO mode")

    from protocol.stdio_server import run_stdio_server
    try:
        await run_stdio_server()
    except Exception as e:
        logger.error(f"STDIO server error: {e}", exc_info=True)
        sys.exit(1)


def create_app(session_manager=None):
    """Build the FastAPI application with the REST API and the SSE MCP transport.

    Args:
        session_manager: Session registry (defaults to the singleton)
    """
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    from api.middleware import setup_middleware
    from api.routes import router as api_router
    from core.dependencies import get_session_manager, set_session_manager
    from core.error_handling import ErrorFormat, format_error_response
    from core.exceptions import MCPMySQLError
    from protocol.sse_server import SseMCPServer

    if session_manager is None:
        session_manager = get_session_manager()
    else:
        set_session_manager(session_manager)

    app = FastAPI(
        title="MySQL MCP API",
        version=VERSION,
        description="Model Context Protocol (MCP) server for MySQL - project-aware sessions & REST API"
    )

    setup_middleware(app)

    @app.exception_handler(MCPMySQLError)
    async def mcp_mysql_error_handler(request, exc: MCPMySQLError):
        return JSONResponse(status_code=400, content=format_error_response(exc, ErrorFormat.REST_API))

    app.include_router(api_router)
    logger.info("REST API routes registered")

    mcp_sse_server = SseMCPServer(session_manager, messages_path="/messages")
    app.mount("/sse", mcp_sse_server.create_asgi_app())
    logger.info("MCP SSE server mounted at /sse/")

    @app.get("/")
    async def root():
        return {
            "name": "MySQL MCP Server",
            "version": VERSION,
            "modes": ["REST API", "MCP SSE"],
            "endpoints": {
                "api": "/api/v1",
                "health": "/api/v1/health",
                "mcp_sse": "/sse/",
                "docs": "/docs"
            }
        }

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close every open session."""
        logger.info("Shutting down MySQL MCP Server...")
        await session_manager.disconnect_all()
        logger.info("Graceful shutdown completed")

    return app


async def run_http_mode(host: str = "0.0.0.0", port: int = 8000):
    """Run MCP server in HTTP mode with REST API and SSE support.

    Args:
        host: Host address to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8000)
    """
    logger.info(f"Starting MySQL MCP Server in HTTP mode on {host}:{port}")

    import uvicorn

    from core.dependencies import get_session_manager

    try:
        session_manager = get_session_manager()
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    project_info = session_manager.detect_project()
    logger.info(
        f"Project detected: {project_info.type.value} with {len(project_info.environments)} environments"
    )

    app = create_app(session_manager)

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info"
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    except Exception as e:
        logger.error(f"HTTP server error: {e}", exc_info=True)
        sys.exit(1)


def main():
    """Main entry point with argument parsing."""
    import argparse

    parser = argparse.ArgumentParser(
        description="MySQL MCP Server - Unified Entry Point"
    )
    parser.add_argument(
        "--http",
        action="store_true",
        help="Run in HTTP mode (default: STDIO mode)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address for HTTP mode (default: from HTTP_HOST env or 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for HTTP mode (default: from HTTP_PORT env or 8000)"
    )

    args = parser.parse_args()

    if args.http:
        host = args.host or os.getenv("HTTP_HOST", "0.0.0.0")
        port = args.port or int(os.getenv("HTTP_PORT", "8000"))
        asyncio.run(run_http_mode(host, port))
    else:
        asyncio.run(run_stdio_mode())


if __name__ == "__main__":
    main()
