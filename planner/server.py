"""
Planning Assistant Server — HTTP surface for the tool catalogue
================================================================
FastAPI application exposing the planning tools.

Launch:
    python -m planner serve               # Via CLI
    planner serve --store sqlite --path planner.db

Endpoints:
    POST /mcp                   → JSON-RPC 2.0 (initialize, ping, tools/list, tools/call)
    GET  /api/health            → Liveness + configured store backend
    GET  /api/tools             → Tool names, descriptions, argument schemas
    POST /api/tools/{name}      → Call one tool; body is the argument object
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from planner import __version__
from planner.config import PlannerConfig
from planner.errors import ConflictError, NotFoundError, UnknownToolError, ValidationError
from planner.service import PlanningService
from planner.tools import call_tool, list_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Planning Assistant"
PROTOCOL_VERSION = "2025-03-26"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


# ─────────────────────────────────────────────────────────────
#  JSON-RPC Dispatch
# ─────────────────────────────────────────────────────────────

def _rpc_result(request_id: Any, result: dict) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _rpc_error(request_id: Any, code: int, message: str, data: Any = None) -> dict:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


async def dispatch_rpc(service: PlanningService, message: Any) -> Optional[dict]:
    """Handle one JSON-RPC message. Returns None for notifications."""
    if not isinstance(message, dict) or message.get("jsonrpc") != "2.0" \
            or not isinstance(message.get("method"), str):
        request_id = message.get("id") if isinstance(message, dict) else None
        return _rpc_error(request_id, INVALID_REQUEST, "Invalid Request")

    method = message["method"]
    params = message.get("params") or {}
    is_notification = "id" not in message
    request_id = message.get("id")

    if method.startswith("notifications/"):
        return None
    if not isinstance(params, dict):
        return _rpc_error(request_id, INVALID_PARAMS, "params must be an object")

    if method == "initialize":
        result = {
            "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }
    elif method == "ping":
        result = {}
    elif method == "tools/list":
        result = {"tools": [t.describe() for t in list_tools()]}
    elif method == "tools/call":
        name = params.get("name")
        if not isinstance(name, str):
            return _rpc_error(request_id, INVALID_PARAMS, "tools/call needs a tool name")
        try:
            outcome = await call_tool(service, name, params.get("arguments"))
        except UnknownToolError as e:
            return _rpc_error(request_id, INVALID_PARAMS, str(e))
        except ValidationError as e:
            return _rpc_error(request_id, INVALID_PARAMS, str(e), e.errors)
        result = outcome.to_payload()
    else:
        return _rpc_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    if is_notification:
        return None
    return _rpc_result(request_id, result)


# ─────────────────────────────────────────────────────────────
#  App Factory
# ─────────────────────────────────────────────────────────────

def create_app(service: PlanningService) -> FastAPI:
    """Build the FastAPI app around an already-configured service."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await service.store.close()

    app = FastAPI(title=SERVER_NAME, version=__version__, lifespan=lifespan)
    app.state.service = service

    @app.post("/mcp")
    async def mcp_endpoint(request: Request):
        """JSON-RPC 2.0 endpoint. Accepts a single message or a batch."""
        try:
            message = await request.json()
        except ValueError:
            return JSONResponse(_rpc_error(None, PARSE_ERROR, "Parse error"))

        if isinstance(message, list):
            if not message:
                return JSONResponse(_rpc_error(None, INVALID_REQUEST, "Invalid Request"))
            replies = [r for r in [await dispatch_rpc(service, m) for m in message] if r is not None]
            return JSONResponse(replies) if replies else Response(status_code=202)

        reply = await dispatch_rpc(service, message)
        if reply is None:
            return Response(status_code=202)
        return JSONResponse(reply)

    @app.get("/api/health")
    async def api_health():
        return JSONResponse({"status": "ok", "store": service.store.name, "version": __version__})

    @app.get("/api/tools")
    async def api_tools():
        return JSONResponse({"tools": [t.describe() for t in list_tools()]})

    @app.post("/api/tools/{name}")
    async def api_call_tool(name: str, arguments: Optional[dict] = Body(None)):
        try:
            outcome = await call_tool(service, name, arguments)
        except UnknownToolError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ValidationError as e:
            return JSONResponse(status_code=422, content={"detail": str(e), "errors": e.errors})

        status = 200
        if isinstance(outcome.error, NotFoundError):
            status = 404
        elif isinstance(outcome.error, ConflictError):
            status = 409
        elif outcome.is_error:
            status = 500
        return JSONResponse(status_code=status, content=outcome.to_payload())

    return app


# ─────────────────────────────────────────────────────────────
#  Startup
# ─────────────────────────────────────────────────────────────

def run_server(config: PlannerConfig):
    """Launch the Planning Assistant server with uvicorn."""
    import uvicorn

    service = PlanningService.from_config(config)
    app = create_app(service)

    print(f"\n◬ ─── {SERVER_NAME} ───")
    print(f"  http://{config.host}:{config.port}/mcp")
    print(f"  Store: {service.store.name}")
    print(f"  Press Ctrl+C to stop\n")

    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
