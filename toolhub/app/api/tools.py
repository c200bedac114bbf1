from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from toolhub.app.api.deps import get_runtime
from toolhub.app.db.models import ToolDefinition, ToolKind
from toolhub.app.db.repo.tools_repo import get_tool
from toolhub.app.db.session import get_db
from toolhub.app.domain.tools.dispatcher import InvocationOutcome
from toolhub.app.runtime import ToolRuntime
from toolhub.app.services.tool_service import (
    VALID_KINDS,
    VALID_STATUSES,
    delete_tool_service,
    delete_tools_service,
    list_tools_service,
    save_tool_service,
    update_tool_service,
    update_tool_status_service,
)


class ToolRequest(BaseModel):
    name: str
    description: str | None = None
    type: str = ToolKind.LOCAL
    status: str | None = None
    config: Dict[str, Any] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "search",
                    "type": "REMOTE",
                    "config": {"transport": {"type": "http", "url": "http://localhost:9000"}},
                }
            ]
        }
    }


class ToolUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    type: str | None = None
    status: str | None = None
    config: Dict[str, Any] | None = None


router = APIRouter(prefix="/api/mcp", tags=["tools"])


def tool_to_dict(tool: ToolDefinition) -> dict:
    return {
        "id": tool.id,
        "name": tool.name,
        "description": tool.description or "",
        "type": tool.kind,
        "status": tool.status,
        "config": tool.config or {},
        "created_at": tool.created_at.isoformat() if tool.created_at else None,
        "updated_at": tool.updated_at.isoformat() if tool.updated_at else None,
    }


def _check_kind(kind: str | None) -> None:
    if kind is not None and kind not in VALID_KINDS:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_TOOL_TYPE", "message": f"Unknown tool type: {kind}"},
        )


def _check_status(status: str | None) -> None:
    if status is not None and status not in VALID_STATUSES:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_STATUS", "message": f"Unknown status: {status}"},
        )


def _duplicate_name(db: Session, name: str) -> HTTPException:
    db.rollback()
    return HTTPException(
        status_code=409,
        detail={"code": "TOOL_NAME_TAKEN", "message": f"A tool named {name} already exists"},
    )


def _outcome_response(outcome: InvocationOutcome) -> JSONResponse:
    status_code = 200
    if not outcome.success and outcome.error_code == "TOOL_NOT_FOUND" and outcome.tool_id is None:
        status_code = 404
    return JSONResponse(status_code=status_code, content=jsonable_encoder(outcome.to_dict()))


@router.get("/servers")
def list_tools(
    type: str | None = Query(None, description="LOCAL or REMOTE"),
    status: str | None = Query(None, description="ENABLED or DISABLED"),
    keyword: str | None = Query(None, description="Name search"),
    db: Session = Depends(get_db),
) -> dict:
    """List tool definitions."""
    tools = list_tools_service(db, kind=type, status=status, keyword=keyword)
    return {"success": True, "data": [tool_to_dict(t) for t in tools], "total": len(tools)}


@router.post("")
def save_tool(
    request: ToolRequest,
    db: Session = Depends(get_db),
    runtime: ToolRuntime = Depends(get_runtime),
) -> dict:
    """Create a tool definition."""
    _check_kind(request.type)
    _check_status(request.status)
    try:
        tool = save_tool_service(
            db,
            runtime.endpoints,
            name=request.name,
            kind=request.type,
            status=request.status,
            description=request.description,
            config=request.config,
        )
    except IntegrityError:
        raise _duplicate_name(db, request.name)
    return {"success": True, "message": "Saved", "data": tool_to_dict(tool)}


@router.delete("/batch")
def delete_tools(
    ids: str = Query(..., description="Comma separated tool ids"),
    db: Session = Depends(get_db),
    runtime: ToolRuntime = Depends(get_runtime),
) -> dict:
    """Delete several tool definitions."""
    try:
        id_list = [int(part) for part in ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_IDS", "message": "ids must be a comma separated list of integers"},
        )
    deleted = delete_tools_service(db, runtime.endpoints, id_list)
    if not deleted:
        return {"success": False, "message": "Nothing was deleted", "count": 0}
    return {"success": True, "message": "Deleted", "count": deleted}


@router.get("/tools/info/{tool_id}")
def tool_info(
    tool_id: int,
    db: Session = Depends(get_db),
    runtime: ToolRuntime = Depends(get_runtime),
) -> dict:
    """Definition, registration state and parameter specs of a tool."""
    tool = get_tool(db, tool_id)
    if tool is None:
        raise HTTPException(status_code=404, detail={"code": "TOOL_NOT_FOUND", "message": "Tool not found"})

    info = tool_to_dict(tool)
    info["registered"] = False
    if tool.kind == ToolKind.REMOTE:
        endpoint = runtime.endpoints.get(tool.id)
        if endpoint is not None:
            info["registered"] = True
            info["endpoint"] = {
                "transport": endpoint.transport,
                "url": endpoint.url,
                "remote_name": endpoint.remote_name,
            }
    else:
        handle = runtime.local_registry.lookup(tool.name)
        if handle is not None:
            info["registered"] = True
            info["parameters"] = handle.describe()
    return {"success": True, "tool": info}


@router.post("/tools/test/{tool_id}")
def test_tool(
    tool_id: int,
    params: Optional[Dict[str, Any]] = Body(default=None),
    runtime: ToolRuntime = Depends(get_runtime),
):
    """Invoke a tool by id and report the outcome."""
    return _outcome_response(runtime.dispatcher.invoke_by_id(tool_id, params))


@router.post("/tools/invoke/{tool_name}")
def invoke_tool(
    tool_name: str,
    params: Optional[Dict[str, Any]] = Body(default=None),
    runtime: ToolRuntime = Depends(get_runtime),
):
    """Invoke a tool by name."""
    return _outcome_response(runtime.dispatcher.invoke(tool_name, params))


@router.get("/{tool_id}")
def get_tool_by_id(tool_id: int, db: Session = Depends(get_db)) -> dict:
    tool = get_tool(db, tool_id)
    if tool is None:
        raise HTTPException(status_code=404, detail={"code": "TOOL_NOT_FOUND", "message": "Tool not found"})
    return {"success": True, "data": tool_to_dict(tool)}


@router.put("/{tool_id}")
def update_tool(
    tool_id: int,
    request: ToolUpdateRequest,
    db: Session = Depends(get_db),
    runtime: ToolRuntime = Depends(get_runtime),
) -> dict:
    """Update a tool definition."""
    _check_kind(request.type)
    _check_status(request.status)
    try:
        tool = update_tool_service(
            db,
            runtime.endpoints,
            tool_id,
            name=request.name,
            description=request.description,
            kind=request.type,
            status=request.status,
            config=request.config,
        )
    except IntegrityError:
        raise _duplicate_name(db, request.name or "")
    if tool is None:
        raise HTTPException(status_code=404, detail={"code": "TOOL_NOT_FOUND", "message": "Tool not found"})
    return {"success": True, "message": "Updated", "data": tool_to_dict(tool)}


@router.delete("/{tool_id}")
def delete_tool(
    tool_id: int,
    db: Session = Depends(get_db),
    runtime: ToolRuntime = Depends(get_runtime),
) -> dict:
    if not delete_tool_service(db, runtime.endpoints, tool_id):
        return {"success": False, "message": "Tool not found or not deleted"}
    return {"success": True, "message": "Deleted"}


@router.put("/{tool_id}/status")
def update_status(
    tool_id: int,
    status: str = Query(..., description="ENABLED or DISABLED"),
    db: Session = Depends(get_db),
    runtime: ToolRuntime = Depends(get_runtime),
) -> dict:
    _check_status(status)
    if not update_tool_status_service(db, runtime.endpoints, tool_id, status):
        return {"success": False, "message": "Status update failed"}
    return {"success": True, "message": "Status updated"}
