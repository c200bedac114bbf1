from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from toolhub.app.api.deps import get_runtime
from toolhub.app.db.models import Market, MarketCatalogEntry
from toolhub.app.db.repo.markets_repo import get_market
from toolhub.app.db.session import get_db
from toolhub.app.runtime import ToolRuntime
from toolhub.app.services.market_service import (
    delete_market_service,
    list_market_tools_service,
    list_markets_service,
    save_market_service,
    update_market_service,
    update_market_status_service,
)
from toolhub.app.services.tool_service import VALID_STATUSES


class MarketRequest(BaseModel):
    name: str
    url: str
    description: str | None = None
    auth_config: Dict[str, Any] | None = None
    status: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Public market",
                    "url": "https://market.example.com/api/servers",
                    "auth_config": {"apiKey": "..."},
                }
            ]
        }
    }


class MarketUpdateRequest(BaseModel):
    name: str | None = None
    url: str | None = None
    description: str | None = None
    auth_config: Dict[str, Any] | None = None
    status: str | None = None


class BatchLoadRequest(BaseModel):
    ids: List[int] = Field(default_factory=list)


router = APIRouter(prefix="/api/mcp/markets", tags=["markets"])


def market_to_dict(market: Market) -> dict:
    # auth_config is write-only
    return {
        "id": market.id,
        "name": market.name,
        "url": market.url,
        "description": market.description or "",
        "status": market.status,
        "has_auth": bool(market.auth_config),
        "created_at": market.created_at.isoformat() if market.created_at else None,
        "updated_at": market.updated_at.isoformat() if market.updated_at else None,
    }


def entry_to_dict(entry: MarketCatalogEntry) -> dict:
    return {
        "id": entry.id,
        "market_id": entry.market_id,
        "tool_name": entry.name,
        "tool_description": entry.description,
        "tool_version": entry.version,
        "tool_metadata": entry.entry_metadata or {},
        "is_loaded": entry.loaded,
        "local_tool_id": entry.linked_tool_id,
        "local_tool_name": entry.linked_tool_name,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
        "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
    }


def _check_status(status: str | None) -> None:
    if status is not None and status not in VALID_STATUSES:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_STATUS", "message": f"Unknown status: {status}"},
        )


def _market_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "MARKET_NOT_FOUND", "message": "Market not found"})


@router.get("")
def list_markets(
    status: str | None = Query(None),
    keyword: str | None = Query(None, description="Name search"),
    db: Session = Depends(get_db),
) -> dict:
    markets = list_markets_service(db, status=status, keyword=keyword)
    return {"success": True, "data": [market_to_dict(m) for m in markets], "total": len(markets)}


@router.post("")
def save_market(request: MarketRequest, db: Session = Depends(get_db)) -> dict:
    """Register a market listing endpoint."""
    _check_status(request.status)
    market = save_market_service(
        db,
        name=request.name,
        url=request.url,
        description=request.description,
        auth_config=request.auth_config,
        status=request.status,
    )
    return {"success": True, "message": "Saved", "data": market_to_dict(market)}


@router.post("/tools/batch-load")
def batch_load(request: BatchLoadRequest, runtime: ToolRuntime = Depends(get_runtime)) -> dict:
    """Load several catalog entries. Entries already loaded are skipped."""
    if not request.ids:
        raise HTTPException(
            status_code=400,
            detail={"code": "NO_TOOLS_SELECTED", "message": "Select at least one tool to load"},
        )
    count = runtime.loader.load_batch(request.ids)
    if count == 0:
        return {"success": False, "message": "No tools were loaded", "count": 0}
    return {"success": True, "message": f"Loaded {count} tools", "count": count}


@router.post("/tools/{entry_id}/load")
def load_tool(entry_id: int, runtime: ToolRuntime = Depends(get_runtime)) -> dict:
    """Turn one catalog entry into a REMOTE tool."""
    if runtime.loader.load(entry_id):
        return {"success": True, "message": "Tool loaded"}
    return {"success": False, "message": "Tool was not loaded"}


@router.get("/{market_id}")
def get_market_by_id(market_id: int, db: Session = Depends(get_db)) -> dict:
    market = get_market(db, market_id)
    if market is None:
        raise _market_not_found()
    return {"success": True, "data": market_to_dict(market)}


@router.get("/{market_id}/tools")
def list_market_tools(
    market_id: int,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> dict:
    """Page through a market's catalog, newest first."""
    result = list_market_tools_service(db, market_id, page=page, size=size)
    return {
        "success": True,
        "data": [entry_to_dict(e) for e in result.items],
        "total": result.total,
        "page": result.page,
        "size": result.size,
        "pages": result.pages,
    }


@router.put("/{market_id}")
def update_market(market_id: int, request: MarketUpdateRequest, db: Session = Depends(get_db)) -> dict:
    _check_status(request.status)
    market = update_market_service(db, market_id, **request.model_dump(exclude_unset=True))
    if market is None:
        raise _market_not_found()
    return {"success": True, "message": "Updated", "data": market_to_dict(market)}


@router.delete("/{market_id}")
def delete_market(market_id: int, db: Session = Depends(get_db)) -> dict:
    if not delete_market_service(db, market_id):
        return {"success": False, "message": "Market not found or not deleted"}
    return {"success": True, "message": "Deleted"}


@router.put("/{market_id}/status")
def update_status(
    market_id: int,
    status: str = Query(..., description="ENABLED or DISABLED"),
    db: Session = Depends(get_db),
) -> dict:
    _check_status(status)
    if not update_market_status_service(db, market_id, status):
        return {"success": False, "message": "Status update failed"}
    return {"success": True, "message": "Status updated"}


@router.post("/{market_id}/refresh")
def refresh_market(market_id: int, runtime: ToolRuntime = Depends(get_runtime)) -> dict:
    """Pull the market's listing into its catalog."""
    if runtime.sync_engine.refresh(market_id):
        return {"success": True, "message": "Refreshed"}
    return {"success": False, "message": "Refresh failed, check the market URL and network"}
