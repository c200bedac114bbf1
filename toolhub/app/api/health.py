import time

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from toolhub.app.api.deps import get_runtime
from toolhub.app.db.session import get_db
from toolhub.app.runtime import ToolRuntime

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health")
def health():
    """Constant-time health check without DB verification."""
    return {"status": "healthy"}


@router.get("/health/deep")
def health_deep(db: Session = Depends(get_db), runtime: ToolRuntime = Depends(get_runtime)):
    """Deep health check with DB connectivity and runtime state."""
    start_time = time.time()
    try:
        db.execute(text("SELECT 1")).scalar()
        latency_ms = (time.time() - start_time) * 1000
    except Exception:
        raise HTTPException(
            status_code=503,
            detail={"code": "DEEP_HEALTH_FAILED", "message": "Deep health check failed"},
        )
    return {
        "status": "healthy",
        "db": {
            "ok": True,
            "dialect": db.bind.dialect.name,
            "latency_ms": round(latency_ms, 2),
        },
        "tools": {
            "local_initialized": runtime.local_registry.initialized,
            "remote_registered": len(runtime.endpoints),
        },
    }


@router.get("/version")
async def version():
    return {"version": VERSION}
