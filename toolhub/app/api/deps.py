from __future__ import annotations

from fastapi import HTTPException, Request

from toolhub.app.runtime import ToolRuntime


def get_runtime(request: Request) -> ToolRuntime:
    """The runtime owned by the running app."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=503,
            detail={"code": "RUNTIME_UNAVAILABLE", "message": "Tool runtime is not initialized"},
        )
    return runtime
