from __future__ import annotations

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from toolhub.app.api.health import VERSION
from toolhub.app.api.health import router as health_router
from toolhub.app.api.markets import router as markets_router
from toolhub.app.api.tools import router as tools_router
from toolhub.app.config.settings import settings
from toolhub.app.core.logging import request_id_var, setup_logging
from toolhub.app.runtime import ToolRuntime, build_runtime

setup_logging(level=settings.log_level, json_output=settings.log_json, log_file=settings.log_file or None)
logger = logging.getLogger("toolhub")


def _request_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "query": request.url.query,
        "client_ip": request.client.host if request.client else None,
    }


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_var.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        route = request.scope.get("route")
        logger.info(
            "Request completed",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "data": {
                    "method": request.method,
                    "route": getattr(route, "path", request.url.path),
                    "status": response.status_code,
                    "latency_ms": round((time.time() - start_time) * 1000, 2),
                },
            },
        )
        return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    request_id = getattr(request.state, "request_id", "unknown")
    detail = exc.detail if isinstance(exc.detail, dict) else {"code": "HTTP_ERROR", "message": str(exc.detail)}
    context = _request_context(request)
    logger.warning(
        "HTTPException",
        extra={
            "request_id": request_id,
            "data": {
                "status_code": exc.status_code,
                "error_code": detail.get("code"),
                "error_message": detail.get("message"),
                **context,
            },
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "code": detail.get("code", "HTTP_ERROR"),
            "message": detail.get("message", "Request failed"),
            "request_id": request_id,
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, "request_id", "unknown")
    context = _request_context(request)
    logger.warning(
        "RequestValidationError",
        extra={"request_id": request_id, "data": {"error_detail": exc.errors(), **context}},
    )
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "code": "VALIDATION_ERROR",
            "message": "Invalid request",
            "detail": json.loads(json.dumps(exc.errors(), default=str)),
            "request_id": request_id,
        },
    )


async def global_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    context = _request_context(request)
    logger.error("Unhandled exception", extra={"request_id": request_id, "data": context}, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "request_id": request_id,
        },
    )


def create_app(runtime: ToolRuntime | None = None) -> FastAPI:
    """Build the HTTP app around a tool runtime.

    Without a runtime one is built from settings at startup and closed at
    shutdown; a runtime passed in stays owned by the caller.
    """
    app = FastAPI(title="toolhub", version=VERSION)
    app.state.runtime = runtime
    owns_runtime = runtime is None

    @app.on_event("startup")
    def startup_event():
        """Build the runtime and bring tools live."""
        if app.state.runtime is None:
            app.state.runtime = build_runtime()
        app.state.runtime.start()

    @app.on_event("shutdown")
    def shutdown_event():
        if owns_runtime and app.state.runtime is not None:
            app.state.runtime.close()

    app.include_router(health_router)
    # Market routes first: /api/mcp/{tool_id} would otherwise shadow /api/mcp/markets
    app.include_router(markets_router)
    app.include_router(tools_router)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    return app


app = create_app()
