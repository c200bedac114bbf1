"""Single entry point for invoking a tool by name.

The dispatcher resolves the persisted definition, enforces enablement and
routes LOCAL tools through the registry and binder and REMOTE tools through
the endpoint table and the JSON-RPC client. Every outcome, success or
failure, is returned as an ``InvocationOutcome``; nothing is raised past
``invoke``.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from toolhub.app.config.settings import settings
from toolhub.app.core.errors import (
    RemoteUnavailable,
    ToolDisabled,
    ToolError,
    ToolNotFound,
)
from toolhub.app.db.models import ToolDefinition, ToolKind
from toolhub.app.domain.tools.binder import ArgumentBinder
from toolhub.app.domain.tools.endpoints import RemoteEndpointTable
from toolhub.app.domain.tools.registry import LocalToolRegistry
from toolhub.app.domain.tools.remote_client import RemoteToolClient

logger = logging.getLogger("toolhub")


class DefinitionStore(Protocol):
    def get_by_name(self, name: str) -> ToolDefinition | None:
        ...

    def get_by_id(self, tool_id: int) -> ToolDefinition | None:
        ...


class ToolExecutionError(ToolError):
    """A local handler raised while running."""

    code = "TOOL_EXECUTION_FAILED"


@dataclass
class InvocationOutcome:
    success: bool
    tool_name: str
    duration_ms: float
    tool_id: int | None = None
    request: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error_kind: str | None = None
    error_code: str | None = None
    message: str | None = None
    timestamp: float = field(default_factory=time.time)

    @property
    def result_json(self) -> str | None:
        if not self.success:
            return None
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, ensure_ascii=False, default=str)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "toolId": self.tool_id,
            "toolName": self.tool_name,
            "request": self.request,
            "duration": f"{self.duration_ms:.0f}ms",
            "durationMs": round(self.duration_ms, 2),
            "timestamp": int(self.timestamp * 1000),
        }
        if self.success:
            data["response"] = self.result
            data["responseJson"] = self.result_json
        else:
            data["error"] = self.message
            data["errorType"] = self.error_kind
            data["errorCode"] = self.error_code
        return data


class ToolInvocationDispatcher:
    def __init__(
        self,
        definitions: DefinitionStore,
        registry: LocalToolRegistry,
        endpoints: RemoteEndpointTable,
        client: RemoteToolClient,
        binder: ArgumentBinder | None = None,
        probe_before_invoke: bool | None = None,
    ):
        self.definitions = definitions
        self.registry = registry
        self.endpoints = endpoints
        self.client = client
        self.binder = binder or ArgumentBinder()
        if probe_before_invoke is None:
            probe_before_invoke = settings.remote_probe_before_invoke
        self.probe_before_invoke = probe_before_invoke

    def invoke(self, tool_name: str, params: Mapping[str, Any] | None = None) -> InvocationOutcome:
        return self._run(tool_name, params, lambda: self.definitions.get_by_name(tool_name))

    def invoke_by_id(self, tool_id: int, params: Mapping[str, Any] | None = None) -> InvocationOutcome:
        return self._run(str(tool_id), params, lambda: self.definitions.get_by_id(tool_id))

    def _run(self, label: str, params: Mapping[str, Any] | None, resolve) -> InvocationOutcome:
        request = dict(params or {})
        start = time.perf_counter()
        tool_name = label
        tool_id = None
        kind = None
        try:
            definition = resolve()
            if definition is None:
                raise ToolNotFound(label)
            tool_name, tool_id, kind = definition.name, definition.id, definition.kind
            result = self._dispatch(definition, request)
        except ToolError as exc:
            outcome = self._failure(tool_name, tool_id, request, start, exc.kind, exc.code, exc.message)
        except Exception as exc:
            logger.exception("Tool invocation failed: %s", tool_name)
            outcome = self._failure(
                tool_name, tool_id, request, start, type(exc).__name__, "INTERNAL_ERROR", str(exc)
            )
        else:
            outcome = InvocationOutcome(
                success=True,
                tool_name=tool_name,
                tool_id=tool_id,
                request=request,
                result=result,
                duration_ms=(time.perf_counter() - start) * 1000,
            )

        logger.info(
            "Tool invocation finished",
            extra={
                "data": {
                    "tool": outcome.tool_name,
                    "kind": kind,
                    "success": outcome.success,
                    "error_kind": outcome.error_kind,
                    "duration_ms": round(outcome.duration_ms, 2),
                }
            },
        )
        return outcome

    @staticmethod
    def _failure(tool_name, tool_id, request, start, kind, code, message) -> InvocationOutcome:
        return InvocationOutcome(
            success=False,
            tool_name=tool_name,
            tool_id=tool_id,
            request=request,
            error_kind=kind,
            error_code=code,
            message=message,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    def _dispatch(self, definition: ToolDefinition, params: dict[str, Any]) -> Any:
        if not definition.is_enabled:
            raise ToolDisabled(definition.name)
        if definition.kind == ToolKind.REMOTE:
            return self._invoke_remote(definition, params)
        return self._invoke_local(definition, params)

    def _invoke_local(self, definition: ToolDefinition, params: dict[str, Any]) -> Any:
        handle = self.registry.lookup(definition.name)
        if handle is None:
            raise ToolNotFound(definition.name, reason="not_registered")
        args = self.binder.bind(handle, params)
        logger.debug("Calling local tool %s with %s", handle.name, params)
        try:
            return handle.handler(*args)
        except ToolError:
            raise
        except Exception as exc:
            logger.error("Local tool %s raised", handle.name, exc_info=True)
            raise ToolExecutionError(f"Tool execution failed: {exc}") from exc

    def _invoke_remote(self, definition: ToolDefinition, params: dict[str, Any]) -> Any:
        endpoint = self.endpoints.get(definition.id)
        if endpoint is None:
            raise ToolNotFound(definition.name, reason="endpoint_missing")
        self.client.check_transport(endpoint)
        if self.probe_before_invoke and not self.client.probe(endpoint):
            raise RemoteUnavailable(
                f"Remote tool is unavailable, check its connection settings: {definition.name}"
            )
        return self.client.call(endpoint, endpoint.remote_name, params)
