"""In-memory table of live remote endpoints, keyed by tool definition id."""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from toolhub.app.core.errors import RegistrationFailure
from toolhub.app.db.models import ToolDefinition, ToolKind

logger = logging.getLogger("toolhub")

SUPPORTED_TRANSPORTS = {"http", "sse"}
KNOWN_TRANSPORTS = SUPPORTED_TRANSPORTS | {"websocket"}


@dataclass(frozen=True)
class RemoteEndpoint:
    tool_id: int
    tool_name: str
    url: str
    transport: str = "http"
    headers: dict[str, str] = field(default_factory=dict)
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def remote_name(self) -> str:
        """Name of the tool on the remote server."""
        return str(self.config.get("remote_name") or self.tool_name)


def _load_config(raw: Any) -> dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise ValueError("config must be a JSON object")
    return raw


def _stringify_headers(headers: Any) -> dict[str, str]:
    if not headers:
        return {}
    if not isinstance(headers, dict):
        raise ValueError("transport.headers must be an object")
    return {str(k): "" if v is None else str(v) for k, v in headers.items()}


def endpoint_from_definition(tool: ToolDefinition) -> RemoteEndpoint:
    """Build the endpoint descriptor of a REMOTE definition.

    The transport normally lives under ``config.transport``. Market metadata
    may instead carry a top-level ``url`` with an optional ``type``.
    """
    try:
        config = _load_config(tool.config)
    except ValueError as exc:
        raise RegistrationFailure(f"Invalid config for remote tool {tool.name}: {exc}") from exc

    transport = config.get("transport")
    if isinstance(transport, dict):
        transport_type = transport.get("type") or "http"
        url = transport.get("url")
        headers = transport.get("headers")
    elif config.get("url"):
        transport_type = transport if isinstance(transport, str) else config.get("type") or "http"
        url = config.get("url")
        headers = config.get("headers")
    else:
        raise RegistrationFailure(f"Remote tool config is missing transport information: {tool.name}")

    if not url:
        raise RegistrationFailure(f"Remote tool config is missing a URL: {tool.name}")

    try:
        header_map = _stringify_headers(headers)
    except ValueError as exc:
        raise RegistrationFailure(f"Invalid headers for remote tool {tool.name}: {exc}") from exc

    return RemoteEndpoint(
        tool_id=tool.id,
        tool_name=tool.name,
        url=str(url),
        transport=str(transport_type).lower(),
        headers=header_map,
        config=config,
    )


class RemoteEndpointTable:
    def __init__(self) -> None:
        self._endpoints: dict[int, RemoteEndpoint] = {}
        self._lock = threading.Lock()

    def register(self, tool: ToolDefinition) -> RemoteEndpoint:
        """Bind a REMOTE definition live, replacing any previous binding for it."""
        if tool.kind != ToolKind.REMOTE:
            raise RegistrationFailure(f"Only remote tools have endpoints: {tool.name}")
        if tool.id is None:
            raise RegistrationFailure(f"Tool must be persisted before registration: {tool.name}")
        endpoint = endpoint_from_definition(tool)
        with self._lock:
            self._endpoints[tool.id] = endpoint
        logger.info(
            "Registered remote tool: %s (%s -> %s)", tool.name, endpoint.transport, endpoint.url
        )
        return endpoint

    def unregister(self, tool_id: int) -> bool:
        with self._lock:
            removed = self._endpoints.pop(tool_id, None)
        if removed is None:
            logger.warning("Tool is not registered, cannot unregister: %s", tool_id)
            return False
        logger.info("Unregistered remote tool: %s (%s)", removed.tool_name, tool_id)
        return True

    def get(self, tool_id: int) -> RemoteEndpoint | None:
        return self._endpoints.get(tool_id)

    def is_registered(self, tool_id: int) -> bool:
        return tool_id in self._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)
