"""JSON-RPC client for remote MCP tool servers.

Requests are posted to ``<base url>/mcp``. Only the ``http`` and ``sse``
transports are dispatchable; ``websocket`` is recognized but rejected before
any network traffic.
"""
from __future__ import annotations

import itertools
import json
import logging
import time
from typing import Any, Mapping

import httpx

from toolhub.app.config.settings import settings
from toolhub.app.core.errors import RemoteProtocolError, RemoteUnavailable, UnsupportedTransport
from toolhub.app.domain.tools.endpoints import KNOWN_TRANSPORTS, SUPPORTED_TRANSPORTS, RemoteEndpoint

logger = logging.getLogger("toolhub")


def mcp_url(base_url: str) -> str:
    """Append the MCP path to a base URL, with exactly one separator."""
    return f"{base_url.rstrip('/')}/mcp"


def extract_result(payload: dict[str, Any]) -> Any:
    """Pull the useful value out of a JSON-RPC result.

    MCP servers wrap output in content blocks; the text of the first block
    is what callers want. Blocks without text (images, resources) come back
    as the whole content list.
    """
    result = payload.get("result")
    if isinstance(result, dict) and "content" in result:
        content = result["content"]
        if isinstance(content, list) and content and isinstance(content[0], dict) and "text" in content[0]:
            return content[0]["text"]
        return content
    return result


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error)


class RemoteToolClient:
    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout_seconds: float | None = None,
        client_name: str | None = None,
        client_version: str | None = None,
        protocol_version: str | None = None,
    ):
        self.timeout_seconds = timeout_seconds or settings.remote_timeout_seconds
        self.client_name = client_name or settings.mcp_client_name
        self.client_version = client_version or settings.mcp_client_version
        self.protocol_version = protocol_version or settings.mcp_protocol_version
        self._client = client or httpx.Client(timeout=self.timeout_seconds)
        self._ids = itertools.count(int(time.time() * 1000))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RemoteToolClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def check_transport(endpoint: RemoteEndpoint) -> None:
        transport = endpoint.transport.lower()
        if transport not in SUPPORTED_TRANSPORTS:
            raise UnsupportedTransport(endpoint.transport, known=transport in KNOWN_TRANSPORTS)

    def _envelope(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

    def _headers(self, endpoint: RemoteEndpoint) -> dict[str, str]:
        headers = dict(endpoint.headers)
        headers["Content-Type"] = "application/json"
        return headers

    def _post(self, endpoint: RemoteEndpoint, body: dict[str, Any]) -> httpx.Response:
        url = mcp_url(endpoint.url)
        content = json.dumps(body, ensure_ascii=False, default=str)
        logger.debug("Calling MCP endpoint %s: %s", url, content)
        return self._client.post(url, content=content.encode("utf-8"), headers=self._headers(endpoint))

    def call(self, endpoint: RemoteEndpoint, tool_name: str, params: Mapping[str, Any] | None) -> Any:
        """Invoke ``tool_name`` on the endpoint and return the extracted result."""
        self.check_transport(endpoint)
        body = self._envelope("tools/call", {"name": tool_name, "arguments": dict(params or {})})
        try:
            response = self._post(endpoint, body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteUnavailable(f"Remote tool request failed: {exc}") from exc

        if not response.is_success:
            raise RemoteUnavailable(
                f"Remote tool call failed with status code {response.status_code}",
                status_code=response.status_code,
            )

        text = response.text
        if not text or not text.strip():
            return None

        try:
            payload = json.loads(text)
        except ValueError:
            logger.warning("Failed to parse MCP response from %s, returning raw body", endpoint.url)
            return text
        if not isinstance(payload, dict):
            logger.warning("MCP response from %s is not an object, returning raw body", endpoint.url)
            return text

        if "error" in payload:
            raise RemoteProtocolError(_error_message(payload["error"]))
        return extract_result(payload)

    def probe(self, endpoint: RemoteEndpoint) -> bool:
        """Reachability check: True iff ``initialize`` answers with a 2xx status."""
        body = self._envelope(
            "initialize",
            {
                "protocolVersion": self.protocol_version,
                "capabilities": {},
                "clientInfo": {"name": self.client_name, "version": self.client_version},
            },
        )
        try:
            response = self._post(endpoint, body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Health check failed for %s: %s", endpoint.tool_name, exc)
            return False
        return response.is_success
