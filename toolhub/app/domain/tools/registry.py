"""Local tool registry.

Local tools are declared explicitly: each source returns ``LocalTool``
entries pairing a stable name with a handler and its ordered ``ParamSpec``
list. The registry turns them into ``ToolHandle`` objects exactly once, no
matter how many threads race to trigger the first scan.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

logger = logging.getLogger("toolhub")

ToolSource = Callable[[], Iterable["LocalTool"]]


@dataclass(frozen=True)
class ParamSpec:
    name: str
    type: Any = str
    required: bool = True
    description: str = ""


@dataclass
class LocalTool:
    """Declaration of an in-process tool."""

    handler: Callable[..., Any]
    name: str = ""
    description: str = ""
    params: list[ParamSpec] = field(default_factory=list)


@dataclass(frozen=True)
class ToolHandle:
    """Invocation-ready binding of a name to a handler."""

    name: str
    handler: Callable[..., Any]
    params: tuple[ParamSpec, ...]
    description: str = ""

    def describe(self) -> list[dict[str, Any]]:
        return [
            {
                "name": p.name,
                "type": getattr(p.type, "__name__", str(p.type)),
                "required": p.required,
                "description": p.description,
            }
            for p in self.params
        ]


def local_tool(
    handler: Callable[..., Any],
    name: str = "",
    description: str = "",
    params: Iterable[ParamSpec] = (),
) -> LocalTool:
    """Build a ``LocalTool`` entry for a registration list."""
    return LocalTool(handler=handler, name=name, description=description, params=list(params))


def _build_handle(tool: LocalTool) -> ToolHandle:
    if not callable(tool.handler):
        raise TypeError(f"handler is not callable: {tool.handler!r}")
    for spec in tool.params:
        if not isinstance(spec, ParamSpec):
            raise TypeError(f"invalid parameter spec: {spec!r}")
    name = (tool.name or "").strip() or getattr(tool.handler, "__name__", "")
    if not name:
        raise ValueError("tool has no name and its handler has no __name__")
    description = tool.description or (tool.handler.__doc__ or "").strip()
    return ToolHandle(name=name, handler=tool.handler, params=tuple(tool.params), description=description)


class LocalToolRegistry:
    def __init__(self, sources: Iterable[ToolSource] = ()) -> None:
        self._sources = list(sources)
        self._handles: dict[str, ToolHandle] = {}
        self._initialized = False
        self._init_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._scan_count = 0

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def scan_count(self) -> int:
        """How many times the sources have been scanned."""
        return self._scan_count

    def initialize(self, force: bool = False) -> None:
        """Scan every source once. A second call is a no-op unless forced."""
        if self._initialized and not force:
            return
        with self._init_lock:
            if self._initialized and not force:
                return
            handles = self._scan()
            with self._write_lock:
                self._handles = handles
            self._initialized = True
            logger.info("Local tool scan finished, %d tools found", len(handles))

    def _scan(self) -> dict[str, ToolHandle]:
        self._scan_count += 1
        handles: dict[str, ToolHandle] = {}
        for source in self._sources:
            try:
                candidates = list(source())
            except Exception:
                logger.exception("Local tool source failed: %r", source)
                continue
            for candidate in candidates:
                try:
                    handle = _build_handle(candidate)
                except Exception as exc:
                    logger.warning("Skipping local tool %r: %s", candidate, exc)
                    continue
                if handle.name in handles:
                    logger.debug("Local tool %s redefined, last registration wins", handle.name)
                handles[handle.name] = handle
        return handles

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    def lookup(self, name: str) -> ToolHandle | None:
        self._ensure_initialized()
        return self._handles.get(name)

    def has(self, name: str) -> bool:
        return self.lookup(name) is not None

    def names(self) -> set[str]:
        self._ensure_initialized()
        return set(self._handles)

    def register(self, tool: LocalTool) -> ToolHandle:
        """Add or replace a single handle after the initial scan."""
        self._ensure_initialized()
        handle = _build_handle(tool)
        with self._write_lock:
            self._handles[handle.name] = handle
        return handle

    def unregister(self, name: str) -> bool:
        self._ensure_initialized()
        with self._write_lock:
            return self._handles.pop(name, None) is not None
