from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from toolhub.app.core.errors import ToolError
from toolhub.app.db.models import ToolDefinition, ToolKind, ToolStatus
from toolhub.app.db.repo.catalog_repo import unlink_tool
from toolhub.app.db.repo.tools_repo import (
    create_tool,
    delete_tool,
    get_tool,
    get_tool_by_name,
    list_tools,
    update_tool_status,
)
from toolhub.app.domain.tools.endpoints import RemoteEndpointTable

logger = logging.getLogger("toolhub")

VALID_KINDS = {ToolKind.LOCAL, ToolKind.REMOTE}
VALID_STATUSES = {ToolStatus.ENABLED, ToolStatus.DISABLED}


class SqlDefinitionStore:
    """Definition lookups for the dispatcher, one short-lived session per read."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_by_name(self, name: str) -> Optional[ToolDefinition]:
        with self.session_factory() as session:
            return get_tool_by_name(session, name)

    def get_by_id(self, tool_id: int) -> Optional[ToolDefinition]:
        with self.session_factory() as session:
            return get_tool(session, tool_id)


def _sync_endpoint(endpoints: RemoteEndpointTable, tool: ToolDefinition) -> None:
    """Make the endpoint table agree with a definition that was just written."""
    if tool.kind == ToolKind.REMOTE and tool.is_enabled:
        try:
            endpoints.register(tool)
        except ToolError as exc:
            logger.warning("Remote tool saved but not registered: %s (%s)", tool.name, exc)
            if endpoints.is_registered(tool.id):
                endpoints.unregister(tool.id)
    elif endpoints.is_registered(tool.id):
        endpoints.unregister(tool.id)


def save_tool_service(
    db: Session,
    endpoints: RemoteEndpointTable,
    name: str,
    kind: str = ToolKind.LOCAL,
    status: Optional[str] = None,
    description: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ToolDefinition:
    """Create a tool definition. Enabled REMOTE definitions go live right away."""
    tool = create_tool(
        db,
        name=name,
        kind=kind,
        status=status or ToolStatus.ENABLED,
        description=description,
        config=config,
    )
    db.commit()
    _sync_endpoint(endpoints, tool)
    return tool


def update_tool_service(
    db: Session,
    endpoints: RemoteEndpointTable,
    tool_id: int,
    **fields: Any,
) -> Optional[ToolDefinition]:
    """Update the given fields of a definition and re-bind its endpoint."""
    tool = get_tool(db, tool_id)
    if tool is None:
        return None
    for key in ("name", "description", "kind", "status", "config"):
        if key in fields and fields[key] is not None:
            setattr(tool, key, fields[key])
    db.commit()
    _sync_endpoint(endpoints, tool)
    return tool


def list_tools_service(
    db: Session,
    kind: str | None = None,
    status: str | None = None,
    keyword: str | None = None,
) -> List[ToolDefinition]:
    return list_tools(db, kind=kind or None, status=status or None, q=keyword or None)


def delete_tool_service(db: Session, endpoints: RemoteEndpointTable, tool_id: int) -> bool:
    """Delete a definition together with its live endpoint."""
    if get_tool(db, tool_id) is None:
        return False
    unlink_tool(db, tool_id)
    deleted = delete_tool(db, tool_id)
    db.commit()
    if endpoints.is_registered(tool_id):
        endpoints.unregister(tool_id)
    return deleted


def delete_tools_service(db: Session, endpoints: RemoteEndpointTable, tool_ids: List[int]) -> int:
    deleted = 0
    for tool_id in tool_ids:
        if delete_tool_service(db, endpoints, tool_id):
            deleted += 1
    return deleted


def update_tool_status_service(
    db: Session, endpoints: RemoteEndpointTable, tool_id: int, status: str
) -> bool:
    """Enable or disable a definition.

    Enabling a REMOTE tool that has no live endpoint registers it; disabling
    removes the endpoint.
    """
    if not update_tool_status(db, tool_id, status):
        return False
    db.commit()
    tool = get_tool(db, tool_id)
    db.refresh(tool)
    if tool.kind == ToolKind.REMOTE and tool.is_enabled and endpoints.is_registered(tool_id):
        return True
    _sync_endpoint(endpoints, tool)
    return True


def register_enabled_definitions(session_factory: sessionmaker, endpoints: RemoteEndpointTable) -> int:
    """Bind every enabled REMOTE definition at startup. Returns how many went live."""
    try:
        with session_factory() as session:
            tools = list_tools(session, kind=ToolKind.REMOTE, status=ToolStatus.ENABLED)
    except SQLAlchemyError:
        logger.exception("Could not read remote tool definitions")
        return 0

    registered = 0
    for tool in tools:
        try:
            endpoints.register(tool)
            registered += 1
        except ToolError as exc:
            logger.warning("Skipping remote tool %s: %s", tool.name, exc)
    logger.info("Registered %d of %d enabled remote tools", registered, len(tools))
    return registered
