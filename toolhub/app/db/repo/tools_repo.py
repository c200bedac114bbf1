from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from toolhub.app.db.models import ToolDefinition, ToolKind, ToolStatus


def create_tool(
    session: Session,
    name: str,
    kind: str = ToolKind.LOCAL,
    status: str = ToolStatus.ENABLED,
    description: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ToolDefinition:
    """Create a new tool definition."""
    tool = ToolDefinition(
        name=name,
        kind=kind,
        status=status,
        description=description,
        config=config,
    )
    session.add(tool)
    session.flush()
    return tool


def get_tool(session: Session, tool_id: int) -> Optional[ToolDefinition]:
    """Get a tool definition by id."""
    return session.get(ToolDefinition, tool_id)


def get_tool_by_name(session: Session, name: str) -> Optional[ToolDefinition]:
    """Get a tool definition by its unique name."""
    return session.query(ToolDefinition).filter(ToolDefinition.name == name).first()


def list_tools(
    session: Session,
    kind: str | None = None,
    status: str | None = None,
    q: str | None = None,
) -> List[ToolDefinition]:
    """List tool definitions, newest first, optionally filtered by kind, status or name search."""
    query = session.query(ToolDefinition)
    if kind:
        query = query.filter(ToolDefinition.kind == kind)
    if status:
        query = query.filter(ToolDefinition.status == status)
    if q:
        query = query.filter(ToolDefinition.name.ilike(f"%{q}%"))
    return query.order_by(ToolDefinition.created_at.desc(), ToolDefinition.id.desc()).all()


def update_tool_status(session: Session, tool_id: int, status: str) -> bool:
    """Update the status of a tool. Returns False if the tool does not exist."""
    updated = session.query(ToolDefinition).filter(ToolDefinition.id == tool_id).update({"status": status})
    return updated > 0


def delete_tool(session: Session, tool_id: int) -> bool:
    """Delete a tool definition."""
    deleted = session.query(ToolDefinition).filter(ToolDefinition.id == tool_id).delete()
    return deleted > 0

