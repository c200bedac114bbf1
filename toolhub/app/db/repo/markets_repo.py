from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from toolhub.app.db.models import Market, ToolStatus


def create_market(
    session: Session,
    name: str,
    url: str,
    description: Optional[str] = None,
    auth_config: Optional[Dict[str, Any]] = None,
    status: str = ToolStatus.ENABLED,
) -> Market:
    """Create a new market."""
    market = Market(
        name=name,
        url=url,
        description=description,
        auth_config=auth_config,
        status=status,
    )
    session.add(market)
    session.flush()
    return market


def get_market(session: Session, market_id: int) -> Optional[Market]:
    """Get a market by id."""
    return session.get(Market, market_id)


def list_markets(session: Session, status: str | None = None, q: str | None = None) -> List[Market]:
    """List markets, newest first, optionally filtered by status or name search."""
    query = session.query(Market)
    if status:
        query = query.filter(Market.status == status)
    if q:
        query = query.filter(Market.name.ilike(f"%{q}%"))
    return query.order_by(Market.created_at.desc(), Market.id.desc()).all()


def update_market_status(session: Session, market_id: int, status: str) -> bool:
    """Update the status of a market."""
    updated = session.query(Market).filter(Market.id == market_id).update({"status": status})
    return updated > 0


def delete_market(session: Session, market_id: int) -> bool:
    """Delete a market."""
    deleted = session.query(Market).filter(Market.id == market_id).delete()
    return deleted > 0
