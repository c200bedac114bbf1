from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from toolhub.app.db.models import MarketCatalogEntry


@dataclass
class CatalogPage:
    items: List[MarketCatalogEntry]
    total: int
    page: int
    size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


def get_entry(session: Session, entry_id: int) -> Optional[MarketCatalogEntry]:
    """Get a catalog entry by id."""
    return session.get(MarketCatalogEntry, entry_id)


def get_entry_by_external_id(
    session: Session, market_id: int, external_id: str
) -> Optional[MarketCatalogEntry]:
    """Get the catalog entry for one upstream server of a market."""
    return session.query(MarketCatalogEntry).filter(
        MarketCatalogEntry.market_id == market_id,
        MarketCatalogEntry.external_id == external_id,
    ).first()


def list_entries(
    session: Session, market_id: int, loaded: bool | None = None
) -> List[MarketCatalogEntry]:
    """List catalog entries of a market, optionally filtered by loaded state."""
    query = session.query(MarketCatalogEntry).filter(MarketCatalogEntry.market_id == market_id)
    if loaded is not None:
        query = query.filter(MarketCatalogEntry.loaded.is_(loaded))
    return query.order_by(MarketCatalogEntry.id.asc()).all()


def list_entries_page(session: Session, market_id: int, page: int = 1, size: int = 20) -> CatalogPage:
    """List catalog entries of a market one page at a time (pages start at 1)."""
    page = max(page, 1)
    query = session.query(MarketCatalogEntry).filter(MarketCatalogEntry.market_id == market_id)
    total = query.count()
    items = (
        query.order_by(MarketCatalogEntry.created_at.desc(), MarketCatalogEntry.id.desc())
        .offset((page - 1) * size)
        .limit(size)
        .all()
    )
    return CatalogPage(items=items, total=total, page=page, size=size)


def upsert_entry(
    session: Session,
    market_id: int,
    external_id: str,
    name: str,
    description: str,
    metadata: Dict[str, Any],
) -> tuple[MarketCatalogEntry, bool]:
    """Insert or refresh a catalog entry. Returns (entry, created).

    Refreshing only touches the display fields and metadata; the loaded flag
    and the linked tool are owned locally and left as they are.
    """
    entry = get_entry_by_external_id(session, market_id, external_id)
    if entry is not None:
        entry.name = name
        entry.description = description
        entry.entry_metadata = metadata
        session.flush()
        return entry, False

    entry = MarketCatalogEntry(
        market_id=market_id,
        external_id=external_id,
        name=name,
        description=description,
        entry_metadata=metadata,
        loaded=False,
    )
    session.add(entry)
    session.flush()
    return entry, True


def mark_loaded(session: Session, entry_id: int, tool_id: int, tool_name: str) -> bool:
    """Mark a catalog entry as loaded and link it to its tool definition."""
    updated = session.query(MarketCatalogEntry).filter(MarketCatalogEntry.id == entry_id).update(
        {"loaded": True, "linked_tool_id": tool_id, "linked_tool_name": tool_name}
    )
    return updated > 0


def delete_entries_for_market(session: Session, market_id: int) -> int:
    """Delete every catalog entry of a market."""
    return (
        session.query(MarketCatalogEntry)
        .filter(MarketCatalogEntry.market_id == market_id)
        .delete(synchronize_session=False)
    )


def unlink_tool(session: Session, tool_id: int) -> int:
    """Clear the loaded state of entries linked to a deleted tool definition."""
    return (
        session.query(MarketCatalogEntry)
        .filter(MarketCatalogEntry.linked_tool_id == tool_id)
        .update(
            {"loaded": False, "linked_tool_id": None, "linked_tool_name": None},
            synchronize_session=False,
        )
    )
