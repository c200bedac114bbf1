from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from toolhub.app.db.models import Market, ToolStatus
from toolhub.app.db.repo.catalog_repo import (
    CatalogPage,
    delete_entries_for_market,
    list_entries_page,
)
from toolhub.app.db.repo.markets_repo import (
    create_market,
    delete_market,
    get_market,
    list_markets,
    update_market_status,
)


def save_market_service(
    db: Session,
    name: str,
    url: str,
    description: Optional[str] = None,
    auth_config: Optional[Dict[str, Any]] = None,
    status: Optional[str] = None,
) -> Market:
    market = create_market(
        db,
        name=name,
        url=url,
        description=description,
        auth_config=auth_config,
        status=status or ToolStatus.ENABLED,
    )
    db.commit()
    return market


def update_market_service(db: Session, market_id: int, **fields: Any) -> Optional[Market]:
    market = get_market(db, market_id)
    if market is None:
        return None
    for key in ("name", "url", "description", "auth_config", "status"):
        if key in fields and fields[key] is not None:
            setattr(market, key, fields[key])
    db.commit()
    return market


def list_markets_service(
    db: Session, status: str | None = None, keyword: str | None = None
) -> List[Market]:
    return list_markets(db, status=status or None, q=keyword or None)


def delete_market_service(db: Session, market_id: int) -> bool:
    """Delete a market and its catalog. Loaded tool definitions are kept."""
    if get_market(db, market_id) is None:
        return False
    delete_entries_for_market(db, market_id)
    deleted = delete_market(db, market_id)
    db.commit()
    return deleted


def update_market_status_service(db: Session, market_id: int, status: str) -> bool:
    if not update_market_status(db, market_id, status):
        return False
    db.commit()
    return True


def list_market_tools_service(db: Session, market_id: int, page: int = 1, size: int = 20) -> CatalogPage:
    return list_entries_page(db, market_id, page=page, size=size)
