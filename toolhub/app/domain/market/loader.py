"""Turn market catalog entries into live REMOTE tools."""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from toolhub.app.core.errors import ToolError
from toolhub.app.db.models import ToolKind, ToolStatus
from toolhub.app.db.repo.catalog_repo import get_entry, mark_loaded
from toolhub.app.db.repo.tools_repo import create_tool
from toolhub.app.domain.tools.endpoints import RemoteEndpointTable

logger = logging.getLogger("toolhub")


class MarketToolLoader:
    def __init__(self, session_factory: sessionmaker, endpoints: RemoteEndpointTable):
        self.session_factory = session_factory
        self.endpoints = endpoints

    def load(self, entry_id: int) -> bool:
        """Load one catalog entry. Missing or already loaded entries are a no-op (False)."""
        try:
            with self.session_factory() as session:
                entry = get_entry(session, entry_id)
                if entry is None or entry.loaded:
                    return False

                tool = create_tool(
                    session,
                    name=entry.name,
                    description=entry.description,
                    kind=ToolKind.REMOTE,
                    status=ToolStatus.ENABLED,
                    config=entry.entry_metadata,
                )
                session.commit()

                # The definition stays persisted even if it cannot go live yet.
                try:
                    self.endpoints.register(tool)
                    logger.info("Loaded market tool registered: %s", tool.name)
                except ToolError as exc:
                    logger.warning("Loaded market tool could not be registered: %s (%s)", tool.name, exc)

                mark_loaded(session, entry_id, tool.id, tool.name)
                session.commit()
                return True
        except SQLAlchemyError:
            logger.exception("Failed to load market tool %s", entry_id)
            return False

    def load_batch(self, entry_ids: Iterable[int] | None) -> int:
        """Load several entries, continuing past failures. Returns how many were loaded."""
        loaded = 0
        for entry_id in entry_ids or ():
            try:
                if self.load(entry_id):
                    loaded += 1
            except Exception:
                logger.exception("Batch load failed for market tool %s", entry_id)
        return loaded
