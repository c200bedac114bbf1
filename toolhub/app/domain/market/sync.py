"""Synchronize a market's catalog from its listing API.

Pages are fetched one after another and each page is committed before the
next request, so a run that stops half-way keeps the pages it already saw.
The loop ends on a short page; a failed request or an unreadable page ends
it early without raising.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from toolhub.app.config.settings import settings
from toolhub.app.db.repo.catalog_repo import upsert_entry
from toolhub.app.db.repo.markets_repo import get_market
from toolhub.app.domain.market.schemas import MarketServerInfo, MarketServerListResponse

logger = logging.getLogger("toolhub")


def auth_headers(auth_config: Any) -> dict[str, str]:
    """Bearer header from a market's auth config, which may be a dict or JSON text."""
    if not auth_config:
        return {}
    if isinstance(auth_config, str):
        try:
            auth_config = json.loads(auth_config)
        except ValueError:
            logger.warning("Ignoring unparseable market auth config")
            return {}
    if isinstance(auth_config, dict) and auth_config.get("apiKey"):
        return {"Authorization": f"Bearer {auth_config['apiKey']}"}
    return {}


class MarketSyncEngine:
    def __init__(
        self,
        session_factory: sessionmaker,
        client: httpx.Client | None = None,
        page_size: int | None = None,
        lang: str | None = None,
        timeout_seconds: float | None = None,
    ):
        self.session_factory = session_factory
        self.page_size = page_size or settings.market_page_size
        self.lang = lang or settings.market_lang
        self._client = client or httpx.Client(timeout=timeout_seconds or settings.market_timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def _fetch_page(
        self, url: str, headers: dict[str, str], page: int
    ) -> list[MarketServerInfo] | None:
        params = {
            "tab": "all",
            "search": "",
            "page": page,
            "pageSize": self.page_size,
            "lang": self.lang,
        }
        try:
            response = self._client.get(url, params=params, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Market request failed for page %d of %s: %s", page, url, exc)
            return None
        if not response.is_success:
            logger.warning("Market returned status %d for page %d of %s", response.status_code, page, url)
            return None
        try:
            listing = MarketServerListResponse.model_validate_json(response.text)
        except ValidationError as exc:
            logger.warning("Unreadable market page %d of %s: %s", page, url, exc.error_count())
            return None
        return listing.servers

    def _store_page(self, session: Session, market_id: int, servers: list[MarketServerInfo]) -> int:
        stored = 0
        for server in servers:
            if not server.id:
                continue
            upsert_entry(
                session,
                market_id=market_id,
                external_id=server.id,
                name=server.display_name,
                description=server.description or "",
                metadata=server.to_metadata(),
            )
            stored += 1
        return stored

    def _commit_page(self, market_id: int, servers: list[MarketServerInfo]) -> int:
        try:
            with self.session_factory() as session:
                stored = self._store_page(session, market_id, servers)
                session.commit()
                return stored
        except IntegrityError:
            # A concurrent refresh inserted some of these entries; retry as updates
            logger.info("Catalog entries of market %s changed during refresh, retrying page", market_id)
            with self.session_factory() as session:
                stored = self._store_page(session, market_id, servers)
                session.commit()
                return stored

    def refresh(self, market_id: int) -> bool:
        """Pull every page of a market into the catalog.

        Returns True if at least one page was fetched and committed.
        """
        with self.session_factory() as session:
            market = get_market(session, market_id)
            if market is None:
                logger.warning("Cannot refresh unknown market %s", market_id)
                return False
            url = market.url
            headers = auth_headers(market.auth_config)

        page = 1
        committed_pages = 0
        stored = 0
        while True:
            servers = self._fetch_page(url, headers, page)
            if servers is None:
                break

            try:
                stored += self._commit_page(market_id, servers)
            except Exception:
                logger.exception("Failed to store page %d of market %s", page, market_id)
                break
            committed_pages += 1

            if len(servers) < self.page_size:
                break
            page += 1

        logger.info(
            "Market refresh finished",
            extra={"data": {"market_id": market_id, "pages": committed_pages, "entries": stored}},
        )
        return committed_pages > 0
