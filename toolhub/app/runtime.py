"""The process-wide tool runtime.

One ``ToolRuntime`` owns the local registry, the remote endpoint table and
every component that reads them. It is built once at startup and handed to
the routers through ``app.state.runtime``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import httpx
from sqlalchemy.orm import sessionmaker

from toolhub.app.config.settings import settings
from toolhub.app.db.session import get_session_factory
from toolhub.app.domain.market.loader import MarketToolLoader
from toolhub.app.domain.market.sync import MarketSyncEngine
from toolhub.app.domain.tools.binder import ArgumentBinder
from toolhub.app.domain.tools.dispatcher import ToolInvocationDispatcher
from toolhub.app.domain.tools.endpoints import RemoteEndpointTable
from toolhub.app.domain.tools.registry import LocalToolRegistry, ToolSource
from toolhub.app.domain.tools.remote_client import RemoteToolClient
from toolhub.app.services.tool_service import SqlDefinitionStore, register_enabled_definitions
from toolhub.app.tools.builtin import builtin_tools

logger = logging.getLogger("toolhub")


@dataclass
class ToolRuntime:
    session_factory: sessionmaker
    local_registry: LocalToolRegistry
    endpoints: RemoteEndpointTable
    binder: ArgumentBinder
    remote_client: RemoteToolClient
    definitions: SqlDefinitionStore
    dispatcher: ToolInvocationDispatcher
    sync_engine: MarketSyncEngine
    loader: MarketToolLoader
    started: bool = False

    def start(self) -> None:
        """Scan local tools (unless lazy) and bring enabled remote tools live."""
        if self.started:
            return
        if settings.local_tools_eager:
            self.local_registry.initialize()
        register_enabled_definitions(self.session_factory, self.endpoints)
        self.started = True

    def close(self) -> None:
        self.remote_client.close()
        self.sync_engine.close()


def build_runtime(
    session_factory: sessionmaker | None = None,
    remote_http: httpx.Client | None = None,
    market_http: httpx.Client | None = None,
    sources: Iterable[ToolSource] | None = None,
) -> ToolRuntime:
    session_factory = session_factory or get_session_factory()
    registry = LocalToolRegistry(sources if sources is not None else [builtin_tools])
    endpoints = RemoteEndpointTable()
    binder = ArgumentBinder()
    remote_client = RemoteToolClient(client=remote_http)
    definitions = SqlDefinitionStore(session_factory)
    dispatcher = ToolInvocationDispatcher(
        definitions=definitions,
        registry=registry,
        endpoints=endpoints,
        client=remote_client,
        binder=binder,
    )
    return ToolRuntime(
        session_factory=session_factory,
        local_registry=registry,
        endpoints=endpoints,
        binder=binder,
        remote_client=remote_client,
        definitions=definitions,
        dispatcher=dispatcher,
        sync_engine=MarketSyncEngine(session_factory, client=market_http),
        loader=MarketToolLoader(session_factory, endpoints),
    )
