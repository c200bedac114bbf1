from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""


class ToolKind:
    LOCAL = "LOCAL"
    REMOTE = "REMOTE"


class ToolStatus:
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class ToolDefinition(Base):
    __tablename__ = "tool_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default=ToolKind.LOCAL)  # LOCAL, REMOTE
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ToolStatus.ENABLED)
    config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now(), onupdate=func.now()
    )

    @property
    def is_enabled(self) -> bool:
        return self.status == ToolStatus.ENABLED


class Market(Base):
    __tablename__ = "markets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    auth_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True, default=None)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ToolStatus.ENABLED)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now(), onupdate=func.now()
    )


class MarketCatalogEntry(Base):
    __tablename__ = "market_catalog_entries"
    __table_args__ = (
        UniqueConstraint("market_id", "external_id", name="uq_catalog_market_external"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[int] = mapped_column(Integer, ForeignKey("markets.id"), nullable=False)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    version: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default=None)
    # "metadata" is reserved on declarative classes
    entry_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True, default=None
    )
    loaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    linked_tool_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)
    linked_tool_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=func.now(), onupdate=func.now()
    )


# Indexes for performance
Index("idx_tool_definitions_kind", ToolDefinition.kind)
Index("idx_tool_definitions_status", ToolDefinition.status)
Index("idx_markets_status", Market.status)
Index("idx_catalog_market_id", MarketCatalogEntry.market_id)
Index("idx_catalog_loaded", MarketCatalogEntry.market_id, MarketCatalogEntry.loaded)
