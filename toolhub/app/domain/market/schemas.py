"""Wire models for the marketplace listing API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class MarketCategory(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Any = None
    name: str | None = None
    label: str | None = None


class MarketServerInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None
    icon: str | None = None
    title: str | None = None
    description: str | None = None
    author: str | None = None
    github_url: str | None = None
    orderBy: Any = None
    score: Any = None
    category: MarketCategory | None = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def display_name(self) -> str:
        return self.title or self.name or ""

    def to_metadata(self) -> dict[str, Any]:
        """Full upstream record with the known fields normalized."""
        metadata = self.model_dump(mode="json")
        metadata.update(
            {
                "id": self.id,
                "name": self.name or "",
                "title": self.title or "",
                "description": self.description or "",
                "author": self.author or "",
                "icon": self.icon or "",
                "github_url": self.github_url or "",
                "orderBy": self.orderBy if self.orderBy is not None else 0,
                "score": self.score if self.score is not None else "",
            }
        )
        if self.category is None:
            metadata.pop("category", None)
        return metadata


class MarketServerListResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: int | None = None
    servers: list[MarketServerInfo] | None = None
