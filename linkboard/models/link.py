from __future__ import annotations

from pydantic import BaseModel, Field


class Link(BaseModel):
    """A user-curated dashboard link, keyed by URL."""

    url: str = Field(min_length=1)
    title: str = ""


class LinkRef(BaseModel):
    url: str = Field(min_length=1)
