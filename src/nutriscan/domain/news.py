"""News feed models."""

from datetime import datetime

from pydantic import BaseModel


class NewsArticle(BaseModel):
    """A single article from the news feed."""

    title: str
    url: str
    summary: str | None = None
    image_url: str | None = None
    published_at: datetime | None = None
