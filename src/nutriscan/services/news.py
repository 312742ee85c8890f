"""Health news feed with caching."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from nutriscan.domain.news import NewsArticle
from nutriscan.services.cache import Cache

_logger = logging.getLogger(__name__)

_CACHE_KEY = "news:latest"


class NewsClient(Protocol):
    """Interface for the external news feed."""

    async def fetch_articles(self) -> object:
        """Return the raw decoded feed payload."""


@dataclass
class NewsService:
    """Fetch, normalize and cache news articles."""

    client: NewsClient
    cache: Cache
    ttl_seconds: int = 900
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def latest(self, limit: int = 10) -> list[NewsArticle]:
        """Return the most recent articles from the feed."""
        cached = self.cache.get(_CACHE_KEY)
        if isinstance(cached, list):
            return cached[:limit]

        payload = await self._call_with_retry(self.client.fetch_articles)
        articles = _parse_articles(payload)
        self.cache.set(_CACHE_KEY, articles, ttl_seconds=self.ttl_seconds)
        return articles[:limit]

    async def _call_with_retry(self, func: Callable[[], Awaitable[object]]) -> object:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "News fetch failed (attempt %s/%s): %s",
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def _parse_articles(payload: object) -> list[NewsArticle]:
    """Normalize the feed payload, skipping entries without title or link."""
    if isinstance(payload, dict):
        payload = payload.get("data") or payload.get("articles") or []
    if not isinstance(payload, list):
        return []
    articles: list[NewsArticle] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            articles.append(
                NewsArticle(
                    title=item.get("title") or "",
                    url=item.get("url") or item.get("link") or "",
                    summary=item.get("summary") or item.get("description"),
                    image_url=item.get("image_url")
                    or item.get("image")
                    or item.get("thumbnail"),
                    published_at=item.get("published_at") or item.get("date"),
                )
            )
        except ValidationError:
            _logger.warning("Skipping malformed news item: %r", item)
            continue
        if not articles[-1].title or not articles[-1].url:
            articles.pop()
    return articles
