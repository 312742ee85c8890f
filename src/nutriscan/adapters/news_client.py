"""HTTP client for the news feed."""

from dataclasses import dataclass

import httpx

from nutriscan.services.news import NewsClient


@dataclass
class HttpxNewsClient(NewsClient):
    """HTTPX-backed news feed client."""

    feed_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, feed_url: str) -> "HttpxNewsClient":
        """Create a news client with a managed httpx session."""
        return cls(feed_url=feed_url, http_client=httpx.AsyncClient())

    async def fetch_articles(self) -> object:
        """Fetch the raw feed payload."""
        response = await self.http_client.get(self.feed_url, timeout=10)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise httpx.DecodingError(
                f"News feed returned a non-JSON body: {exc}", request=response.request
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
