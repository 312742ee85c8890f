"""Tests for HTTP-based adapters."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from nutriscan.adapters.news_client import HttpxNewsClient
from nutriscan.adapters.openai_analysis_client import OpenAIAnalysisClient


class _FakeResponses:
    def __init__(self, output_text: str, **extra: object) -> None:
        self.output_text = output_text
        self.extra = extra
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return SimpleNamespace(output_text=self.output_text, **self.extra)


class _FakeOpenAI:
    def __init__(
        self, output_text: str = json.dumps({"name": "Tea"}), **extra: object
    ) -> None:
        self.responses = _FakeResponses(output_text, **extra)


def _analyze(client: OpenAIAnalysisClient, effort: str | None = "high") -> object:
    return asyncio.run(
        client.analyze(
            model="gpt-5.2",
            reasoning_effort=effort,
            store=False,
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            schema={"type": "object"},
            prompt="Estimate nutrition",
        )
    )


def test_openai_analysis_client_parses_output() -> None:
    fake = _FakeOpenAI()
    client = OpenAIAnalysisClient(client=fake)

    result = _analyze(client)

    assert result == {"name": "Tea"}
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["reasoning"] == {"effort": "high"}
    assert payload["text"]["format"]["strict"] is True


def test_openai_analysis_client_omits_reasoning_when_unset() -> None:
    fake = _FakeOpenAI()

    _analyze(OpenAIAnalysisClient(client=fake), effort=None)

    assert fake.responses.last_payload is not None
    assert "reasoning" not in fake.responses.last_payload


def test_openai_analysis_client_rejects_empty_output() -> None:
    client = OpenAIAnalysisClient(client=_FakeOpenAI(output_text=""))

    with pytest.raises(RuntimeError):
        _analyze(client)


def test_openai_analysis_client_rejects_incomplete_response() -> None:
    fake = _FakeOpenAI(
        output_text='{"name": "Te',
        status="incomplete",
        incomplete_details=SimpleNamespace(reason="max_output_tokens"),
    )

    with pytest.raises(RuntimeError, match="max_output_tokens"):
        _analyze(OpenAIAnalysisClient(client=fake))


def test_openai_analysis_client_rejects_non_json_output() -> None:
    client = OpenAIAnalysisClient(client=_FakeOpenAI(output_text="not json"))

    with pytest.raises(RuntimeError, match="not valid JSON"):
        _analyze(client)


def test_openai_analysis_client_rejects_non_object_output() -> None:
    client = OpenAIAnalysisClient(client=_FakeOpenAI(output_text="[1, 2]"))

    with pytest.raises(RuntimeError, match="not a JSON object"):
        _analyze(client)


def test_news_client_fetches_feed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/news"
        return httpx.Response(200, json={"data": [{"title": "t", "url": "u"}]})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxNewsClient(
        feed_url="https://news.test/api/news", http_client=async_client
    )

    payload = asyncio.run(client.fetch_articles())

    assert payload == {"data": [{"title": "t", "url": "u"}]}


def test_news_client_raises_on_error_status() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxNewsClient(
        feed_url="https://news.test/api/news", http_client=async_client
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.fetch_articles())


def test_news_client_rejects_non_json_body() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, text="<html>maintenance</html>")
    )
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxNewsClient(
        feed_url="https://news.test/api/news", http_client=async_client
    )

    with pytest.raises(httpx.DecodingError):
        asyncio.run(client.fetch_articles())
