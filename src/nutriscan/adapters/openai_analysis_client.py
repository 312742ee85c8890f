"""OpenAI Responses API client for nutrition analysis."""

import json
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI

from nutriscan.services.analysis import AnalysisClient

_logger = logging.getLogger(__name__)

SCHEMA_NAME = "nutrition_estimate"


@dataclass
class OpenAIAnalysisClient(AnalysisClient):
    """Analysis client backed by OpenAI Responses API.

    Retries are left to the caller: the SDK's own retries would stretch a
    single analysis past the orchestrator's timeout.
    """

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, timeout: float) -> "OpenAIAnalysisClient":
        """Create an analysis client bounded by ``timeout`` seconds per call."""
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0))

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return the model's nutrition estimate as a decoded JSON object."""
        response = await self.client.responses.create(
            **build_request(
                model=model,
                reasoning_effort=reasoning_effort,
                store=store,
                image_data_url=image_data_url,
                schema=schema,
                prompt=prompt,
            )
        )
        if getattr(response, "status", None) == "incomplete":
            details = getattr(response, "incomplete_details", None)
            reason = getattr(details, "reason", None) or "unknown"
            raise RuntimeError(f"Analysis response incomplete: {reason}")
        return parse_output(getattr(response, "output_text", None))


def build_request(  # noqa: PLR0913
    *,
    model: str,
    reasoning_effort: str | None,
    store: bool,
    image_data_url: str,
    schema: dict[str, object],
    prompt: str,
) -> dict[str, object]:
    """Build a Responses API request with one image and a strict schema."""
    request: dict[str, object] = {
        "model": model,
        "input": [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": prompt},
                    {
                        "type": "input_image",
                        "image_url": image_data_url,
                        "detail": "auto",
                    },
                ],
            }
        ],
        "text": {
            "format": {
                "type": "json_schema",
                "name": SCHEMA_NAME,
                "strict": True,
                "schema": schema,
            }
        },
        "store": store,
    }
    if reasoning_effort:
        request["reasoning"] = {"effort": reasoning_effort}
    return request


def parse_output(output_text: str | None) -> dict[str, object]:
    """Decode the structured output, rejecting refusals and non-objects."""
    if not output_text:
        raise RuntimeError("Analysis model returned no output; it may have refused")
    try:
        payload = json.loads(output_text)
    except json.JSONDecodeError as exc:
        _logger.warning("Unparseable analysis output: %.200s", output_text)
        raise RuntimeError(f"Analysis output is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError("Analysis output is not a JSON object")
    return payload
