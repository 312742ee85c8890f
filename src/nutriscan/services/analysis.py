"""Food photo analysis: the capability wrapper and the quota-aware orchestrator."""

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID
from weakref import WeakValueDictionary

from pydantic import ValidationError

from nutriscan.domain.analysis import NutritionEstimate
from nutriscan.domain.errors import AnalysisFailed, PersistenceFailed, QuotaExceeded
from nutriscan.services.quota import QuotaTracker, ScanHistoryRepository

_logger = logging.getLogger(__name__)

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "calories": {"type": "number", "minimum": 0},
        "sugar": {"type": "number", "minimum": 0},
        "protein": {"type": "number", "minimum": 0},
        "fat": {"type": "number", "minimum": 0},
        "carbohydrate": {"type": "number", "minimum": 0},
        "grade": {
            "anyOf": [
                {"type": "string", "enum": ["A", "B", "C", "D", "E"]},
                {"type": "null"},
            ]
        },
        "tags": {"type": "array", "items": {"type": "integer"}},
        "type": {"anyOf": [{"type": "string"}, {"type": "null"}]},
        "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
        "notes": {"anyOf": [{"type": "string"}, {"type": "null"}]},
    },
    "required": [
        "name",
        "calories",
        "sugar",
        "protein",
        "fat",
        "carbohydrate",
        "grade",
        "tags",
        "type",
        "confidence",
        "notes",
    ],
    "additionalProperties": False,
}

_PROMPT = (
    "Identify the meal in the image and estimate its nutrition for the whole "
    "visible portion. Return calories in kcal and sugar, protein, fat and "
    "carbohydrate in grams, a nutrition grade from A (best) to E, the ids of "
    "matching food groups, a short food type such as 'main course' or 'drink', "
    "and your confidence (0-1)."
)


class AnalysisClient(Protocol):
    """Interface for the external nutrition analysis model."""

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
        """Return structured nutrition data for the image."""


@dataclass
class AnalysisService:
    """Prepare analysis requests and validate the returned payload."""

    client: AnalysisClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(self, image_bytes: bytes) -> NutritionEstimate:
        """Estimate nutrition for a food photo via the configured client."""
        data_url = _to_data_url(image_bytes)
        raw = await self.client.analyze(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=data_url,
            schema=ANALYSIS_SCHEMA,
            prompt=_PROMPT,
        )
        return NutritionEstimate.model_validate(raw)


@dataclass
class AnalysisOrchestrator:
    """Quota check, analysis call and scan bookkeeping, in that order.

    The quota check is advisory: two concurrent calls for one user can both
    see a free slot. With ``serialize_per_user`` the whole sequence runs under
    a per-user lock so the allowance becomes a hard bound within the process.
    """

    quota_tracker: QuotaTracker
    analysis_service: AnalysisService
    scan_repository: ScanHistoryRepository
    timeout_seconds: float = 60.0
    serialize_per_user: bool = False
    _locks: WeakValueDictionary = field(
        default_factory=WeakValueDictionary, init=False, repr=False
    )

    async def analyze(
        self, user_id: UUID, image_bytes: bytes, now: datetime | None = None
    ) -> NutritionEstimate:
        """Analyze an image for a user, consuming one scan on success."""
        if not self.serialize_per_user:
            return await self._analyze(user_id, image_bytes, now)
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        async with lock:
            return await self._analyze(user_id, image_bytes, now)

    async def _analyze(
        self, user_id: UUID, image_bytes: bytes, now: datetime | None
    ) -> NutritionEstimate:
        now = now or datetime.now(tz=UTC)
        try:
            remaining = self.quota_tracker.remaining(user_id, now)
        except Exception as exc:
            _logger.exception("Quota lookup failed", extra={"user_id": str(user_id)})
            raise PersistenceFailed(
                f"Could not read scan quota: {exc}", step="quota"
            ) from exc
        if remaining <= 0:
            raise QuotaExceeded(
                "Daily scan allowance exhausted",
                step="quota",
                details={"allowance": self.quota_tracker.daily_allowance},
            )

        estimate = await self._call_analysis(image_bytes)

        try:
            self.scan_repository.add_scan(user_id, now)
        except Exception:
            _logger.warning(
                "Scan succeeded but scan history append failed; quota under-counts "
                "by one for user %s",
                user_id,
                exc_info=True,
            )
        return estimate

    async def _call_analysis(self, image_bytes: bytes) -> NutritionEstimate:
        if not image_bytes:
            raise AnalysisFailed("Empty image", step="analysis")
        if _detect_mime_type(image_bytes) is None:
            raise AnalysisFailed(
                "Unsupported image format; send JPEG, PNG or WEBP", step="analysis"
            )
        try:
            return await asyncio.wait_for(
                self.analysis_service.analyze(image_bytes),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            raise AnalysisFailed(
                f"Analysis timed out after {self.timeout_seconds:g}s",
                step="analysis",
            ) from exc
        except ValidationError as exc:
            raise AnalysisFailed(
                "Analysis returned a malformed payload",
                step="analysis",
                details={
                    "errors": exc.errors(
                        include_url=False, include_context=False, include_input=False
                    )
                },
            ) from exc
        except Exception as exc:
            _logger.exception("Analysis call failed")
            raise AnalysisFailed(
                f"{type(exc).__name__}: {exc}", step="analysis"
            ) from exc


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes) or "image/jpeg"
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str | None:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return None
