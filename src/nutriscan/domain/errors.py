"""Error taxonomy for the scan and save flows.

Every failure raised by the services is a ``NutriScanError`` subclass. The
``kind`` attribute is the stable identifier callers branch on; ``step`` and
``food_id`` carry enough context to resume a partially completed save.
"""


class NutriScanError(Exception):
    """Base class for recoverable, request-scoped failures."""

    kind = "Error"

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        food_id: int | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.food_id = food_id
        self.details = details or {}

    def to_dict(self) -> dict[str, object]:
        """Return a serializable view of the error."""
        payload: dict[str, object] = {"kind": self.kind, "message": self.message}
        if self.step is not None:
            payload["step"] = self.step
        if self.food_id is not None:
            payload["food_id"] = self.food_id
        if self.details:
            payload["details"] = self.details
        return payload


class QuotaExceeded(NutriScanError):
    """The user has no scans left for the current day."""

    kind = "QuotaExceeded"


class AnalysisFailed(NutriScanError):
    """The analysis capability failed or returned an unusable payload."""

    kind = "AnalysisFailed"


class PersistenceFailed(NutriScanError):
    """A database write or read failed."""

    kind = "PersistenceFailed"


class ImageUploadFailed(NutriScanError):
    """Uploading the image to blob storage failed; the draft is kept."""

    kind = "ImageUploadFailed"


class LinkFailed(NutriScanError):
    """The uploaded image could not be attached to the draft record."""

    kind = "LinkFailed"


class NotFound(NutriScanError):
    """An unknown user or food was referenced."""

    kind = "NotFound"


class ValidationFailed(NutriScanError):
    """Input was malformed."""

    kind = "ValidationFailed"
