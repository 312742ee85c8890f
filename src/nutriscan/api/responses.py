"""Response envelope helpers."""

from fastapi.encoders import jsonable_encoder


def envelope(message: str, data: object) -> dict[str, object]:
    """Wrap a payload in the standard success body."""
    return {"message": message, "data": jsonable_encoder(data)}
