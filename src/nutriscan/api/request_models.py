"""Pydantic models for request bodies."""

from pydantic import BaseModel


class RecordMealRequest(BaseModel):
    """Body of a request recording that the user ate a catalog food."""

    food_id: int
    food_rate: int | None = None
