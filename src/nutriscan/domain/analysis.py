"""Models for nutrition analysis results."""

from pydantic import BaseModel, Field


class NutritionEstimate(BaseModel):
    """Structured output of a food photo analysis."""

    name: str
    calories: float = Field(ge=0.0)
    sugar: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    carbohydrate: float = Field(ge=0.0)
    grade: str | None = None
    tags: list[int] = Field(default_factory=list)
    type: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    notes: str | None = None
