"""Weight entry schemas."""

from pydantic import BaseModel, Field

from schemas.day import DayKey


class WeightEntryCreate(BaseModel):
    """Weight entry without an identity; the store assigns one."""
    date: DayKey = Field(..., description="Day the weight was measured")
    weight: float = Field(..., gt=0, description="Body weight")


class WeightEntry(WeightEntryCreate):
    id: str = Field(..., description="Store-assigned identifier")


class WeightTrendPoint(BaseModel):
    date: DayKey
    weight: float
