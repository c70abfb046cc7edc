# habitflow/schemas/habit.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class HabitCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)
    is_active: bool = True


class HabitUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    is_active: Optional[bool] = None

    model_config = {**CamelModel.model_config, "extra": "forbid"}


class HabitBulkCreate(CamelModel):
    habits: List[HabitCreate] = Field(..., min_length=1)


class HabitResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    category: str
    color: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HabitStatsBlock(CamelModel):
    total_entries: int
    completed_entries: int
    completion_rate: float


class HabitWithStatsResponse(HabitResponse):
    stats: HabitStatsBlock

    @classmethod
    def from_stats(cls, item) -> "HabitWithStatsResponse":
        habit = HabitResponse.model_validate(item.habit)
        return cls(
            **habit.model_dump(),
            stats=HabitStatsBlock(
                total_entries=item.total_entries,
                completed_entries=item.completed_entries,
                completion_rate=item.completion_rate,
            ),
        )


class CategoryResponse(CamelModel):
    category: str
    count: int


class BulkCreateError(CamelModel):
    habit: str
    error: str
