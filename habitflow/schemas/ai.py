# habitflow/schemas/ai.py
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import Field

from .common import CamelModel

Timeframe = Literal["week", "month", "quarter", "year"]
AnalysisType = Literal["suggestions", "insights", "correlations", "predictions"]
InsightType = Literal["pattern", "suggestion", "correlation", "prediction"]


class HabitSuggestion(CamelModel):
    id: str
    name: str
    description: str = ""
    category: str = "Other"
    color: str = "#3B82F6"
    reasoning: str = ""
    confidence: float = 0.7
    tags: List[str] = Field(default_factory=list)


class HabitInsight(CamelModel):
    id: str
    type: str = "pattern"
    title: str
    description: str = ""
    confidence: float = 0.7
    data: Optional[Any] = None
    created_at: datetime


class SuggestionRequest(CamelModel):
    max_suggestions: int = Field(5, ge=1, le=10)


class InsightRequest(CamelModel):
    timeframe: Timeframe = "month"
    analysis_type: AnalysisType = "insights"


class MotivationRequest(CamelModel):
    habit_id: Optional[str] = None
    habit_name: Optional[str] = Field(None, min_length=1, max_length=255)
    streak: Optional[int] = Field(None, ge=0)
    completion_rate: Optional[float] = Field(None, ge=0, le=100)


class MotivationResponse(CamelModel):
    message: str
    habit_name: str
    streak: int
    completion_rate: float


class AIStatusResponse(CamelModel):
    enabled: bool
    current_model: Optional[str] = None
    models: List[str]
    failures: dict
