# habitflow/services/ai.py
"""
Habit suggestions, insights and motivational messages from an
OpenAI-compatible chat completions API (Groq by default).

The service walks the configured model chain: a rate-limited, failing or
unreachable model is skipped and the next one is tried. Any other client error
stops the chain and surfaces as ``AIServiceError``.
"""
import json
import logging
import re
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..analytics.aggregation import percentage, round_half_up
from ..analytics.dates import today as _today
from ..analytics.streaks import current_streak
from ..config import AIConfig
from ..errors import AIServiceError
from ..records import EntryRecord, HabitRecord
from ..schemas.ai import HabitInsight, HabitSuggestion

logger = logging.getLogger(__name__)

TIMEFRAME_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}

SUGGESTION_PROMPT = (
    "You are a habit formation expert. CRITICAL: You MUST respond with ONLY valid JSON - "
    "no explanations, no markdown, no additional text. Return exactly this format: "
    '[{"name":"Exercise","description":"Daily workout","category":"Health","color":"#3B82F6",'
    '"reasoning":"Improves health","confidence":0.8,"tags":["fitness"]}]. '
    "Use NO newlines and NO trailing commas."
)

INSIGHT_PROMPT = (
    "You are a data analyst specializing in habit tracking. CRITICAL: You MUST respond with ONLY "
    "valid JSON - no explanations, no markdown, no additional text. Return exactly this format: "
    '[{"type":"pattern","title":"Insight Title","description":"Brief insight","confidence":0.8}]. '
    'Valid types: "pattern","suggestion","correlation","prediction". '
    "Use NO newlines and NO trailing commas."
)

MOTIVATION_PROMPT = (
    "Generate a short, encouraging message for a habit tracker user. "
    "Be positive and motivating. Keep it under 50 words."
)

FALLBACK_SUGGESTION = {
    "name": "Try Again Later",
    "description": "AI suggestions temporarily unavailable due to formatting issue",
    "category": "System",
    "color": "#6B7280",
    "reasoning": "Please refresh and try again",
    "confidence": 0.1,
    "tags": ["system"],
}

FALLBACK_INSIGHT = {
    "type": "pattern",
    "title": "Data Analysis Unavailable",
    "description": "Unable to generate AI insights at this time. The AI response contained invalid format. "
                   "Please try again.",
    "confidence": 0.1,
}

_CODE_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_MISSING_COMMA_RE = re.compile(r"}\s*{")


def parse_json_array(text: str, fallback: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Best-effort parse of a model reply that should be a JSON array of objects.

    Code fences and any prose around the outermost ``[...]`` are dropped and a
    few common syntax slips are repaired. When nothing usable remains the
    result is ``[fallback]``.
    """
    cleaned = _CODE_FENCE_RE.sub("", text or "").strip()
    start, end = cleaned.find("["), cleaned.rfind("]")
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]

    candidates = [cleaned]
    repaired = _MISSING_COMMA_RE.sub("},{", _TRAILING_COMMA_RE.sub(r"\1", cleaned.replace("\n", " ")))
    if repaired != cleaned:
        candidates.append(repaired)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            parsed = [parsed]
        if isinstance(parsed, list):
            items = [item for item in parsed if isinstance(item, dict)]
            if items:
                return items

    logger.warning("Could not parse model output as a JSON array, using fallback")
    return [dict(fallback)]


def _confidence(value: Any) -> float:
    try:
        return float(value) if value else 0.7
    except (TypeError, ValueError):
        return 0.7


def fallback_motivation(streak: int, completion_rate: float = 0.0) -> str:
    if streak <= 0:
        return "Every journey begins with a single step. You've got this!"
    if streak < 7:
        return f"{streak} days strong! Keep building momentum."
    if streak < 30:
        return f"{streak} days streak! You're forming a solid habit."
    return f"Amazing {streak} day streak! You're an inspiration."


def recent_completion_rate(entries: Sequence[EntryRecord], since: date) -> int:
    recent = [e for e in entries if e.date >= since]
    return round_half_up(percentage(sum(1 for e in recent if e.completed), len(recent)))


def prepare_analysis_data(habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                          timeframe: str = "month", today: Optional[date] = None) -> Dict[str, Any]:
    """Summarise the habits and the entries inside ``timeframe`` for the insight prompt."""
    day = today or _today()
    cutoff = day - timedelta(days=TIMEFRAME_DAYS[timeframe])
    relevant = [e for e in entries if e.date >= cutoff]

    category_counts: Dict[str, int] = {}
    for habit in habits:
        category_counts[habit.category] = category_counts.get(habit.category, 0) + 1

    return {
        "habits": [
            {
                "name": h.name,
                "category": h.category,
                "createdAt": h.created_at.isoformat() if h.created_at else None,
            }
            for h in habits
        ],
        "entriesCount": len(relevant),
        "completionRate": recent_completion_rate(relevant, cutoff),
        "categoryCounts": category_counts,
        "streakData": [
            {
                "habitName": h.name,
                "currentStreak": current_streak(h.id, relevant, today=day),
                "recentEntries": len([e for e in relevant if e.habit_id == h.id][:7]),
            }
            for h in habits
        ],
    }


class HabitAIService:
    def __init__(self, config: AIConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.client = client
        self.current_model: Optional[str] = None
        self._failures: Dict[str, int] = {model: 0 for model in config.models}

    @property
    def enabled(self) -> bool:
        return self.config.is_configured

    def model_stats(self) -> Dict[str, int]:
        return dict(self._failures)

    @asynccontextmanager
    async def _session(self):
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            yield client

    def _record_failure(self, model: str) -> None:
        self._failures[model] = self._failures.get(model, 0) + 1

    async def complete(self, messages: List[Dict[str, str]], temperature: float = 0.7) -> str:
        """Send a chat completion, falling through the model chain on retryable failures."""
        if not self.enabled:
            raise AIServiceError("AI service not configured")

        url = f"{self.config.api_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        last_error = None

        async with self._session() as client:
            for model in self.config.models:
                payload = {
                    "model": model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": self.config.max_tokens,
                }
                try:
                    response = await client.post(url, json=payload, headers=headers)
                except httpx.RequestError as e:
                    logger.warning("Model %s unreachable: %s", model, e)
                    self._record_failure(model)
                    last_error = str(e)
                    continue

                if response.status_code == 429 or response.status_code >= 500:
                    logger.warning("Model %s failed with %s, trying next model", model, response.status_code)
                    self._record_failure(model)
                    last_error = f"{response.status_code} from {model}"
                    continue

                if response.status_code >= 400:
                    self._record_failure(model)
                    raise AIServiceError(self._client_error_message(response))

                try:
                    content = response.json()["choices"][0]["message"]["content"]
                except (KeyError, IndexError, TypeError, ValueError) as e:
                    logger.error("Unexpected completion payload from %s: %s", model, response.text)
                    raise AIServiceError(f"Failed to parse AI response: {e}") from e

                self.current_model = model
                return content or ""

        raise AIServiceError("All AI models failed", details=[last_error] if last_error else None)

    @staticmethod
    def _client_error_message(response: httpx.Response) -> str:
        if response.status_code == 401:
            return "Invalid API key. Please check your Groq API key."
        if response.status_code == 400:
            return "Invalid request. Please check your model selection and try again."
        try:
            message = response.json().get("error", {}).get("message")
        except (ValueError, AttributeError):
            message = None
        return message or f"API request failed: {response.status_code} - {response.text}"

    async def generate_suggestions(self, habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                                   max_suggestions: int = 5, today: Optional[date] = None) -> List[HabitSuggestion]:
        if not self.enabled:
            return []

        day = today or _today()
        habits_list = ", ".join(f"{h.name} ({h.category})" for h in habits) or "None"
        rate = recent_completion_rate(entries, day - timedelta(days=30))
        messages = [
            {"role": "system", "content": SUGGESTION_PROMPT},
            {
                "role": "user",
                "content": f"Current habits: {habits_list}. Recent completion rate: {rate}%. "
                           f"Generate {max_suggestions} complementary habit suggestions. "
                           "Respond with ONLY the JSON array, no additional text.",
            },
        ]
        reply = await self.complete(messages, temperature=0.8)
        stamp = int(datetime.now(timezone.utc).timestamp() * 1000)

        suggestions = []
        for index, item in enumerate(parse_json_array(reply, FALLBACK_SUGGESTION)[:max_suggestions]):
            if not item.get("name"):
                continue
            tags = item.get("tags")
            suggestions.append(HabitSuggestion(
                id=f"ai-suggestion-{stamp}-{index}",
                name=str(item["name"]),
                description=str(item.get("description") or ""),
                category=str(item.get("category") or "Other"),
                color=str(item.get("color") or "#3B82F6"),
                reasoning=str(item.get("reasoning") or ""),
                confidence=_confidence(item.get("confidence")),
                tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
            ))
        return suggestions

    async def generate_insights(self, habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                                timeframe: str = "month", analysis_type: str = "insights",
                                today: Optional[date] = None) -> List[HabitInsight]:
        if not self.enabled:
            return []

        analysis = prepare_analysis_data(habits, entries, timeframe, today=today)
        messages = [
            {"role": "system", "content": INSIGHT_PROMPT},
            {
                "role": "user",
                "content": f"Analyze this habit data: {json.dumps(analysis)}. "
                           f"Generate insights for {analysis_type} over {timeframe}. "
                           "Respond with ONLY the JSON array, no additional text.",
            },
        ]
        reply = await self.complete(messages, temperature=0.6)
        now = datetime.now(timezone.utc)
        stamp = int(now.timestamp() * 1000)

        return [
            HabitInsight(
                id=f"ai-insight-{stamp}-{index}",
                type=str(item.get("type") or "pattern"),
                title=str(item.get("title") or "Insight"),
                description=str(item.get("description") or ""),
                confidence=_confidence(item.get("confidence")),
                data=item.get("data"),
                created_at=now,
            )
            for index, item in enumerate(parse_json_array(reply, FALLBACK_INSIGHT))
        ]

    async def generate_motivation(self, habit_name: str, streak: int, completion_rate: float) -> str:
        if not self.enabled:
            return fallback_motivation(streak, completion_rate)

        messages = [
            {"role": "system", "content": MOTIVATION_PROMPT},
            {
                "role": "user",
                "content": f"Habit: {habit_name}, Current streak: {streak} days, "
                           f"Completion rate: {completion_rate}%. Generate an encouraging message.",
            },
        ]
        try:
            reply = await self.complete(messages, temperature=0.9)
        except AIServiceError as e:
            logger.warning("Motivation request failed, using fallback: %s", e.message)
            return fallback_motivation(streak, completion_rate)
        return reply.strip() or fallback_motivation(streak, completion_rate)

    async def test_connection(self) -> bool:
        messages = [{"role": "user", "content": 'Hello, please respond with "Connection successful"'}]
        try:
            reply = await self.complete(messages, temperature=0.1)
        except AIServiceError as e:
            logger.error("AI connection test failed: %s", e.message)
            return False
        return "connection successful" in reply.lower()
