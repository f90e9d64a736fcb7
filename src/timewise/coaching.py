"""Summaries and client for the AI habit coach.

The prompt builders turn aggregation output into the text the coach reads.
``GeminiCoach`` sends those prompts to the Gemini ``generateContent`` REST
endpoint.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from .aggregation import local_date
from .config import CoachSettings
from .models import Activity, Goal, TargetType

logger = logging.getLogger(__name__)

NO_ACTIVITIES_MESSAGE = "Please log some activities first so I can analyze your day!"
NO_GOALS_SUMMARY = "No specific goals set yet."
NO_RELEVANT_ACTIVITIES = "No recent relevant activities logged yet."
DEFAULT_RECENT_CONTEXT = "No previous history available."
FALLBACK_GOAL_ADVICE = "Focus on small daily improvements."
GOAL_HISTORY_LIMIT = 20

_FENCE_PATTERN = re.compile(r"```(?:json)?")


class CoachingError(Exception):
    """The coach could not be reached or returned an unusable response."""


class WeeklyAnalysis(BaseModel):
    reduce: list[str]
    increase: list[str]

    model_config = ConfigDict(extra="ignore")


def summarize_activities(activities: Iterable[Activity]) -> str:
    return "\n".join(
        f"- {a.name} ({a.category.value}): {a.duration} minutes" for a in activities
    )


def summarize_goals(goals: Sequence[Goal]) -> str:
    if not goals:
        return NO_GOALS_SUMMARY
    lines = []
    for goal in goals:
        target = goal.target_type.value
        if goal.target_category:
            target = f"{target} {goal.target_category.value}"
        lines.append(f"- Goal: {goal.title} ({target})")
    return "\n".join(lines)


def daily_coaching_prompt(
    activities: Sequence[Activity],
    total_minutes: int,
    goals: Sequence[Goal] = (),
    recent_context: str = DEFAULT_RECENT_CONTEXT,
) -> str:
    return f"""You are a highly perceptive time-management coach.

CONTEXT:
- User's Active Goals:
{summarize_goals(goals)}

- Recent History (Comparison Baseline):
{recent_context}

- TODAY'S Log (Total: {total_minutes} mins):
{summarize_activities(activities)}

TASK:
Analyze today's behavior compared to their goals and recent patterns.

Provide exactly 4 sections in Markdown:

1. **Reality Check**: A brief, evaluative summary of how today compares to recent days.
2. **Neglected Areas**: Explicitly identify any Goal categories that got 0 minutes or very little attention today.
3. **The Micro-Shift**: Propose ONE specific, realistic minute-swap for tomorrow. Be specific with numbers.
4. **Action Plan**: 2 short bullet points for tomorrow.

Keep it encouraging but objective."""


def goal_advice_prompt(goal: Goal, activities: Sequence[Activity]) -> str:
    relevant = (
        [a for a in activities if a.category == goal.target_category]
        if goal.target_category
        else list(activities)
    )
    history = "\n".join(
        f"- {a.name} ({a.category.value}): {a.duration} mins on "
        f"{local_date(a.timestamp):%m/%d/%Y}"
        for a in relevant[:GOAL_HISTORY_LIMIT]
    )
    direction = "Increase" if goal.target_type is TargetType.MORE else "Decrease"
    scope = f" on {goal.target_category.value}" if goal.target_category else ""
    return f"""The user has set a new goal: "{goal.title}".
Description: "{goal.description or 'No description provided'}".
Target: {direction} time spent{scope}.

Here is a snapshot of their recent relevant activities:
{history or NO_RELEVANT_ACTIVITIES}

Based on this, provide 3 short, personalized, highly actionable steps they can take starting today to achieve this goal.
Keep the advice punchy and motivating. Do not use generic advice."""


def weekly_analysis_prompt(activities: Sequence[Activity], total_minutes: int) -> str:
    return f"""Analyze this weekly activity log (Total: {total_minutes} mins).

Activities:
{summarize_activities(activities)}

Output a valid JSON object with exactly two arrays: "reduce" and "increase".
- "reduce": List 2-3 specific activities or habits to cut down.
- "increase": List 2-3 specific activities or categories to prioritize.

Example format:
{{
  "reduce": ["Late night scrolling", "Excessive gaming"],
  "increase": ["Morning study sessions", "Exercise"]
}}"""


def parse_weekly_analysis(text: Optional[str]) -> WeeklyAnalysis:
    """Parse the coach's JSON reply, tolerating markdown code fences."""
    if not text or not text.strip():
        raise CoachingError("The coach returned an empty weekly analysis.")
    cleaned = _FENCE_PATTERN.sub("", text).strip()
    try:
        return WeeklyAnalysis.model_validate_json(cleaned)
    except ValidationError as exc:
        raise CoachingError("The coach returned a malformed weekly analysis.") from exc


class GeminiCoach:
    """Thin client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        settings: CoachSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    async def daily_coaching(
        self,
        activities: Sequence[Activity],
        total_minutes: int,
        goals: Sequence[Goal] = (),
        recent_context: str = DEFAULT_RECENT_CONTEXT,
    ) -> str:
        if not activities:
            return NO_ACTIVITIES_MESSAGE
        prompt = daily_coaching_prompt(activities, total_minutes, goals, recent_context)
        text = await self._generate(
            prompt,
            system_instruction="You are an expert time management coach. Be concise and precise.",
            temperature=0.7,
        )
        return text or "I couldn't generate a response. Please try again."

    async def goal_advice(self, goal: Goal, activities: Sequence[Activity]) -> str:
        try:
            text = await self._generate(
                goal_advice_prompt(goal, activities),
                system_instruction="You are a strategic habit coach. Provide concrete steps.",
                temperature=0.7,
            )
        except CoachingError:
            logger.exception("Goal advice request failed for goal %s", goal.id)
            return FALLBACK_GOAL_ADVICE
        return text or "Focus on consistency and small steps."

    async def weekly_analysis(
        self, activities: Sequence[Activity], total_minutes: int
    ) -> WeeklyAnalysis:
        text = await self._generate(
            weekly_analysis_prompt(activities, total_minutes),
            system_instruction="You are a data analyst. Output JSON only.",
            temperature=0.5,
            response_mime_type="application/json",
        )
        return parse_weekly_analysis(text)

    async def _generate(
        self,
        prompt: str,
        *,
        system_instruction: str,
        temperature: float,
        response_mime_type: Optional[str] = None,
    ) -> str:
        if not self.settings.api_key:
            raise CoachingError("No API key configured for the coach.")

        generation_config: dict[str, Any] = {"temperature": temperature}
        if response_mime_type:
            generation_config["responseMimeType"] = response_mime_type
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "generationConfig": generation_config,
        }
        url = f"{self.settings.base_url}/models/{self.settings.model}:generateContent"

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.settings.request_timeout.total_seconds(),
            ) as client:
                response = await client.post(
                    url,
                    params={"key": self.settings.api_key},
                    json=payload,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as exc:
            raise CoachingError("Failed to connect to the productivity coach.") from exc
        except json.JSONDecodeError as exc:
            raise CoachingError("The coach returned a non-JSON response.") from exc

        return _extract_text(body)


def _extract_text(body: Any) -> str:
    try:
        parts = body["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
