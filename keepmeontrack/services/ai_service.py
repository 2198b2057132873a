import httpx
import json
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from keepmeontrack.core.config import settings
from keepmeontrack.core.session import SessionContext
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.domain.quota import can_query_ai, release_ai_query, reserve_ai_query
from keepmeontrack.schemas.suggestion import BreakdownPayload, GoalBreakdown
from keepmeontrack.services.templates import template_breakdown

logger = logging.getLogger("ai_service")

MIN_ITEMS = 3
MAX_ITEMS = 5

# --- PROMPT ---
SYSTEM_PROMPT = """
You are a helpful assistant that breaks down goals into actionable habits and milestones.
Always respond with valid JSON only, no additional text.
"""

USER_PROMPT = """Break down the goal "{title}" {description}into actionable habits and milestones.

Return a JSON object with this exact structure:
{{
  "habits": [
    {{
      "title": "Specific habit name",
      "description": "Clear description of what to do",
      "frequency": "daily" | "weekly" | "monthly",
      "frequency_value": number (how many times per frequency period),
      "estimated_duration": "time estimate like '30 minutes'"
    }}
  ],
  "milestones": [
    {{
      "title": "Milestone name",
      "description": "What this milestone represents",
      "target_date_offset": number (days from goal start date),
      "estimated_completion_time": "time estimate like '4-6 weeks'"
    }}
  ]
}}

Guidelines:
- Create 3-5 habits that are specific, measurable, and actionable
- Create 3-5 milestones that mark significant progress points
- Make habits realistic for daily/weekly practice
- Space milestones appropriately throughout the goal timeline
- Use realistic time estimates
- Focus on building momentum with early wins"""

FALLBACK_MODELS = ["llama-3.1-8b-instant"]


class BreakdownUnavailable(Exception):
    pass


def parse_breakdown(content: str) -> BreakdownPayload:
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.startswith("json"):
            text = text[4:]
    try:
        payload = BreakdownPayload.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as e:
        raise BreakdownUnavailable(f"Malformed breakdown: {e}") from e
    if len(payload.habits) < MIN_ITEMS or len(payload.milestones) < MIN_ITEMS:
        raise BreakdownUnavailable("Breakdown has too few items")
    return BreakdownPayload(
        habits=payload.habits[:MAX_ITEMS],
        milestones=payload.milestones[:MAX_ITEMS],
    )


class AIService:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.model = model or settings.AI_MODEL
        self.url = settings.AI_API_URL
        self.timeout = httpx.Timeout(settings.AI_TIMEOUT_SECONDS, connect=10.0)
        self.transport = transport

    def _get_headers(self):
        return {
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json"
        }

    def _model_chain(self) -> List[str]:
        chain = [self.model]
        for m in FALLBACK_MODELS:
            if m not in chain:
                chain.append(m)
        return chain

    def _payload(self, model: str, goal_title: str, goal_description: Optional[str]) -> dict:
        description = f"({goal_description}) " if goal_description else ""
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT.strip()},
                {"role": "user", "content": USER_PROMPT.format(title=goal_title, description=description)},
            ],
            "temperature": 0.7,
            "max_tokens": 1500,
            "response_format": {"type": "json_object"},
        }

    async def _request_breakdown(self, goal_title: str, goal_description: Optional[str]) -> GoalBreakdown:
        if not self.key:
            raise BreakdownUnavailable("No API key configured")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt_model in self._model_chain():
                response = await client.post(
                    self.url,
                    headers=self._get_headers(),
                    json=self._payload(attempt_model, goal_title, goal_description),
                )
                if response.status_code == 429:
                    logger.warning("Rate limited on %s, trying next model", attempt_model)
                    continue
                if response.status_code != 200:
                    raise BreakdownUnavailable(f"{attempt_model} returned {response.status_code}")

                try:
                    content = response.json()["choices"][0]["message"]["content"]
                except (ValueError, KeyError, IndexError, TypeError) as e:
                    raise BreakdownUnavailable("Unexpected completion shape") from e
                payload = parse_breakdown(content or "")
                return GoalBreakdown(
                    habits=payload.habits,
                    milestones=payload.milestones,
                    source="llm",
                    model=attempt_model,
                    timestamp=utcnow(),
                )

        raise BreakdownUnavailable("All models are rate limited")

    async def generate_breakdown(self, goal_title: str, goal_description: Optional[str] = None,
                                 allow_llm: bool = True) -> GoalBreakdown:
        """Suggested habits and milestones for a goal. Never raises: any
        failure of the model call is answered from the template catalog."""
        if not allow_llm:
            logger.info("AI query not allowed for this session, using templates")
            return template_breakdown(goal_title)
        try:
            return await self._request_breakdown(goal_title, goal_description)
        except (BreakdownUnavailable, httpx.HTTPError) as e:
            logger.warning("AI breakdown failed (%s), using templates", e)
            return template_breakdown(goal_title)


async def suggest_for_session(ctx: SessionContext, service: AIService, goal_title: str,
                              goal_description: Optional[str], now: datetime,
                              guest_limit: int) -> GoalBreakdown:
    guest = ctx.guest
    allow_llm = True
    if guest is not None:
        allow_llm = can_query_ai(guest.quota, now, guest_limit)
        if allow_llm:
            # Claimed before the await so concurrent requests on this session see it
            guest.quota = reserve_ai_query(guest.quota)

    breakdown = await service.generate_breakdown(goal_title, goal_description, allow_llm=allow_llm)

    if guest is not None and allow_llm and breakdown.source != "llm":
        guest.quota = release_ai_query(guest.quota)
    return breakdown


ai_service = AIService()
