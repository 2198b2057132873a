import asyncio
import json
from datetime import datetime

import httpx
import pytest

from keepmeontrack.adapters.demo_store import DemoStore
from keepmeontrack.core.session import GuestSessionRegistry, SessionContext, guest_context
from keepmeontrack.services.ai_service import (
    AIService, BreakdownUnavailable, parse_breakdown, suggest_for_session,
)
from keepmeontrack.services.templates import TEMPLATES, match_template_key, template_breakdown

NOW = datetime(2026, 10, 18, 12, 0, 0)


def breakdown_json(habits=3, milestones=3):
    return json.dumps({
        "habits": [
            {"title": f"Habit {i}", "description": "Do it", "frequency": "daily",
             "frequency_value": 1, "estimated_duration": "20 minutes"}
            for i in range(habits)
        ],
        "milestones": [
            {"title": f"Milestone {i}", "description": "Reach it", "target_date_offset": 30 * (i + 1),
             "estimated_completion_time": "4 weeks"}
            for i in range(milestones)
        ],
    })


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def service_with(handler, api_key="test-key"):
    return AIService(api_key=api_key, model="primary-model", transport=httpx.MockTransport(handler))


# --- Templates ---

@pytest.mark.parametrize("title,key", [
    ("Run a Marathon", "run marathon"),
    ("I want to RUN MARATHON in spring", "run marathon"),
    ("Write a book about sailing", "write book"),
    ("Learn a language", "learn language"),
    ("Lose weight before summer", "lose weight"),
    ("Start my business", "start business"),
    ("Knit a scarf", "default"),
    ("", "default"),
])
def test_match_template_key(title, key):
    assert match_template_key(title) == key


def test_template_breakdown_is_tagged_as_template():
    result = template_breakdown("Run a Marathon", now=NOW)
    assert result.source == "template"
    assert result.model is None
    assert result.timestamp == NOW
    assert [h.title for h in result.habits] == [h["title"] for h in TEMPLATES["run marathon"]["habits"]]


def test_every_template_has_enough_items():
    for key, template in TEMPLATES.items():
        assert 3 <= len(template["habits"]) <= 5, key
        assert 3 <= len(template["milestones"]) <= 5, key


# --- Parsing ---

def test_parse_breakdown_truncates_to_five():
    payload = parse_breakdown(breakdown_json(habits=7, milestones=4))
    assert len(payload.habits) == 5
    assert len(payload.milestones) == 4


def test_parse_breakdown_accepts_fenced_json():
    payload = parse_breakdown("```json\n" + breakdown_json() + "\n```")
    assert len(payload.habits) == 3


@pytest.mark.parametrize("content", [
    "not json at all",
    json.dumps({"habits": []}),
    breakdown_json(habits=2),
    json.dumps({"habits": [{"title": "x", "frequency": "hourly"}] * 3,
                "milestones": [{"title": "y"}] * 3}),
])
def test_parse_breakdown_rejects_bad_content(content):
    with pytest.raises(BreakdownUnavailable):
        parse_breakdown(content)


# --- Model calls ---

async def test_successful_call_returns_llm_breakdown():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion(breakdown_json(habits=4, milestones=3)))

    result = await service_with(handler).generate_breakdown("Learn chess", "Reach 1500 elo")

    assert result.source == "llm"
    assert result.model == "primary-model"
    assert len(result.habits) == 4
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "primary-model"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert "Learn chess" in seen["body"]["messages"][1]["content"]
    assert "Reach 1500 elo" in seen["body"]["messages"][1]["content"]


async def test_rate_limit_moves_to_next_model():
    models = []

    def handler(request):
        model = json.loads(request.content)["model"]
        models.append(model)
        if model == "primary-model":
            return httpx.Response(429, json={"error": "rate limited"})
        return httpx.Response(200, json=completion(breakdown_json()))

    result = await service_with(handler).generate_breakdown("Learn chess")

    assert models == ["primary-model", "llama-3.1-8b-instant"]
    assert result.source == "llm"
    assert result.model == "llama-3.1-8b-instant"


async def test_all_models_rate_limited_falls_back():
    result = await service_with(lambda r: httpx.Response(429)).generate_breakdown("Run a Marathon")
    assert result.source == "template"
    assert result.habits[0].title == "Morning Run"


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(200, json=completion("I cannot help with that")),
    httpx.Response(200, json={"unexpected": True}),
    httpx.Response(200, json=completion(breakdown_json(milestones=1))),
])
async def test_failures_fall_back_to_templates(response):
    result = await service_with(lambda r: response).generate_breakdown("Write a book")
    assert result.source == "template"
    assert result.habits[0].title == TEMPLATES["write book"]["habits"][0]["title"]


async def test_transport_error_falls_back():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    result = await service_with(handler).generate_breakdown("Knit a scarf")
    assert result.source == "template"


async def test_missing_key_never_calls_out():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=completion(breakdown_json()))

    result = await service_with(handler, api_key="").generate_breakdown("Knit a scarf")
    assert result.source == "template"
    assert calls == []


# --- Guest allowance ---

async def test_guest_gets_one_model_answer_then_templates():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=completion(breakdown_json()))

    service = service_with(handler)
    ctx = guest_context(GuestSessionRegistry(ttl_minutes=60).create(NOW))

    first = await suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)
    second = await suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)

    assert first.source == "llm"
    assert second.source == "template"
    assert len(calls) == 1
    assert ctx.guest.quota.ai_queries_used == 1


async def test_template_fallback_does_not_use_guest_allowance():
    service = service_with(lambda r: httpx.Response(503))
    ctx = guest_context(GuestSessionRegistry(ttl_minutes=60).create(NOW))

    result = await suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)

    assert result.source == "template"
    assert ctx.guest.quota.ai_queries_used == 0


async def test_registered_users_are_not_limited():
    service = service_with(lambda r: httpx.Response(200, json=completion(breakdown_json())))
    ctx = SessionContext(user_id="user-1", store=DemoStore(seed=False))

    for _ in range(3):
        result = await suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)
        assert result.source == "llm"


async def test_concurrent_guest_requests_share_one_allowance():
    calls = []

    async def handler(request):
        calls.append(request)
        await asyncio.sleep(0.05)
        return httpx.Response(200, json=completion(breakdown_json()))

    service = service_with(handler)
    ctx = guest_context(GuestSessionRegistry(ttl_minutes=60).create(NOW))

    results = await asyncio.gather(*[
        suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)
        for _ in range(3)
    ])

    assert sorted(r.source for r in results) == ["llm", "template", "template"]
    assert len(calls) == 1
    assert ctx.guest.quota.ai_queries_used == 1


async def test_failed_call_hands_the_allowance_back_for_later():
    responses = [httpx.Response(503), httpx.Response(200, json=completion(breakdown_json()))]
    service = service_with(lambda r: responses.pop(0))
    ctx = guest_context(GuestSessionRegistry(ttl_minutes=60).create(NOW))

    first = await suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)
    second = await suggest_for_session(ctx, service, "Learn chess", None, NOW, guest_limit=1)

    assert (first.source, second.source) == ("template", "llm")
    assert ctx.guest.quota.ai_queries_used == 1
