
from fastapi import APIRouter, Depends, Request

from keepmeontrack.api.deps import get_session_context, limiter
from keepmeontrack.core.config import settings
from keepmeontrack.core.session import SessionContext
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.schemas.suggestion import GoalBreakdown, SuggestionRequest
from keepmeontrack.services import ai_service as ai

router = APIRouter(tags=["suggestions"])


@router.post("/suggestions", response_model=GoalBreakdown)
@limiter.limit("10/minute")
async def suggest_breakdown(
    request: Request,
    req: SuggestionRequest,
    ctx: SessionContext = Depends(get_session_context),
):
    return await ai.suggest_for_session(
        ctx, ai.ai_service, req.goal_title, req.goal_description,
        utcnow(), settings.GUEST_AI_QUERY_LIMIT,
    )
