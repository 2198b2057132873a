from typing import List

from fastapi import APIRouter, Depends, Response

from keepmeontrack.api.deps import get_tracker
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.schemas.goal import GoalCreate, GoalRecord, GoalUpdate, ProgressResponse
from keepmeontrack.schemas.suggestion import AppliedSuggestions, ApplySuggestionsRequest
from keepmeontrack.services.tracker import GoalTracker

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=List[GoalRecord])
async def list_goals(tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.list_goals(utcnow())


@router.post("", response_model=GoalRecord, status_code=201)
async def create_goal(req: GoalCreate, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.create_goal(req)


@router.get("/{goal_id}", response_model=GoalRecord)
async def get_goal(goal_id: str, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.get_goal(goal_id, utcnow())


@router.put("/{goal_id}", response_model=GoalRecord)
async def update_goal(goal_id: str, req: GoalUpdate, tracker: GoalTracker = Depends(get_tracker)):
    await tracker.update_goal(goal_id, req)
    return await tracker.get_goal(goal_id, utcnow())


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(goal_id: str, tracker: GoalTracker = Depends(get_tracker)):
    await tracker.delete_goal(goal_id)
    return Response(status_code=204)


@router.post("/{goal_id}/progress", response_model=ProgressResponse)
async def refresh_progress(goal_id: str, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.refresh_goal_progress(goal_id, utcnow())


@router.post("/{goal_id}/suggestions/apply", response_model=AppliedSuggestions, status_code=201)
async def apply_suggestions(goal_id: str, req: ApplySuggestionsRequest, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.apply_suggestions(
        goal_id, req.breakdown, req.habit_indexes, req.milestone_indexes, utcnow()
    )
