from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from keepmeontrack.api.deps import get_tracker
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.schemas.goal import (
    HabitCreate, HabitRecord, HabitResponse, HabitUpdate, ReorderRequest,
    ToggleRequest, ToggleResponse,
)
from keepmeontrack.services.tracker import GoalTracker

router = APIRouter(prefix="/habits", tags=["habits"])


@router.get("", response_model=List[HabitResponse])
async def list_habits(goal_id: Optional[str] = None, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.list_habits(utcnow().date(), goal_id=goal_id)


@router.post("", response_model=HabitRecord, status_code=201)
async def create_habit(req: HabitCreate, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.create_habit(req, utcnow())


@router.post("/reorder", response_model=List[HabitRecord])
async def reorder_habits(req: ReorderRequest, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.reorder_habits(req.habit_ids)


@router.put("/{habit_id}", response_model=HabitRecord)
async def update_habit(habit_id: str, req: HabitUpdate, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.update_habit(habit_id, req, utcnow())


@router.delete("/{habit_id}", status_code=204)
async def delete_habit(habit_id: str, tracker: GoalTracker = Depends(get_tracker)):
    await tracker.delete_habit(habit_id, utcnow())
    return Response(status_code=204)


@router.post("/{habit_id}/toggle", response_model=ToggleResponse)
async def toggle_completion(habit_id: str, req: ToggleRequest, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.toggle_habit_completion(habit_id, req.day, utcnow())
