from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from keepmeontrack.api.deps import get_tracker
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.schemas.goal import MilestoneCreate, MilestoneRecord, MilestoneUpdate
from keepmeontrack.services.tracker import GoalTracker

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("", response_model=List[MilestoneRecord])
async def list_milestones(goal_id: Optional[str] = None, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.list_milestones(goal_id=goal_id)


@router.post("", response_model=MilestoneRecord, status_code=201)
async def create_milestone(req: MilestoneCreate, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.create_milestone(req, utcnow())


@router.put("/{milestone_id}", response_model=MilestoneRecord)
async def update_milestone(milestone_id: str, req: MilestoneUpdate, tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.update_milestone(milestone_id, req, utcnow())


@router.delete("/{milestone_id}", status_code=204)
async def delete_milestone(milestone_id: str, tracker: GoalTracker = Depends(get_tracker)):
    await tracker.delete_milestone(milestone_id, utcnow())
    return Response(status_code=204)
