from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime


class SuggestedHabit(BaseModel):
    title: str
    description: str = ""
    frequency: Literal["daily", "weekly", "monthly"] = "daily"
    frequency_value: int = Field(1, ge=1)
    estimated_duration: str = ""


class SuggestedMilestone(BaseModel):
    title: str
    description: str = ""
    target_date_offset: int = Field(0, ge=0)  # days from the goal's start date
    estimated_completion_time: str = ""


class BreakdownPayload(BaseModel):
    """Shape the model is asked to return."""
    habits: List[SuggestedHabit] = Field(..., min_length=1)
    milestones: List[SuggestedMilestone] = Field(..., min_length=1)


class GoalBreakdown(BreakdownPayload):
    source: Literal["llm", "template"]
    model: Optional[str] = None
    timestamp: datetime


class SuggestionRequest(BaseModel):
    goal_title: str = Field(..., min_length=1, max_length=500)
    goal_description: Optional[str] = Field(None, max_length=5000)


class ApplySuggestionsRequest(BaseModel):
    breakdown: BreakdownPayload
    habit_indexes: Optional[List[int]] = None  # None means all
    milestone_indexes: Optional[List[int]] = None


class AppliedSuggestions(BaseModel):
    habit_ids: List[str]
    milestone_ids: List[str]
