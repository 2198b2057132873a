from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Union
from datetime import date, datetime
from enum import Enum


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"  # frequency_value is "every N days"


class TitledModel(BaseModel):
    model_config = {"use_enum_values": True}

    @field_validator("title", check_fields=False)
    @classmethod
    def clean_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Title is required")
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


# --- Stored records (what an EntityStore hands back) ---

class GoalRecord(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    status: GoalStatus = GoalStatus.ACTIVE
    progress: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HabitRecord(BaseModel):
    id: str
    goal_id: str
    user_id: str
    title: str
    description: Optional[str] = None
    frequency: Frequency = Frequency.DAILY
    frequency_value: int = Field(1, ge=1)
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    order_index: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MilestoneRecord(BaseModel):
    id: str
    goal_id: str
    user_id: str
    title: str
    description: Optional[str] = None
    target_date: Optional[date] = None
    is_completed: bool = False
    order_index: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CompletionRecord(BaseModel):
    id: str
    habit_id: str
    user_id: str
    completed_at: datetime
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# --- Requests ---

class GoalCreate(TitledModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    status: GoalStatus = GoalStatus.ACTIVE


class GoalUpdate(TitledModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    status: Optional[GoalStatus] = None


class HabitCreate(TitledModel):
    goal_id: str
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    frequency: Frequency = Frequency.DAILY
    frequency_value: int = Field(1, ge=1)
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    order_index: int = Field(0, ge=0)


class HabitUpdate(TitledModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    frequency_value: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    order_index: Optional[int] = Field(None, ge=0)


class MilestoneCreate(TitledModel):
    goal_id: str
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    target_date: Optional[date] = None
    is_completed: bool = False
    order_index: int = Field(0, ge=0)


class MilestoneUpdate(TitledModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    target_date: Optional[date] = None
    is_completed: Optional[bool] = None
    order_index: Optional[int] = Field(None, ge=0)


class ToggleRequest(BaseModel):
    # Only the calendar day matters; a full timestamp is accepted and truncated
    day: Union[datetime, date]


class ReorderRequest(BaseModel):
    habit_ids: List[str] = Field(..., min_length=1)


# --- Responses ---

class HabitResponse(HabitRecord):
    completed_today: bool = False


class ToggleResponse(BaseModel):
    habit_id: str
    day: date
    completed: bool
    goal_progress: int


class ProgressResponse(BaseModel):
    goal_id: str
    progress: int
    persisted: bool
