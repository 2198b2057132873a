from pydantic import BaseModel
from typing import Dict, List
from datetime import date

from keepmeontrack.schemas.goal import GoalRecord, HabitRecord, MilestoneRecord


class DashboardSummary(BaseModel):
    active_goals: int
    completed_goals: int
    total_habits: int
    habits_completed_today: int
    completion_rate: int
    goals: List[GoalRecord]


class CalendarDay(BaseModel):
    day: date
    habits_due: List[HabitRecord] = []
    milestones_due: List[MilestoneRecord] = []
    completed_habit_ids: List[str] = []


class CalendarMonth(BaseModel):
    year: int
    month: int
    days: List[CalendarDay]
    completions_per_day: Dict[date, int] = {}
