import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Set

from keepmeontrack.core.exceptions import EntityNotFound, InvalidInput
from keepmeontrack.core.session import SessionContext
from keepmeontrack.domain.dates import (
    DayLike, bucket_by_day, month_days, safe_calendar_day, start_of_day, to_calendar_day,
)
from keepmeontrack.domain.progress import calculate_progress, completions_for_habits, round_half_up
from keepmeontrack.ports.store import EntityKind
from keepmeontrack.schemas.dashboard import CalendarDay, CalendarMonth, DashboardSummary
from keepmeontrack.schemas.goal import (
    CompletionRecord, GoalCreate, GoalRecord, GoalStatus, GoalUpdate, HabitCreate,
    HabitRecord, HabitResponse, HabitUpdate, MilestoneCreate, MilestoneRecord,
    MilestoneUpdate, ProgressResponse, ToggleResponse,
)
from keepmeontrack.schemas.suggestion import AppliedSuggestions, BreakdownPayload

logger = logging.getLogger(__name__)

# Fields an update may explicitly clear
NULLABLE_FIELDS = {"description", "start_date", "target_date", "due_date"}


def _changes(data) -> dict:
    return {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_FIELDS
    }


class GoalTracker:
    """Goal, habit and milestone operations for one session.

    Each write runs as a unit: either every change it stages is committed
    or the store is rolled back to where it was.
    """

    def __init__(self, ctx: SessionContext):
        self.ctx = ctx
        self.store = ctx.store

    @asynccontextmanager
    async def _atomic(self):
        try:
            yield
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

    async def _owned(self, kind: EntityKind, entity_id: str):
        record = await self.store.get(kind, entity_id)
        if record is None or record.user_id != self.ctx.user_id:
            raise EntityNotFound(kind.value, entity_id)
        return record

    async def _goal_parts(self, goal_id: str):
        habits = [h for h in await self.store.list_owned(EntityKind.HABIT, self.ctx.user_id) if h.goal_id == goal_id]
        milestones = [m for m in await self.store.list_owned(EntityKind.MILESTONE, self.ctx.user_id) if m.goal_id == goal_id]
        completions = completions_for_habits(
            habits, await self.store.list_owned(EntityKind.COMPLETION, self.ctx.user_id)
        )
        return habits, milestones, completions

    # --- Progress ---

    async def goal_progress(self, goal_id: str, now: datetime) -> int:
        await self._owned(EntityKind.GOAL, goal_id)
        habits, milestones, completions = await self._goal_parts(goal_id)
        return calculate_progress(habits, milestones, completions, now)

    async def _refresh_progress(self, goal_id: str, now: datetime) -> int:
        progress = await self.goal_progress(goal_id, now)
        if self.store.persistent:
            await self.store.update(EntityKind.GOAL, goal_id, {"progress": progress})
        return progress

    async def refresh_goal_progress(self, goal_id: str, now: datetime) -> ProgressResponse:
        async with self._atomic():
            progress = await self._refresh_progress(goal_id, now)
        return ProgressResponse(goal_id=goal_id, progress=progress, persisted=self.store.persistent)

    # --- Goals ---

    async def list_goals(self, now: datetime) -> List[GoalRecord]:
        goals = await self.store.list_owned(EntityKind.GOAL, self.ctx.user_id)
        habits = await self.store.list_owned(EntityKind.HABIT, self.ctx.user_id)
        milestones = await self.store.list_owned(EntityKind.MILESTONE, self.ctx.user_id)
        completions = await self.store.list_owned(EntityKind.COMPLETION, self.ctx.user_id)

        result = []
        for goal in goals:
            goal_habits = [h for h in habits if h.goal_id == goal.id]
            progress = calculate_progress(
                goal_habits,
                [m for m in milestones if m.goal_id == goal.id],
                completions_for_habits(goal_habits, completions),
                now,
            )
            result.append(goal.model_copy(update={"progress": progress}))
        return result

    async def get_goal(self, goal_id: str, now: datetime) -> GoalRecord:
        goal = await self._owned(EntityKind.GOAL, goal_id)
        progress = await self.goal_progress(goal_id, now)
        return goal.model_copy(update={"progress": progress})

    async def create_goal(self, data: GoalCreate) -> GoalRecord:
        async with self._atomic():
            goal = await self.store.insert(EntityKind.GOAL, self.ctx.user_id, {**data.model_dump(), "progress": 0})
        logger.info("Goal %s created", goal.id)
        return goal

    async def update_goal(self, goal_id: str, data: GoalUpdate) -> GoalRecord:
        changes = _changes(data)
        async with self._atomic():
            await self._owned(EntityKind.GOAL, goal_id)
            goal = await self.store.update(EntityKind.GOAL, goal_id, changes)
        return goal

    async def delete_goal(self, goal_id: str) -> None:
        """Removes the goal with its habits, their completions and its milestones."""
        async with self._atomic():
            await self._owned(EntityKind.GOAL, goal_id)
            habits, milestones, completions = await self._goal_parts(goal_id)
            for completion in completions:
                await self.store.delete(EntityKind.COMPLETION, completion.id)
            for habit in habits:
                await self.store.delete(EntityKind.HABIT, habit.id)
            for milestone in milestones:
                await self.store.delete(EntityKind.MILESTONE, milestone.id)
            await self.store.delete(EntityKind.GOAL, goal_id)
        logger.info("Goal %s deleted with %d habits and %d milestones", goal_id, len(habits), len(milestones))

    # --- Habits ---

    async def list_habits(self, today: date, goal_id: Optional[str] = None) -> List[HabitResponse]:
        habits = await self.store.list_owned(EntityKind.HABIT, self.ctx.user_id)
        if goal_id is not None:
            habits = [h for h in habits if h.goal_id == goal_id]
        done_today = await self._habits_completed_on(today)
        return [
            HabitResponse(**h.model_dump(), completed_today=h.id in done_today)
            for h in habits
        ]

    async def create_habit(self, data: HabitCreate, now: datetime) -> HabitRecord:
        async with self._atomic():
            await self._owned(EntityKind.GOAL, data.goal_id)
            habit = await self.store.insert(EntityKind.HABIT, self.ctx.user_id, data.model_dump())
            await self._refresh_progress(data.goal_id, now)
        return habit

    async def update_habit(self, habit_id: str, data: HabitUpdate, now: datetime) -> HabitRecord:
        async with self._atomic():
            current = await self._owned(EntityKind.HABIT, habit_id)
            habit = await self.store.update(EntityKind.HABIT, habit_id, _changes(data))
            await self._refresh_progress(current.goal_id, now)
        return habit

    async def delete_habit(self, habit_id: str, now: datetime) -> None:
        async with self._atomic():
            habit = await self._owned(EntityKind.HABIT, habit_id)
            for completion in await self._completions_of(habit_id):
                await self.store.delete(EntityKind.COMPLETION, completion.id)
            await self.store.delete(EntityKind.HABIT, habit_id)
            await self._refresh_progress(habit.goal_id, now)

    async def reorder_habits(self, habit_ids: Sequence[str]) -> List[HabitRecord]:
        if len(set(habit_ids)) != len(habit_ids):
            raise InvalidInput("Habit ids must be unique")
        reordered = []
        async with self._atomic():
            for index, habit_id in enumerate(habit_ids):
                await self._owned(EntityKind.HABIT, habit_id)
                reordered.append(await self.store.update(EntityKind.HABIT, habit_id, {"order_index": index}))
        return reordered

    # --- Milestones ---

    async def list_milestones(self, goal_id: Optional[str] = None) -> List[MilestoneRecord]:
        milestones = await self.store.list_owned(EntityKind.MILESTONE, self.ctx.user_id)
        if goal_id is not None:
            milestones = [m for m in milestones if m.goal_id == goal_id]
        return milestones

    async def create_milestone(self, data: MilestoneCreate, now: datetime) -> MilestoneRecord:
        async with self._atomic():
            await self._owned(EntityKind.GOAL, data.goal_id)
            milestone = await self.store.insert(EntityKind.MILESTONE, self.ctx.user_id, data.model_dump())
            await self._refresh_progress(data.goal_id, now)
        return milestone

    async def update_milestone(self, milestone_id: str, data: MilestoneUpdate, now: datetime) -> MilestoneRecord:
        async with self._atomic():
            current = await self._owned(EntityKind.MILESTONE, milestone_id)
            milestone = await self.store.update(
                EntityKind.MILESTONE, milestone_id, _changes(data)
            )
            await self._refresh_progress(current.goal_id, now)
        return milestone

    async def set_milestone_completed(self, milestone_id: str, completed: bool, now: datetime) -> MilestoneRecord:
        return await self.update_milestone(milestone_id, MilestoneUpdate(is_completed=completed), now)

    async def delete_milestone(self, milestone_id: str, now: datetime) -> None:
        async with self._atomic():
            milestone = await self._owned(EntityKind.MILESTONE, milestone_id)
            await self.store.delete(EntityKind.MILESTONE, milestone_id)
            await self._refresh_progress(milestone.goal_id, now)

    # --- Completions ---

    async def _completions_of(self, habit_id: str) -> List[CompletionRecord]:
        completions = await self.store.list_owned(EntityKind.COMPLETION, self.ctx.user_id)
        return [c for c in completions if c.habit_id == habit_id]

    async def _habits_completed_on(self, day: date) -> Set[str]:
        completions = await self.store.list_owned(EntityKind.COMPLETION, self.ctx.user_id)
        return {c.habit_id for c in completions if safe_calendar_day(c.completed_at) == day}

    async def is_habit_completed_on(self, habit_id: str, day: DayLike) -> bool:
        await self._owned(EntityKind.HABIT, habit_id)
        target = to_calendar_day(day)
        return any(
            safe_calendar_day(c.completed_at) == target
            for c in await self._completions_of(habit_id)
        )

    async def toggle_habit_completion(self, habit_id: str, day: DayLike, now: datetime) -> ToggleResponse:
        """Mark the habit done on ``day``, or undo it if it already is."""
        target = to_calendar_day(day)
        async with self._atomic():
            habit = await self._owned(EntityKind.HABIT, habit_id)
            existing = [
                c for c in await self._completions_of(habit_id)
                if safe_calendar_day(c.completed_at) == target
            ]
            if existing:
                for completion in existing:
                    await self.store.delete(EntityKind.COMPLETION, completion.id)
            else:
                await self.store.insert(
                    EntityKind.COMPLETION, self.ctx.user_id,
                    {"habit_id": habit_id, "completed_at": start_of_day(target)},
                )
            progress = await self._refresh_progress(habit.goal_id, now)

        return ToggleResponse(habit_id=habit_id, day=target, completed=not existing, goal_progress=progress)

    # --- Dashboard & calendar ---

    async def dashboard_summary(self, now: datetime) -> DashboardSummary:
        goals = await self.list_goals(now)
        habits = await self.store.list_owned(EntityKind.HABIT, self.ctx.user_id)
        done_today = await self._habits_completed_on(now.date())
        completed_today = sum(1 for h in habits if h.id in done_today)
        rate = round_half_up(100 * completed_today / len(habits)) if habits else 0
        return DashboardSummary(
            active_goals=sum(1 for g in goals if g.status == GoalStatus.ACTIVE),
            completed_goals=sum(1 for g in goals if g.status == GoalStatus.COMPLETED),
            total_habits=len(habits),
            habits_completed_today=completed_today,
            completion_rate=rate,
            goals=goals,
        )

    async def calendar_month(self, year: int, month: int) -> CalendarMonth:
        if not 1 <= month <= 12:
            raise InvalidInput("Month must be between 1 and 12")
        habits = await self.store.list_owned(EntityKind.HABIT, self.ctx.user_id)
        milestones = await self.store.list_owned(EntityKind.MILESTONE, self.ctx.user_id)
        completions = await self.store.list_owned(EntityKind.COMPLETION, self.ctx.user_id)

        habits_by_day = bucket_by_day(habits, lambda h: h.due_date)
        milestones_by_day = bucket_by_day(milestones, lambda m: m.target_date)
        completions_by_day = bucket_by_day(completions, lambda c: c.completed_at)

        days = []
        counts: Dict[date, int] = {}
        for day in month_days(year, month):
            done = completions_by_day.get(day, [])
            if done:
                counts[day] = len(done)
            days.append(CalendarDay(
                day=day,
                habits_due=habits_by_day.get(day, []),
                milestones_due=milestones_by_day.get(day, []),
                completed_habit_ids=sorted({c.habit_id for c in done}),
            ))
        return CalendarMonth(year=year, month=month, days=days, completions_per_day=counts)

    # --- Suggestions ---

    async def apply_suggestions(self, goal_id: str, breakdown: BreakdownPayload,
                                habit_indexes: Optional[Sequence[int]],
                                milestone_indexes: Optional[Sequence[int]],
                                now: datetime) -> AppliedSuggestions:
        """Turn chosen suggestions into real habits and milestones of a goal."""
        habits = _pick(breakdown.habits, habit_indexes)
        milestones = _pick(breakdown.milestones, milestone_indexes)

        habit_ids, milestone_ids = [], []
        async with self._atomic():
            goal = await self._owned(EntityKind.GOAL, goal_id)
            for index, suggestion in habits:
                habit = await self.store.insert(EntityKind.HABIT, self.ctx.user_id, {
                    "goal_id": goal_id,
                    "title": suggestion.title,
                    "description": suggestion.description,
                    "frequency": suggestion.frequency,
                    "frequency_value": suggestion.frequency_value,
                    "start_date": goal.start_date,
                    "due_date": None,
                    "order_index": index,
                })
                habit_ids.append(habit.id)
            for index, suggestion in milestones:
                target = None
                if goal.start_date is not None:
                    target = goal.start_date + timedelta(days=suggestion.target_date_offset)
                milestone = await self.store.insert(EntityKind.MILESTONE, self.ctx.user_id, {
                    "goal_id": goal_id,
                    "title": suggestion.title,
                    "description": suggestion.description,
                    "target_date": target,
                    "is_completed": False,
                    "order_index": index,
                })
                milestone_ids.append(milestone.id)
            await self._refresh_progress(goal_id, now)
        return AppliedSuggestions(habit_ids=habit_ids, milestone_ids=milestone_ids)


def _pick(items, indexes):
    if indexes is None:
        return list(enumerate(items))
    picked = []
    for i in indexes:
        if not 0 <= i < len(items):
            raise InvalidInput(f"Suggestion index {i} out of range")
        picked.append((i, items[i]))
    return picked
