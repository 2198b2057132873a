"""In-memory store behind guest sessions.

Seeded with a fixed sample dataset laid out relative to "today". Nothing
written here outlives the guest session.
"""
import copy
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from keepmeontrack.domain.dates import start_of_day, utcnow
from keepmeontrack.ports.store import RECORD_TYPES, EntityKind, EntityStore

DEMO_USER_ID = "demo-user-id"
DEMO_USER_EMAIL = "demo@keepmeontrack.co"
DEMO_USER_NAME = "Demo User"

COMPLETION_DAYS = 30

ORDER_KEYS = {
    EntityKind.GOAL: (lambda r: r.created_at or datetime.min, True),
    EntityKind.HABIT: (lambda r: r.order_index, False),
    EntityKind.MILESTONE: (lambda r: r.order_index, False),
    EntityKind.COMPLETION: (lambda r: r.completed_at, False),
}


def _goal(id, title, description, started_days_ago, target_in_days, status, progress, created_days_ago, today):
    return {
        "id": id, "user_id": DEMO_USER_ID, "title": title, "description": description,
        "start_date": today - timedelta(days=started_days_ago),
        "target_date": today + timedelta(days=target_in_days),
        "status": status, "progress": progress,
        "created_at": start_of_day(today - timedelta(days=created_days_ago)),
        "updated_at": start_of_day(today),
    }


def _habit(id, goal_id, title, description, frequency, frequency_value, started_days_ago, order_index, today):
    return {
        "id": id, "goal_id": goal_id, "user_id": DEMO_USER_ID, "title": title,
        "description": description, "frequency": frequency, "frequency_value": frequency_value,
        "start_date": today - timedelta(days=started_days_ago), "due_date": None,
        "order_index": order_index,
        "created_at": start_of_day(today - timedelta(days=started_days_ago)),
        "updated_at": start_of_day(today),
    }


def _milestone(id, goal_id, title, description, target_offset, completed, order_index, today):
    return {
        "id": id, "goal_id": goal_id, "user_id": DEMO_USER_ID, "title": title,
        "description": description, "target_date": today + timedelta(days=target_offset),
        "is_completed": completed, "order_index": order_index,
        "created_at": start_of_day(today), "updated_at": start_of_day(today),
    }


def demo_goals(today: date) -> List[Dict[str, Any]]:
    return [
        _goal("demo-goal-1", "Run a Marathon",
              "Complete my first 26.2-mile marathon race by the end of the year",
              30, 90, "active", 65, 30, today),
        _goal("demo-goal-2", "Learn Spanish",
              "Achieve conversational fluency in Spanish for my upcoming trip to Spain",
              45, 120, "active", 40, 45, today),
        _goal("demo-goal-3", "Write a Novel",
              "Complete the first draft of my science fiction novel",
              60, 180, "active", 25, 60, today),
        _goal("demo-goal-4", "Build a Mobile App",
              "Develop and launch my first mobile application on the App Store",
              15, 150, "completed", 100, 90, today),
    ]


def demo_habits(today: date) -> List[Dict[str, Any]]:
    return [
        _habit("demo-habit-1", "demo-goal-1", "Morning Run",
               "Run 5K every morning to build endurance", "daily", 1, 30, 0, today),
        _habit("demo-habit-2", "demo-goal-1", "Strength Training",
               "Focus on leg strength and core stability", "weekly", 3, 30, 1, today),
        _habit("demo-habit-3", "demo-goal-2", "Daily Spanish Practice",
               "Practice Spanish vocabulary and grammar for 30 minutes", "daily", 1, 45, 0, today),
        _habit("demo-habit-4", "demo-goal-2", "Spanish Conversation",
               "Practice speaking with native speakers online", "weekly", 2, 45, 1, today),
        _habit("demo-habit-5", "demo-goal-3", "Daily Writing",
               "Write at least 500 words every day", "daily", 1, 60, 0, today),
    ]


def demo_milestones(today: date) -> List[Dict[str, Any]]:
    return [
        _milestone("demo-milestone-1", "demo-goal-1", "Complete First 5K",
                   "Run 5K without stopping", -15, True, 0, today),
        _milestone("demo-milestone-2", "demo-goal-1", "Complete 10K Run",
                   "Successfully finish a 10K race", 15, False, 1, today),
        _milestone("demo-milestone-3", "demo-goal-1", "Half Marathon Ready",
                   "Complete a 21K half marathon", 45, False, 2, today),
        _milestone("demo-milestone-4", "demo-goal-2", "Basic Vocabulary (500 words)",
                   "Learn and retain 500 essential Spanish words", -10, True, 0, today),
        _milestone("demo-milestone-5", "demo-goal-2", "Hold Basic Conversation",
                   "Have a 10-minute conversation with a native speaker", 30, False, 1, today),
        _milestone("demo-milestone-6", "demo-goal-3", "Complete Book Outline",
                   "Finish detailed chapter-by-chapter outline", -50, True, 0, today),
        _milestone("demo-milestone-7", "demo-goal-3", "First Draft - 25% Complete",
                   "Complete first quarter of the novel", 20, False, 1, today),
    ]


def demo_completions(today: date) -> List[Dict[str, Any]]:
    """Thirty days of history with fixed gaps, roughly 70-80% adherence."""
    rows = []

    def add(tag, habit_id, day, i):
        rows.append({
            "id": f"demo-completion-{tag}-{i}", "habit_id": habit_id, "user_id": DEMO_USER_ID,
            "completed_at": start_of_day(day), "created_at": start_of_day(day),
        })

    for i in range(COMPLETION_DAYS):
        day = today - timedelta(days=i)
        if i % 5 != 4:
            add("run", "demo-habit-1", day, i)
        if i % 10 not in (3, 6, 9):
            add("spanish", "demo-habit-3", day, i)
        if i % 4 != 3:
            add("writing", "demo-habit-5", day, i)
        # Mon/Wed/Fri and Tue/Sat sessions
        if day.weekday() in (0, 2, 4) and i % 5 != 0:
            add("strength", "demo-habit-2", day, i)
        if day.weekday() in (1, 5) and i % 3 != 0:
            add("conversation", "demo-habit-4", day, i)
    return rows


def build_demo_dataset(today: date) -> Dict[EntityKind, Dict[str, Any]]:
    seeds = {
        EntityKind.GOAL: demo_goals(today),
        EntityKind.HABIT: demo_habits(today),
        EntityKind.MILESTONE: demo_milestones(today),
        EntityKind.COMPLETION: demo_completions(today),
    }
    return {
        kind: {row["id"]: RECORD_TYPES[kind].model_validate(row) for row in rows}
        for kind, rows in seeds.items()
    }


class DemoStore(EntityStore):
    persistent = False

    def __init__(self, today: Optional[date] = None, seed: bool = True):
        today = today or utcnow().date()
        if seed:
            self._data = build_demo_dataset(today)
        else:
            self._data = {kind: {} for kind in EntityKind}
        self._committed = copy.deepcopy(self._data)

    async def list_owned(self, kind: EntityKind, owner_id: str) -> List[Any]:
        key, reverse = ORDER_KEYS[kind]
        rows = [r for r in self._data[kind].values() if r.user_id == owner_id]
        return sorted(rows, key=key, reverse=reverse)

    async def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]:
        return self._data[kind].get(entity_id)

    async def insert(self, kind: EntityKind, owner_id: str, values: Dict[str, Any]) -> Any:
        now = utcnow()
        entity_id = f"demo-{kind.value}-{uuid.uuid4().hex[:12]}"
        row = {"created_at": now, **values, "id": entity_id, "user_id": owner_id}
        if "updated_at" in RECORD_TYPES[kind].model_fields:
            row["updated_at"] = now
        record = RECORD_TYPES[kind].model_validate(row)
        self._data[kind][entity_id] = record
        return record

    async def update(self, kind: EntityKind, entity_id: str, values: Dict[str, Any]) -> Optional[Any]:
        current = self._data[kind].get(entity_id)
        if current is None:
            return None
        row = {**current.model_dump(), **values}
        if "updated_at" in row:
            row["updated_at"] = utcnow()
        record = RECORD_TYPES[kind].model_validate(row)
        self._data[kind][entity_id] = record
        return record

    async def delete(self, kind: EntityKind, entity_id: str) -> bool:
        return self._data[kind].pop(entity_id, None) is not None

    async def commit(self) -> None:
        self._committed = copy.deepcopy(self._data)

    async def rollback(self) -> None:
        self._data = copy.deepcopy(self._committed)
