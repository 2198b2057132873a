"""Goal progress: a weighted blend of milestone completion and the
habit completion rate over the trailing 30 days.

Everything here is pure. ``now`` is always passed in so results depend only
on the arguments.
"""
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Sequence

from keepmeontrack.domain.dates import to_naive_utc
from keepmeontrack.schemas.goal import (
    CompletionRecord, Frequency, HabitRecord, MilestoneRecord,
)

WINDOW_DAYS = 30
MILESTONE_WEIGHT = 0.6
HABIT_WEIGHT = 0.4


def expected_completions(frequency: Frequency, frequency_value: int) -> int:
    """How many completions a habit should log in a 30-day window."""
    frequency = Frequency(frequency)
    if frequency == Frequency.DAILY:
        return WINDOW_DAYS * frequency_value
    if frequency == Frequency.WEEKLY:
        return (WINDOW_DAYS // 7) * frequency_value
    if frequency == Frequency.MONTHLY:
        return frequency_value
    # custom: once every `frequency_value` days
    return WINDOW_DAYS // frequency_value


def in_window(completed_at: datetime, now: datetime) -> bool:
    return now - timedelta(days=WINDOW_DAYS) <= completed_at <= now


def habit_score(habit: HabitRecord, completions: Iterable[CompletionRecord], now: datetime) -> float:
    observed = sum(
        1 for c in completions
        if c.habit_id == habit.id and in_window(to_naive_utc(c.completed_at), to_naive_utc(now))
    )
    # A custom period longer than the window still expects one completion
    expected = max(expected_completions(habit.frequency, habit.frequency_value), 1)
    return min(observed / expected, 1.0)


def milestone_score(milestones: Sequence[MilestoneRecord]) -> float:
    if not milestones:
        return 0.0
    return sum(1 for m in milestones if m.is_completed) / len(milestones)


def calculate_progress(
    habits: Sequence[HabitRecord],
    milestones: Sequence[MilestoneRecord],
    completions: Sequence[CompletionRecord],
    now: datetime,
) -> int:
    """Integer 0-100 progress for one goal's habits and milestones.

    Weights are renormalised over the categories actually present, so a goal
    with only habits is scored purely on habits.
    """
    if not habits and not milestones:
        return 0

    completed_weight = 0.0
    total_weight = 0.0

    if milestones:
        completed_weight += MILESTONE_WEIGHT * milestone_score(milestones)
        total_weight += MILESTONE_WEIGHT

    if habits:
        scores = [habit_score(h, completions, now) for h in habits]
        completed_weight += HABIT_WEIGHT * (sum(scores) / len(scores))
        total_weight += HABIT_WEIGHT

    return clamp_percent(round_half_up(100 * completed_weight / total_weight))


def round_half_up(value: float) -> int:
    # round() would send 12.5 to 12; the inner round() absorbs weighting noise
    return int(math.floor(round(value, 9) + 0.5))


def clamp_percent(value: int) -> int:
    return max(0, min(100, value))


def completions_for_habits(habits: Sequence[HabitRecord], completions: Iterable[CompletionRecord]) -> List[CompletionRecord]:
    habit_ids = {h.id for h in habits}
    return [c for c in completions if c.habit_id in habit_ids]

