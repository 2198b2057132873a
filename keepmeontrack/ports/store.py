from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from keepmeontrack.schemas.goal import (
    CompletionRecord, GoalRecord, HabitRecord, MilestoneRecord,
)


class EntityKind(str, Enum):
    GOAL = "goal"
    HABIT = "habit"
    MILESTONE = "milestone"
    COMPLETION = "completion"


RECORD_TYPES: Dict[EntityKind, Type[BaseModel]] = {
    EntityKind.GOAL: GoalRecord,
    EntityKind.HABIT: HabitRecord,
    EntityKind.MILESTONE: MilestoneRecord,
    EntityKind.COMPLETION: CompletionRecord,
}


class EntityStore(ABC):
    """Read-all-by-owner and write-one access to tracked entities.

    Writes are staged until ``commit``; ``rollback`` discards everything
    since the last commit.
    """

    # False for stores whose writes vanish with the session (guest/demo)
    persistent: bool = True

    @abstractmethod
    async def list_owned(self, kind: EntityKind, owner_id: str) -> List[Any]:
        pass

    @abstractmethod
    async def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def insert(self, kind: EntityKind, owner_id: str, values: Dict[str, Any]) -> Any:
        """Creates a record and returns it with its generated id."""
        pass

    @abstractmethod
    async def update(self, kind: EntityKind, entity_id: str, values: Dict[str, Any]) -> Optional[Any]:
        """Returns the updated record, or None when the id is unknown."""
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, entity_id: str) -> bool:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass
