import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keepmeontrack.core.exceptions import StorageError
from keepmeontrack.models.goal import Goal, Habit, HabitCompletion, Milestone
from keepmeontrack.ports.store import RECORD_TYPES, EntityKind, EntityStore

logger = logging.getLogger(__name__)

MODELS = {
    EntityKind.GOAL: Goal,
    EntityKind.HABIT: Habit,
    EntityKind.MILESTONE: Milestone,
    EntityKind.COMPLETION: HabitCompletion,
}

ORDERING = {
    EntityKind.GOAL: Goal.created_at.desc(),
    EntityKind.HABIT: Habit.order_index.asc(),
    EntityKind.MILESTONE: Milestone.order_index.asc(),
    EntityKind.COMPLETION: HabitCompletion.completed_at.asc(),
}


class SqlAlchemyStore(EntityStore):
    persistent = True

    def __init__(self, db: AsyncSession):
        self.db = db

    def _to_record(self, kind: EntityKind, row):
        return RECORD_TYPES[kind].model_validate(row)

    async def _fail(self, action: str, what: str, exc: SQLAlchemyError):
        logger.error("Storage error during %s %s: %s", action, what, exc)
        await self.db.rollback()
        raise StorageError(f"Could not {action} {what}") from exc

    async def list_owned(self, kind: EntityKind, owner_id: str) -> List[Any]:
        model = MODELS[kind]
        try:
            result = await self.db.execute(
                select(model).where(model.user_id == owner_id).order_by(ORDERING[kind])
            )
        except SQLAlchemyError as e:
            await self._fail("list", kind.value, e)
        return [self._to_record(kind, row) for row in result.scalars().all()]

    async def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]:
        try:
            row = await self.db.get(MODELS[kind], entity_id)
        except SQLAlchemyError as e:
            await self._fail("read", kind.value, e)
        return self._to_record(kind, row) if row is not None else None

    async def insert(self, kind: EntityKind, owner_id: str, values: Dict[str, Any]) -> Any:
        row = MODELS[kind](user_id=owner_id, **values)
        try:
            self.db.add(row)
            await self.db.flush()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self._fail("create", kind.value, e)
        return self._to_record(kind, row)

    async def update(self, kind: EntityKind, entity_id: str, values: Dict[str, Any]) -> Optional[Any]:
        try:
            row = await self.db.get(MODELS[kind], entity_id)
            if row is None:
                return None
            for field, value in values.items():
                setattr(row, field, value)
            await self.db.flush()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self._fail("update", kind.value, e)
        return self._to_record(kind, row)

    async def delete(self, kind: EntityKind, entity_id: str) -> bool:
        try:
            row = await self.db.get(MODELS[kind], entity_id)
            if row is None:
                return False
            await self.db.delete(row)
            await self.db.flush()
        except SQLAlchemyError as e:
            await self._fail("delete", kind.value, e)
        return True

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("save", "changes", e)

    async def rollback(self) -> None:
        await self.db.rollback()
