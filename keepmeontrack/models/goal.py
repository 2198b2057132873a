from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Boolean, ForeignKey
import uuid
from keepmeontrack.core.database import Base
from keepmeontrack.domain.dates import utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    target_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="active")  # active, completed, paused
    progress = Column(Integer, nullable=False, default=0)  # advisory, recomputed on read
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Habit(Base):
    __tablename__ = "habits"

    id = Column(String, primary_key=True, default=new_id)
    # No ON DELETE CASCADE: the tracker removes dependents itself
    goal_id = Column(String, ForeignKey("goals.id"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    frequency = Column(String, nullable=False, default="daily")  # daily, weekly, monthly, custom
    frequency_value = Column(Integer, nullable=False, default=1)
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(String, primary_key=True, default=new_id)
    goal_id = Column(String, ForeignKey("goals.id"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    target_date = Column(Date, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class HabitCompletion(Base):
    __tablename__ = "habit_completions"

    id = Column(String, primary_key=True, default=new_id)
    habit_id = Column(String, ForeignKey("habits.id"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    completed_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow)
