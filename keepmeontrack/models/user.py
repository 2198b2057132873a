from sqlalchemy import Column, String, DateTime
from keepmeontrack.core.database import Base
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.models.goal import new_id


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)
