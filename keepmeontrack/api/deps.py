from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from keepmeontrack.adapters.sql_store import SqlAlchemyStore
from keepmeontrack.core.config import settings
from keepmeontrack.core.database import get_db
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.core.security import decode_access_token
from keepmeontrack.core.session import GuestSessionRegistry, SessionContext, guest_context
from keepmeontrack.models.user import User
from keepmeontrack.services.tracker import GoalTracker

limiter = Limiter(key_func=get_remote_address)
guest_registry = GuestSessionRegistry(settings.GUEST_SESSION_TTL_MINUTES)

reusable_oauth2 = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_payload(token: Optional[HTTPAuthorizationCredentials] = Depends(reusable_oauth2)) -> dict:
    if token is None:
        raise _credentials_exception("Not authenticated")
    payload = decode_access_token(token.credentials)
    if not payload or not payload.get("sub"):
        raise _credentials_exception()
    return payload


async def get_session_context(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    if payload.get("guest"):
        session = guest_registry.get(payload.get("sid", ""), utcnow())
        if session is None:
            raise _credentials_exception("Guest session expired")
        return guest_context(session)

    user = await db.get(User, payload["sub"])
    if user is None:
        raise _credentials_exception()
    return SessionContext(user_id=user.id, store=SqlAlchemyStore(db))


def get_tracker(ctx: SessionContext = Depends(get_session_context)) -> GoalTracker:
    return GoalTracker(ctx)
