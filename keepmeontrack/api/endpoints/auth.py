import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from keepmeontrack.adapters.demo_store import DEMO_USER_EMAIL, DEMO_USER_ID, DEMO_USER_NAME
from keepmeontrack.api.deps import get_session_context, get_token_payload, guest_registry
from keepmeontrack.core.config import settings
from keepmeontrack.core.database import get_db
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.core.security import create_access_token, hash_password, verify_password
from keepmeontrack.core.session import SessionContext
from keepmeontrack.models.user import User
from keepmeontrack.schemas.user import LoginRequest, Token, UserCreate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, full_name=user.full_name)


@router.post("/register", response_model=Token, status_code=201)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    email = user_in.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(email=email, full_name=user_in.full_name, hashed_password=hash_password(user_in.password))
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered user %s", user.id)

    return Token(access_token=create_access_token({"sub": user.id}), user=_user_response(user))


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == credentials.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Token(access_token=create_access_token({"sub": user.id}), user=_user_response(user))


@router.post("/guest", response_model=Token, status_code=201)
async def start_guest_session():
    session = guest_registry.create(utcnow())
    token = create_access_token(
        {"sub": DEMO_USER_ID, "sid": session.session_id, "guest": True},
        expires_minutes=settings.GUEST_SESSION_TTL_MINUTES,
    )
    return Token(
        access_token=token,
        user=UserResponse(id=DEMO_USER_ID, email=DEMO_USER_EMAIL, full_name=DEMO_USER_NAME, is_guest=True),
    )


@router.post("/logout", status_code=204)
async def logout(payload: dict = Depends(get_token_payload)):
    # Tokens are stateless; only guest sessions hold server-side state
    if payload.get("guest"):
        guest_registry.discard(payload.get("sid", ""))


@router.get("/me", response_model=UserResponse)
async def read_me(ctx: SessionContext = Depends(get_session_context), db: AsyncSession = Depends(get_db)):
    if ctx.is_guest:
        return UserResponse(id=ctx.user_id, email=DEMO_USER_EMAIL, full_name=DEMO_USER_NAME, is_guest=True)
    return _user_response(await db.get(User, ctx.user_id))
