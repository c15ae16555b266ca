"""Authentication endpoints for issuing JWTs."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Literal
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogsub.api.deps import get_db_session
from blogsub.core.config import Settings, get_settings
from blogsub.core.security import hash_password, verify_password
from blogsub.models import SubscriptionStatus, User, UserRole
from blogsub.schemas import UserRead

RoleName = Literal["user", "admin"]

router = APIRouter()
security_scheme = HTTPBearer(auto_error=True)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenPayload(BaseModel):
    sub: str
    role: RoleName
    type: Literal["access", "refresh"]
    iat: datetime
    exp: datetime
    jti: str


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: int
    email: str
    role: RoleName
    token_id: str


class RefreshTokenStore:
    """In-memory store tracking active and blacklisted refresh tokens."""

    def __init__(self) -> None:
        self._active: dict[str, str] = {}
        self._blacklist: set[str] = set()
        self._lock = Lock()

    def mark_active(self, subject: str, token_id: str) -> None:
        with self._lock:
            self._active[subject] = token_id

    def is_active(self, subject: str, token_id: str) -> bool:
        with self._lock:
            if token_id in self._blacklist:
                return False
            return self._active.get(subject) == token_id

    def blacklist(self, token_id: str) -> None:
        with self._lock:
            self._blacklist.add(token_id)

    def reset(self) -> None:
        with self._lock:
            self._active.clear()
            self._blacklist.clear()


refresh_token_store = RefreshTokenStore()


def _create_token(
    *,
    subject: str,
    role: RoleName,
    token_type: Literal["access", "refresh"],
    expires_delta: timedelta,
    settings: Settings,
) -> tuple[str, str]:
    now = datetime.now(UTC)
    token_id = uuid4().hex
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "role": role,
        "type": token_type,
        "jti": token_id,
    }
    encoded = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded, token_id


def _issue_tokens(*, user: User, settings: Settings) -> TokenResponse:
    subject = str(user.id)
    role: RoleName = user.role.value  # type: ignore[assignment]
    access_token, _ = _create_token(
        subject=subject,
        role=role,
        token_type="access",
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        settings=settings,
    )
    refresh_token, refresh_id = _create_token(
        subject=subject,
        role=role,
        token_type="refresh",
        expires_delta=timedelta(days=settings.refresh_token_expire_days),
        settings=settings,
    )
    refresh_token_store.mark_active(subject, refresh_id)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expire_minutes * 60,
    )


def _decode_token(*, token: str, settings: Settings) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return TokenPayload(**payload)
    except (JWTError, ValidationError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    session: Session = Depends(get_db_session),
) -> AuthenticatedUser:
    payload = _decode_token(token=credentials.credentials, settings=get_settings())
    if payload.type != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    # Tokens outlive accounts; the row must still exist.
    user = session.get(User, int(payload.sub)) if payload.sub.isdigit() else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    request.state.actor_id = user.id
    return AuthenticatedUser(
        user_id=user.id,
        email=user.email,
        role=user.role.value,  # type: ignore[arg-type]
        token_id=payload.jti,
    )


def require_role(*roles: RoleName) -> Callable[..., AuthenticatedUser]:
    allowed_roles: set[str] = set(roles)

    def dependency(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        return user

    return dependency


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, session: Session = Depends(get_db_session)) -> TokenResponse:
    email = request.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid email address")
    if session.scalars(select(User).where(User.email == email)).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        name=request.name.strip(),
        email=email,
        password_hash=hash_password(request.password),
        role=UserRole.USER,
        subscription_status=SubscriptionStatus.FREE,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc
    session.refresh(user)
    return _issue_tokens(user=user, settings=get_settings())


@router.post("/login", response_model=TokenResponse, summary="Issue JWT access tokens")
def login(request: LoginRequest, session: Session = Depends(get_db_session)) -> TokenResponse:
    email = request.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid email address")
    user = session.scalars(select(User).where(User.email == email)).first()
    if user is None or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _issue_tokens(user=user, settings=get_settings())


@router.post("/refresh", response_model=TokenResponse, summary="Rotate JWT refresh tokens")
def refresh_token(request: RefreshRequest, session: Session = Depends(get_db_session)) -> TokenResponse:
    payload = _decode_token(token=request.refresh_token, settings=get_settings())
    if payload.type != "refresh":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token type")
    if not refresh_token_store.is_active(payload.sub, payload.jti):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token revoked")

    user = session.get(User, int(payload.sub)) if payload.sub.isdigit() else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    refresh_token_store.blacklist(payload.jti)
    return _issue_tokens(user=user, settings=get_settings())


@router.get("/me", response_model=UserRead, summary="Current user and effective subscription")
def me(
    user: AuthenticatedUser = Depends(get_current_user),
    session: Session = Depends(get_db_session),
) -> UserRead:
    account = session.get(User, user.user_id)
    if account is None:  # pragma: no cover - checked by get_current_user
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return UserRead.from_user(account)


__all__ = ["AuthenticatedUser", "get_current_user", "refresh_token_store", "require_role", "router"]
