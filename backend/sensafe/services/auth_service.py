import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request, Response
from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.config import SESSION_COOKIE_NAME, Settings, get_settings
from sensafe.db import get_db
from sensafe.errors import AuthError, InternalError
from sensafe.models import User, UserSession, utcnow

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class Identity:
    """세션 검증을 통과한 요청의 사용자 정보."""
    user_id: uuid.UUID
    email: str
    role: str
    session_id: uuid.UUID


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def hash_password(password: str) -> str:
    if not isinstance(password, (str, bytes)):
        raise TypeError("Password must be a string or bytes.")

    return pwd_context.hash(password)


def as_utc(value: datetime) -> datetime:
    # SQLite 는 tz 정보 없이 돌려주므로 UTC 로 간주
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def session_lifetime(settings: Settings, role: Optional[str] = None) -> timedelta:
    """기본 세션 수명. 가입 시 PATIENT 기기는 재접속이 드물어 배수만큼 길게 줍니다."""
    lifetime = timedelta(hours=settings.session_ttl_hours)
    if role == "PATIENT":
        lifetime *= settings.patient_session_multiplier
    return lifetime


def _jwt_secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        logger.error("JWT_SECRET environment variable is not set.")
        raise InternalError("Internal server error: Authentication configuration missing.")
    return settings.jwt_secret


def create_access_token(settings: Settings, user: User, session: UserSession) -> str:
    expires_at = as_utc(session.expires_at)
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "sid": str(session.id),
        "expiresAt": expires_at.isoformat(),
        "exp": expires_at,
    }
    return jwt.encode(to_encode, _jwt_secret(settings), algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> dict:
    secret = _jwt_secret(settings)
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError("Unauthorized: Token expired.")
    except JWTError:
        raise AuthError("Unauthorized: Invalid token.")

    if not payload.get("sub") or not payload.get("sid"):
        raise AuthError("Unauthorized: Invalid token.")
    return payload


async def open_session(db: AsyncSession, user: User, lifetime: timedelta) -> UserSession:
    """인증 이벤트마다 새 세션 행을 만듭니다. commit 은 호출하는 쪽 트랜잭션에서."""
    session = UserSession(user_id=user.id, expires_at=utcnow() + lifetime)
    db.add(session)
    await db.flush()
    return session


async def resolve_identity(db: AsyncSession, settings: Settings, token: Optional[str]) -> Identity:
    """
    토큰 서명 → 세션 생존 여부 → 사용자 존재 여부를 차례로 확인합니다.
    HTTP 미들웨어(get_current_identity)와 웹소켓 핸드셰이크가 같이 씁니다.
    """
    if not token:
        raise AuthError("Unauthorized: No token provided.", clear_cookie=False)

    payload = decode_access_token(settings, token)
    try:
        user_id = uuid.UUID(str(payload["sub"]))
        session_id = uuid.UUID(str(payload["sid"]))
    except (TypeError, ValueError):
        raise AuthError("Unauthorized: Invalid token.")

    session = await db.get(UserSession, session_id)
    if session is None or session.user_id != user_id or as_utc(session.expires_at) < utcnow():
        raise AuthError("Unauthorized: Session expired or invalid.")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthError("Unauthorized: User not found.")

    return Identity(user_id=user.id, email=user.email, role=user.role, session_id=session.id)


async def get_current_identity(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """
    쿠키의 토큰을 검증하고 요청 사용자 정보를 돌려주는 의존성.
    보호가 필요한 라우터는 모두 이걸 거칩니다.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    return await resolve_identity(db, settings, token)


def set_session_cookie(response: Response, token: str, lifetime: timedelta, settings: Settings) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=int(lifetime.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
