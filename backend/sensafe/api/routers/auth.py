from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.config import Settings, get_settings
from sensafe.db import get_db
from sensafe.errors import AuthError
from sensafe.models import User
from sensafe.schemas import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse, UserProfile, UserPublic
from sensafe.services import account_service
from sensafe.services.auth_service import Identity, get_current_identity, set_session_cookie

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_in: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, token, lifetime = await account_service.register(db, settings, user_in)
    set_session_cookie(response, token, lifetime, settings)
    return RegisterResponse(message="User registered successfully", user=UserPublic.model_validate(user))


@router.post("/login", response_model=LoginResponse)
async def login(
    form: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, token, lifetime = await account_service.login(db, settings, form)
    set_session_cookie(response, token, lifetime, settings)
    return LoginResponse(message="Login successful", user_id=user.id)


@router.get("/me", response_model=UserProfile)
async def get_my_info(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """현재 세션의 사용자 프로필."""
    user = await db.get(User, identity.user_id)
    if user is None:
        raise AuthError("Unauthorized: User not found.")
    return user
