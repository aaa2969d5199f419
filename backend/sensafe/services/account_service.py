from datetime import timedelta
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.config import Settings
from sensafe.errors import AppError, AuthError, ConflictError, InternalError, NotFoundError, ValidationFailedError
from sensafe.models import Device, Geolocation, User
from sensafe.schemas import LoginRequest, RegisterRequest
from sensafe.services.auth_service import (
    create_access_token, hash_password, open_session, session_lifetime, verify_password
)
from sensafe.services.location_service import find_device_by_serial
from sensafe.services.relationship_service import link


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(User.email == email.lower())
    res = await db.execute(q)
    return res.scalar_one_or_none()


async def register(db: AsyncSession, settings: Settings, user_in: RegisterRequest) -> tuple[User, str, timedelta]:
    """
    회원가입. PATIENT 는 기기 + 최초 위치 + 보호자 연결까지 한 트랜잭션으로 만듭니다.
    중간에 하나라도 실패하면 전부 rollback 되어 부분 데이터가 남지 않습니다.
    """
    # 1. 저장 전에 입력 조합부터 검사
    role_errors = user_in.role_field_errors()
    if role_errors:
        raise ValidationFailedError(errors=role_errors)

    email = user_in.email.lower()
    if await get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    # 2. PATIENT 라면 보호자와 기기 시리얼 확인
    parent = None
    if user_in.role == "PATIENT":
        parent = await get_user_by_email(db, user_in.parent_email)
        if parent is None:
            raise NotFoundError(f"Parent user with email {user_in.parent_email} not found.")
        if parent.role != "PARENT":
            raise ValidationFailedError(f"User with email {user_in.parent_email} is not of type PARENT.")
        if await find_device_by_serial(db, user_in.serial_number):
            raise ConflictError(f"Device with serial number '{user_in.serial_number}' already exists.")

    lifetime = session_lifetime(settings, user_in.role)

    # 3. 한 트랜잭션으로 생성
    try:
        user = User(
            email=email,
            password_hash=hash_password(user_in.password),
            role=user_in.role,
            first_name=user_in.first_name,
            last_name=user_in.last_name,
            phone_number=user_in.phone_number,
        )
        db.add(user)
        await db.flush()

        if user_in.role == "PATIENT":
            device = Device(
                patient_id=user.id,
                serial_number=user_in.serial_number,
                name=user_in.device_name,
            )
            db.add(device)
            await db.flush()

            db.add(Geolocation(device_id=device.id, latitude=user_in.latitude, longitude=user_in.longitude))
            await link(db, parent, user)

        session = await open_session(db, user, lifetime)
        token = create_access_token(settings, user, session)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Registration conflict for {}: {}", email, e.orig)
        raise ConflictError("User or device already exists")
    except AppError:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception("Registration failed for {}", email)
        raise InternalError("An error occurred during registration")

    logger.info("Registered {} user {}", user.role, user.id)
    return user, token, lifetime


async def login(db: AsyncSession, settings: Settings, form: LoginRequest) -> tuple[User, str, timedelta]:
    user = await get_user_by_email(db, form.email)

    # 이메일/비밀번호 중 어느 쪽이 틀렸는지는 알려주지 않음
    if not user or not verify_password(form.password, user.password_hash):
        logger.info("Failed login attempt for {}", form.email)
        raise AuthError("Invalid email or password", clear_cookie=False)

    lifetime = session_lifetime(settings)
    try:
        session = await open_session(db, user, lifetime)
        token = create_access_token(settings, user, session)
        await db.commit()
    except AppError:
        await db.rollback()
        raise

    logger.info("User {} logged in (session {})", user.id, session.id)
    return user, token, lifetime
