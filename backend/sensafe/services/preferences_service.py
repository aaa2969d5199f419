import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.errors import ValidationFailedError
from sensafe.models import UserPreferences
from sensafe.schemas import PreferencesUpdate


async def get_preferences(db: AsyncSession, user_id: uuid.UUID) -> Optional[UserPreferences]:
    # 아직 한 번도 저장하지 않았다면 None (에러 아님)
    return await db.get(UserPreferences, user_id)


def _apply(prefs: UserPreferences, changes: dict) -> None:
    for key, value in changes.items():
        setattr(prefs, key, value)


async def upsert_preferences(db: AsyncSession, user_id: uuid.UUID, prefs_in: PreferencesUpdate) -> UserPreferences:
    changes = prefs_in.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailedError("No preference data provided.")

    prefs = await db.get(UserPreferences, user_id)
    if prefs is None:
        prefs = UserPreferences(user_id=user_id)
        db.add(prefs)
    _apply(prefs, changes)

    try:
        await db.commit()
    except IntegrityError:
        # 다른 요청이 먼저 행을 만든 경우: 그 행에 덮어씀
        await db.rollback()
        prefs = await db.get(UserPreferences, user_id, populate_existing=True)
        _apply(prefs, changes)
        await db.commit()

    await db.refresh(prefs)
    return prefs
