from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.db import get_db
from sensafe.schemas import PreferencesEnvelope, PreferencesOut, PreferencesUpdate, PreferencesUpdated
from sensafe.services import preferences_service
from sensafe.services.auth_service import Identity, get_current_identity

# user 라우터 정의
router = APIRouter(prefix="/user", tags=["user"])


# [1] 환경설정 조회
@router.get("/preferences", response_model=PreferencesEnvelope)
async def get_user_preferences(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    현재 인증된 사용자의 환경설정. 아직 저장한 적이 없으면 preferences 는 null 입니다.
    """
    prefs = await preferences_service.get_preferences(db, identity.user_id)
    return PreferencesEnvelope(preferences=PreferencesOut.model_validate(prefs) if prefs else None)


# [2] 환경설정 부분 수정 (없으면 생성)
@router.patch("/preferences", response_model=PreferencesUpdated)
async def update_user_preferences(
    prefs_in: PreferencesUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    prefs = await preferences_service.upsert_preferences(db, identity.user_id, prefs_in)
    return PreferencesUpdated(
        message="Preferences updated successfully",
        preferences=PreferencesOut.model_validate(prefs),
    )
