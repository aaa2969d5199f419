from __future__ import annotations
import uuid
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, EmailStr, StrictBool, StrictInt, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime


class CamelModel(BaseModel):
    """API 는 camelCase 로 주고받고, 파이썬 쪽은 snake_case 를 씁니다."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- 인증 ---
PATIENT_ONLY_FIELDS = ("parent_email", "serial_number", "device_name", "latitude", "longitude")
PATIENT_REQUIRED_FIELDS = ("parent_email", "serial_number", "latitude", "longitude")


class RegisterRequest(CamelModel):
    """
    /auth/register 요청 스키마.
    PATIENT 는 보호자 이메일, 기기 시리얼, 최초 위치가 필수이고
    PARENT 는 이 필드들을 보내면 안 됩니다 (role_field_errors 참고).
    """
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["PARENT", "PATIENT"]
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, min_length=1, max_length=32)

    # PATIENT 전용
    parent_email: Optional[EmailStr] = None
    serial_number: Optional[str] = Field(None, min_length=1, max_length=128)
    device_name: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    def role_field_errors(self) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        if self.role == "PATIENT":
            for name in PATIENT_REQUIRED_FIELDS:
                if getattr(self, name) is None:
                    errors[to_camel(name)] = ["Required when role is PATIENT"]
        else:
            for name in PATIENT_ONLY_FIELDS:
                if getattr(self, name) is not None:
                    errors[to_camel(name)] = ["Not allowed when role is PARENT"]
        return errors


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserPublic(CamelModel):
    id: uuid.UUID
    email: str
    role: str
    created_at: datetime


class RegisterResponse(BaseModel):
    message: str
    user: UserPublic


class LoginResponse(CamelModel):
    message: str
    user_id: uuid.UUID


class UserProfile(CamelModel):
    """/auth/me 응답"""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: str
    phone_number: Optional[str] = None
    created_at: datetime


# --- 보호자-환자 연결 ---
class RelationshipCreate(CamelModel):
    parent_id: uuid.UUID
    patient_id: uuid.UUID


class RelationshipOut(CamelModel):
    parent_id: uuid.UUID
    patient_id: uuid.UUID
    assigned_at: datetime


class UserName(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str


class RelationshipDetail(RelationshipOut):
    parent: UserName
    patient: UserName


class PatientSummary(UserName):
    email: str


class ParentSummary(UserName):
    email: str
    phone_number: Optional[str] = None


# --- 위치 ---
class GeolocationCreate(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    serial_number: str = Field(..., min_length=1, max_length=128)


class GeolocationOut(CamelModel):
    id: uuid.UUID
    latitude: float
    longitude: float
    timestamp: datetime
    device_id: uuid.UUID


class GeolocationCreated(BaseModel):
    message: str
    geolocation: GeolocationOut


# --- 환경설정 ---
class PreferencesUpdate(CamelModel):
    """
    부분 업데이트. 알 수 없는 필드는 거부하고, null 은 해당 값을 비웁니다.
    (notificationsEnabled 는 null 불가)
    """
    model_config = ConfigDict(extra="forbid")

    font_size: Optional[StrictInt] = Field(None, ge=8, le=72)
    battery_saver_level: Optional[StrictInt] = Field(None, ge=0, le=3)
    theme: Optional[str] = Field(None, min_length=1, max_length=20)
    language: Optional[str] = Field(None, min_length=2, max_length=10)
    notifications_enabled: Optional[StrictBool] = None

    @field_validator("notifications_enabled")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("notificationsEnabled cannot be null")
        return v


class PreferencesOut(CamelModel):
    user_id: uuid.UUID
    font_size: Optional[int] = None
    battery_saver_level: Optional[int] = None
    theme: Optional[str] = None
    language: Optional[str] = None
    notifications_enabled: bool = True
    created_at: datetime
    updated_at: datetime


class PreferencesEnvelope(BaseModel):
    preferences: Optional[PreferencesOut] = None


class PreferencesUpdated(BaseModel):
    message: str
    preferences: PreferencesOut


