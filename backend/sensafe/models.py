from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional, Literal

from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import (
    String, Text, Integer, Float, DateTime, CheckConstraint,
    ForeignKey, Index, Boolean, Uuid, inspect
)
from sqlalchemy.sql import expression

from sensafe.db import Base

Role = Literal["PARENT", "PATIENT"]
ROLES = ("PARENT", "PATIENT")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role in ('PARENT','PATIENT')", name="ck_users_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    devices: Mapped[list["Device"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan", passive_deletes=True
    )
    sessions: Mapped[list["UserSession"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    preferences: Mapped[Optional["UserPreferences"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )
    patient_links: Mapped[list["ParentPatientRelationship"]] = relationship(
        foreign_keys="ParentPatientRelationship.parent_id", back_populates="parent",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    parent_links: Mapped[list["ParentPatientRelationship"]] = relationship(
        foreign_keys="ParentPatientRelationship.patient_id", back_populates="patient",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    @validates("role")
    def _validate_role(self, key, value):
        # 역할은 생성 시 한 번만 정해지고 이후 변경 불가
        if value not in ROLES:
            raise ValueError(f"Invalid role: {value}")
        state = inspect(self)
        if state.persistent and self.role != value:
            raise ValueError("User role cannot be changed after creation.")
        return value


class ParentPatientRelationship(Base):
    """
    보호자(PARENT) - 환자(PATIENT) 연결 (M:N).
    (parent_id, patient_id) 쌍이 곧 PK 이므로 같은 쌍은 한 번만 존재합니다.
    역할 조합 검사는 relationship_service 에서 같은 트랜잭션 안에서 수행합니다.
    """
    __tablename__ = "parent_patient_relationships"
    __table_args__ = (
        Index("idx_relationships_patient", "patient_id"),
    )

    parent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    parent: Mapped["User"] = relationship(foreign_keys=[parent_id], back_populates="patient_links")
    patient: Mapped["User"] = relationship(foreign_keys=[patient_id], back_populates="parent_links")


class Device(Base):
    __tablename__ = "devices"
    __table_args__ = (
        Index("idx_devices_patient_created", "patient_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    patient: Mapped["User"] = relationship(back_populates="devices")
    geolocations: Mapped[list["Geolocation"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )


class Geolocation(Base):
    # 한 번 기록되면 수정하지 않는 append-only 이력
    __tablename__ = "geolocations"
    __table_args__ = (
        CheckConstraint("latitude >= -90 and latitude <= 90", name="ck_geolocations_latitude"),
        CheckConstraint("longitude >= -180 and longitude <= 180", name="ck_geolocations_longitude"),
        Index("idx_geolocations_device_time", "device_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    device_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False
    )

    device: Mapped["Device"] = relationship(back_populates="geolocations")


class UserSession(Base):
    """발급된 토큰 하나당 한 행. 행이 지워지거나 만료되면 토큰도 더 이상 통과하지 못함."""
    __tablename__ = "user_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="sessions")


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    font_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    battery_saver_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    theme: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    language: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=expression.true(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="preferences")
