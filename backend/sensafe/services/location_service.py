import uuid
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.errors import NotFoundError
from sensafe.models import Device, Geolocation, User
from sensafe.schemas import GeolocationCreate


async def find_device_by_serial(db: AsyncSession, serial_number: str) -> Optional[Device]:
    # 시리얼은 unique 지만, 혹시 중복이 있으면 가장 최근 기기를 씀
    q = (
        select(Device)
        .where(Device.serial_number == serial_number)
        .order_by(Device.created_at.desc())
        .limit(1)
    )
    return (await db.execute(q)).scalar_one_or_none()


async def record_location(db: AsyncSession, data: GeolocationCreate) -> tuple[Geolocation, Device]:
    device = await find_device_by_serial(db, data.serial_number)
    if device is None:
        raise NotFoundError(f"Device with serial number '{data.serial_number}' not found.")

    point = Geolocation(latitude=data.latitude, longitude=data.longitude, device_id=device.id)
    db.add(point)
    await db.commit()

    logger.debug("Recorded location for device {} ({}, {})", device.serial_number, data.latitude, data.longitude)
    return point, device


async def latest_for_patient(db: AsyncSession, patient_id: uuid.UUID) -> Geolocation:
    """환자 → 가장 최근 기기 → 가장 최근 위치. 단계마다 404 메시지가 다릅니다."""
    patient = await db.get(User, patient_id)
    if patient is None or patient.role != "PATIENT":
        raise NotFoundError(f"Patient with ID {patient_id} not found.")

    device_q = (
        select(Device)
        .where(Device.patient_id == patient_id)
        .order_by(Device.created_at.desc())
        .limit(1)
    )
    device = (await db.execute(device_q)).scalar_one_or_none()
    if device is None:
        raise NotFoundError(f"No device registered for patient {patient_id}.")

    point_q = (
        select(Geolocation)
        .where(Geolocation.device_id == device.id)
        .order_by(Geolocation.timestamp.desc())
        .limit(1)
    )
    point = (await db.execute(point_q)).scalar_one_or_none()
    if point is None:
        raise NotFoundError(f"No geolocation data found for device '{device.serial_number}'.")
    return point
