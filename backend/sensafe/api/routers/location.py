import uuid

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.db import get_db
from sensafe.schemas import GeolocationCreate, GeolocationCreated, GeolocationOut
from sensafe.services import location_service
from sensafe.services.connection_manager import user_room

router = APIRouter(prefix="/location", tags=["location"])


@router.post("", response_model=GeolocationCreated, status_code=status.HTTP_201_CREATED)
async def create_location(
    req: GeolocationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """기기가 보내는 위치. 저장 후 환자 방(u-<patientId>)에 실시간으로 알립니다."""
    point, device = await location_service.record_location(db, req)
    out = GeolocationOut.model_validate(point)

    await request.app.state.connections.broadcast(
        user_room(device.patient_id),
        {"event": "location", "geolocation": out.model_dump(mode="json", by_alias=True)},
    )
    return GeolocationCreated(message="Geolocation registered successfully", geolocation=out)


@router.get("/latest/{patient_id}", response_model=GeolocationOut)
async def get_latest_location(patient_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await location_service.latest_for_patient(db, patient_id)
