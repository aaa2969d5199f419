import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sensafe.db import get_db
from sensafe.schemas import ParentSummary, PatientSummary, RelationshipCreate, RelationshipDetail, RelationshipOut
from sensafe.services import relationship_service

router = APIRouter(prefix="/r", tags=["relationship"])


@router.post("", response_model=RelationshipOut, status_code=status.HTTP_201_CREATED)
async def create_relationship(req: RelationshipCreate, db: AsyncSession = Depends(get_db)):
    return await relationship_service.create_relationship(db, req.parent_id, req.patient_id)


@router.get("/parent/{parent_id}/patients", response_model=List[PatientSummary])
async def get_patients_of_parent(parent_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """보호자에게 연결된 환자 목록"""
    return await relationship_service.list_patients(db, parent_id)


@router.get("/patient/{patient_id}/parents", response_model=List[ParentSummary])
async def get_parents_of_patient(patient_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """환자에게 연결된 보호자 목록 (연락처 포함)"""
    return await relationship_service.list_parents(db, patient_id)


@router.get("/{parent_id}/{patient_id}", response_model=RelationshipDetail)
async def get_relationship(parent_id: uuid.UUID, patient_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await relationship_service.get_relationship(db, parent_id, patient_id)


@router.delete("/{parent_id}/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relationship(parent_id: uuid.UUID, patient_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await relationship_service.delete_relationship(db, parent_id, patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
