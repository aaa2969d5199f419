import uuid
from typing import Sequence

from loguru import logger
from sqlalchemy import select, delete, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sensafe.errors import ConflictError, NotFoundError, ValidationFailedError
from sensafe.models import ParentPatientRelationship, User


async def link(db: AsyncSession, parent: User, patient: User) -> ParentPatientRelationship:
    """
    연결 행을 추가합니다 (flush 까지만).
    역할 조합(PARENT, PATIENT) 검사를 insert 와 같은 트랜잭션에서 수행합니다.
    """
    if parent.role != "PARENT":
        raise ValidationFailedError(f"User {parent.id} is not of type PARENT.")
    if patient.role != "PATIENT":
        raise ValidationFailedError(f"User {patient.id} is not of type PATIENT.")

    rel = ParentPatientRelationship(parent_id=parent.id, patient_id=patient.id)
    db.add(rel)
    await db.flush()
    return rel


async def create_relationship(db: AsyncSession, parent_id: uuid.UUID, patient_id: uuid.UUID) -> ParentPatientRelationship:
    if parent_id == patient_id:
        raise ValidationFailedError("Parent ID and Patient ID cannot be the same.")

    parent = await db.get(User, parent_id)
    if parent is None:
        raise NotFoundError(f"User with ID {parent_id} (parent) not found.")
    patient = await db.get(User, patient_id)
    if patient is None:
        raise NotFoundError(f"User with ID {patient_id} (patient) not found.")

    existing = await db.get(ParentPatientRelationship, (parent_id, patient_id))
    if existing is not None:
        raise ConflictError("This parent-patient relationship already exists.")

    try:
        rel = await link(db, parent, patient)
        await db.commit()
    except IntegrityError:
        # 동시에 같은 쌍이 들어온 경우
        await db.rollback()
        raise ConflictError("This parent-patient relationship already exists.")
    except ValidationFailedError:
        await db.rollback()
        raise

    logger.info("Linked parent {} -> patient {}", parent_id, patient_id)
    return rel


async def list_patients(db: AsyncSession, parent_id: uuid.UUID) -> Sequence[User]:
    if await db.get(User, parent_id) is None:
        raise NotFoundError(f"Parent user with ID {parent_id} not found.")

    q = (
        select(User)
        .join(ParentPatientRelationship, ParentPatientRelationship.patient_id == User.id)
        .where(ParentPatientRelationship.parent_id == parent_id)
        .order_by(ParentPatientRelationship.assigned_at)
    )
    return (await db.execute(q)).scalars().all()


async def list_parents(db: AsyncSession, patient_id: uuid.UUID) -> Sequence[User]:
    if await db.get(User, patient_id) is None:
        raise NotFoundError(f"Patient user with ID {patient_id} not found.")

    q = (
        select(User)
        .join(ParentPatientRelationship, ParentPatientRelationship.parent_id == User.id)
        .where(ParentPatientRelationship.patient_id == patient_id)
        .order_by(ParentPatientRelationship.assigned_at)
    )
    return (await db.execute(q)).scalars().all()


async def get_relationship(db: AsyncSession, parent_id: uuid.UUID, patient_id: uuid.UUID) -> ParentPatientRelationship:
    q = (
        select(ParentPatientRelationship)
        .options(
            selectinload(ParentPatientRelationship.parent),
            selectinload(ParentPatientRelationship.patient),
        )
        .where(
            ParentPatientRelationship.parent_id == parent_id,
            ParentPatientRelationship.patient_id == patient_id,
        )
    )
    rel = (await db.execute(q)).scalar_one_or_none()
    if rel is None:
        raise NotFoundError("Relationship not found.")
    return rel


async def delete_relationship(db: AsyncSession, parent_id: uuid.UUID, patient_id: uuid.UUID) -> None:
    result = await db.execute(
        delete(ParentPatientRelationship).where(
            ParentPatientRelationship.parent_id == parent_id,
            ParentPatientRelationship.patient_id == patient_id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Relationship not found for deletion.")
    await db.commit()
    logger.info("Unlinked parent {} -> patient {}", parent_id, patient_id)


async def are_linked(db: AsyncSession, user_a: uuid.UUID, user_b: uuid.UUID) -> bool:
    """두 사용자가 어느 방향으로든 연결되어 있는지."""
    q = select(ParentPatientRelationship.parent_id).where(
        or_(
            and_(ParentPatientRelationship.parent_id == user_a, ParentPatientRelationship.patient_id == user_b),
            and_(ParentPatientRelationship.parent_id == user_b, ParentPatientRelationship.patient_id == user_a),
        )
    ).limit(1)
    return (await db.execute(q)).first() is not None
