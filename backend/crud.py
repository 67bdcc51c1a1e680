import functools
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from errors import StorageError
from models import DoseStatus, Medicine, Profile, Schedule

logger = logging.getLogger(__name__)


def _storage_errors(func):
    """Roll back and re-raise engine failures as StorageError."""
    @functools.wraps(func)
    async def wrapper(db: AsyncSession, *args, **kwargs):
        try:
            return await func(db, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("%s failed: %s", func.__name__, e)
            try:
                await db.rollback()
            except SQLAlchemyError:
                logger.warning("rollback after %s failed", func.__name__)
            raise StorageError(f"{func.__name__} failed: {e}") from e
    return wrapper


# --- generic helpers ---

async def _get(db: AsyncSession, model, entity_id: str):
    return await db.get(model, entity_id, populate_existing=True)

async def _save(db: AsyncSession, obj):
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj

async def _delete_by_id(db: AsyncSession, model, entity_id: str) -> bool:
    result = await db.execute(delete(model).where(model.id == entity_id))
    await db.commit()
    return result.rowcount > 0


# --- profiles ---

@_storage_errors
async def get_profile(db: AsyncSession, profile_id: str) -> Optional[Profile]:
    return await _get(db, Profile, profile_id)

@_storage_errors
async def list_profiles(db: AsyncSession) -> List[Profile]:
    result = await db.execute(select(Profile).order_by(Profile.name))
    return list(result.scalars().all())

@_storage_errors
async def save_profile(db: AsyncSession, profile: Profile) -> Profile:
    return await _save(db, profile)

@_storage_errors
async def delete_profile(db: AsyncSession, profile_id: str) -> bool:
    return await _delete_by_id(db, Profile, profile_id)


# --- medicines ---

@_storage_errors
async def get_medicine(db: AsyncSession, medicine_id: str) -> Optional[Medicine]:
    return await _get(db, Medicine, medicine_id)

@_storage_errors
async def list_medicines_for_profile(db: AsyncSession, profile_id: str) -> List[Medicine]:
    result = await db.execute(select(Medicine).where(Medicine.profile_id == profile_id))
    return list(result.scalars().all())

@_storage_errors
async def save_medicine(db: AsyncSession, medicine: Medicine) -> Medicine:
    return await _save(db, medicine)

@_storage_errors
async def delete_medicine(db: AsyncSession, medicine_id: str) -> bool:
    return await _delete_by_id(db, Medicine, medicine_id)


# --- schedules ---

@_storage_errors
async def get_schedule(db: AsyncSession, schedule_id: str) -> Optional[Schedule]:
    return await _get(db, Schedule, schedule_id)

@_storage_errors
async def list_schedules_for_profile(db: AsyncSession, profile_id: str) -> List[Schedule]:
    result = await db.execute(select(Schedule).where(Schedule.profile_id == profile_id))
    return list(result.scalars().all())

@_storage_errors
async def list_schedules_for_medicine(db: AsyncSession, medicine_id: str) -> List[Schedule]:
    result = await db.execute(select(Schedule).where(Schedule.medicine_id == medicine_id))
    return list(result.scalars().all())

@_storage_errors
async def get_schedules_in_range(
    db: AsyncSession, profile_id: str, start: datetime, end: datetime
) -> List[Schedule]:
    """Schedules of a profile with start <= scheduled_time <= end."""
    result = await db.execute(
        select(Schedule)
        .where(Schedule.scheduled_time >= start, Schedule.scheduled_time <= end)
        .where(Schedule.profile_id == profile_id)
        .order_by(Schedule.scheduled_time, Schedule.id)
    )
    return list(result.scalars().all())

@_storage_errors
async def add_schedules(db: AsyncSession, schedules: Iterable[Schedule]) -> List[Schedule]:
    batch = list(schedules)
    if not batch:
        return batch
    db.add_all(batch)
    await db.commit()
    return batch

@_storage_errors
async def delete_schedules(db: AsyncSession, schedule_ids: Iterable[str]) -> int:
    ids = list(schedule_ids)
    if not ids:
        return 0
    result = await db.execute(
        delete(Schedule).where(Schedule.id.in_(ids)).execution_options(synchronize_session="fetch")
    )
    await db.commit()
    return result.rowcount

@_storage_errors
async def mark_notified(db: AsyncSession, schedule_id: str) -> bool:
    """Flip notified false -> true. Returns True only for the caller that flipped it."""
    result = await db.execute(
        update(Schedule)
        .where(Schedule.id == schedule_id, Schedule.notified == False)  # noqa: E712
        .values(notified=True)
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    return result.rowcount == 1

@_storage_errors
async def set_schedule_outcome(
    db: AsyncSession, schedule_id: str, status: DoseStatus, taken_at: Optional[datetime]
) -> bool:
    """Resolve a pending schedule. Returns False if it was no longer pending."""
    result = await db.execute(
        update(Schedule)
        .where(Schedule.id == schedule_id, Schedule.status == DoseStatus.PENDING)
        .values(status=status, actual_taken_time=taken_at)
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    return result.rowcount == 1
