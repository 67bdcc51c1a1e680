# services/medicine_lifecycle.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

import crud
from errors import InvalidTransitionError, NotFoundError
from models import DoseStatus, FrequencyType, Medicine, MedicineStatus, Profile, Schedule
from schemas import MedicineIn
from services.schedule_generator import Cutoff, generate_schedules, validate_medicine

logger = logging.getLogger(__name__)

# Edits to anything else (doctor name, free-text instructions) keep the existing doses.
MAJOR_CHANGE_FIELDS = (
    "name",
    "dose",
    "course_days",
    "instruction",
    "frequency_type",
    "frequency_value",
    "fixed_times",
)


def _normalized(medicine, field: str):
    value = getattr(medicine, field)
    if field == "fixed_times":
        return list(value or []) if medicine.frequency_type == FrequencyType.FIXED_TIMES else []
    return value


def has_major_change(stored: Medicine, incoming) -> bool:
    return any(_normalized(stored, f) != _normalized(incoming, f) for f in MAJOR_CHANGE_FIELDS)


async def _require_profile(db: AsyncSession, profile_id: str) -> Profile:
    profile = await crud.get_profile(db, profile_id)
    if profile is None:
        raise NotFoundError("Profile", profile_id)
    return profile


async def _require_medicine(db: AsyncSession, medicine_id: str) -> Medicine:
    medicine = await crud.get_medicine(db, medicine_id)
    if medicine is None:
        raise NotFoundError("Medicine", medicine_id)
    return medicine


async def delete_future_open_schedules(db: AsyncSession, medicine_id: str, now: datetime) -> int:
    """Drop doses still ahead of `now` that nobody has taken or skipped."""
    doomed = [
        s.id
        for s in await crud.list_schedules_for_medicine(db, medicine_id)
        if s.scheduled_time > now and s.status == DoseStatus.PENDING
    ]
    return await crud.delete_schedules(db, doomed)


async def _insert_generated(
    db: AsyncSession, medicine: Medicine, profile: Profile, cutoff: Cutoff, now: datetime
) -> List[Schedule]:
    existing = {s.id for s in await crud.list_schedules_for_medicine(db, medicine.id)}
    fresh = [s for s in generate_schedules(medicine, profile, cutoff, now) if s.id not in existing]
    return await crud.add_schedules(db, fresh)


async def add_medicine(
    db: AsyncSession, profile_id: str, data: MedicineIn, now: Optional[datetime] = None
) -> Tuple[Medicine, List[Schedule]]:
    now = now or datetime.now()
    profile = await _require_profile(db, profile_id)

    medicine = Medicine(profile_id=profile.id, start_date=now, status=MedicineStatus.ACTIVE, **data.model_dump())
    validate_medicine(medicine)
    medicine = await crud.save_medicine(db, medicine)

    schedules = await _insert_generated(db, medicine, profile, Cutoff.START_OF_TODAY, now)
    logger.info("Added medicine %s with %d doses", medicine.id, len(schedules))
    return medicine, schedules


async def update_medicine(
    db: AsyncSession, medicine_id: str, data: MedicineIn, now: Optional[datetime] = None
) -> Tuple[Medicine, List[Schedule]]:
    """
    Persist an edit. Only a major change regenerates: future open doses are
    deleted and the course is re-expanded from `now` on.
    Returns the medicine and the newly inserted doses (empty for a minor edit).
    """
    now = now or datetime.now()
    medicine = await _require_medicine(db, medicine_id)
    if medicine.status == MedicineStatus.STOPPED:
        raise InvalidTransitionError(f"Medicine {medicine_id} is stopped and cannot be edited")

    major = has_major_change(medicine, data)
    candidate = Medicine(**{**medicine.model_dump(), **data.model_dump()})
    validate_medicine(candidate)

    for field, value in data.model_dump().items():
        setattr(medicine, field, value)
    medicine = await crud.save_medicine(db, medicine)

    if not major:
        logger.info("Medicine %s edited without dosing changes", medicine_id)
        return medicine, []

    profile = await _require_profile(db, medicine.profile_id)
    removed = await delete_future_open_schedules(db, medicine_id, now)
    schedules = await _insert_generated(db, medicine, profile, Cutoff.FROM_NOW, now)
    logger.info("Regenerated medicine %s: removed %d, added %d doses", medicine_id, removed, len(schedules))
    return medicine, schedules


async def stop_medicine(db: AsyncSession, medicine_id: str, now: Optional[datetime] = None) -> Medicine:
    now = now or datetime.now()
    medicine = await _require_medicine(db, medicine_id)
    if medicine.status == MedicineStatus.STOPPED:
        return medicine

    medicine.status = MedicineStatus.STOPPED
    medicine.end_date = now
    medicine = await crud.save_medicine(db, medicine)
    removed = await delete_future_open_schedules(db, medicine_id, now)
    logger.info("Stopped medicine %s, removed %d future doses", medicine_id, removed)
    return medicine


async def delete_medicine(db: AsyncSession, medicine_id: str) -> None:
    schedules = await crud.list_schedules_for_medicine(db, medicine_id)
    await crud.delete_schedules(db, [s.id for s in schedules])
    await crud.delete_medicine(db, medicine_id)


async def delete_profile(db: AsyncSession, profile_id: str) -> None:
    """Schedules first, then medicines, then the profile itself."""
    for medicine in await crud.list_medicines_for_profile(db, profile_id):
        await delete_medicine(db, medicine.id)
    # doses whose medicine row is already gone
    orphans = await crud.list_schedules_for_profile(db, profile_id)
    await crud.delete_schedules(db, [s.id for s in orphans])
    await crud.delete_profile(db, profile_id)
    logger.info("Deleted profile %s", profile_id)
