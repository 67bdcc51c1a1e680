from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

import crud
from database import get_db
from models import Profile
from schemas import AdherenceOut, ProfileIn, ProfileOut
from services.adherence import summarize_adherence
from services.medicine_lifecycle import delete_profile
from services.schedule_generator import day_bounds

router = APIRouter(prefix="/profiles", tags=["profiles"])


async def _fetch_profile(db: AsyncSession, profile_id: str) -> Profile:
    profile = await crud.get_profile(db, profile_id)
    if not profile:
        raise HTTPException(404, f"Profile '{profile_id}' not found")
    return profile


@router.post("", response_model=ProfileOut, status_code=201)
async def create_profile(request: ProfileIn, db: AsyncSession = Depends(get_db)):
    return await crud.save_profile(db, Profile(**request.model_dump()))


@router.get("", response_model=List[ProfileOut])
async def list_profiles(db: AsyncSession = Depends(get_db)):
    return await crud.list_profiles(db)


@router.get("/{profile_id}", response_model=ProfileOut)
async def get_profile(profile_id: str, db: AsyncSession = Depends(get_db)):
    return await _fetch_profile(db, profile_id)


@router.put("/{profile_id}", response_model=ProfileOut)
async def update_profile(profile_id: str, request: ProfileIn, db: AsyncSession = Depends(get_db)):
    # Existing doses keep their times; new wake/sleep hours apply to doses generated later.
    profile = await _fetch_profile(db, profile_id)
    for field, value in request.model_dump().items():
        setattr(profile, field, value)
    return await crud.save_profile(db, profile)


@router.delete("/{profile_id}", status_code=204)
async def remove_profile(profile_id: str, db: AsyncSession = Depends(get_db)):
    await delete_profile(db, profile_id)


@router.get("/{profile_id}/adherence", response_model=AdherenceOut)
async def todays_adherence(profile_id: str, db: AsyncSession = Depends(get_db)):
    await _fetch_profile(db, profile_id)
    now = datetime.now()
    schedules = await crud.get_schedules_in_range(db, profile_id, *day_bounds(now))
    return summarize_adherence(schedules, now)
