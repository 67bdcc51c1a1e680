from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

import crud
from database import get_db
from schemas import MedicineIn, MedicineOut
from services import medicine_lifecycle

router = APIRouter(tags=["medicines"])


@router.post("/profiles/{profile_id}/medicines", response_model=MedicineOut, status_code=201)
async def add_medicine(profile_id: str, request: MedicineIn, db: AsyncSession = Depends(get_db)):
    medicine, _ = await medicine_lifecycle.add_medicine(db, profile_id, request)
    return medicine


@router.get("/profiles/{profile_id}/medicines", response_model=List[MedicineOut])
async def list_medicines(profile_id: str, db: AsyncSession = Depends(get_db)):
    # Stopped medicines are included so history can still be labelled.
    return await crud.list_medicines_for_profile(db, profile_id)


@router.get("/medicines/{medicine_id}", response_model=MedicineOut)
async def get_medicine(medicine_id: str, db: AsyncSession = Depends(get_db)):
    medicine = await crud.get_medicine(db, medicine_id)
    if not medicine:
        raise HTTPException(404, f"Medicine '{medicine_id}' not found")
    return medicine


@router.put("/medicines/{medicine_id}", response_model=MedicineOut)
async def update_medicine(medicine_id: str, request: MedicineIn, db: AsyncSession = Depends(get_db)):
    medicine, _ = await medicine_lifecycle.update_medicine(db, medicine_id, request)
    return medicine


@router.post("/medicines/{medicine_id}/stop", response_model=MedicineOut)
async def stop_medicine(medicine_id: str, db: AsyncSession = Depends(get_db)):
    return await medicine_lifecycle.stop_medicine(db, medicine_id)


@router.delete("/medicines/{medicine_id}", status_code=204)
async def delete_medicine(medicine_id: str, db: AsyncSession = Depends(get_db)):
    await medicine_lifecycle.delete_medicine(db, medicine_id)
