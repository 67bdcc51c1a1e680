# schemas/schedule.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from models import DoseStatus, Schedule
from schemas.medicine import MedicineOut


class ScheduleOut(BaseModel):
    id: str
    medicine_id: str
    profile_id: str
    scheduled_time: datetime
    status: DoseStatus  # effective status: past pending doses read as overdue
    actual_taken_time: Optional[datetime] = None
    medicine_name: str
    dose: str
    notified: bool = False

    @classmethod
    def from_schedule(cls, schedule: Schedule, status: DoseStatus) -> "ScheduleOut":
        return cls(
            id=schedule.id,
            medicine_id=schedule.medicine_id,
            profile_id=schedule.profile_id,
            scheduled_time=schedule.scheduled_time,
            status=status,
            actual_taken_time=schedule.actual_taken_time,
            medicine_name=schedule.medicine_name,
            dose=schedule.dose,
            notified=schedule.notified,
        )


class AdherenceOut(BaseModel):
    taken: int
    skipped: int
    overdue: int
    percentage: float


class HistoryOut(BaseModel):
    profile_id: str
    start: datetime
    end: datetime
    schedules: List[ScheduleOut]
    medicines: List[MedicineOut]


class ActiveProfileIn(BaseModel):
    profile_id: Optional[str] = None


class AlarmOut(BaseModel):
    schedule: Optional[ScheduleOut] = None
    profile_name: Optional[str] = None
