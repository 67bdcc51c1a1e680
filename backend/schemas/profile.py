# schemas/profile.py
from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from services.schedule_generator import parse_hhmm
from errors import ValidationError


class ProfileIn(BaseModel):
    name: str
    dob: Optional[date] = None
    wake_time: str = "07:00"
    sleep_time: str = "22:00"

    @field_validator("wake_time", "sleep_time")
    @classmethod
    def _clock_time(cls, v: str) -> str:
        try:
            t = parse_hhmm(v)
        except ValidationError as e:
            raise ValueError(str(e))
        return t.strftime("%H:%M")


class ProfileOut(BaseModel):
    id: str
    name: str
    dob: Optional[date] = None
    wake_time: str
    sleep_time: str

    model_config = {"from_attributes": True}
