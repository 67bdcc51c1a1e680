# schemas/medicine.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from errors import ValidationError
from models import FrequencyType, Instruction, MedicineStatus
from services.schedule_generator import parse_hhmm


class MedicineIn(BaseModel):
    """Form payload for adding or editing a medicine."""
    name: str = Field(..., min_length=1)
    dose: str = Field(..., min_length=1)
    course_days: int = Field(7, gt=0)
    instruction: Instruction = Instruction.AFTER_FOOD
    custom_instructions: Optional[str] = None
    doctor_name: Optional[str] = None
    frequency_type: FrequencyType = FrequencyType.TIMES_A_DAY
    frequency_value: int = Field(3, gt=0)
    fixed_times: Optional[List[str]] = None

    @field_validator("name", "dose")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("custom_instructions", "doctor_name")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("fixed_times")
    @classmethod
    def _clock_times(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        out = []
        for t in v:
            try:
                out.append(parse_hhmm(t).strftime("%H:%M"))
            except ValidationError as e:
                raise ValueError(str(e))
        return out

    @model_validator(mode="after")
    def _fixed_times_match_count(self):
        if self.frequency_type == FrequencyType.FIXED_TIMES:
            if len(self.fixed_times or []) != self.frequency_value:
                raise ValueError("fixed_times must list exactly frequency_value entries")
        else:
            self.fixed_times = None
        return self


class MedicineOut(BaseModel):
    id: str
    profile_id: str
    name: str
    dose: str
    course_days: int
    instruction: Instruction
    custom_instructions: Optional[str] = None
    doctor_name: Optional[str] = None
    frequency_type: FrequencyType
    frequency_value: int
    fixed_times: Optional[List[str]] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    status: MedicineStatus

    model_config = {"from_attributes": True}
