import enum
import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, UniqueConstraint

Base = SQLModel  # Define Base as SQLModel


class Instruction(str, enum.Enum):
    BEFORE_FOOD = "before_food"
    AFTER_FOOD = "after_food"
    WITH_FOOD = "with_food"
    EMPTY_STOMACH = "empty_stomach"
    BEFORE_SLEEP = "before_sleep"


class FrequencyType(str, enum.Enum):
    TIMES_A_DAY = "times_a_day"
    EVERY_X_HOURS = "every_x_hours"
    FIXED_TIMES = "fixed_times"


class MedicineStatus(str, enum.Enum):
    ACTIVE = "active"
    STOPPED = "stopped"


class DoseStatus(str, enum.Enum):
    PENDING = "pending"
    TAKEN = "taken"
    SKIPPED = "skipped"
    # Derived at read time from a past PENDING row; never stored.
    OVERDUE = "overdue"


def new_id() -> str:
    return str(uuid.uuid4())


class Profile(Base, table=True):
    __tablename__ = "profiles"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(nullable=False)
    dob: Optional[date] = Field(default=None)
    wake_time: str = Field(nullable=False)   # HH:MM
    sleep_time: str = Field(nullable=False)  # HH:MM


class Medicine(Base, table=True):
    __tablename__ = "medicines"

    id: str = Field(default_factory=new_id, primary_key=True)
    profile_id: str = Field(index=True, nullable=False)
    name: str = Field(nullable=False)
    dose: str = Field(nullable=False)
    course_days: int = Field(nullable=False)
    instruction: Instruction = Field(nullable=False)
    custom_instructions: Optional[str] = Field(default=None)
    doctor_name: Optional[str] = Field(default=None)
    frequency_type: FrequencyType = Field(nullable=False)
    frequency_value: int = Field(nullable=False)
    fixed_times: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    start_date: datetime = Field(nullable=False)
    end_date: Optional[datetime] = Field(default=None)
    status: MedicineStatus = Field(default=MedicineStatus.ACTIVE, nullable=False)


class Schedule(Base, table=True):
    __tablename__ = "schedules"
    __table_args__ = (UniqueConstraint("medicine_id", "scheduled_time"),)

    id: str = Field(primary_key=True)
    medicine_id: str = Field(index=True, nullable=False)
    profile_id: str = Field(index=True, nullable=False)
    scheduled_time: datetime = Field(index=True, nullable=False)
    status: DoseStatus = Field(default=DoseStatus.PENDING, nullable=False)
    actual_taken_time: Optional[datetime] = Field(default=None)
    # Snapshot of the medicine at generation time
    medicine_name: str = Field(nullable=False)
    dose: str = Field(nullable=False)
    notified: bool = Field(default=False, nullable=False)
