import unittest
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import create_tables
from models import DoseStatus, FrequencyType, Instruction, Medicine, Profile, Schedule
from services.schedule_generator import schedule_id_for


def memory_engine():
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def make_profile(wake="07:00", sleep="22:00", name="Grandma Rose"):
    return Profile(name=name, wake_time=wake, sleep_time=sleep)


def make_medicine(profile, **overrides):
    fields = dict(
        profile_id=profile.id,
        name="Ibuprofen",
        dose="200mg",
        course_days=1,
        instruction=Instruction.AFTER_FOOD,
        frequency_type=FrequencyType.TIMES_A_DAY,
        frequency_value=3,
        start_date=datetime(2024, 3, 10, 6, 0),
    )
    fields.update(overrides)
    return Medicine(**fields)


def make_schedule(profile_id, medicine_id, when, status=DoseStatus.PENDING, notified=False):
    return Schedule(
        id=schedule_id_for(medicine_id, when),
        medicine_id=medicine_id,
        profile_id=profile_id,
        scheduled_time=when,
        status=status,
        medicine_name="Ibuprofen",
        dose="200mg",
        notified=notified,
    )


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh in-memory database per test."""

    async def asyncSetUp(self):
        self.engine = memory_engine()
        await create_tables(self.engine)
        self.session_factory = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        self.db = self.session_factory()

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()
