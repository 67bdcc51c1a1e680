import unittest
from datetime import datetime, timedelta

import crud
from errors import InvalidTransitionError, NotFoundError
from models import DoseStatus, FrequencyType, Instruction, MedicineStatus
from schemas import MedicineIn
from services import medicine_lifecycle
from services.dose_status import record_outcome
from support import StoreTestCase, make_profile

DAY = datetime(2024, 3, 10)
NOON = DAY + timedelta(hours=12)


def ibuprofen(**overrides):
    fields = dict(
        name="Ibuprofen",
        dose="200mg",
        course_days=1,
        instruction=Instruction.AFTER_FOOD,
        frequency_type=FrequencyType.TIMES_A_DAY,
        frequency_value=3,
    )
    fields.update(overrides)
    return MedicineIn(**fields)


class TestMedicineLifecycle(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.profile = await crud.save_profile(self.db, make_profile("07:00", "22:00"))
        self.med, self.initial = await medicine_lifecycle.add_medicine(
            self.db, self.profile.id, ibuprofen(), now=NOON
        )

    async def _schedules(self):
        rows = await crud.list_schedules_for_medicine(self.db, self.med.id)
        return sorted(rows, key=lambda s: s.scheduled_time)

    async def test_add_includes_todays_passed_doses(self):
        self.assertEqual(self.med.status, MedicineStatus.ACTIVE)
        self.assertEqual(self.med.start_date, NOON)
        times = [s.scheduled_time.strftime("%H:%M") for s in await self._schedules()]
        self.assertEqual(times, ["10:10", "14:30", "18:50"])

    async def test_add_for_unknown_profile(self):
        with self.assertRaises(NotFoundError):
            await medicine_lifecycle.add_medicine(self.db, "nobody", ibuprofen(), now=NOON)

    async def test_minor_edit_keeps_schedule_identities(self):
        before = {s.id for s in await self._schedules()}
        med, added = await medicine_lifecycle.update_medicine(
            self.db, self.med.id, ibuprofen(doctor_name="Dr. Smith", custom_instructions="with water"), now=NOON
        )
        self.assertEqual(added, [])
        self.assertEqual(med.doctor_name, "Dr. Smith")
        self.assertEqual({s.id for s in await self._schedules()}, before)

    async def test_major_edit_regenerates_from_now(self):
        med, added = await medicine_lifecycle.update_medicine(
            self.db, self.med.id, ibuprofen(frequency_value=2), now=NOON
        )
        self.assertTrue(added)
        self.assertTrue(all(s.scheduled_time >= NOON for s in added))
        times = [s.scheduled_time.strftime("%H:%M") for s in await self._schedules()]
        # the passed 10:10 dose stays; 08:00-21:00 in two gives 11:15 (past) and 17:45
        self.assertEqual(times, ["10:10", "17:45"])

    async def test_major_edit_keeps_resolved_future_dose(self):
        early = [s for s in await self._schedules() if s.scheduled_time.hour == 14][0]
        await record_outcome(self.db, early.id, DoseStatus.TAKEN, now=NOON)

        await medicine_lifecycle.update_medicine(self.db, self.med.id, ibuprofen(dose="400mg"), now=NOON)

        rows = await self._schedules()
        self.assertEqual({s.id for s in rows}, {s.id for s in self.initial})
        by_time = {s.scheduled_time.strftime("%H:%M"): s for s in rows}
        self.assertEqual(by_time["14:30"].status, DoseStatus.TAKEN)
        self.assertEqual(by_time["14:30"].dose, "200mg")
        self.assertEqual(by_time["18:50"].dose, "400mg")

    async def test_stop_keeps_history_and_drops_future(self):
        first = (await self._schedules())[0]
        await record_outcome(self.db, first.id, DoseStatus.TAKEN, now=NOON)

        med = await medicine_lifecycle.stop_medicine(self.db, self.med.id, now=NOON)

        self.assertEqual(med.status, MedicineStatus.STOPPED)
        self.assertEqual(med.end_date, NOON)
        rows = await self._schedules()
        self.assertEqual([s.id for s in rows], [first.id])
        self.assertEqual(rows[0].status, DoseStatus.TAKEN)

        # stopping twice is harmless, editing is not allowed
        await medicine_lifecycle.stop_medicine(self.db, self.med.id, now=NOON)
        with self.assertRaises(InvalidTransitionError):
            await medicine_lifecycle.update_medicine(self.db, self.med.id, ibuprofen(dose="1g"), now=NOON)

    async def test_delete_profile_removes_everything(self):
        await medicine_lifecycle.delete_profile(self.db, self.profile.id)
        self.assertIsNone(await crud.get_profile(self.db, self.profile.id))
        self.assertEqual(await crud.list_medicines_for_profile(self.db, self.profile.id), [])
        self.assertEqual(await crud.list_schedules_for_profile(self.db, self.profile.id), [])

    def test_has_major_change(self):
        same = ibuprofen()
        self.assertFalse(medicine_lifecycle.has_major_change(self.med, same))
        self.assertFalse(medicine_lifecycle.has_major_change(self.med, ibuprofen(doctor_name="Dr. Who")))
        self.assertTrue(medicine_lifecycle.has_major_change(self.med, ibuprofen(course_days=5)))
        self.assertTrue(
            medicine_lifecycle.has_major_change(self.med, ibuprofen(instruction=Instruction.WITH_FOOD))
        )


if __name__ == "__main__":
    unittest.main(verbosity=2)
