import unittest
from datetime import datetime, timedelta

import crud
from errors import InvalidTransitionError, NotFoundError
from models import DoseStatus
from services.adherence import calculate_adherence, summarize_adherence
from services.dose_status import effective_status, record_outcome
from support import StoreTestCase, make_schedule

NOW = datetime(2024, 3, 10, 12, 0)


def dose(hours_from_now, status=DoseStatus.PENDING):
    return make_schedule("p", "m", NOW + timedelta(hours=hours_from_now), status=status)


class TestEffectiveStatus(unittest.TestCase):
    def test_past_pending_reads_as_overdue(self):
        self.assertEqual(effective_status(dose(-1), NOW), DoseStatus.OVERDUE)
        self.assertEqual(effective_status(dose(1), NOW), DoseStatus.PENDING)
        self.assertEqual(effective_status(dose(-1, DoseStatus.TAKEN), NOW), DoseStatus.TAKEN)
        self.assertEqual(effective_status(dose(-1, DoseStatus.SKIPPED), NOW), DoseStatus.SKIPPED)

    def test_overdue_is_not_stored(self):
        s = dose(-1)
        effective_status(s, NOW)
        self.assertEqual(s.status, DoseStatus.PENDING)


class TestAdherence(unittest.TestCase):
    def test_no_past_doses_is_full_marks(self):
        self.assertEqual(calculate_adherence([], NOW), 100)
        self.assertEqual(calculate_adherence([dose(1), dose(2)], NOW), 100)

    def test_taken_over_all_past(self):
        schedules = [
            dose(-3, DoseStatus.TAKEN),
            dose(-2, DoseStatus.SKIPPED),
            dose(-1),                      # overdue
            dose(1, DoseStatus.TAKEN),     # taken early, not yet due
        ]
        summary = summarize_adherence(schedules, NOW)
        self.assertEqual((summary.taken, summary.skipped, summary.overdue), (1, 1, 1))
        self.assertAlmostEqual(summary.percentage, 100 / 3)

    def test_all_taken(self):
        self.assertEqual(calculate_adherence([dose(-2, DoseStatus.TAKEN), dose(-1, DoseStatus.TAKEN)], NOW), 100)


class TestRecordOutcome(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        [self.schedule] = await crud.add_schedules(self.db, [dose(-1)])

    async def test_take_overdue_dose(self):
        updated = await record_outcome(self.db, self.schedule.id, DoseStatus.TAKEN, now=NOW)
        self.assertEqual(updated.status, DoseStatus.TAKEN)
        self.assertEqual(updated.actual_taken_time, NOW)

    async def test_skip_has_no_taken_time(self):
        updated = await record_outcome(self.db, self.schedule.id, DoseStatus.SKIPPED, now=NOW)
        self.assertEqual(updated.status, DoseStatus.SKIPPED)
        self.assertIsNone(updated.actual_taken_time)

    async def test_resolved_dose_is_terminal(self):
        await record_outcome(self.db, self.schedule.id, DoseStatus.SKIPPED, now=NOW)
        with self.assertRaises(InvalidTransitionError):
            await record_outcome(self.db, self.schedule.id, DoseStatus.TAKEN, now=NOW)

    async def test_only_take_or_skip(self):
        with self.assertRaises(InvalidTransitionError):
            await record_outcome(self.db, self.schedule.id, DoseStatus.OVERDUE, now=NOW)

    async def test_unknown_dose(self):
        with self.assertRaises(NotFoundError):
            await record_outcome(self.db, "missing", DoseStatus.TAKEN, now=NOW)


if __name__ == "__main__":
    unittest.main(verbosity=2)
