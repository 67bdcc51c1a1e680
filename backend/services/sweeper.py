# services/sweeper.py
"""
Due-dose sweepers.

Two pollers run side by side against the same store:

- AlarmSweeper drives the foreground alarm. It holds at most one active
  alarm and raises a new one only after the current one is acknowledged.
- NotificationSweeper drives background notifications. Each dose is claimed
  through the store's `notified` flag before the notifier runs, so a dose is
  announced at most once however often the sweep repeats.

Both look back over a short trailing window and see a due dose within one
interval of its time. A failed query means nothing is due this cycle.
"""
from __future__ import annotations
import abc
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Union

import config
import crud
from errors import InvalidTransitionError, NotFoundError, StorageError
from models import DoseStatus, Schedule
from services.dose_status import record_outcome

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Callback = Callable[[Schedule], Union[None, Awaitable[None]]]


async def _maybe_await(result):
    if asyncio.iscoroutine(result):
        await result


class LoggingNotifier:
    """Default notifier: writes the reminder to the log."""

    def __init__(self):
        self.sent: List[str] = []

    def __call__(self, schedule: Schedule) -> None:
        title, body = notification_text(schedule)
        logger.info("NOTIFY [%s] %s %s", schedule.id, title, body)
        self.sent.append(schedule.id)


def notification_text(schedule: Schedule):
    title = f"Time for {schedule.medicine_name}!"
    body = f"It's time for your {schedule.dose} of {schedule.medicine_name}."
    return title, body


class _PollingSweeper(abc.ABC):
    def __init__(self, session_factory, *, interval: float, lookback: timedelta, clock: Clock = datetime.now):
        self.session_factory = session_factory
        self.interval = interval
        self.lookback = lookback
        self.clock = clock
        self._profile_id: Optional[str] = None
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def profile_id(self) -> Optional[str]:
        return self._profile_id

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, profile_id: Optional[str]) -> None:
        """
        Sweep for `profile_id`. If already running, the loop switches to the
        new profile on its next iteration (which starts right away); a sweep
        in flight finishes under the old one. None stops the loop.
        """
        self._profile_id = profile_id
        self._wake.set()
        if profile_id is not None and not self.running:
            self._task = asyncio.create_task(self._run(), name=type(self).__name__)

    async def stop(self) -> None:
        self._profile_id = None
        self._wake.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def _run(self) -> None:
        while self._profile_id is not None:
            self._wake.clear()
            try:
                await self.sweep_once(self._profile_id)
            except Exception:
                logger.exception("%s iteration failed", type(self).__name__)
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def due_schedules(self, profile_id: str) -> List[Schedule]:
        """Pending doses of the profile inside the trailing window. [] on storage failure."""
        now = self.clock()
        try:
            async with self.session_factory() as db:
                rows = await crud.get_schedules_in_range(db, profile_id, now - self.lookback, now)
        except StorageError as e:
            logger.warning("%s: due-dose query failed, retrying next cycle: %s", type(self).__name__, e)
            return []
        return [s for s in rows if s.status == DoseStatus.PENDING]

    @abc.abstractmethod
    async def sweep_once(self, profile_id: str) -> Optional[Schedule]:
        raise NotImplementedError


class AlarmSweeper(_PollingSweeper):
    def __init__(
        self,
        session_factory,
        *,
        interval: float = config.ALARM_SWEEP_INTERVAL_SECONDS,
        lookback: timedelta = timedelta(minutes=config.ALARM_LOOKBACK_MINUTES),
        clock: Clock = datetime.now,
        on_alarm: Optional[Callback] = None,
    ):
        super().__init__(session_factory, interval=interval, lookback=lookback, clock=clock)
        self.on_alarm = on_alarm
        self.active_alarm: Optional[Schedule] = None

    async def _alarm_still_open(self, alarm: Schedule) -> bool:
        try:
            async with self.session_factory() as db:
                current = await crud.get_schedule(db, alarm.id)
        except StorageError as e:
            logger.warning("Could not re-read alarm dose %s: %s", alarm.id, e)
            return True
        return current is not None and current.status == DoseStatus.PENDING

    async def sweep_once(self, profile_id: str) -> Optional[Schedule]:
        """Raise an alarm for the first due dose, unless one is already showing."""
        if profile_id is None:
            return None
        if self.active_alarm is not None:
            if await self._alarm_still_open(self.active_alarm):
                return None
            logger.info("Dropping alarm for dose %s: deleted or resolved", self.active_alarm.id)
            self.active_alarm = None
        due = await self.due_schedules(profile_id)
        if not due:
            return None
        self.active_alarm = due[0]
        logger.info("Alarm for dose %s (%s %s)", due[0].id, due[0].medicine_name, due[0].dose)
        if self.on_alarm is not None:
            await _maybe_await(self.on_alarm(due[0]))
        return due[0]

    async def acknowledge(self, status: DoseStatus) -> Optional[Schedule]:
        """Take or skip the active alarm's dose and clear the alarm."""
        alarm = self.active_alarm
        if alarm is None:
            return None
        try:
            async with self.session_factory() as db:
                updated = await record_outcome(db, alarm.id, status, self.clock())
        except (InvalidTransitionError, NotFoundError):
            # resolved or deleted in the meantime; the alarm is stale either way
            self.active_alarm = None
            raise
        self.active_alarm = None
        return updated


class NotificationSweeper(_PollingSweeper):
    def __init__(
        self,
        session_factory,
        notifier: Optional[Callback] = None,
        *,
        interval: float = config.NOTIFICATION_SWEEP_INTERVAL_SECONDS,
        lookback: timedelta = timedelta(seconds=config.NOTIFICATION_LOOKBACK_SECONDS),
        clock: Clock = datetime.now,
    ):
        super().__init__(session_factory, interval=interval, lookback=lookback, clock=clock)
        self.notifier = notifier or LoggingNotifier()

    async def sweep_once(self, profile_id: str) -> Optional[Schedule]:
        """Notify the first due dose that has not been notified yet."""
        if profile_id is None:
            return None
        candidates = [s for s in await self.due_schedules(profile_id) if not s.notified]
        for schedule in candidates:
            try:
                async with self.session_factory() as db:
                    claimed = await crud.mark_notified(db, schedule.id)
            except StorageError as e:
                logger.warning("Could not flag dose %s as notified: %s", schedule.id, e)
                return None
            if not claimed:
                # another sweep got there first
                continue
            schedule.notified = True
            await _maybe_await(self.notifier(schedule))
            return schedule
        return None
