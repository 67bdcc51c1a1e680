# services/schedule_generator.py
from __future__ import annotations
import enum
import uuid
from datetime import date, time, datetime, timedelta
from typing import Iterator, List, Optional, Tuple

from errors import ValidationError
from models import (
    DoseStatus,
    FrequencyType,
    Instruction,
    Medicine,
    Profile,
    Schedule,
)

BUFFER = timedelta(hours=1)

# uuid5 namespace: a schedule's id is a function of (medicine_id, scheduled_time)
SCHEDULE_NAMESPACE = uuid.UUID("8d1f6a4e-2b7c-4f0e-9a55-0c3e1d7b6f21")


class Cutoff(str, enum.Enum):
    START_OF_TODAY = "start_of_today"  # new medicine: keep today's passed doses too
    FROM_NOW = "from_now"              # edited medicine: never resurrect past doses


def parse_hhmm(value: str) -> time:
    """Parse 'HH:MM' into a time. Raises ValidationError."""
    try:
        hh, mm = value.strip().split(":")
        return time(int(hh), int(mm))
    except (AttributeError, ValueError, TypeError):
        raise ValidationError(f"Bad clock time: {value!r} (expected HH:MM)")


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def day_bounds(dt: datetime) -> Tuple[datetime, datetime]:
    """[00:00, 23:59:59.999999] of the day containing `dt`."""
    start = start_of_day(dt)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def resolve_cutoff(policy: Cutoff, now: datetime) -> datetime:
    if policy == Cutoff.START_OF_TODAY:
        return start_of_day(now)
    return now


def schedule_id_for(medicine_id: str, scheduled_time: datetime) -> str:
    return str(uuid.uuid5(SCHEDULE_NAMESPACE, f"{medicine_id}|{scheduled_time.isoformat()}"))


def validate_profile(profile: Profile) -> None:
    parse_hhmm(profile.wake_time)
    parse_hhmm(profile.sleep_time)


def validate_medicine(medicine: Medicine) -> None:
    if not (medicine.name or "").strip() or not (medicine.dose or "").strip():
        raise ValidationError("Medicine name and dose are required")
    if medicine.course_days is None or medicine.course_days <= 0:
        raise ValidationError("course_days must be greater than 0")
    if medicine.frequency_value is None or medicine.frequency_value <= 0:
        raise ValidationError("frequency_value must be greater than 0")
    if medicine.frequency_type == FrequencyType.FIXED_TIMES:
        times = medicine.fixed_times or []
        if len(times) != medicine.frequency_value:
            raise ValidationError(
                f"Expected {medicine.frequency_value} fixed times, got {len(times)}"
            )
        for t in times:
            parse_hhmm(t)


def course_bounds(medicine: Medicine) -> Tuple[datetime, datetime]:
    """[first course day 00:00, start timestamp + course_days) in local wall-clock."""
    return start_of_day(medicine.start_date), medicine.start_date + timedelta(days=medicine.course_days)


def _course_days(medicine: Medicine) -> Iterator[date]:
    first = medicine.start_date.date()
    for offset in range(medicine.course_days):
        yield first + timedelta(days=offset)


def _applies_buffer(medicine: Medicine) -> bool:
    return (
        medicine.instruction not in (Instruction.EMPTY_STOMACH, Instruction.BEFORE_SLEEP)
        and medicine.frequency_type != FrequencyType.FIXED_TIMES
    )


def active_window(day: date, wake: time, sleep: time, buffered: bool) -> Tuple[datetime, datetime]:
    """Waking window for `day`. Sleep earlier than wake puts the end on the next day."""
    start = datetime.combine(day, wake)
    end = datetime.combine(day, sleep)
    if sleep < wake:
        end += timedelta(days=1)
    if buffered:
        start += BUFFER
        end -= BUFFER
    return start, end


def _round_to_minute(dt: datetime) -> datetime:
    floored = dt.replace(second=0, microsecond=0)
    if dt - floored >= timedelta(seconds=30):
        floored += timedelta(minutes=1)
    return floored


def _every_x_hours(start: datetime, end: datetime, hours: int, course_end: datetime) -> List[datetime]:
    out: List[datetime] = []
    step = timedelta(hours=hours)
    t = start
    while t <= end and t < course_end:
        out.append(t)
        t += step
    return out


def _times_a_day(start: datetime, end: datetime, count: int) -> List[datetime]:
    duration = end - start
    if count <= 0 or duration <= timedelta(0):
        return []
    interval = duration / count
    # midpoint of each sub-interval spreads doses instead of clustering at wake-up
    return [_round_to_minute(start + interval * i + interval / 2) for i in range(count)]


def dose_times(medicine: Medicine, profile: Profile) -> List[datetime]:
    """Every candidate dose time of the course, before cutoff filtering."""
    wake = parse_hhmm(profile.wake_time)
    sleep = parse_hhmm(profile.sleep_time)
    _, course_end = course_bounds(medicine)

    out: List[datetime] = []
    if medicine.instruction == Instruction.BEFORE_SLEEP:
        for d in _course_days(medicine):
            out.append(datetime.combine(d, sleep))
    elif medicine.frequency_type == FrequencyType.FIXED_TIMES:
        clock_times = [parse_hhmm(t) for t in (medicine.fixed_times or [])]
        for d in _course_days(medicine):
            out.extend(datetime.combine(d, t) for t in clock_times)
    else:
        buffered = _applies_buffer(medicine)
        for d in _course_days(medicine):
            start, end = active_window(d, wake, sleep, buffered)
            if medicine.frequency_type == FrequencyType.EVERY_X_HOURS:
                if medicine.frequency_value > 0:
                    out.extend(_every_x_hours(start, end, medicine.frequency_value, course_end))
            elif medicine.frequency_type == FrequencyType.TIMES_A_DAY:
                out.extend(_times_a_day(start, end, medicine.frequency_value))
    return sorted(set(out))


def generate_schedules(
    medicine: Medicine,
    profile: Profile,
    cutoff: Cutoff = Cutoff.START_OF_TODAY,
    now: Optional[datetime] = None,
) -> List[Schedule]:
    """
    Expand a medicine's frequency rule into pending dose occurrences.
    Keeps times with cutoff <= t < course end. An empty list is a valid result.
    """
    validate_profile(profile)
    validate_medicine(medicine)

    now = now or datetime.now()
    threshold = resolve_cutoff(cutoff, now)
    _, course_end = course_bounds(medicine)

    return [
        Schedule(
            id=schedule_id_for(medicine.id, t),
            medicine_id=medicine.id,
            profile_id=medicine.profile_id,
            scheduled_time=t,
            status=DoseStatus.PENDING,
            actual_taken_time=None,
            medicine_name=medicine.name,
            dose=medicine.dose,
            notified=False,
        )
        for t in dose_times(medicine, profile)
        if threshold <= t < course_end
    ]
