# services/adherence.py
from datetime import datetime
from typing import Iterable, Optional

from models import DoseStatus, Schedule
from schemas import AdherenceOut
from services.dose_status import effective_status


def summarize_adherence(schedules: Iterable[Schedule], now: Optional[datetime] = None) -> AdherenceOut:
    """
    Adherence over the doses whose time has already passed:
    taken / (taken + skipped + overdue), as a percentage.
    No past doses yet counts as full marks.
    """
    now = now or datetime.now()
    counts = {DoseStatus.TAKEN: 0, DoseStatus.SKIPPED: 0, DoseStatus.OVERDUE: 0}
    for s in schedules:
        if s.scheduled_time >= now:
            continue
        status = effective_status(s, now)
        if status in counts:
            counts[status] += 1

    past = sum(counts.values())
    percentage = 100.0 if past == 0 else counts[DoseStatus.TAKEN] / past * 100
    return AdherenceOut(
        taken=counts[DoseStatus.TAKEN],
        skipped=counts[DoseStatus.SKIPPED],
        overdue=counts[DoseStatus.OVERDUE],
        percentage=percentage,
    )


def calculate_adherence(schedules: Iterable[Schedule], now: Optional[datetime] = None) -> float:
    return summarize_adherence(schedules, now).percentage
