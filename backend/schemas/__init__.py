from .profile import ProfileIn, ProfileOut
from .medicine import MedicineIn, MedicineOut
from .schedule import (
    ActiveProfileIn,
    AdherenceOut,
    AlarmOut,
    HistoryOut,
    ScheduleOut,
)

__all__ = [
    "ProfileIn",
    "ProfileOut",
    "MedicineIn",
    "MedicineOut",
    "ScheduleOut",
    "AdherenceOut",
    "HistoryOut",
    "ActiveProfileIn",
    "AlarmOut",
]
