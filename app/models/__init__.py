from .habit import Habit, FrequencyType
from .habit_log import HabitLog, LogStatus

__all__ = [
    "Habit",
    "FrequencyType",
    "HabitLog",
    "LogStatus",
]
