"""SQLModel table exports."""

from .habit import CompletionState, Habit, HabitCompletion, HabitType
from .user import User

__all__ = [
    "CompletionState",
    "Habit",
    "HabitCompletion",
    "HabitType",
    "User",
]
