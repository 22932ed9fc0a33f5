"""Habit repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.habit import Habit, HabitCompletion


class HabitRepository(Protocol):
    """Repository for managing habits and their completions."""

    def get_by_id(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def list_all(self, *, user_id: int) -> list[Habit]:
        """List habits, newest first."""
        ...

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit."""
        ...

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete a habit and its completions; False when it did not exist."""
        ...

    # Completion operations
    def get_completion(
        self, habit_id: int, completed_date: date, *, user_id: int
    ) -> Optional[HabitCompletion]:
        """Get the completion recorded for one day."""
        ...

    def list_completions(self, habit_id: int, *, user_id: int) -> list[HabitCompletion]:
        """All completions of a habit, newest first."""
        ...

    def list_all_completions(self, *, user_id: int) -> list[HabitCompletion]:
        """Every completion owned by the user."""
        ...

    def add_completion(self, completion: HabitCompletion, *, user_id: int) -> HabitCompletion:
        """Insert a completion for a day that has none."""
        ...

    def upsert_completion(self, completion: HabitCompletion, *, user_id: int) -> HabitCompletion:
        """Insert or overwrite the completion keyed on (habit_id, completed_date)."""
        ...

    def delete_completion(self, habit_id: int, completed_date: date, *, user_id: int) -> bool:
        """Delete a completion; False when there was none."""
        ...
