"""Service layer for HabitLens."""
