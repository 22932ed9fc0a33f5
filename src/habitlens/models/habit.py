"""Habit tracking data structures."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


class HabitType(str, Enum):
    """How a habit's daily completion is measured."""

    BOOLEAN = "boolean"
    COUNTER = "counter"


class CompletionState(str, Enum):
    """Recorded outcome of a boolean habit on a day."""

    NONE = "none"
    COMPLETED = "completed"
    MISSED = "missed"
    FAILED = "failed"


class Habit(SQLModel, table=True):
    """A user-defined habit tracked daily."""

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=120, index=True)
    description: str = Field(default="", max_length=400)
    type: str = Field(default=HabitType.BOOLEAN.value, max_length=16)
    goal: float = Field(default=0, nullable=False)
    unit: str = Field(default="", max_length=32)
    category: str = Field(default="General", max_length=64)
    created_at: date = Field(default_factory=date.today, nullable=False)

    completions: list["HabitCompletion"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship(
            "HabitCompletion", back_populates="habit", cascade="all, delete-orphan"
        ),
    )

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="habits"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "goal": self.goal,
            "unit": self.unit,
            "category": self.category,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class HabitCompletion(SQLModel, table=True):
    """One dated record of activity for a habit; unique per calendar day."""

    __tablename__: ClassVar[str] = "habit_completion"
    __table_args__ = (UniqueConstraint("habit_id", "completed_date", name="uq_completion_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    completed_date: date = Field(nullable=False, index=True)
    state: str = Field(default=CompletionState.COMPLETED.value, max_length=16)
    value: Optional[float] = Field(default=None)

    habit: "Habit" = Relationship(
        back_populates="completions",
        sa_relationship=relationship("Habit", back_populates="completions"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed_date": self.completed_date.isoformat(),
            "state": self.state,
            "value": self.value,
        }
