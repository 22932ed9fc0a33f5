"""Request payload models for the habits API."""

from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...models.habit import CompletionState, HabitType


class HabitForm(BaseModel):
    """Payload for creating a habit."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_default=True)

    title: str = Field(default="", max_length=120, description="Short label for the habit")
    description: str = Field(default="", max_length=400)
    type: HabitType = Field(default=HabitType.BOOLEAN, description="boolean or counter")
    goal: float = Field(default=0, ge=0, description="Daily target for counter habits")
    unit: str = Field(default="", max_length=32)
    category: str = Field(default="General", max_length=64)

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description", "unit", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "General"
        return value

    @field_validator("goal", mode="before")
    @classmethod
    def empty_goal(cls, value):
        return 0 if value in (None, "") else value


class ToggleForm(BaseModel):
    """Payload for toggling a day or recording a counter value."""

    date: datetime.date
    state: Optional[CompletionState] = None
    value: Optional[float] = Field(default=None, ge=0)


class CalendarQuery(BaseModel):
    """Month selector for the calendar endpoint; defaults to the current month."""

    year: int = Field(default_factory=lambda: datetime.date.today().year, ge=1, le=9999)
    month: int = Field(default_factory=lambda: datetime.date.today().month, ge=1, le=12)


def validation_details(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors into ``{field: [messages]}``."""

    structured: dict[str, list[str]] = {}
    for error in exc.errors(include_url=False):
        loc = error.get("loc", ())
        key = str(loc[0]) if loc else "__root__"
        structured.setdefault(key, []).append(error.get("msg", "Invalid value"))
    return structured


__all__ = ["CalendarQuery", "HabitForm", "ToggleForm", "validation_details"]
