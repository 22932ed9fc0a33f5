"""Habit and completion workflows shared by the API and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlmodel import select

from ..domain.repositories.habit import HabitRepository
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import CompletionState, Habit, HabitCompletion, User

logger = get_logger(__name__)


class HabitNotFoundError(LookupError):
    """Raised when a habit does not exist for the requesting user."""

    def __init__(self, habit_id: int):
        super().__init__(f"Habit {habit_id} not found")
        self.habit_id = habit_id


@dataclass(slots=True)
class ToggleResult:
    message: str
    status: str
    value: Optional[float] = None

    def as_dict(self) -> dict:
        payload = {"message": self.message, "status": self.status}
        if self.value is not None:
            payload["value"] = self.value
        return payload


def ensure_owner(session_factory: SessionFactory, username: str) -> User:
    """Return the owning user, creating it on first start."""

    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user is None:
            user = User(username=username)
            session.add(user)
            session.commit()
            session.refresh(user)
            logger.info("Created owner account", extra={"username": username})
        session.expunge(user)
        return user


def require_habit(repo: HabitRepository, habit_id: int, *, user_id: int) -> Habit:
    habit = repo.get_by_id(habit_id, user_id=user_id)
    if habit is None:
        raise HabitNotFoundError(habit_id)
    return habit


def toggle_completion(
    repo: HabitRepository,
    habit_id: int,
    day: date,
    *,
    user_id: int,
    state: Optional[str] = None,
    value: Optional[float] = None,
) -> ToggleResult:
    """Record, overwrite or clear the completion for ``day``.

    With a ``value`` the day is upserted (counter habits). Without one the day
    flips: an existing completion is removed, a missing one is inserted.
    """

    require_habit(repo, habit_id, user_id=user_id)
    new_state = state or CompletionState.COMPLETED.value

    if value is not None:
        repo.upsert_completion(
            HabitCompletion(
                habit_id=habit_id,
                user_id=user_id,
                completed_date=day,
                state=new_state,
                value=value,
            ),
            user_id=user_id,
        )
        logger.info(
            "Habit value updated",
            extra={"habit_id": habit_id, "day": day.isoformat(), "value": value},
        )
        return ToggleResult(message="Habit value updated", status=new_state, value=value)

    if repo.get_completion(habit_id, day, user_id=user_id) is not None:
        repo.delete_completion(habit_id, day, user_id=user_id)
        logger.info("Habit completion removed", extra={"habit_id": habit_id, "day": day.isoformat()})
        return ToggleResult(message="Habit completion removed", status=CompletionState.NONE.value)

    repo.add_completion(
        HabitCompletion(habit_id=habit_id, user_id=user_id, completed_date=day, state=new_state),
        user_id=user_id,
    )
    logger.info(
        "Habit marked as complete",
        extra={"habit_id": habit_id, "day": day.isoformat(), "state": new_state},
    )
    return ToggleResult(message="Habit marked as complete", status=new_state)


__all__ = [
    "HabitNotFoundError",
    "ToggleResult",
    "ensure_owner",
    "require_habit",
    "toggle_completion",
]
