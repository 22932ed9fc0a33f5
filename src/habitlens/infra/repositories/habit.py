"""SQLModel implementation of the habit repository."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlmodel import Session, select

from ...models.habit import Habit, HabitCompletion
from ..database import SessionFactory


class SQLModelHabitRepository:
    """SQLModel-based habit repository; every query is scoped to one user."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    @staticmethod
    def _find_completion(
        session: Session, habit_id: int, completed_date: date, user_id: int
    ) -> Optional[HabitCompletion]:
        return session.exec(
            select(HabitCompletion)
            .where(HabitCompletion.user_id == user_id)
            .where(HabitCompletion.habit_id == habit_id)
            .where(HabitCompletion.completed_date == completed_date)
        ).first()

    def get_by_id(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Habit]:
        with self.session_factory() as session:
            statement = (
                select(Habit)
                .where(Habit.user_id == user_id)
                .order_by(Habit.created_at.desc(), Habit.id.desc())  # type: ignore[union-attr]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        with self.session_factory() as session:
            habit.user_id = user_id
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if habit is None:
                return False
            session.delete(habit)
            session.commit()
            return True

    # Completion operations
    def get_completion(
        self, habit_id: int, completed_date: date, *, user_id: int
    ) -> Optional[HabitCompletion]:
        with self.session_factory() as session:
            obj = self._find_completion(session, habit_id, completed_date, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_completions(self, habit_id: int, *, user_id: int) -> list[HabitCompletion]:
        with self.session_factory() as session:
            statement = (
                select(HabitCompletion)
                .where(HabitCompletion.user_id == user_id)
                .where(HabitCompletion.habit_id == habit_id)
                .order_by(HabitCompletion.completed_date.desc())  # type: ignore[attr-defined]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_all_completions(self, *, user_id: int) -> list[HabitCompletion]:
        with self.session_factory() as session:
            statement = (
                select(HabitCompletion)
                .where(HabitCompletion.user_id == user_id)
                .order_by(HabitCompletion.completed_date.desc())  # type: ignore[attr-defined]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def add_completion(self, completion: HabitCompletion, *, user_id: int) -> HabitCompletion:
        with self.session_factory() as session:
            completion.user_id = user_id
            session.add(completion)
            session.commit()
            session.refresh(completion)
            session.expunge(completion)
            return completion

    def upsert_completion(self, completion: HabitCompletion, *, user_id: int) -> HabitCompletion:
        with self.session_factory() as session:
            existing = self._find_completion(
                session, completion.habit_id, completion.completed_date, user_id
            )
            if existing:
                existing.state = completion.state
                existing.value = completion.value
                target = existing
            else:
                completion.user_id = user_id
                target = completion
            session.add(target)
            session.commit()
            session.refresh(target)
            session.expunge(target)
            return target

    def delete_completion(self, habit_id: int, completed_date: date, *, user_id: int) -> bool:
        with self.session_factory() as session:
            completion = self._find_completion(session, habit_id, completed_date, user_id)
            if completion is None:
                return False
            session.delete(completion)
            session.commit()
            return True
