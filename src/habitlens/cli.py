"""Flask CLI commands for HabitLens."""

from __future__ import annotations

import json
import random
from datetime import date, timedelta

import click
from flask import current_app

from .extensions import current_user_id, get_repository
from .logging_config import get_logger
from .models import CompletionState, Habit, HabitCompletion, HabitType
from .services.habit_stats import compute_habit_stats
from .services.habits import HabitNotFoundError, require_habit

logger = get_logger(__name__)

DEMO_DAYS = 90


def seed_demo_data(*, days: int = DEMO_DAYS, seed: int | None = None, today: date | None = None) -> list[Habit]:
    """Create one boolean and one step-counter habit with ``days`` of history."""

    rng = random.Random(seed)
    today = today or date.today()
    repo = get_repository()
    user_id = current_user_id()

    meditate = repo.create(
        Habit(title="Meditate", description="Ten quiet minutes", type=HabitType.BOOLEAN.value),
        user_id=user_id,
    )
    walk = repo.create(
        Habit(
            title="Walk",
            description="Daily step count",
            type=HabitType.COUNTER.value,
            goal=8000,
            unit="steps",
            category="Health",
        ),
        user_id=user_id,
    )

    for offset in range(days):
        day = today - timedelta(days=offset)
        if rng.random() < 0.7:
            repo.add_completion(
                HabitCompletion(
                    habit_id=meditate.id,
                    user_id=user_id,
                    completed_date=day,
                    state=CompletionState.COMPLETED.value,
                ),
                user_id=user_id,
            )
        if rng.random() < 0.9:
            repo.upsert_completion(
                HabitCompletion(
                    habit_id=walk.id,
                    user_id=user_id,
                    completed_date=day,
                    value=rng.randint(2000, 12000),
                ),
                user_id=user_id,
            )

    logger.info("Seeded demo habits", extra={"days": days, "habit_ids": [meditate.id, walk.id]})
    return [meditate, walk]


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("habitlens-seed")
    @click.option("--days", default=DEMO_DAYS, show_default=True, help="Days of history to generate")
    @click.option("--seed", type=int, default=None, help="Random seed for repeatable data")
    def habitlens_seed(days: int, seed: int | None) -> None:
        """Seed demo habits with generated history."""

        habits = seed_demo_data(days=days, seed=seed)
        for habit in habits:
            click.echo(f"Created habit #{habit.id}: {habit.title}")

    @app.cli.command("habitlens-stats")
    @click.argument("habit_id", type=int)
    def habitlens_stats(habit_id: int) -> None:
        """Print the derived statistics of a habit as JSON."""

        repo = get_repository()
        user_id = current_user_id()
        try:
            habit = require_habit(repo, habit_id, user_id=user_id)
        except HabitNotFoundError as exc:
            raise click.ClickException(str(exc)) from exc

        completions = repo.list_completions(habit_id, user_id=user_id)
        config = current_app.config["HABITLENS_CONFIG"]
        stats = compute_habit_stats(habit, completions, height_cm=config.USER_HEIGHT_CM)
        payload = stats.as_dict()
        # The per-day heatmap is too long for a terminal.
        payload.pop("heatmap", None)
        click.echo(json.dumps(payload, indent=2))
