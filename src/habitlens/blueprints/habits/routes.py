"""Habit API routes."""

from __future__ import annotations

from flask import current_app, jsonify, request
from pydantic import ValidationError
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from ...extensions import current_user_id, get_repository, session_scope
from ...logging_config import get_logger
from ...models import Habit
from ...services.habit_stats import calendar_month, compute_habit_stats, normalize_completions
from ...services.habits import HabitNotFoundError, require_habit, toggle_completion
from . import bp
from .forms import CalendarQuery, HabitForm, ToggleForm, validation_details

logger = get_logger(__name__)


@bp.errorhandler(HabitNotFoundError)
def _habit_not_found(exc: HabitNotFoundError):
    return jsonify({"error": str(exc)}), 404


@bp.errorhandler(ValidationError)
def _invalid_payload(exc: ValidationError):
    details = validation_details(exc)
    logger.info("Rejected invalid payload", extra={"path": request.path, "fields": sorted(details)})
    return jsonify({"error": "Invalid request", "details": details}), 400


@bp.errorhandler(Exception)
def _unexpected_error(exc: Exception):
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unexpected error handling %s %s", request.method, request.path)
    return jsonify({"error": "Internal Server Error"}), 500


@bp.get("/health")
def health():
    """Round-trip the database so deployments can check connectivity."""

    with session_scope() as session:
        session.connection().execute(text("SELECT 1"))
    return jsonify({"message": "Database connection successful"})


@bp.get("/habits")
def list_habits():
    habits = get_repository().list_all(user_id=current_user_id())
    return jsonify([habit.to_dict() for habit in habits])


@bp.post("/habits")
def create_habit():
    form = HabitForm.model_validate(request.get_json(silent=True) or {})
    habit = Habit(
        title=form.title,
        description=form.description,
        type=form.type.value,
        goal=form.goal,
        unit=form.unit,
        category=form.category,
    )
    created = get_repository().create(habit, user_id=current_user_id())
    logger.info("Habit created", extra={"habit_id": created.id, "type": created.type})
    return jsonify(created.to_dict()), 201


@bp.get("/habits/<int:habit_id>")
def habit_detail(habit_id: int):
    """Return a habit with its completions, newest first."""

    repo = get_repository()
    user_id = current_user_id()
    habit = require_habit(repo, habit_id, user_id=user_id)
    completions = repo.list_completions(habit_id, user_id=user_id)
    payload = habit.to_dict()
    payload["completions"] = [completion.to_dict() for completion in completions]
    return jsonify(payload)


@bp.delete("/habits/<int:habit_id>")
def delete_habit(habit_id: int):
    if not get_repository().delete(habit_id, user_id=current_user_id()):
        raise HabitNotFoundError(habit_id)
    logger.info("Habit deleted", extra={"habit_id": habit_id})
    return jsonify({"message": "Habit deleted successfully"})


@bp.post("/habits/<int:habit_id>/toggle")
def toggle_habit(habit_id: int):
    """Toggle a boolean day, or upsert a counter value when one is sent."""

    form = ToggleForm.model_validate(request.get_json(silent=True) or {})
    result = toggle_completion(
        get_repository(),
        habit_id,
        form.date,
        user_id=current_user_id(),
        state=form.state.value if form.state else None,
        value=form.value,
    )
    return jsonify(result.as_dict())


@bp.get("/habits/<int:habit_id>/stats")
def habit_stats(habit_id: int):
    repo = get_repository()
    user_id = current_user_id()
    habit = require_habit(repo, habit_id, user_id=user_id)
    completions = repo.list_completions(habit_id, user_id=user_id)
    config = current_app.config["HABITLENS_CONFIG"]
    stats = compute_habit_stats(habit, completions, height_cm=config.USER_HEIGHT_CM)
    return jsonify(stats.as_dict())


@bp.get("/habits/<int:habit_id>/calendar")
def habit_calendar(habit_id: int):
    query = CalendarQuery.model_validate(request.args.to_dict())
    repo = get_repository()
    user_id = current_user_id()
    habit = require_habit(repo, habit_id, user_id=user_id)
    history = normalize_completions(repo.list_completions(habit_id, user_id=user_id))
    days = calendar_month(history, habit.type, float(habit.goal or 0), query.year, query.month)
    return jsonify({"year": query.year, "month": query.month, "days": days})


@bp.get("/completions")
def list_completions():
    completions = get_repository().list_all_completions(user_id=current_user_id())
    return jsonify(
        [dict(completion.to_dict(), habit_id=completion.habit_id) for completion in completions]
    )
