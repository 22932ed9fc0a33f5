"""Derived statistics for a single habit's completion history.

Every calculator here is a pure function of its inputs and ``today``: nothing
is cached or persisted, so the whole set is recomputed on each request. Empty
histories produce neutral values (zero streaks, 0% rates, no record) instead of
raising. Malformed date strings are a caller contract violation and surface as
``ValueError`` from :func:`normalize_completions`.
"""

from __future__ import annotations

import calendar
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from ..logging_config import get_logger
from ..models.habit import CompletionState, HabitType

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)
DEFAULT_HEIGHT_CM = 170.0
# Average stride is roughly 41.4% of body height.
STRIDE_FACTOR = 0.414
RECENT_PROGRESS_LIMIT = 30
# Share of the goal that earns heatmap level 3; 7 of 10 already counts.
LEVEL_3_RATIO = 0.7

TREND_UP = "up"
TREND_DOWN = "down"
TREND_EQUAL = "equal"

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True, slots=True)
class Completion:
    """Normalized completion record used by every calculator."""

    completed_date: date
    state: Optional[str] = None
    value: Optional[float] = None


@dataclass(slots=True)
class PeriodComparison:
    change: int
    trend: str
    infinite: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {"change": self.change, "trend": self.trend, "infinite": self.infinite}


@dataclass(slots=True)
class PersonalRecord:
    value: float
    date: date

    def as_dict(self) -> dict[str, Any]:
        return {"value": self.value, "date": self.date.isoformat()}


@dataclass(slots=True)
class Projection:
    """Linear year-end projection; ``avg`` is the daily average with one decimal."""

    total: int
    avg: str

    def as_dict(self) -> dict[str, Any]:
        return {"total": self.total, "avg": self.avg}


@dataclass(slots=True)
class HabitStats:
    """Everything the habit detail view renders."""

    current_streak: int
    longest_streak: int
    rate7: int
    rate30: int
    comparison7: PeriodComparison
    comparison30: PeriodComparison
    day_of_week: list[dict[str, Any]]
    monthly: list[dict[str, Any]]
    personal_record: Optional[PersonalRecord]
    projection: Projection
    heatmap: list[dict[str, Any]]
    total_completions: int = 0
    total_value: float = 0.0
    recent_progress: list[dict[str, Any]] = field(default_factory=list)
    distance_km: Optional[float] = None

    def as_dict(self) -> dict[str, Any]:
        """Return the camelCase payload consumed by the presentation layer."""

        return {
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "rate7": self.rate7,
            "rate30": self.rate30,
            "comparison7": self.comparison7.as_dict(),
            "comparison30": self.comparison30.as_dict(),
            "dayOfWeek": self.day_of_week,
            "monthly": self.monthly,
            "personalRecord": self.personal_record.as_dict() if self.personal_record else None,
            "projection": self.projection.as_dict(),
            "heatmap": self.heatmap,
            "totalCompletions": self.total_completions,
            "totalValue": self.total_value,
            "recentProgress": self.recent_progress,
            "distanceKm": self.distance_km,
        }


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def _coerce_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        # Accept full ISO timestamps as well; only the calendar day matters.
        return date.fromisoformat(raw.split("T", 1)[0].strip())
    raise TypeError(f"Unsupported completion date: {raw!r}")


def _coerce_value(raw: Any) -> Optional[float]:
    if raw is None or raw == "":
        return None
    return float(raw)


def normalize_completions(raw: Iterable[Any] | None) -> list[Completion]:
    """Convert rows, mappings, dates or ISO strings into :class:`Completion` records.

    Input order is irrelevant; no calculator relies on it.
    """

    if not raw:
        return []

    normalized: list[Completion] = []
    for item in raw:
        if isinstance(item, Completion):
            normalized.append(item)
        elif isinstance(item, (date, str)):
            normalized.append(Completion(completed_date=_coerce_date(item)))
        elif isinstance(item, Mapping):
            normalized.append(
                Completion(
                    completed_date=_coerce_date(item["completed_date"]),
                    state=item.get("state"),
                    value=_coerce_value(item.get("value")),
                )
            )
        else:
            normalized.append(
                Completion(
                    completed_date=_coerce_date(getattr(item, "completed_date")),
                    state=getattr(item, "state", None),
                    value=_coerce_value(getattr(item, "value", None)),
                )
            )
    return normalized


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _is_counter(habit_type: str) -> bool:
    return habit_type == HabitType.COUNTER.value


def _state_of(completion: Completion) -> str:
    # Rows written without an explicit state were stored as completed.
    return completion.state or CompletionState.COMPLETED.value


def is_successful(completion: Completion, habit_type: str, goal: float) -> bool:
    """Counter habits succeed when ``value >= goal``; boolean ones when completed."""

    if _is_counter(habit_type):
        return (completion.value or 0) >= goal
    return _state_of(completion) == CompletionState.COMPLETED.value


def successful_completions(
    completions: Iterable[Completion], habit_type: str, goal: float
) -> list[Completion]:
    return [c for c in completions if is_successful(c, habit_type, goal)]


def successful_dates(completions: Iterable[Completion], habit_type: str, goal: float) -> set[date]:
    return {c.completed_date for c in successful_completions(completions, habit_type, goal)}


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------


def current_streak(dates: Iterable[date], *, today: date | None = None) -> int:
    """Count consecutive days ending today, or yesterday when today is not yet logged."""

    today = today or date.today()
    days = set(dates)

    if today in days:
        cursor = today
    elif today - ONE_DAY in days:
        cursor = today - ONE_DAY
    else:
        return 0

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= ONE_DAY
    return streak


def longest_streak(dates: Iterable[date]) -> int:
    """Return the longest run of consecutive days anywhere in the history."""

    days = sorted(set(dates))
    if not days:
        return 0

    longest = run = 1
    for previous, current in zip(days, days[1:]):
        if current - previous == ONE_DAY:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
    return longest


def compute_streaks(dates: Iterable[date], *, today: date | None = None) -> tuple[int, int]:
    """Return (current_streak, longest_streak) for a collection of successful dates."""

    days = set(dates)
    return current_streak(days, today=today), longest_streak(days)


# ---------------------------------------------------------------------------
# Rates and period comparisons
# ---------------------------------------------------------------------------


def completion_rate(dates: Iterable[date], window_days: int, *, today: date | None = None) -> int:
    """Percentage of successful days in ``[today - window_days, today]``."""

    if window_days <= 0:
        return 0
    today = today or date.today()
    start = today - timedelta(days=window_days)
    hits = sum(1 for day in set(dates) if start <= day <= today)
    return min(100, _round_half_up(hits / window_days * 100))


def period_comparison(
    completions: Iterable[Completion],
    habit_type: str,
    window_days: int,
    *,
    today: date | None = None,
) -> PeriodComparison:
    """Compare the last ``window_days`` with the window immediately before it.

    Counter habits compare summed values, boolean habits compare entry counts.
    """

    today = today or date.today()
    current_start = today - timedelta(days=window_days)
    previous_start = today - timedelta(days=2 * window_days)
    counter = _is_counter(habit_type)

    current_total = 0.0
    previous_total = 0.0
    for completion in completions:
        metric = (completion.value or 0) if counter else 1
        day = completion.completed_date
        if current_start <= day <= today:
            current_total += metric
        elif previous_start <= day < current_start:
            previous_total += metric

    if previous_total == 0:
        if current_total > 0:
            return PeriodComparison(change=100, trend=TREND_UP, infinite=True)
        return PeriodComparison(change=0, trend=TREND_EQUAL)

    change = _round_half_up((current_total - previous_total) / previous_total * 100)
    if change > 0:
        trend = TREND_UP
    elif change < 0:
        trend = TREND_DOWN
    else:
        trend = TREND_EQUAL
    return PeriodComparison(change=change, trend=trend)


# ---------------------------------------------------------------------------
# Weekday and monthly buckets
# ---------------------------------------------------------------------------


def _format_number(value: float) -> str:
    return f"{value:g}"


def day_of_week_breakdown(
    completions: Iterable[Completion],
    habit_type: str,
    goal: float,
    unit: str = "",
) -> list[dict[str, Any]]:
    """Seven rows, Monday first.

    Counter habits average the value of *every* logged day so partial effort is
    visible; boolean habits count successful days only.
    """

    rows: list[dict[str, Any]] = []
    if _is_counter(habit_type):
        totals = [0.0] * 7
        counts = [0] * 7
        for completion in completions:
            weekday = completion.completed_date.weekday()
            totals[weekday] += completion.value or 0
            counts[weekday] += 1
        for index, name in enumerate(WEEKDAY_NAMES):
            average = round(totals[index] / counts[index], 1) if counts[index] else 0
            tooltip = f"Average: {_format_number(average)} {unit}".strip()
            rows.append({"name": name, "value": average, "tooltip": tooltip})
        return rows

    hits = [0] * 7
    for completion in successful_completions(completions, habit_type, goal):
        hits[completion.completed_date.weekday()] += 1
    for index, name in enumerate(WEEKDAY_NAMES):
        label = "completion" if hits[index] == 1 else "completions"
        rows.append({"name": name, "value": hits[index], "tooltip": f"{hits[index]} {label}"})
    return rows


def monthly_breakdown(
    completions: Iterable[Completion],
    habit_type: str,
    goal: float,
    *,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Successful completions per month of the current year, all twelve months present."""

    today = today or date.today()
    counts = {month: 0 for month in range(12)}
    for completion in successful_completions(completions, habit_type, goal):
        if completion.completed_date.year == today.year:
            counts[completion.completed_date.month - 1] += 1
    return [{"name": MONTH_NAMES[month], "count": counts[month]} for month in range(12)]


# ---------------------------------------------------------------------------
# Personal record, projection, heatmap
# ---------------------------------------------------------------------------


def personal_record(completions: Iterable[Completion], habit_type: str) -> Optional[PersonalRecord]:
    """Highest single-day value of a counter habit; earliest-seen wins ties."""

    if not _is_counter(habit_type):
        return None

    best: Optional[Completion] = None
    for completion in completions:
        if completion.value is None:
            continue
        if best is None or completion.value > (best.value or 0):
            best = completion
    if best is None:
        return None
    return PersonalRecord(value=best.value or 0, date=best.completed_date)


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def year_projection(
    completions: Iterable[Completion],
    habit_type: str,
    goal: float,
    *,
    today: date | None = None,
) -> Projection:
    """Extrapolate this year's total linearly from the daily average so far."""

    today = today or date.today()
    days_elapsed = max(1, today.timetuple().tm_yday)
    days_remaining = max(0, _days_in_year(today.year) - days_elapsed)

    this_year = [c for c in completions if c.completed_date.year == today.year]
    if _is_counter(habit_type):
        total = sum(c.value or 0 for c in this_year)
    else:
        total = len(successful_completions(this_year, habit_type, goal))

    daily_average = total / days_elapsed
    projected = _round_half_up(total + daily_average * days_remaining)
    return Projection(total=projected, avg=f"{daily_average:.1f}")


def heatmap_level(completion: Optional[Completion], habit_type: str, goal: float) -> int:
    """Map one day's completion to an intensity bucket 0-4."""

    if completion is None:
        return 0
    if not _is_counter(habit_type):
        return 4 if _state_of(completion) == CompletionState.COMPLETED.value else 0

    value = completion.value or 0
    if goal <= 0:
        return 4 if value > 0 else 0
    if value >= goal:
        return 4
    if value >= LEVEL_3_RATIO * goal:
        return 3
    if value >= 0.5 * goal:
        return 2
    if value > 0:
        return 1
    return 0


def heatmap(
    completions: Iterable[Completion],
    habit_type: str,
    goal: float,
    *,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """One ``{date, level}`` cell per day of the current year, gaps included."""

    today = today or date.today()
    by_day = {c.completed_date: c for c in completions}
    cursor = date(today.year, 1, 1)
    cells: list[dict[str, Any]] = []
    while cursor.year == today.year:
        cells.append(
            {"date": cursor.isoformat(), "level": heatmap_level(by_day.get(cursor), habit_type, goal)}
        )
        cursor += ONE_DAY
    return cells


# ---------------------------------------------------------------------------
# Detail-view extras
# ---------------------------------------------------------------------------


def recent_progress(
    completions: Iterable[Completion], limit: int = RECENT_PROGRESS_LIMIT
) -> list[dict[str, Any]]:
    """Chart series of the latest ``limit`` completions, oldest first."""

    ordered = sorted(completions, key=lambda c: c.completed_date)
    if limit > 0:
        ordered = ordered[-limit:]
    return [{"date": c.completed_date.isoformat(), "value": c.value or 0} for c in ordered]


def is_step_habit(unit: str | None) -> bool:
    lowered = (unit or "").lower()
    return "step" in lowered or "paso" in lowered


def estimate_distance_km(steps: float, height_cm: float) -> float:
    if not steps or not height_cm:
        return 0.0
    stride_cm = height_cm * STRIDE_FACTOR
    return round(steps * stride_cm / 100_000, 2)


def calendar_month(
    completions: Iterable[Completion],
    habit_type: str,
    goal: float,
    year: int,
    month: int,
    *,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Per-day state for a month grid.

    Logged days report their state (counters: completed only at goal), unlogged
    past days are ``missed`` and today/future days are ``none``.
    """

    today = today or date.today()
    by_day = {c.completed_date: c for c in completions}
    counter = _is_counter(habit_type)
    days: list[dict[str, Any]] = []
    for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
        day = date(year, month, day_number)
        completion = by_day.get(day)
        value = None
        if completion is not None:
            value = completion.value
            if counter:
                state = (
                    CompletionState.COMPLETED.value
                    if (value or 0) >= goal
                    else CompletionState.MISSED.value
                )
            else:
                state = _state_of(completion)
        elif day < today:
            state = CompletionState.MISSED.value
        else:
            state = CompletionState.NONE.value
        days.append({"date": day.isoformat(), "state": state, "value": value})
    return days


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def _habit_attr(habit: Any, name: str, default: Any = None) -> Any:
    if isinstance(habit, Mapping):
        return habit.get(name, default)
    return getattr(habit, name, default)


def compute_habit_stats(
    habit: Any,
    completions: Iterable[Any] | None = None,
    *,
    today: date | None = None,
    height_cm: float | None = None,
) -> HabitStats:
    """Compose every calculator for one habit.

    ``habit`` may be a model row or a mapping with ``type``, ``goal`` and
    ``unit``. When ``completions`` is omitted the habit's own ``completions``
    attribute/key is used.
    """

    today = today or date.today()
    habit_type = _habit_attr(habit, "type") or HabitType.BOOLEAN.value
    if isinstance(habit_type, HabitType):
        habit_type = habit_type.value
    goal = float(_habit_attr(habit, "goal") or 0)
    unit = _habit_attr(habit, "unit") or ""

    if completions is None:
        completions = _habit_attr(habit, "completions") or []
    history = normalize_completions(completions)
    wins = successful_dates(history, habit_type, goal)

    current, longest = compute_streaks(wins, today=today)
    total_value = sum(c.value or 0 for c in history)
    distance = None
    if is_step_habit(unit):
        distance = estimate_distance_km(total_value, height_cm or DEFAULT_HEIGHT_CM)

    stats = HabitStats(
        current_streak=current,
        longest_streak=longest,
        rate7=completion_rate(wins, 7, today=today),
        rate30=completion_rate(wins, 30, today=today),
        comparison7=period_comparison(history, habit_type, 7, today=today),
        comparison30=period_comparison(history, habit_type, 30, today=today),
        day_of_week=day_of_week_breakdown(history, habit_type, goal, unit),
        monthly=monthly_breakdown(history, habit_type, goal, today=today),
        personal_record=personal_record(history, habit_type),
        projection=year_projection(history, habit_type, goal, today=today),
        heatmap=heatmap(history, habit_type, goal, today=today),
        total_completions=len(history),
        total_value=total_value,
        recent_progress=recent_progress(history),
        distance_km=distance,
    )
    logger.debug(
        "Computed habit stats",
        extra={
            "habit_id": _habit_attr(habit, "id"),
            "completions": len(history),
            "current_streak": current,
        },
    )
    return stats


__all__ = [
    "Completion",
    "HabitStats",
    "PeriodComparison",
    "PersonalRecord",
    "Projection",
    "calendar_month",
    "completion_rate",
    "compute_habit_stats",
    "compute_streaks",
    "current_streak",
    "day_of_week_breakdown",
    "estimate_distance_km",
    "heatmap",
    "heatmap_level",
    "is_step_habit",
    "is_successful",
    "longest_streak",
    "monthly_breakdown",
    "normalize_completions",
    "period_comparison",
    "personal_record",
    "recent_progress",
    "successful_completions",
    "successful_dates",
    "year_projection",
]
