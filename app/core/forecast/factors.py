"""Baseline, trend and weekday seasonality over aggregated revenue history.

All functions are pure: they take the historical days and the reference
"today" of the run and return plain values.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Sequence

from dateutil.relativedelta import relativedelta

from app.core.forecast.domain import HistoricalDay, TrendMetrics
from app.core.forecast.numbers import mean


RECENT_WINDOW_DAYS = 28
TREND_MONTHS = 3
WEEKDAYS = range(7)


def _revenue_between(
    history: Sequence[HistoricalDay],
    after: date,
    until: date,
) -> list[float]:
    """Revenues of days in the half-open window (after, until]."""
    return [day.revenue for day in history if after < day.date <= until]


def _months_back(today: date, months: int) -> date:
    """Same day-of-month `months` earlier; a day past the month end rolls into the next month.

    2025-05-31 minus 3 months is 2025-03-03, not 2025-02-28.
    """
    first_of_month = today + relativedelta(months=-months, day=1)
    return first_of_month + timedelta(days=today.day - 1)


def calculate_rolling_baseline(history: Sequence[HistoricalDay], today: date) -> float:
    """Mean daily revenue of the last 4 weeks, else of the last 3 months, else 0."""

    recent = _revenue_between(history, today - timedelta(days=RECENT_WINDOW_DAYS), today)
    if recent:
        return mean(recent)

    fallback = _revenue_between(history, _months_back(today, TREND_MONTHS), today)
    if fallback:
        return mean(fallback)

    return 0.0


def _percent_change(recent: list[float], older: list[float]) -> float:
    older_avg = mean(older)
    if older_avg <= 0:
        return 0.0
    return (mean(recent) - older_avg) / older_avg * 100


def calculate_trends(history: Sequence[HistoricalDay], today: date) -> TrendMetrics:
    # Weekly windows are fixed day offsets; monthly windows are calendar months.
    four_weeks_ago = today - timedelta(days=RECENT_WINDOW_DAYS)
    eight_weeks_ago = today - timedelta(days=2 * RECENT_WINDOW_DAYS)
    weekly = _percent_change(
        _revenue_between(history, four_weeks_ago, today),
        _revenue_between(history, eight_weeks_ago, four_weeks_ago),
    )

    three_months_ago = _months_back(today, TREND_MONTHS)
    six_months_ago = _months_back(today, 2 * TREND_MONTHS)
    monthly = _percent_change(
        _revenue_between(history, three_months_ago, today),
        _revenue_between(history, six_months_ago, three_months_ago),
    )

    return TrendMetrics(weekly=weekly, monthly=monthly)


def calculate_seasonal_factors(history: Sequence[HistoricalDay]) -> Dict[int, float]:
    """Per-weekday multiplier relative to the all-time mean daily revenue."""

    total_avg = mean(day.revenue for day in history)

    factors: Dict[int, float] = {}
    for weekday in WEEKDAYS:
        revenues = [day.revenue for day in history if day.weekday == weekday]
        weekday_avg = mean(revenues) if revenues else total_avg
        factors[weekday] = weekday_avg / total_avg if total_avg > 0 else 1.0
    return factors


def count_weekday_samples(history: Sequence[HistoricalDay]) -> Dict[int, int]:
    counts = {weekday: 0 for weekday in WEEKDAYS}
    for day in history:
        counts[day.weekday] += 1
    return counts
