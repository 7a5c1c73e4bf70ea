from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from app.core.forecast.domain import (
    TREND_DOWN,
    TREND_STABLE,
    TREND_UP,
    AccuracySummary,
    ForecastAccuracy,
    ForecastDay,
    ForecastFactors,
    HistoricalDay,
    TrendMetrics,
    WeatherDay,
)
from app.core.forecast.factors import count_weekday_samples
from app.core.forecast.history import weekday_sunday_first
from app.core.forecast.numbers import mean, round_half_up
from app.core.forecast.weather_factor import calculate_weather_factor


# Only 30% of the raw trend percentage flows into the forecast.
TREND_INFLUENCE = 0.3
TREND_LABEL_THRESHOLD = 5.0

MIN_CONFIDENCE = 50
MAX_CONFIDENCE = 95
CONFIDENCE_FULL_SAMPLE = 10

RATING_THRESHOLDS = (
    (90.0, "excellent"),
    (75.0, "good"),
    (60.0, "fair"),
)
RATING_POOR = "poor"


def iter_dates(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def trend_adjustment(overall_trend: float) -> float:
    return 1 + (overall_trend / 100) * TREND_INFLUENCE


def trend_label(overall_trend: float) -> str:
    if overall_trend > TREND_LABEL_THRESHOLD:
        return TREND_UP
    if overall_trend < -TREND_LABEL_THRESHOLD:
        return TREND_DOWN
    return TREND_STABLE


def confidence_for(same_weekday_days: int) -> int:
    """Confidence grows with same-weekday sample size, bounded to [50, 95]."""
    raw = same_weekday_days / CONFIDENCE_FULL_SAMPLE * 100
    return round(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, raw)))


def accuracy_rating(percentage: float) -> str:
    for threshold, rating in RATING_THRESHOLDS:
        if percentage >= threshold:
            return rating
    return RATING_POOR


def compute_accuracy(forecast: float, actual: float) -> ForecastAccuracy:
    difference = abs(forecast - actual)
    percentage = (1 - difference / actual) * 100 if actual > 0 else 0.0
    return ForecastAccuracy(
        percentage=round_half_up(percentage, 2),
        difference=round_half_up(difference, 2),
        rating=accuracy_rating(percentage),
    )


def generate_forecast_days(
    start: date,
    end: date,
    baseline: float,
    trends: TrendMetrics,
    seasonal_factors: Mapping[int, float],
    history: Sequence[HistoricalDay],
    weather: Sequence[WeatherDay],
) -> List[ForecastDay]:
    """Produce one ForecastDay per date in [start, end], in date order.

    No day is skipped: a missing seasonal factor or weather observation
    falls back to a neutral factor of 1.0.
    """

    weather_by_date: Dict[date, WeatherDay] = {w.date: w for w in weather}
    actual_by_date: Dict[date, float] = {day.date: day.revenue for day in history}
    weekday_samples = count_weekday_samples(history)

    overall = trends.overall
    adjustment = trend_adjustment(overall)
    label = trend_label(overall)

    days: List[ForecastDay] = []
    for current in iter_dates(start, end):
        weekday = weekday_sunday_first(current)
        seasonal = seasonal_factors.get(weekday, 1.0)

        forecast = baseline * seasonal
        forecast *= adjustment

        day_weather: Optional[WeatherDay] = weather_by_date.get(current)
        weather_factor = calculate_weather_factor(day_weather)
        forecast *= weather_factor

        actual = actual_by_date.get(current)
        accuracy = compute_accuracy(forecast, actual) if actual is not None else None

        days.append(
            ForecastDay(
                date=current,
                forecasted_revenue=round_half_up(forecast, 2),
                confidence=confidence_for(weekday_samples[weekday]),
                trend=label,
                factors=ForecastFactors(
                    historical_average=baseline,
                    weekly_trend=trends.weekly,
                    monthly_trend=trends.monthly,
                    seasonal_factor=seasonal,
                    weather_factor=weather_factor,
                ),
                actual_revenue=actual,
                accuracy=accuracy,
                weather=day_weather,
            )
        )

    return days


def summarize_accuracy(days: Sequence[ForecastDay]) -> AccuracySummary:
    """Roll per-day backtest accuracy up into one score and rating."""

    scored = [day.accuracy.percentage for day in days if day.accuracy is not None]
    overall = mean(scored)
    return AccuracySummary(
        overall=round_half_up(overall, 2),
        rating=accuracy_rating(overall),
        data_points=len(scored),
        total_forecasts=len(days),
    )
