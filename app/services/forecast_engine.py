from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.forecast.domain import ForecastResult, TrendMetrics
from app.core.forecast.errors import ForecastInputError, OrganizationNotFound
from app.core.forecast.factors import (
    calculate_rolling_baseline,
    calculate_seasonal_factors,
    calculate_trends,
)
from app.core.forecast.generator import generate_forecast_days, summarize_accuracy, trend_label
from app.core.forecast.history import load_history
from app.models.models import Organization
from app.services.transaction_store import MAX_PAGES, PAGE_SIZE, BoundedPageReader, SqlTransactionStore, TransactionStore
from app.services.weather_provider import WeatherProvider


logger = logging.getLogger(__name__)


HISTORY_LOOKBACK_YEARS = 2
DEFAULT_WINDOW_DAYS = 30

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def organization_timezone(organization: Organization) -> ZoneInfo:
    try:
        return ZoneInfo(organization.timezone or settings.default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown timezone %r for organization %s; using %s",
            organization.timezone,
            organization.id,
            settings.default_timezone,
        )
        return ZoneInfo(settings.default_timezone)


def build_explanation(
    baseline: float,
    trends: TrendMetrics,
    seasonal_factors: Dict[int, float],
    data_points: int,
) -> str:
    """Human-readable summary of how the forecast was put together."""

    parts: list[str] = [
        f"The forecast is based on {data_points} historical data points "
        f"from the last {HISTORY_LOOKBACK_YEARS} years.",
        f"The baseline (average of the last 4 weeks) is {baseline:.2f}.",
    ]

    label = trend_label(trends.overall)
    if label == "up":
        parts.append(f"A positive trend of {trends.overall:.1f}% is factored in.")
    elif label == "down":
        parts.append(f"A negative trend of {trends.overall:.1f}% is factored in.")
    else:
        parts.append(f"The trend is stable ({trends.overall:.1f}%).")

    ranked = sorted(seasonal_factors.items(), key=lambda item: item[1], reverse=True)
    if ranked:
        strongest, weakest = ranked[0], ranked[-1]
        parts.append(
            f"{WEEKDAY_NAMES[strongest[0]]} is the strongest day (factor {strongest[1]:.2f}x), "
            f"{WEEKDAY_NAMES[weakest[0]]} the weakest (factor {weakest[1]:.2f}x)."
        )

    parts.append(
        "Weather is taken into account: rain, cold or heat lower the expected "
        "revenue, while clear weather raises it."
    )
    return " ".join(parts)


def generate_forecast(
    db: Session,
    organization_id: Optional[int],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: Optional[datetime] = None,
    weather_provider: Optional[WeatherProvider] = None,
    store: Optional[TransactionStore] = None,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
) -> ForecastResult:
    """Run one revenue forecast for an organization.

    Stages run strictly in order: history aggregation, baseline/trend/
    seasonality, weather lookup, per-day generation, accuracy roll-up.
    Collaborator failures degrade to partial data; only invalid input raises.
    """

    if organization_id is None:
        raise ForecastInputError("Organization ID required")

    organization = db.get(Organization, organization_id)
    if organization is None:
        raise OrganizationNotFound(organization_id)

    tz = organization_timezone(organization)
    now = now or datetime.now(timezone.utc)
    today = now.astimezone(tz).date()

    start = start_date or today
    end = end_date or start + timedelta(days=DEFAULT_WINDOW_DAYS)
    if start > end:
        raise ForecastInputError("start_date must not be after end_date")

    logger.info(
        "Starting forecast for organization %s, period %s..%s",
        organization_id,
        start,
        end,
    )

    since = now - relativedelta(years=HISTORY_LOOKBACK_YEARS)
    pages = BoundedPageReader(
        store or SqlTransactionStore(db),
        organization_id,
        since,
        page_size=page_size,
        max_pages=max_pages,
    )
    history = load_history(pages, tz)
    logger.info(
        "Loaded %s historical days from %s transactions",
        len(history.days),
        history.transactions_read,
    )

    baseline = calculate_rolling_baseline(history.days, today)
    trends = calculate_trends(history.days, today)
    seasonal_factors = calculate_seasonal_factors(history.days)

    provider = weather_provider or WeatherProvider()
    weather = provider.get_weather(db, organization, start, end, today)
    logger.info("Weather data loaded for %s days", len(weather))

    days = generate_forecast_days(
        start,
        end,
        baseline,
        trends,
        seasonal_factors,
        history.days,
        weather,
    )
    accuracy = summarize_accuracy(days)
    logger.info(
        "Generated %s forecast days, overall accuracy %.1f%% (%s) over %s days",
        len(days),
        accuracy.overall,
        accuracy.rating,
        accuracy.data_points,
    )

    return ForecastResult(
        organization_id=organization_id,
        start_date=start,
        end_date=end,
        days=days,
        rolling_baseline=baseline,
        trends=trends,
        seasonal_factors=seasonal_factors,
        accuracy=accuracy,
        history=history,
        weather_days=len(weather),
        explanation=build_explanation(baseline, trends, seasonal_factors, len(history.days)),
    )
