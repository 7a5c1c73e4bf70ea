from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.forecast.domain import ForecastDay
from app.models.models import RevenueForecast


logger = logging.getLogger(__name__)


def _weather_payload(day: ForecastDay) -> dict | None:
    if day.weather is None:
        return None
    payload = asdict(day.weather)
    payload.pop("date")
    return payload


def save_forecast_days(db: Session, organization_id: int, days: List[ForecastDay]) -> int:
    """Upsert forecast days into revenue_forecast keyed by (organization, date).

    Existing rows are overwritten with the latest run. Failures are logged
    and rolled back; the number of stored rows is returned (0 on failure).
    """
    if not days:
        return 0

    try:
        existing_rows: list[RevenueForecast] = (
            db.query(RevenueForecast)
            .filter(
                RevenueForecast.organization_id == organization_id,
                RevenueForecast.forecast_date.in_([d.date for d in days]),
            )
            .all()
        )
        existing_map = {row.forecast_date: row for row in existing_rows}

        for day in days:
            row = existing_map.get(day.date)
            if row is None:
                row = RevenueForecast(organization_id=organization_id, forecast_date=day.date)
                db.add(row)
                existing_map[day.date] = row

            row.forecasted_revenue = day.forecasted_revenue
            row.confidence = day.confidence
            row.trend = day.trend
            row.historical_average = day.factors.historical_average
            row.weekly_trend = day.factors.weekly_trend
            row.monthly_trend = day.factors.monthly_trend
            row.seasonal_factor = day.factors.seasonal_factor
            row.weather_factor = day.factors.weather_factor
            row.forecast_weather = _weather_payload(day)
            row.actual_revenue = day.actual_revenue
            if day.accuracy is not None:
                row.accuracy_percentage = day.accuracy.percentage
                row.accuracy_difference = day.accuracy.difference
                row.accuracy_rating = day.accuracy.rating
            else:
                row.accuracy_percentage = None
                row.accuracy_difference = None
                row.accuracy_rating = None

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save forecasts for organization %s", organization_id)
        return 0

    logger.info("Saved %s forecasts for organization %s", len(days), organization_id)
    return len(days)


def list_past_forecasts(
    db: Session,
    organization_id: int,
    start_date: date,
    end_date: date,
) -> List[RevenueForecast]:
    return (
        db.query(RevenueForecast)
        .filter(
            RevenueForecast.organization_id == organization_id,
            RevenueForecast.forecast_date >= start_date,
            RevenueForecast.forecast_date <= end_date,
        )
        .order_by(RevenueForecast.forecast_date.asc())
        .all()
    )
