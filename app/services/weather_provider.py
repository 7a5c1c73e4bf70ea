from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Protocol, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.forecast.domain import WeatherDay
from app.core.forecast.generator import iter_dates
from app.core.forecast.numbers import round_half_up
from app.models.models import Organization, WeatherHistory
from app.services.open_meteo import OpenMeteoClient, WeatherApiError


logger = logging.getLogger(__name__)


FORECAST_CACHE_HOUR = 12
FORECAST_DATA_SOURCE = "open-meteo-forecast"


class DailyWeatherClient(Protocol):
    def fetch_daily(
        self,
        latitude: float,
        longitude: float,
        start: date,
        end: date,
        tz_name: str,
        today: date,
    ) -> List[WeatherDay]: ...


def organization_coordinates(organization: Organization) -> Tuple[float, float]:
    if organization.latitude is not None and organization.longitude is not None:
        return organization.latitude, organization.longitude
    return settings.default_latitude, settings.default_longitude


def aggregate_hourly_rows(rows: List[WeatherHistory]) -> List[WeatherDay]:
    """Collapse hourly cache rows into one WeatherDay per date.

    Temperature, wind and humidity are averaged; precipitation is summed;
    the weather code of the first hour of the day is kept.
    """

    grouped: "OrderedDict[date, List[WeatherHistory]]" = OrderedDict()
    for row in rows:
        grouped.setdefault(row.date, []).append(row)

    days: List[WeatherDay] = []
    for day, hours in grouped.items():
        count = len(hours)
        days.append(
            WeatherDay(
                date=day,
                temperature=round_half_up(sum(h.temperature for h in hours) / count, 1),
                precipitation=round_half_up(sum(h.precipitation for h in hours), 1),
                weather_code=hours[0].weather_code,
                wind_speed=round_half_up(sum(h.wind_speed for h in hours) / count, 1),
                humidity=int(round_half_up(sum(h.humidity for h in hours) / count, 0)),
            )
        )
    return days


class WeatherProvider:
    """Daily weather for a forecast window, cache first with a network fallback.

    Never raises: a failing cache falls back to the network once, and a
    failing network call contributes no days.
    """

    def __init__(self, client: Optional[DailyWeatherClient] = None) -> None:
        self._client = client or OpenMeteoClient()

    def _read_cache(
        self,
        db: Session,
        organization_id: int,
        start: date,
        end: date,
        today: date,
    ) -> Tuple[List[WeatherDay], Set[date]]:
        """Cached daily weather plus the dates whose cache is only a stale forecast.

        A date from today on with nothing but forecast write-back rows is
        refreshed from the API on every run, until the hourly sync stores
        observations for it.
        """
        rows = (
            db.query(WeatherHistory)
            .filter(
                WeatherHistory.organization_id == organization_id,
                WeatherHistory.date >= start,
                WeatherHistory.date <= end,
            )
            .order_by(WeatherHistory.date.asc(), WeatherHistory.hour.asc())
            .all()
        )
        observed = {row.date for row in rows if row.data_source != FORECAST_DATA_SOURCE}
        stale = {row.date for row in rows if row.date >= today and row.date not in observed}
        return aggregate_hourly_rows(rows), stale

    def _store_forecast_days(
        self,
        db: Session,
        organization_id: int,
        days: List[WeatherDay],
        latitude: float,
        longitude: float,
    ) -> None:
        """Upsert fetched days as one forecast row at FORECAST_CACHE_HOUR; best effort."""
        try:
            existing_rows: list[WeatherHistory] = (
                db.query(WeatherHistory)
                .filter(
                    WeatherHistory.organization_id == organization_id,
                    WeatherHistory.hour == FORECAST_CACHE_HOUR,
                    WeatherHistory.date.in_([day.date for day in days]),
                )
                .all()
            )
            existing_map = {row.date: row for row in existing_rows}

            for day in days:
                row = existing_map.get(day.date)
                if row is None:
                    row = WeatherHistory(
                        organization_id=organization_id,
                        date=day.date,
                        hour=FORECAST_CACHE_HOUR,
                    )
                    db.add(row)
                    existing_map[day.date] = row
                elif row.data_source != FORECAST_DATA_SOURCE:
                    # Observed hour from the sync; keep it.
                    continue

                row.latitude = latitude
                row.longitude = longitude
                row.temperature = day.temperature
                row.precipitation = day.precipitation
                row.weather_code = day.weather_code
                row.wind_speed = day.wind_speed
                row.humidity = int(day.humidity)
                row.pressure = 0.0
                row.data_source = FORECAST_DATA_SOURCE
                row.synced_at = datetime.now(timezone.utc)

            db.commit()
            logger.info(
                "Cached %s forecast weather days for organization %s",
                len(days),
                organization_id,
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Failed to cache forecast weather for organization %s", organization_id
            )

    def get_weather(
        self,
        db: Session,
        organization: Organization,
        start: date,
        end: date,
        today: date,
    ) -> List[WeatherDay]:
        organization_id = organization.id
        tz_name = organization.timezone
        latitude, longitude = organization_coordinates(organization)

        cache_ok = True
        try:
            cached, stale = self._read_cache(db, organization_id, start, end, today)
        except SQLAlchemyError:
            logger.exception(
                "Weather cache read failed for organization %s; falling back to API",
                organization_id,
            )
            db.rollback()
            cached, stale = [], set()
            cache_ok = False

        by_date: Dict[date, WeatherDay] = {day.date: day for day in cached}

        fetch_start = max(start, today)
        missing = [
            d for d in iter_dates(fetch_start, end) if d not in by_date or d in stale
        ]
        if not cache_ok and start < today:
            # Past days only live in the cache; nothing else to fall back to.
            logger.warning(
                "No weather available for past days %s..%s of organization %s",
                start,
                min(end, today),
                organization_id,
            )

        if missing:
            try:
                fetched = self._client.fetch_daily(
                    latitude,
                    longitude,
                    missing[0],
                    missing[-1],
                    tz_name,
                    today,
                )
            except WeatherApiError:
                logger.exception(
                    "Weather API fetch failed for organization %s; proceeding without it",
                    organization_id,
                )
                fetched = []

            missing_set = set(missing)
            new_days = [day for day in fetched if day.date in missing_set]
            for day in new_days:
                by_date[day.date] = day

            if new_days and cache_ok:
                self._store_forecast_days(db, organization_id, new_days, latitude, longitude)

        return [by_date[d] for d in sorted(by_date)]
