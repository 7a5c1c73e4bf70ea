from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.models import Organization, WeatherHistory
from app.schemas.weather import WeatherHistoryGroup, WeatherHistoryRecord, WeatherHistoryResponse, WeatherSyncResult
from app.services.forecast_engine import organization_timezone
from app.services.open_meteo import HourlyWeather, OpenMeteoClient, WeatherApiError


logger = logging.getLogger(__name__)


SYNC_DATA_SOURCE = "open-meteo"
GROUP_BY_OPTIONS = ("day", "week", "month")


def resolve_coordinates(
    db: Session,
    organization: Organization,
    client: OpenMeteoClient,
) -> Tuple[float, float]:
    """Coordinates of the organization, geocoding its address on first use.

    Geocoded coordinates are stored on the organization. Without an address,
    or when geocoding fails, the configured default location is used.
    """

    if organization.latitude is not None and organization.longitude is not None:
        return organization.latitude, organization.longitude

    if organization.address:
        try:
            latitude, longitude = client.geocode(organization.address)
        except WeatherApiError:
            logger.exception(
                "Geocoding failed for organization %s; using default coordinates",
                organization.id,
            )
        else:
            organization.latitude = latitude
            organization.longitude = longitude
            db.flush()
            return latitude, longitude

    return settings.default_latitude, settings.default_longitude


def sync_weather(
    db: Session,
    organization: Organization,
    client: Optional[OpenMeteoClient] = None,
    now: Optional[datetime] = None,
) -> WeatherSyncResult:
    """Fetch hourly weather for the organization and upsert observed hours.

    Only hours that are not in the future (organization-local time) are
    written to weather_history; forecast hours are skipped.
    Raises WeatherApiError when the API call fails.
    """

    client = client or OpenMeteoClient()
    tz = organization_timezone(organization)
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz).replace(tzinfo=None)

    latitude, longitude = resolve_coordinates(db, organization, client)
    hours = client.fetch_hourly(latitude, longitude, tz.key)

    observed = [
        h
        for h in hours
        if datetime.combine(h.date, datetime.min.time()) + timedelta(hours=h.hour) <= local_now
    ]
    stored = _upsert_hours(db, organization.id, observed, latitude, longitude)
    db.commit()

    logger.info(
        "Weather sync for organization %s: %s hours fetched, %s stored",
        organization.id,
        len(hours),
        stored,
    )
    return WeatherSyncResult(
        organization_id=organization.id,
        latitude=latitude,
        longitude=longitude,
        fetched_hours=len(hours),
        stored_hours=stored,
    )


def _upsert_hours(
    db: Session,
    organization_id: int,
    hours: List[HourlyWeather],
    latitude: float,
    longitude: float,
) -> int:
    if not hours:
        return 0

    existing_rows: list[WeatherHistory] = (
        db.query(WeatherHistory)
        .filter(
            WeatherHistory.organization_id == organization_id,
            WeatherHistory.date.in_({h.date for h in hours}),
        )
        .all()
    )
    existing_map = {(row.date, row.hour): row for row in existing_rows}
    synced_at = datetime.now(timezone.utc)

    for item in hours:
        key = (item.date, item.hour)
        row = existing_map.get(key)
        if row is None:
            row = WeatherHistory(organization_id=organization_id, date=item.date, hour=item.hour)
            db.add(row)
            existing_map[key] = row

        row.latitude = latitude
        row.longitude = longitude
        row.temperature = item.temperature
        row.precipitation = item.precipitation
        row.weather_code = item.weather_code
        row.wind_speed = item.wind_speed
        row.humidity = item.humidity
        row.pressure = item.pressure
        row.data_source = SYNC_DATA_SOURCE
        row.synced_at = synced_at

    db.flush()
    return len(hours)


def sync_all_organizations(
    db: Session,
    client: Optional[OpenMeteoClient] = None,
    now: Optional[datetime] = None,
) -> Tuple[List[WeatherSyncResult], List[int]]:
    """Run the weather sync for every organization; one failure does not stop the rest."""

    client = client or OpenMeteoClient()
    results: List[WeatherSyncResult] = []
    failed: List[int] = []

    organizations = db.query(Organization).order_by(Organization.id).all()
    for organization in organizations:
        try:
            results.append(sync_weather(db, organization, client=client, now=now))
        except WeatherApiError:
            db.rollback()
            logger.exception("Weather sync failed for organization %s", organization.id)
            failed.append(organization.id)

    return results, failed


def _period_key(day: date, group_by: str) -> str:
    if group_by == "week":
        # Weeks start on Sunday.
        start = day - timedelta(days=(day.weekday() + 1) % 7)
        return start.isoformat()
    if group_by == "month":
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def get_weather_history(
    db: Session,
    organization_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: Optional[str] = None,
    limit: int = 1000,
) -> WeatherHistoryResponse:
    query = db.query(WeatherHistory).filter(WeatherHistory.organization_id == organization_id)
    if start_date is not None:
        query = query.filter(WeatherHistory.date >= start_date)
    if end_date is not None:
        query = query.filter(WeatherHistory.date <= end_date)

    rows = (
        query.order_by(WeatherHistory.date.desc(), WeatherHistory.hour.desc())
        .limit(limit)
        .all()
    )

    if group_by is None:
        return WeatherHistoryResponse(
            organization_id=organization_id,
            records=[WeatherHistoryRecord.model_validate(row, from_attributes=True) for row in rows],
        )

    grouped: "OrderedDict[str, list[WeatherHistory]]" = OrderedDict()
    for row in rows:
        grouped.setdefault(_period_key(row.date, group_by), []).append(row)

    groups = []
    for period, items in grouped.items():
        count = len(items)
        temperatures = [i.temperature for i in items]
        groups.append(
            WeatherHistoryGroup(
                period=period,
                data_points=count,
                avg_temperature=round(sum(temperatures) / count, 1),
                min_temperature=min(temperatures),
                max_temperature=max(temperatures),
                total_precipitation=round(sum(i.precipitation for i in items), 1),
                avg_wind_speed=round(sum(i.wind_speed for i in items) / count, 1),
                avg_humidity=round(sum(i.humidity for i in items) / count, 1),
            )
        )

    return WeatherHistoryResponse(organization_id=organization_id, group_by=group_by, groups=groups)
