from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple

import requests

from app.core.config import settings
from app.core.forecast.domain import WeatherDay


logger = logging.getLogger(__name__)


MAX_FORECAST_DAYS = 16
HOURLY_SYNC_DAYS = 7


class WeatherApiError(Exception):
    """Open-Meteo returned an error status or an unusable payload."""


@dataclass(frozen=True)
class HourlyWeather:
    date: date
    hour: int
    temperature: float
    precipitation: float
    weather_code: int
    wind_speed: float
    humidity: int
    pressure: float


def _round1(value: Optional[float]) -> float:
    return round(float(value or 0), 1)


class OpenMeteoClient:
    """Thin wrapper over the public Open-Meteo forecast and geocoding APIs."""

    def __init__(
        self,
        forecast_url: str | None = None,
        geocoding_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._forecast_url = forecast_url or settings.open_meteo_forecast_url
        self._geocoding_url = geocoding_url or settings.open_meteo_geocoding_url
        self._timeout = timeout if timeout is not None else settings.weather_http_timeout
        self._session = session or requests.Session()

    def _get_json(self, url: str, params: dict) -> dict:
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise WeatherApiError(f"Request to {url} failed: {exc}") from exc

        if not response.ok:
            raise WeatherApiError(f"Weather API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise WeatherApiError("Weather API returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise WeatherApiError("Invalid weather data format")
        return data

    def geocode(self, address: str) -> Tuple[float, float]:
        data = self._get_json(
            self._geocoding_url,
            {"name": address, "count": 1, "language": "en", "format": "json"},
        )
        results = data.get("results") or []
        if not results:
            raise WeatherApiError(f"Address not found: {address}")
        return float(results[0]["latitude"]), float(results[0]["longitude"])

    def fetch_daily(
        self,
        latitude: float,
        longitude: float,
        start: date,
        end: date,
        tz_name: str,
        today: date,
    ) -> List[WeatherDay]:
        """Daily forecast for [start, end]; the API serves at most 16 days from today."""

        days = (end - today).days + 1
        data = self._get_json(
            self._forecast_url,
            {
                "latitude": latitude,
                "longitude": longitude,
                "daily": ",".join(
                    [
                        "temperature_2m_max",
                        "temperature_2m_min",
                        "precipitation_sum",
                        "weather_code",
                        "wind_speed_10m_max",
                        "relative_humidity_2m_max",
                    ]
                ),
                "timezone": tz_name,
                "forecast_days": min(max(days, 1), MAX_FORECAST_DAYS),
            },
        )

        daily = data.get("daily")
        if not daily or "time" not in daily:
            raise WeatherApiError("Invalid weather data format")

        result: List[WeatherDay] = []
        try:
            for i, raw_date in enumerate(daily["time"]):
                day = date.fromisoformat(raw_date)
                if day < start or day > end:
                    continue
                t_max = daily["temperature_2m_max"][i]
                t_min = daily["temperature_2m_min"][i]
                if t_max is None or t_min is None:
                    continue
                result.append(
                    WeatherDay(
                        date=day,
                        temperature=_round1((t_max + t_min) / 2),
                        precipitation=_round1(daily["precipitation_sum"][i]),
                        weather_code=int(daily["weather_code"][i] or 0),
                        wind_speed=_round1(daily["wind_speed_10m_max"][i]),
                        humidity=round(daily["relative_humidity_2m_max"][i] or 0),
                    )
                )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise WeatherApiError("Invalid weather data format") from exc

        logger.info("Loaded %s daily weather points from Open-Meteo", len(result))
        return result

    def fetch_hourly(
        self,
        latitude: float,
        longitude: float,
        tz_name: str,
        days: int = HOURLY_SYNC_DAYS,
    ) -> List[HourlyWeather]:
        data = self._get_json(
            self._forecast_url,
            {
                "latitude": latitude,
                "longitude": longitude,
                "hourly": ",".join(
                    [
                        "temperature_2m",
                        "precipitation",
                        "weather_code",
                        "wind_speed_10m",
                        "relative_humidity_2m",
                        "surface_pressure",
                    ]
                ),
                "timezone": tz_name,
                "forecast_days": days,
            },
        )

        hourly = data.get("hourly")
        if not hourly or "time" not in hourly:
            raise WeatherApiError("Invalid weather data format")

        result: List[HourlyWeather] = []
        try:
            for i, raw_time in enumerate(hourly["time"]):
                moment = datetime.fromisoformat(raw_time)
                result.append(
                    HourlyWeather(
                        date=moment.date(),
                        hour=moment.hour,
                        temperature=_round1(hourly["temperature_2m"][i]),
                        precipitation=_round1(hourly["precipitation"][i]),
                        weather_code=int(hourly["weather_code"][i] or 0),
                        wind_speed=_round1(hourly["wind_speed_10m"][i]),
                        humidity=round(hourly["relative_humidity_2m"][i] or 0),
                        pressure=_round1(hourly["surface_pressure"][i]),
                    )
                )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise WeatherApiError("Invalid weather data format") from exc

        return result
