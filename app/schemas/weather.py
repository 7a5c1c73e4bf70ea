from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class WeatherSyncResult(BaseModel):
    organization_id: int
    latitude: float
    longitude: float
    fetched_hours: int
    stored_hours: int


class WeatherSyncResponse(BaseModel):
    results: list[WeatherSyncResult]
    failed_organizations: list[int]


class WeatherHistoryRecord(BaseModel):
    date: date
    hour: int
    temperature: float
    precipitation: float
    weather_code: int
    wind_speed: float
    humidity: int
    pressure: float
    data_source: str

    class Config:
        from_attributes = True


class WeatherHistoryGroup(BaseModel):
    period: str
    data_points: int
    avg_temperature: float
    min_temperature: float
    max_temperature: float
    total_precipitation: float
    avg_wind_speed: float
    avg_humidity: float


class WeatherHistoryResponse(BaseModel):
    organization_id: int
    group_by: str | None = None
    records: list[WeatherHistoryRecord] = []
    groups: list[WeatherHistoryGroup] = []
