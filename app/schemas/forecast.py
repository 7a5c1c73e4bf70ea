from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel


Rating = Literal["excellent", "good", "fair", "poor"]
Trend = Literal["up", "down", "stable"]


class WeatherDayOut(BaseModel):
    date: date
    temperature: float
    precipitation: float
    weather_code: int
    wind_speed: float
    humidity: float


class ForecastAccuracyOut(BaseModel):
    percentage: float
    difference: float
    rating: Rating


class ForecastFactorsOut(BaseModel):
    historical_average: float
    weekly_trend: float
    monthly_trend: float
    seasonal_factor: float
    weather_factor: float


class ForecastDayOut(BaseModel):
    date: date
    forecasted_revenue: float
    actual_revenue: float | None = None
    confidence: int
    trend: Trend
    accuracy: ForecastAccuracyOut | None = None
    factors: ForecastFactorsOut
    weather: WeatherDayOut | None = None


class TrendMetricsOut(BaseModel):
    weekly: float
    monthly: float
    overall: float


class ForecastPeriod(BaseModel):
    start: date
    end: date


class ForecastAccuracySummary(BaseModel):
    overall: float
    rating: Rating
    data_points: int
    total_forecasts: int


class HistoryRetrieval(BaseModel):
    transactions_read: int
    pages_read: int
    truncated: bool
    store_error: bool


class ForecastMetadata(BaseModel):
    rolling_baseline: float
    trends: TrendMetricsOut
    seasonal_factors: dict[int, float]
    data_points: int
    period: ForecastPeriod
    accuracy: ForecastAccuracySummary
    history: HistoryRetrieval
    weather_days: int
    explanation: str


class ForecastResponse(BaseModel):
    forecast: list[ForecastDayOut]
    metadata: ForecastMetadata


class PastForecastItem(BaseModel):
    date: date
    forecasted_revenue: float
    actual_revenue: float | None = None
    confidence: int
    trend: Trend
    accuracy: ForecastAccuracyOut | None = None
    factors: ForecastFactorsOut
    weather: dict | None = None
    updated_at: datetime | None = None


class PastForecastsResponse(BaseModel):
    forecasts: list[PastForecastItem]
    count: int
