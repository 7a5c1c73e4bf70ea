from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional


TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


@dataclass(frozen=True)
class RawTransaction:
    """A single successful payment as read from the transaction store."""

    amount: Decimal
    """Net amount of the payment (refunds already subtracted)."""

    timestamp: datetime
    """Instant of the payment; naive values are interpreted as UTC."""


@dataclass(frozen=True)
class DailyRevenue:
    date: date
    revenue: float


@dataclass(frozen=True)
class HistoricalDay:
    """Revenue of one organization-local calendar day plus calendar attributes."""

    date: date
    revenue: float
    weekday: int
    """Day of week with Sunday=0 .. Saturday=6."""

    iso_week: int
    month: int
    year: int


@dataclass(frozen=True)
class WeatherDay:
    """Daily weather observation or forecast for the organization's location."""

    date: date
    temperature: float
    """Mean temperature in degrees Celsius."""

    precipitation: float
    """Daily precipitation sum in millimetres."""

    weather_code: int
    """WMO weather interpretation code."""

    wind_speed: float
    """Wind speed in km/h."""

    humidity: float
    """Relative humidity in percent."""


@dataclass(frozen=True)
class TrendMetrics:
    weekly: float
    monthly: float

    @property
    def overall(self) -> float:
        return (self.weekly + self.monthly) / 2


@dataclass(frozen=True)
class ForecastAccuracy:
    percentage: float
    difference: float
    rating: str


@dataclass(frozen=True)
class ForecastFactors:
    historical_average: float
    weekly_trend: float
    monthly_trend: float
    seasonal_factor: float
    weather_factor: float


@dataclass
class ForecastDay:
    """Forecast for a single calendar day of the requested window."""

    date: date
    forecasted_revenue: float
    confidence: int
    trend: str
    factors: ForecastFactors
    actual_revenue: Optional[float] = None
    accuracy: Optional[ForecastAccuracy] = None
    weather: Optional[WeatherDay] = None


@dataclass(frozen=True)
class AccuracySummary:
    overall: float
    rating: str
    data_points: int
    """Number of forecast days backed by realized revenue."""

    total_forecasts: int


@dataclass
class HistoryLoad:
    """Outcome of one historical aggregation run.

    Besides the aggregated days it records how the bounded page retrieval
    ended, so that callers can tell partial history from complete history.
    """

    days: List[HistoricalDay] = field(default_factory=list)
    transactions_read: int = 0
    pages_read: int = 0
    truncated: bool = False
    """True when the page ceiling was reached before the store ran out of rows."""

    store_error: bool = False
    """True when a page read failed and aggregation kept the rows read so far."""


@dataclass
class ForecastResult:
    """Everything produced by a single forecast run."""

    organization_id: int
    start_date: date
    end_date: date
    days: List[ForecastDay]
    rolling_baseline: float
    trends: TrendMetrics
    seasonal_factors: Dict[int, float]
    accuracy: AccuracySummary
    history: HistoryLoad
    weather_days: int
    explanation: str
