from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.forecast.domain import HistoricalDay, RawTransaction, WeatherDay
from app.core.forecast.history import weekday_sunday_first
from app.models.models import Organization, PaymentTransaction, WeatherHistory


def create_organization(session: Session, name: str, **kwargs) -> Organization:
    org = Organization(
        name=name,
        address=kwargs.get("address"),
        latitude=kwargs.get("latitude"),
        longitude=kwargs.get("longitude"),
        timezone=kwargs.get("timezone", "Europe/Berlin"),
    )
    session.add(org)
    session.flush()
    return org


def add_transaction(
    session: Session,
    organization: Organization,
    when: datetime,
    amount: float,
    status: str = "SUCCESSFUL",
    refunded_amount: float | None = None,
) -> PaymentTransaction:
    row = PaymentTransaction(
        organization_id=organization.id,
        amount=amount,
        refunded_amount=refunded_amount,
        status=status,
        transaction_date=when,
    )
    session.add(row)
    session.flush()
    return row


def add_daily_revenue(
    session: Session,
    organization: Organization,
    days: Iterable[date],
    amount: float,
) -> None:
    """One successful transaction at noon UTC for each given day."""
    for day in days:
        add_transaction(
            session,
            organization,
            datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc),
            amount,
        )


def add_weather_hour(
    session: Session,
    organization: Organization,
    day: date,
    hour: int,
    **kwargs,
) -> WeatherHistory:
    row = WeatherHistory(
        organization_id=organization.id,
        date=day,
        hour=hour,
        latitude=kwargs.get("latitude", 53.5511),
        longitude=kwargs.get("longitude", 9.9937),
        temperature=kwargs.get("temperature", 18.0),
        precipitation=kwargs.get("precipitation", 0.0),
        weather_code=kwargs.get("weather_code", 20),
        wind_speed=kwargs.get("wind_speed", 5.0),
        humidity=kwargs.get("humidity", 60),
        pressure=kwargs.get("pressure", 1013.0),
        data_source=kwargs.get("data_source", "open-meteo"),
    )
    session.add(row)
    session.flush()
    return row


def history_day(day: date, revenue: float) -> HistoricalDay:
    return HistoricalDay(
        date=day,
        revenue=revenue,
        weekday=weekday_sunday_first(day),
        iso_week=day.isocalendar()[1],
        month=day.month,
        year=day.year,
    )


def flat_history(today: date, days: int, revenue: float) -> List[HistoricalDay]:
    """`days` consecutive days ending at `today`, each with the same revenue."""
    return [history_day(today - timedelta(days=i), revenue) for i in range(days - 1, -1, -1)]


def weather_day(day: date, **kwargs) -> WeatherDay:
    return WeatherDay(
        date=day,
        temperature=kwargs.get("temperature", 18.0),
        precipitation=kwargs.get("precipitation", 0.0),
        weather_code=kwargs.get("weather_code", 20),
        wind_speed=kwargs.get("wind_speed", 5.0),
        humidity=kwargs.get("humidity", 60),
    )


class FakeTransactionStore:
    """In-memory transaction store serving `total_rows` rows of a fixed amount."""

    def __init__(
        self,
        total_rows: int,
        amount: str = "10.00",
        fail_at_offset: int | None = None,
        error: Exception | None = None,
    ) -> None:
        self.total_rows = total_rows
        self.amount = Decimal(amount)
        self.fail_at_offset = fail_at_offset
        self.error = error
        self.calls: list[tuple[int, int]] = []

    def fetch_page(self, organization_id, since, offset, limit):
        self.calls.append((offset, limit))
        if self.fail_at_offset is not None and offset >= self.fail_at_offset:
            raise self.error or OperationalError("SELECT", {}, Exception("connection lost"))

        end = min(offset + limit, self.total_rows)
        base = since if since.tzinfo else since.replace(tzinfo=timezone.utc)
        return [
            RawTransaction(amount=self.amount, timestamp=base + timedelta(minutes=10 * i))
            for i in range(offset, end)
        ]


class FakeWeatherClient:
    """Stands in for OpenMeteoClient.fetch_daily."""

    def __init__(self, days: List[WeatherDay] | None = None, error: Exception | None = None) -> None:
        self.days = days or []
        self.error = error
        self.calls: list[tuple] = []

    def fetch_daily(self, latitude, longitude, start, end, tz_name, today):
        self.calls.append((latitude, longitude, start, end, tz_name, today))
        if self.error is not None:
            raise self.error
        return [d for d in self.days if start <= d.date <= end]
