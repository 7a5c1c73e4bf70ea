from __future__ import annotations

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Organization(Base):
    __tablename__ = "organization"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Europe/Berlin")


class PaymentTransaction(Base):
    __tablename__ = "payment_transaction"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id"), nullable=False, index=True)
    external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    refunded_amount: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    transaction_date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    organization: Mapped[Organization] = relationship("Organization")


class WeatherHistory(Base):
    __tablename__ = "weather_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id"), nullable=False, index=True)
    date: Mapped[Date] = mapped_column(Date, nullable=False)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    temperature: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    precipitation: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    weather_code: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wind_speed: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    humidity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pressure: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    data_source: Mapped[str] = mapped_column(String(50), nullable=False, default="open-meteo")
    synced_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "date", "hour", name="uq_weather_history_org_date_hour"),
    )


class RevenueForecast(Base):
    __tablename__ = "revenue_forecast"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id"), nullable=False, index=True)
    forecast_date: Mapped[Date] = mapped_column(Date, nullable=False)
    forecasted_revenue: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    trend: Mapped[str] = mapped_column(String(16), nullable=False)
    historical_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    weekly_trend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    monthly_trend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    seasonal_factor: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    weather_factor: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    forecast_weather: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    actual_revenue: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    accuracy_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    accuracy_difference: Mapped[float | None] = mapped_column(Float, nullable=True)
    accuracy_rating: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "forecast_date", name="uq_revenue_forecast_org_date"),
    )
