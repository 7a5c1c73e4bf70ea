from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.forecast.domain import ForecastResult
from app.core.forecast.errors import ForecastInputError, OrganizationNotFound
from app.models.models import RevenueForecast
from app.schemas.forecast import (
    ForecastAccuracyOut,
    ForecastAccuracySummary,
    ForecastDayOut,
    ForecastFactorsOut,
    ForecastMetadata,
    ForecastPeriod,
    ForecastResponse,
    HistoryRetrieval,
    PastForecastItem,
    PastForecastsResponse,
    TrendMetricsOut,
    WeatherDayOut,
)
from app.services.forecast_engine import generate_forecast
from app.services.forecast_history import list_past_forecasts, save_forecast_days
from app.services.weather_provider import WeatherProvider


router = APIRouter()


def get_weather_provider() -> WeatherProvider:
    return WeatherProvider()


def _to_response(result: ForecastResult) -> ForecastResponse:
    forecast = [
        ForecastDayOut(
            date=day.date,
            forecasted_revenue=day.forecasted_revenue,
            actual_revenue=day.actual_revenue,
            confidence=day.confidence,
            trend=day.trend,
            accuracy=(
                ForecastAccuracyOut(
                    percentage=day.accuracy.percentage,
                    difference=day.accuracy.difference,
                    rating=day.accuracy.rating,
                )
                if day.accuracy is not None
                else None
            ),
            factors=ForecastFactorsOut(
                historical_average=day.factors.historical_average,
                weekly_trend=day.factors.weekly_trend,
                monthly_trend=day.factors.monthly_trend,
                seasonal_factor=day.factors.seasonal_factor,
                weather_factor=day.factors.weather_factor,
            ),
            weather=(
                WeatherDayOut(
                    date=day.weather.date,
                    temperature=day.weather.temperature,
                    precipitation=day.weather.precipitation,
                    weather_code=day.weather.weather_code,
                    wind_speed=day.weather.wind_speed,
                    humidity=day.weather.humidity,
                )
                if day.weather is not None
                else None
            ),
        )
        for day in result.days
    ]

    metadata = ForecastMetadata(
        rolling_baseline=result.rolling_baseline,
        trends=TrendMetricsOut(
            weekly=result.trends.weekly,
            monthly=result.trends.monthly,
            overall=result.trends.overall,
        ),
        seasonal_factors=result.seasonal_factors,
        data_points=len(result.history.days),
        period=ForecastPeriod(start=result.start_date, end=result.end_date),
        accuracy=ForecastAccuracySummary(
            overall=result.accuracy.overall,
            rating=result.accuracy.rating,
            data_points=result.accuracy.data_points,
            total_forecasts=result.accuracy.total_forecasts,
        ),
        history=HistoryRetrieval(
            transactions_read=result.history.transactions_read,
            pages_read=result.history.pages_read,
            truncated=result.history.truncated,
            store_error=result.history.store_error,
        ),
        weather_days=result.weather_days,
        explanation=result.explanation,
    )
    return ForecastResponse(forecast=forecast, metadata=metadata)


@router.get(
    "",
    response_model=ForecastResponse,
    summary="Generate a day-by-day revenue forecast",
    description=(
        "Forecasts daily revenue for the organization between start_date and "
        "end_date (default: today through today+30 days) and reports backtest "
        "accuracy for days whose actual revenue is already known."
    ),
)
def get_forecast(
    organization_id: int | None = Query(default=None),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    weather_provider: WeatherProvider = Depends(get_weather_provider),
) -> ForecastResponse:
    try:
        result = generate_forecast(
            db,
            organization_id,
            start_date=start_date,
            end_date=end_date,
            weather_provider=weather_provider,
        )
    except ForecastInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except OrganizationNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    save_forecast_days(db, result.organization_id, result.days)
    return _to_response(result)


def _past_item(row: RevenueForecast) -> PastForecastItem:
    accuracy = None
    if row.accuracy_percentage is not None:
        accuracy = ForecastAccuracyOut(
            percentage=row.accuracy_percentage,
            difference=row.accuracy_difference or 0.0,
            rating=row.accuracy_rating,
        )
    return PastForecastItem(
        date=row.forecast_date,
        forecasted_revenue=float(row.forecasted_revenue),
        actual_revenue=float(row.actual_revenue) if row.actual_revenue is not None else None,
        confidence=row.confidence,
        trend=row.trend,
        accuracy=accuracy,
        factors=ForecastFactorsOut(
            historical_average=row.historical_average,
            weekly_trend=row.weekly_trend,
            monthly_trend=row.monthly_trend,
            seasonal_factor=row.seasonal_factor,
            weather_factor=row.weather_factor,
        ),
        weather=row.forecast_weather,
        updated_at=row.updated_at,
    )


@router.get(
    "/past",
    response_model=PastForecastsResponse,
    summary="List stored forecasts for a date range",
)
def get_past_forecasts(
    organization_id: int | None = Query(default=None),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
) -> PastForecastsResponse:
    if organization_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Organization ID required")
    if start_date is None or end_date is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Start date and end date required",
        )

    rows = list_past_forecasts(db, organization_id, start_date, end_date)
    items = [_past_item(row) for row in rows]
    return PastForecastsResponse(forecasts=items, count=len(items))
