from __future__ import annotations

from datetime import date

import pytest

from app.core.forecast.domain import ForecastAccuracy, ForecastDay, ForecastFactors
from app.models.models import RevenueForecast
from app.services.forecast_history import list_past_forecasts, save_forecast_days
from tests.test_utils import create_organization, weather_day


def _day(day: date, revenue: float, actual: float | None = None, with_weather: bool = False) -> ForecastDay:
    return ForecastDay(
        date=day,
        forecasted_revenue=revenue,
        confidence=80,
        trend="stable",
        factors=ForecastFactors(
            historical_average=100.0,
            weekly_trend=1.5,
            monthly_trend=-2.0,
            seasonal_factor=1.0,
            weather_factor=1.0,
        ),
        actual_revenue=actual,
        accuracy=ForecastAccuracy(percentage=95.0, difference=5.0, rating="excellent") if actual else None,
        weather=weather_day(day) if with_weather else None,
    )


@pytest.mark.usefixtures("db_session")
class TestSaveForecastDays:
    def test_inserts_rows_with_weather_snapshot(self, db_session):
        org = create_organization(db_session, "Save Org")

        saved = save_forecast_days(db_session, org.id, [_day(date(2025, 6, 10), 100.0, with_weather=True)])

        assert saved == 1
        row = db_session.query(RevenueForecast).filter_by(organization_id=org.id).one()
        assert float(row.forecasted_revenue) == pytest.approx(100.0)
        assert "date" not in row.forecast_weather
        assert "temperature" in row.forecast_weather

    def test_second_save_overwrites_and_clears_accuracy(self, db_session):
        org = create_organization(db_session, "Overwrite Org")
        day = date(2025, 6, 1)
        save_forecast_days(db_session, org.id, [_day(day, 100.0, actual=105.0)])

        save_forecast_days(db_session, org.id, [_day(day, 120.0)])

        rows = db_session.query(RevenueForecast).filter_by(organization_id=org.id).all()
        assert len(rows) == 1
        assert float(rows[0].forecasted_revenue) == pytest.approx(120.0)
        assert rows[0].accuracy_rating is None
        assert rows[0].actual_revenue is None

    def test_empty_list_is_noop(self, db_session):
        org = create_organization(db_session, "Empty Org")

        assert save_forecast_days(db_session, org.id, []) == 0


def test_list_past_forecasts_filters_window(db_session):
    org = create_organization(db_session, "Past Org")
    save_forecast_days(
        db_session,
        org.id,
        [_day(date(2025, 6, d), 100.0 + d) for d in (3, 1, 2, 9)],
    )

    rows = list_past_forecasts(db_session, org.id, date(2025, 6, 1), date(2025, 6, 3))

    assert [r.forecast_date for r in rows] == [date(2025, 6, 1), date(2025, 6, 2), date(2025, 6, 3)]
