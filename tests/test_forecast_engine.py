from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.forecast.errors import ForecastInputError, OrganizationNotFound
from app.services.forecast_engine import DEFAULT_WINDOW_DAYS, build_explanation, generate_forecast
from app.core.forecast.domain import TrendMetrics
from app.services.open_meteo import WeatherApiError
from app.services.weather_provider import WeatherProvider
from tests.test_utils import (
    FakeTransactionStore,
    FakeWeatherClient,
    add_daily_revenue,
    create_organization,
    weather_day,
)


NOW = datetime(2025, 5, 31, 10, 0, tzinfo=timezone.utc)
TODAY = date(2025, 5, 31)


def _offline_provider() -> WeatherProvider:
    return WeatherProvider(client=FakeWeatherClient(error=WeatherApiError("offline")))


@pytest.mark.usefixtures("db_session")
class TestGenerateForecast:
    def test_missing_organization_id_is_rejected(self, db_session):
        with pytest.raises(ForecastInputError):
            generate_forecast(db_session, None, now=NOW, weather_provider=_offline_provider())

    def test_unknown_organization(self, db_session):
        with pytest.raises(OrganizationNotFound):
            generate_forecast(db_session, 987654, now=NOW, weather_provider=_offline_provider())

    def test_inverted_window_is_rejected(self, db_session):
        org = create_organization(db_session, "Inverted Org")

        with pytest.raises(ForecastInputError):
            generate_forecast(
                db_session,
                org.id,
                start_date=TODAY,
                end_date=TODAY - timedelta(days=1),
                now=NOW,
                weather_provider=_offline_provider(),
            )

    def test_default_window_is_today_plus_thirty_days(self, db_session):
        org = create_organization(db_session, "Default Window Org")

        result = generate_forecast(db_session, org.id, now=NOW, weather_provider=_offline_provider())

        assert result.start_date == TODAY
        assert result.end_date == TODAY + timedelta(days=DEFAULT_WINDOW_DAYS)
        assert len(result.days) == DEFAULT_WINDOW_DAYS + 1

    def test_empty_history_forecasts_zero_without_failing(self, db_session):
        org = create_organization(db_session, "Empty Org")

        result = generate_forecast(db_session, org.id, now=NOW, weather_provider=_offline_provider())

        assert result.rolling_baseline == 0.0
        assert result.trends.overall == 0.0
        assert all(day.forecasted_revenue == 0.0 for day in result.days)
        assert all(day.confidence == 50 for day in result.days)
        assert result.accuracy.data_points == 0
        assert result.accuracy.total_forecasts == len(result.days)
        assert result.history.days == []
        assert result.weather_days == 0

    def test_flat_history_from_database(self, db_session):
        org = create_organization(db_session, "Flat Org")
        add_daily_revenue(db_session, org, [TODAY - timedelta(days=i) for i in range(28)], 100.0)

        result = generate_forecast(
            db_session,
            org.id,
            start_date=TODAY + timedelta(days=1),
            end_date=TODAY + timedelta(days=7),
            now=NOW,
            weather_provider=_offline_provider(),
        )

        assert result.rolling_baseline == pytest.approx(100.0)
        assert len(result.history.days) == 28
        assert result.history.transactions_read == 28
        for day in result.days:
            assert day.forecasted_revenue == pytest.approx(100.0)
            assert day.trend == "stable"

    def test_overlap_with_history_is_backtested(self, db_session):
        org = create_organization(db_session, "Backtest Org")
        add_daily_revenue(db_session, org, [TODAY - timedelta(days=i) for i in range(28)], 100.0)

        result = generate_forecast(
            db_session,
            org.id,
            start_date=TODAY - timedelta(days=6),
            end_date=TODAY + timedelta(days=3),
            now=NOW,
            weather_provider=_offline_provider(),
        )

        assert result.accuracy.data_points == 7
        assert result.accuracy.total_forecasts == 10
        assert result.accuracy.overall == pytest.approx(100.0)
        assert result.accuracy.rating == "excellent"

    def test_weather_adjusts_forecast(self, db_session):
        org = create_organization(db_session, "Rainy Org")
        add_daily_revenue(db_session, org, [TODAY - timedelta(days=i) for i in range(28)], 100.0)
        start = TODAY + timedelta(days=1)
        client = FakeWeatherClient(days=[weather_day(start, precipitation=12, weather_code=25)])

        result = generate_forecast(
            db_session,
            org.id,
            start_date=start,
            end_date=start + timedelta(days=1),
            now=NOW,
            weather_provider=WeatherProvider(client=client),
        )

        assert result.weather_days == 1
        assert result.days[0].forecasted_revenue == pytest.approx(60.0)
        assert result.days[0].factors.weather_factor == pytest.approx(0.6)
        assert result.days[1].forecasted_revenue == pytest.approx(100.0)
        assert result.days[1].factors.weather_factor == 1.0

    def test_pagination_ceiling_is_reported(self, db_session):
        org = create_organization(db_session, "Busy Org", timezone="UTC")
        store = FakeTransactionStore(total_rows=60_000)

        result = generate_forecast(
            db_session,
            org.id,
            now=NOW,
            weather_provider=_offline_provider(),
            store=store,
        )

        assert result.history.transactions_read == 50_000
        assert result.history.truncated is True
        assert len(result.history.days) == -(-50_000 // 144)

    def test_store_failure_degrades_to_partial_history(self, db_session):
        org = create_organization(db_session, "Flaky Org", timezone="UTC")
        store = FakeTransactionStore(total_rows=5_000, fail_at_offset=1_000)

        result = generate_forecast(
            db_session,
            org.id,
            now=NOW,
            weather_provider=_offline_provider(),
            store=store,
        )

        assert result.history.store_error is True
        assert result.history.transactions_read == 1_000
        assert len(result.days) == DEFAULT_WINDOW_DAYS + 1


def test_explanation_names_trend_and_weekdays():
    factors = {0: 1.4, 1: 0.6, 2: 1.0, 3: 1.0, 4: 1.0, 5: 1.0, 6: 1.0}

    text = build_explanation(123.456, TrendMetrics(weekly=12.0, monthly=8.0), factors, 42)

    assert "42 historical data points" in text
    assert "123.46" in text
    assert "positive trend of 10.0%" in text
    assert "Sunday is the strongest day" in text
    assert "Monday the weakest" in text


def test_explanation_for_stable_trend():
    text = build_explanation(0.0, TrendMetrics(weekly=1.0, monthly=-1.0), {d: 1.0 for d in range(7)}, 0)

    assert "The trend is stable (0.0%)" in text
