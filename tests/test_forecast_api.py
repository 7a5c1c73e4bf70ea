from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from app.api.v1.endpoints.forecast import get_weather_provider
from app.core.db import get_db
from app.main import app
from app.models.models import RevenueForecast
from app.services.open_meteo import WeatherApiError
from app.services.weather_provider import WeatherProvider
from tests.test_utils import FakeWeatherClient, add_daily_revenue, create_organization


@pytest.fixture
def client(db_session):
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    app.dependency_overrides[get_weather_provider] = lambda: WeatherProvider(
        client=FakeWeatherClient(error=WeatherApiError("offline"))
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_missing_organization_id_returns_400(client):
    resp = client.get("/api/v1/forecast")

    assert resp.status_code == 400, resp.text
    assert resp.json()["detail"] == "Organization ID required"


def test_unknown_organization_returns_404(client):
    resp = client.get("/api/v1/forecast", params={"organization_id": 424242})

    assert resp.status_code == 404, resp.text


def test_inverted_window_returns_400(client, db_session):
    org = create_organization(db_session, "API Inverted")

    resp = client.get(
        "/api/v1/forecast",
        params={"organization_id": org.id, "start_date": "2025-06-10", "end_date": "2025-06-01"},
    )

    assert resp.status_code == 400, resp.text


def test_forecast_response_shape_and_persistence(client, db_session):
    org = create_organization(db_session, "API Org")
    today = datetime.now(ZoneInfo("Europe/Berlin")).date()
    add_daily_revenue(db_session, org, [today - timedelta(days=i) for i in range(1, 29)], 100.0)

    start = today - timedelta(days=3)
    end = today + timedelta(days=3)
    resp = client.get(
        "/api/v1/forecast",
        params={
            "organization_id": org.id,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        },
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()

    assert len(body["forecast"]) == 7
    first = body["forecast"][0]
    assert first["date"] == start.isoformat()
    assert set(first["factors"]) == {
        "historical_average",
        "weekly_trend",
        "monthly_trend",
        "seasonal_factor",
        "weather_factor",
    }
    assert first["actual_revenue"] == pytest.approx(100.0)
    assert first["accuracy"]["rating"] in {"excellent", "good", "fair", "poor"}

    metadata = body["metadata"]
    assert metadata["data_points"] == 28
    assert metadata["period"] == {"start": start.isoformat(), "end": end.isoformat()}
    assert metadata["accuracy"]["data_points"] == 3
    assert metadata["accuracy"]["total_forecasts"] == 7
    assert metadata["history"]["transactions_read"] == 28
    assert metadata["history"]["truncated"] is False
    assert metadata["weather_days"] == 0
    assert set(metadata["trends"]) == {"weekly", "monthly", "overall"}
    assert "historical data points" in metadata["explanation"]

    stored = (
        db_session.query(RevenueForecast)
        .filter(RevenueForecast.organization_id == org.id)
        .order_by(RevenueForecast.forecast_date)
        .all()
    )
    assert [row.forecast_date for row in stored] == [start + timedelta(days=i) for i in range(7)]
    assert stored[0].accuracy_rating is not None
    assert stored[-1].accuracy_rating is None


def test_repeated_runs_upsert_forecasts(client, db_session):
    org = create_organization(db_session, "API Upsert")
    params = {
        "organization_id": org.id,
        "start_date": "2030-01-01",
        "end_date": "2030-01-05",
    }

    assert client.get("/api/v1/forecast", params=params).status_code == 200
    assert client.get("/api/v1/forecast", params=params).status_code == 200

    count = db_session.query(RevenueForecast).filter(RevenueForecast.organization_id == org.id).count()
    assert count == 5


def test_past_forecasts(client, db_session):
    org = create_organization(db_session, "API Past")
    client.get(
        "/api/v1/forecast",
        params={"organization_id": org.id, "start_date": "2030-02-01", "end_date": "2030-02-10"},
    )

    resp = client.get(
        "/api/v1/forecast/past",
        params={"organization_id": org.id, "start_date": "2030-02-03", "end_date": "2030-02-05"},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()

    assert body["count"] == 3
    assert [f["date"] for f in body["forecasts"]] == ["2030-02-03", "2030-02-04", "2030-02-05"]
    assert body["forecasts"][0]["trend"] == "stable"


def test_past_forecasts_require_dates(client, db_session):
    org = create_organization(db_session, "API Past Dates")

    resp = client.get("/api/v1/forecast/past", params={"organization_id": org.id})

    assert resp.status_code == 400, resp.text
    assert resp.json()["detail"] == "Start date and end date required"
