from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.models.models import Organization
from app.schemas.weather import WeatherHistoryResponse, WeatherSyncResponse
from app.services.open_meteo import OpenMeteoClient, WeatherApiError
from app.services.weather_sync import GROUP_BY_OPTIONS, get_weather_history, sync_all_organizations, sync_weather


router = APIRouter()


def get_weather_client() -> OpenMeteoClient:
    return OpenMeteoClient()


@router.post("/sync", response_model=WeatherSyncResponse, summary="Sync hourly weather into the cache")
def post_weather_sync(
    organization_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    client: OpenMeteoClient = Depends(get_weather_client),
) -> WeatherSyncResponse:
    """Sync one organization when organization_id is given, otherwise all of them."""

    if organization_id is None:
        results, failed = sync_all_organizations(db, client=client)
        return WeatherSyncResponse(results=results, failed_organizations=failed)

    organization = db.get(Organization, organization_id)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

    try:
        result = sync_weather(db, organization, client=client)
    except WeatherApiError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return WeatherSyncResponse(results=[result], failed_organizations=[])


@router.get("/history", response_model=WeatherHistoryResponse, summary="Cached weather observations")
def get_history(
    organization_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    group_by: str | None = None,
    limit: int = Query(default=1000, ge=1, le=10000),
    db: Session = Depends(get_db),
) -> WeatherHistoryResponse:
    if group_by is not None and group_by not in GROUP_BY_OPTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"group_by must be one of {', '.join(GROUP_BY_OPTIONS)}",
        )
    return get_weather_history(
        db,
        organization_id,
        start_date=start_date,
        end_date=end_date,
        group_by=group_by,
        limit=limit,
    )
