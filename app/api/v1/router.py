from fastapi import APIRouter

from app.api.v1.endpoints import forecast, weather

api_router = APIRouter()

api_router.include_router(forecast.router, prefix="/forecast", tags=["forecast"])
api_router.include_router(weather.router, prefix="/weather", tags=["weather"])
