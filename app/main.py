from fastapi import FastAPI

from app.api.v1.router import api_router
from app.services.weather_scheduler import WeatherSyncScheduler


app = FastAPI(title="Revenue Forecast")
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def _startup_event() -> None:
    scheduler = WeatherSyncScheduler()
    scheduler.start()
    app.state.weather_scheduler = scheduler


@app.on_event("shutdown")
def _shutdown_event() -> None:
    scheduler = getattr(app.state, "weather_scheduler", None)
    if scheduler is not None:
        scheduler.shutdown()


@app.get("/")
def root():
    return {"status": "ok", "message": "Revenue forecast backend running"}
