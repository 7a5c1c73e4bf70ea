from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.services.weather_sync import sync_all_organizations


logger = logging.getLogger(__name__)


class WeatherSyncScheduler:
    """Background scheduler for the periodic weather sync.

    Started and stopped from the FastAPI startup/shutdown events. When the
    database is PostgreSQL, an advisory lock keeps the job on one backend
    instance.
    """

    # Fixed BIGINT shared by all backend instances.
    LOCK_KEY = 7_331_000_000_000_000_101

    def __init__(self, interval_minutes: Optional[int] = None) -> None:
        self._interval_minutes = interval_minutes or settings.weather_sync_interval_minutes
        self._scheduler: Optional[BackgroundScheduler] = None
        self._lock_connection = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if not settings.weather_sync_enabled:
            logger.warning("WeatherSyncScheduler disabled via WEATHER_SYNC_ENABLED")
            return

        if self.running:
            logger.warning("WeatherSyncScheduler already running, skipping start")
            return

        if not self._acquire_lock():
            logger.warning("WeatherSyncScheduler disabled (advisory lock not acquired)")
            return

        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            self._run_sync_job,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id="weather_sync_job",
            replace_existing=True,
            max_instances=1,
            next_run_time=datetime.now(timezone.utc),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.warning(
            "WeatherSyncScheduler started with interval %s minutes", self._interval_minutes
        )

    def shutdown(self) -> None:
        if self._scheduler is not None:
            try:
                self._scheduler.shutdown(wait=False)
                logger.warning("WeatherSyncScheduler stopped")
            finally:
                self._scheduler = None
        self._release_lock()

    def _acquire_lock(self) -> bool:
        if engine.dialect.name != "postgresql":
            return True
        if self._lock_connection is not None:
            return True

        conn = None
        try:
            conn = engine.raw_connection()
            cursor = conn.cursor()
            cursor.execute("SELECT pg_try_advisory_lock(%s);", (self.LOCK_KEY,))
            row = cursor.fetchone()
            cursor.close()
            if not (row and row[0]):
                conn.close()
                return False
            conn.commit()
            self._lock_connection = conn
            return True
        except Exception:
            logger.exception("Failed to acquire weather sync advisory lock")
            if conn is not None:
                conn.close()
            return False

    def _release_lock(self) -> None:
        if self._lock_connection is None:
            return
        try:
            cursor = self._lock_connection.cursor()
            cursor.execute("SELECT pg_advisory_unlock(%s);", (self.LOCK_KEY,))
            self._lock_connection.commit()
            cursor.close()
        except Exception:
            # Closing the connection releases the lock as well.
            logger.exception("Failed to release weather sync advisory lock explicitly")
        finally:
            self._lock_connection.close()
            self._lock_connection = None

    @staticmethod
    def _run_sync_job() -> None:
        """Sync weather for all organizations; errors are logged, never raised."""
        logger.warning("Weather sync job started")
        db: Session = SessionLocal()
        try:
            results, failed = sync_all_organizations(db)
            logger.warning(
                "Weather sync job completed: %s organizations synced, %s failed",
                len(results),
                len(failed),
            )
        except Exception:
            logger.exception("Error while running weather sync job")
        finally:
            db.close()
