from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Iterable, List, Protocol
from zoneinfo import ZoneInfo

from app.core.forecast.domain import DailyRevenue, HistoricalDay, HistoryLoad, RawTransaction


logger = logging.getLogger(__name__)


class TransactionPages(Protocol):
    """Finite, lazily produced sequence of transaction pages.

    Implementations expose how the iteration ended once it is exhausted.
    """

    pages_read: int
    rows_read: int
    truncated: bool
    failed: bool

    def __iter__(self): ...


def weekday_sunday_first(day: date) -> int:
    """Weekday with Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def local_date(timestamp: datetime, tz: ZoneInfo) -> date:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(tz).date()


def aggregate_daily_revenue(
    transactions: Iterable[RawTransaction],
    tz: ZoneInfo,
) -> List[DailyRevenue]:
    """Sum transaction amounts per organization-local calendar day.

    Only days with at least one transaction are returned, sorted ascending.
    """

    totals: dict[date, float] = defaultdict(float)
    for tx in transactions:
        totals[local_date(tx.timestamp, tz)] += float(tx.amount)

    return [DailyRevenue(date=day, revenue=totals[day]) for day in sorted(totals)]


def to_historical_days(daily: Iterable[DailyRevenue]) -> List[HistoricalDay]:
    return [
        HistoricalDay(
            date=item.date,
            revenue=item.revenue,
            weekday=weekday_sunday_first(item.date),
            iso_week=item.date.isocalendar()[1],
            month=item.date.month,
            year=item.date.year,
        )
        for item in daily
    ]


def load_history(pages: TransactionPages, tz: ZoneInfo) -> HistoryLoad:
    """Drain a bounded page reader and aggregate it into historical days."""

    transactions: list[RawTransaction] = []
    for page in pages:
        transactions.extend(page)

    if pages.truncated:
        logger.warning(
            "Transaction history truncated after %s pages (%s rows); "
            "aggregating partial history",
            pages.pages_read,
            pages.rows_read,
        )
    if pages.failed:
        logger.warning(
            "Transaction store failed after %s pages (%s rows); "
            "aggregating partial history",
            pages.pages_read,
            pages.rows_read,
        )

    days = to_historical_days(aggregate_daily_revenue(transactions, tz))

    return HistoryLoad(
        days=days,
        transactions_read=len(transactions),
        pages_read=pages.pages_read,
        truncated=pages.truncated,
        store_error=pages.failed,
    )
