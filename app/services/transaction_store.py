from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterator, List, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.forecast.domain import RawTransaction
from app.core.forecast.errors import TransactionStoreError
from app.models.models import PaymentTransaction


logger = logging.getLogger(__name__)


PAGE_SIZE = 1000
MAX_PAGES = 50
SUCCESSFUL_STATUSES = ("SUCCESSFUL", "PARTIALLY_REFUNDED")


class TransactionStore(Protocol):
    """Source of successful transactions, read page by page.

    Implementations signal an unreadable page by raising
    TransactionStoreError, SQLAlchemyError or OSError; the reader then stops
    and keeps what it already has.
    """

    def fetch_page(
        self,
        organization_id: int,
        since: datetime,
        offset: int,
        limit: int,
    ) -> List[RawTransaction]: ...


class SqlTransactionStore:
    """Reads successful payment transactions from the payment_transaction table."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def fetch_page(
        self,
        organization_id: int,
        since: datetime,
        offset: int,
        limit: int,
    ) -> List[RawTransaction]:
        rows = (
            self._db.query(
                PaymentTransaction.amount,
                PaymentTransaction.refunded_amount,
                PaymentTransaction.transaction_date,
            )
            .filter(
                PaymentTransaction.organization_id == organization_id,
                PaymentTransaction.status.in_(SUCCESSFUL_STATUSES),
                PaymentTransaction.transaction_date >= since,
            )
            .order_by(PaymentTransaction.transaction_date.asc(), PaymentTransaction.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

        page: List[RawTransaction] = []
        for amount, refunded, transaction_date in rows:
            net = Decimal(amount or 0) - Decimal(refunded or 0)
            page.append(
                RawTransaction(
                    amount=net if net > 0 else Decimal("0"),
                    timestamp=transaction_date,
                )
            )
        return page


class BoundedPageReader:
    """Lazy, finite sequence of transaction pages.

    Iteration stops on a short (or empty) page, after ``max_pages`` pages, or
    on the first store error. How it stopped is available afterwards via
    ``truncated`` and ``failed``; ``pages_read``/``rows_read`` count what was
    actually yielded.
    """

    def __init__(
        self,
        store: TransactionStore,
        organization_id: int,
        since: datetime,
        page_size: int = PAGE_SIZE,
        max_pages: int = MAX_PAGES,
    ) -> None:
        self._store = store
        self._organization_id = organization_id
        self._since = since
        self.page_size = page_size
        self.max_pages = max_pages

        self.pages_read = 0
        self.rows_read = 0
        self.truncated = False
        self.failed = False

    def __iter__(self) -> Iterator[List[RawTransaction]]:
        while self.pages_read < self.max_pages:
            try:
                page = self._store.fetch_page(
                    self._organization_id,
                    self._since,
                    self.pages_read * self.page_size,
                    self.page_size,
                )
            except (SQLAlchemyError, TransactionStoreError, OSError):
                logger.exception(
                    "Failed to fetch transaction page %s for organization %s",
                    self.pages_read,
                    self._organization_id,
                )
                self.failed = True
                return

            if not page:
                return

            self.pages_read += 1
            self.rows_read += len(page)
            yield page

            if len(page) < self.page_size:
                return

        # Ceiling reached with full pages only: more rows may exist.
        self.truncated = True
