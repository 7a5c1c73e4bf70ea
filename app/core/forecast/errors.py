from __future__ import annotations


class ForecastError(Exception):
    """Base class for errors raised by the forecast core."""


class ForecastInputError(ForecastError):
    """Caller supplied an invalid forecast request."""


class OrganizationNotFound(ForecastError):
    def __init__(self, organization_id: int) -> None:
        super().__init__(f"Organization {organization_id} not found")
        self.organization_id = organization_id


class TransactionStoreError(ForecastError):
    """A transaction store could not serve a page."""
