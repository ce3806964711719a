"""Shared helpers for Supabase repositories."""

import logging
from datetime import date, datetime
from typing import Any, Protocol

from postgrest.exceptions import APIError

from unit_tracker.domain.errors import StoreError

_logger = logging.getLogger(__name__)


class _Executable(Protocol):
    def execute(self) -> Any:
        """Run the request."""


def execute(request: _Executable, action: str) -> list[dict[str, Any]]:
    """Execute a PostgREST request and return its rows.

    Client errors are raised as StoreError.
    """
    try:
        response = request.execute()
    except APIError as exc:
        _logger.error("Supabase %s failed: %s", action, exc.message)
        raise StoreError(f"Supabase {action} failed: {exc.message}") from exc
    return response.data or []


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO timestamp column."""
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def parse_date(value: object) -> date:
    """Parse a YYYY-MM-DD date column."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def optional_float(value: object) -> float | None:
    """Return a float for numeric columns, None for null."""
    if value is None:
        return None
    return float(value)
