"""Conversions between ledger values and what the user types or reads."""

from datetime import date, datetime, time, timezone
from decimal import Decimal


def date_to_epoch(day: date) -> int:
    """Epoch seconds of midnight UTC on ``day``."""
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


def epoch_to_date(epoch_seconds: int) -> date:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date()


def epoch_to_iso_date(epoch_seconds: int) -> str:
    """``YYYY-MM-DD`` string suitable for seeding a date input."""
    return epoch_to_date(epoch_seconds).isoformat()


def format_entry_date(epoch_seconds: int) -> str:
    """Calendar date for display, e.g. ``14 November 2023``."""
    return epoch_to_date(epoch_seconds).strftime("%d %B %Y")


def format_amount(amount: Decimal) -> str:
    """Plain decimal notation, never scientific."""
    return f"{amount:f}"
