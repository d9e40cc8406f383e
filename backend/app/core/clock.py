# app/core/clock.py
"""
Clock source for everything that depends on "now" (code expiry, dormancy,
session expiry, daily issuance windows). Services take a Clock instance so
tests can substitute a fixed one.
"""
import datetime as dt


def as_utc(value: dt.datetime) -> dt.datetime:
    """Treat naive datetimes coming back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


class Clock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> dt.datetime:
        return dt.datetime.now(dt.timezone.utc)

    def start_of_day(self) -> dt.datetime:
        """Midnight UTC of the current day (daily rate-limit window)."""
        return self.now().replace(hour=0, minute=0, second=0, microsecond=0)


system_clock = Clock()
