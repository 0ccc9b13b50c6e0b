import secrets
from datetime import date, datetime, timezone
from typing import Callable, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at ``moment``; ``advance`` moves it forward."""

    def __init__(self, moment: datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, delta) -> None:
        self._moment = self._moment + delta


system_clock = SystemClock()


def today(clock: Clock) -> date:
    return clock.now().date()


def random_suffix() -> str:
    return secrets.token_hex(3)


def make_reference(
    prefix: str,
    clock: Clock,
    suffix_factory: Callable[[], str] = random_suffix,
) -> str:
    """Build ``<prefix>-<YYYYmmddHHMMSS>-<suffix>``, e.g. ``PUR-20250101120000-a1b2c3``."""
    return "{}-{}-{}".format(prefix, clock.now().strftime("%Y%m%d%H%M%S"), suffix_factory())


def normalize_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value_text = value.strip()
        if not value_text:
            return None
        try:
            return date.fromisoformat(value_text)
        except ValueError:
            return None
    return None


__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "make_reference",
    "normalize_date",
    "random_suffix",
    "system_clock",
    "today",
]
