from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

WEEK_DAYS = 7


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime
    days: int

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) <= self.end


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    # Naive datetimes are stored as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _zone(tz: Optional[str]) -> ZoneInfo:
    return ZoneInfo(tz or "UTC")


def day_key(moment: datetime, tz: Optional[str] = None) -> date:
    """Calendar day of an instant in the configured zone (UTC by default)."""
    return as_utc(moment).astimezone(_zone(tz)).date()


def start_of_day(day: date, tz: Optional[str] = None) -> datetime:
    local = datetime.combine(day, time.min, tzinfo=_zone(tz))
    return local.astimezone(timezone.utc)


def trailing_window(
    now: datetime, days: int, tz: Optional[str] = None
) -> Window:
    """`days` calendar days ending at `now`, including today's partial day."""
    if days < 1:
        raise ValueError("Window must span at least one day")
    first_day = day_key(now, tz) - timedelta(days=days - 1)
    return Window(start=start_of_day(first_day, tz), end=as_utc(now), days=days)


def week_window(now: datetime, tz: Optional[str] = None) -> Window:
    return trailing_window(now, WEEK_DAYS, tz)


def calendar_days(window: Window, tz: Optional[str] = None) -> list[date]:
    first = day_key(window.start, tz)
    return [first + timedelta(days=offset) for offset in range(window.days)]
