import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from coachbot.settings import settings


def now_ms() -> int:
    return int(time.time() * 1000)


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.SCHEDULE_TIMEZONE)


def local_now(now: datetime = None) -> datetime:
    """Current wall-clock time in the schedule timezone (aware)."""
    if now is None:
        return datetime.now(tz=local_zone())
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(local_zone())


def week_start(now: datetime = None) -> date:
    """
    Sunday that starts the check-in period containing `now`.
    Weeks run Sunday 00:00 -> Saturday 23:59 local time.
    """
    d = local_now(now).date()
    # Python weekday(): Monday=0 ... Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def period_key(now: datetime = None) -> str:
    return week_start(now).isoformat()
