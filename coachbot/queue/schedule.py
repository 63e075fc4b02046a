"""
Weekly sweep schedule
---------------------
Wall-clock times in SCHEDULE_TIMEZONE (default America/New_York):

initiate  INITIATE_WEEKDAY at INITIATE_HOUR:00          (Friday 09:00)
remind    every REMIND_EVERY_HOURS on REMIND_WEEKDAYS   (Friday, Saturday)
escalate  ESCALATE_WEEKDAY at ESCALATE_HOUR:00          (Saturday 10:00)

Each sweep job books its own next run with `enqueue_at` (the worker must run
with --with-scheduler). Job ids are derived from the fire time, so booking
the same run twice overwrites instead of duplicating.
"""
from datetime import datetime, time, timedelta, timezone
from typing import Dict, FrozenSet, Optional, Tuple

from coachbot.core.sweeps import ESCALATE, INITIATE, REMIND
from coachbot.observability.logging import log
from coachbot.queue.rq_conn import get_queue
from coachbot.settings import settings
from coachbot.utils.time import local_now

SWEEP_JOB = "coachbot.queue.jobs.sweep_job"

Slots = Tuple[FrozenSet[int], Tuple[int, ...]]


def _weekdays(raw: str) -> FrozenSet[int]:
    return frozenset(int(x) for x in raw.split(",") if x.strip())


def slots() -> Dict[str, Slots]:
    """Sweep name -> (weekdays, hours). Monday=0."""
    step = max(1, int(settings.REMIND_EVERY_HOURS))
    return {
        INITIATE: (frozenset({int(settings.INITIATE_WEEKDAY)}), (int(settings.INITIATE_HOUR),)),
        REMIND: (_weekdays(settings.REMIND_WEEKDAYS), tuple(range(0, 24, step))),
        ESCALATE: (frozenset({int(settings.ESCALATE_WEEKDAY)}), (int(settings.ESCALATE_HOUR),)),
    }


def next_run(name: str, after: Optional[datetime] = None) -> datetime:
    """First fire time strictly after `after`, as an aware local datetime."""
    table = slots()
    if name not in table:
        raise ValueError(f"unknown sweep: {name}")
    weekdays, hours = table[name]
    if not weekdays:
        raise ValueError(f"sweep {name} has no weekdays configured")

    now = local_now(after)
    for offset in range(8):
        day = now.date() + timedelta(days=offset)
        if day.weekday() not in weekdays:
            continue
        for hour in hours:
            fire = datetime.combine(day, time(hour), tzinfo=now.tzinfo)
            if fire > now:
                return fire
    raise ValueError(f"no fire time found for sweep {name}")


def _job_id(name: str, fire: datetime) -> str:
    return f"sweep:{name}:{fire.strftime('%Y%m%dT%H%M')}"


def schedule_next(name: str, after: Optional[datetime] = None, queue=None) -> datetime:
    fire = next_run(name, after)
    q = queue or get_queue()
    job = q.enqueue_at(
        fire.astimezone(timezone.utc),
        SWEEP_JOB,
        name,
        job_id=_job_id(name, fire),
    )
    log(event="sweep_scheduled", sweep=name, fireAt=fire.isoformat(), rq_job_id=getattr(job, "id", "") or "")
    return fire


def bootstrap_schedule(queue=None) -> Dict[str, str]:
    """Book the next run of every sweep. Safe to repeat."""
    q = queue or get_queue()
    return {name: schedule_next(name, queue=q).isoformat() for name in (INITIATE, REMIND, ESCALATE)}
