#!/usr/bin/env python3
"""
Seed the first run of each weekly sweep into RQ's scheduled registry.
Run once per deployment; re-running overwrites the same job ids.
Workers must be started with `rq worker coachbot --with-scheduler`.
"""
import json
import sys

from coachbot.queue.schedule import bootstrap_schedule
from coachbot.settings import settings


def main() -> int:
    if not settings.SCHEDULE_ENABLED:
        print("SCHEDULE_ENABLED is false; nothing scheduled.")
        return 0
    booked = bootstrap_schedule()
    print(json.dumps({"scheduled": booked, "timezone": settings.SCHEDULE_TIMEZONE}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
