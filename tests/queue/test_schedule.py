from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from coachbot.core.sweeps import ESCALATE, INITIATE, REMIND
from coachbot.queue.schedule import SWEEP_JOB, bootstrap_schedule, next_run, schedule_next

# Wednesday 2026-10-14 12:00 New York (EDT, UTC-4)
WEDNESDAY_NOON = datetime(2026, 10, 14, 16, 0, tzinfo=timezone.utc)


def _local(dt):
    return (dt.weekday(), dt.hour, dt.minute)


def test_initiate_friday_nine():
    fire = next_run(INITIATE, WEDNESDAY_NOON)
    assert fire.date().isoformat() == "2026-10-16"
    assert _local(fire) == (4, 9, 0)


def test_initiate_rolls_to_next_week_once_past():
    friday_ten = datetime(2026, 10, 16, 14, 0, tzinfo=timezone.utc)
    assert next_run(INITIATE, friday_ten).date().isoformat() == "2026-10-23"


def test_remind_every_three_hours_friday_and_saturday():
    first = next_run(REMIND, WEDNESDAY_NOON)
    assert _local(first) == (4, 0, 0)

    second = next_run(REMIND, first)
    assert _local(second) == (4, 3, 0)

    saturday_last = next_run(REMIND, datetime(2026, 10, 18, 1, 0, tzinfo=timezone.utc))  # Sat 21:00 local
    assert saturday_last.date().isoformat() == "2026-10-23"


def test_escalate_saturday_ten():
    assert _local(next_run(ESCALATE, WEDNESDAY_NOON)) == (5, 10, 0)


def test_unknown_sweep():
    with pytest.raises(ValueError):
        next_run("vacuum", WEDNESDAY_NOON)


def test_schedule_next_enqueues_in_utc_with_stable_id():
    q = MagicMock()

    fire = schedule_next(INITIATE, WEDNESDAY_NOON, queue=q)

    when, func, name = q.enqueue_at.call_args.args
    assert when == datetime(2026, 10, 16, 13, 0, tzinfo=timezone.utc)
    assert when == fire
    assert func == SWEEP_JOB and name == INITIATE
    assert q.enqueue_at.call_args.kwargs["job_id"] == "sweep:initiate:20261016T0900"


def test_bootstrap_books_every_sweep():
    q = MagicMock()
    booked = bootstrap_schedule(queue=q)
    assert set(booked) == {INITIATE, REMIND, ESCALATE}
    assert q.enqueue_at.call_count == 3
