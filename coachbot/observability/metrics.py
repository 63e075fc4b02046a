"""
Observability Counters
----------------------
Lightweight Redis counters consumed by /admin/metrics. Counting is best-effort:
a Redis hiccup while incrementing never fails the transition that triggered it.
"""
from __future__ import annotations
import time
from typing import Dict

from coachbot.store.redis_conn import get_redis
from coachbot.observability.logging import log

K_PREFIX = "metrics:"

K_SENT = "messages:sent"
K_SEND_FAIL = "messages:send_failed"
K_INBOUND = "messages:inbound"
K_UNKNOWN = "messages:unknown_sender"
K_REPROMPT = "transitions:reprompt"


def _now_s() -> int:
    return int(time.time())


def incr(name: str, amount: int = 1) -> None:
    try:
        get_redis().incr(K_PREFIX + name, amount)
    except Exception as e:
        log(event="metrics_incr_failed", counter=name, error=str(e)[:200])


def increment_sent() -> None:
    incr(K_SENT)


def increment_send_failed() -> None:
    incr(K_SEND_FAIL)


def increment_inbound() -> None:
    incr(K_INBOUND)


def increment_unknown_sender() -> None:
    incr(K_UNKNOWN)


def increment_reprompt() -> None:
    incr(K_REPROMPT)


def record_transition(flow: str, from_state: str, to_state: str) -> None:
    incr(f"transitions:{flow}:{from_state}->{to_state}")


def record_sweep(name: str, summary: Dict[str, int]) -> None:
    for k in ("processed", "failed"):
        if summary.get(k):
            incr(f"sweeps:{name}:{k}", int(summary[k]))
    incr(f"sweeps:{name}:runs")


def get_snapshot() -> dict:
    """All counters, keyed without the metrics: prefix."""
    r = get_redis()
    counters: Dict[str, int] = {}
    for key in r.scan_iter(match=K_PREFIX + "*", count=200):
        try:
            counters[key[len(K_PREFIX):]] = int(r.get(key) or 0)
        except (TypeError, ValueError):
            continue
    return {"counters": dict(sorted(counters.items())), "snapshot_at": _now_s()}
