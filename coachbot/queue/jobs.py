from datetime import timedelta

from rq import Retry

from coachbot.core.dispatcher import get_dispatcher
from coachbot.core.sweeps import run_sweep
from coachbot.observability.logging import log
from coachbot.queue.rq_conn import get_queue
from coachbot.queue.schedule import schedule_next
from coachbot.settings import settings


def sweep_job(name: str):
    """
    Scheduled sweep. Books the next wall-clock run before returning, even when
    this run fails, so one bad run never breaks the weekly cadence.
    """
    try:
        log(event="sweep_job_start", sweep=name)
        return run_sweep(name)
    except Exception as e:
        log(event="sweep_job_exception", sweep=name, error=str(e))
        raise
    finally:
        if settings.SCHEDULE_ENABLED:
            schedule_next(name)


def onboarding_kickoff_job(address: str):
    """Delayed round 1 send for a freshly registered subject."""
    try:
        log(event="onboarding_kickoff_job_start", address=address)
        return get_dispatcher().kickoff(address).to_dict()
    except Exception as e:
        log(event="onboarding_kickoff_job_exception", address=address, error=str(e))
        raise


def enqueue_onboarding_kickoff(address: str) -> None:
    delay = int(settings.ONBOARDING_ROUND_1_DELAY_SEC)
    if delay <= 0:
        onboarding_kickoff_job(address)
        return
    job = get_queue().enqueue_in(
        timedelta(seconds=delay),
        onboarding_kickoff_job,
        address,
        retry=Retry(max=3, interval=[10, 30, 60]),
    )
    log(event="onboarding_kickoff_enqueued", address=address, rq_job_id=getattr(job, "id", "") or "", delaySec=delay)


def inbound_job(sender: str, body: str):
    """
    Inbound reply that arrived while its subject was locked. A busy lock
    raises again here, and RQ's Retry replays it.
    """
    try:
        log(event="inbound_job_start", sender=sender)
        return get_dispatcher().handle_inbound(sender, body).to_dict()
    except Exception as e:
        log(event="inbound_job_exception", sender=sender, error=str(e))
        raise


def enqueue_inbound(sender: str, body: str) -> str:
    job = get_queue().enqueue(
        inbound_job,
        sender,
        body,
        retry=Retry(max=5, interval=[2, 5, 15, 30, 60]),
    )
    rq_job_id = getattr(job, "id", "") or ""
    log(event="inbound_enqueued", sender=sender, rq_job_id=rq_job_id)
    return rq_job_id
