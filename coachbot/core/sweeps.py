"""
Scheduled sweeps for the weekly check-in
----------------------------------------
initiate  open this week's check-in for every eligible subject
remind    nudge records quiet for the reminder period, up to the cap
escalate  close records whose reminders are spent

Each sweep selects candidates by state index, then re-checks the predicate on
the freshly loaded record inside the per-subject lock, so re-runs and
overlapping runs never process a record twice. A failure for one subject is
logged and counted; the sweep moves on to the next.

Only the current period is ever nudged. A live record from an earlier week, or
of a subject who sent STOP, is closed silently when a sweep reaches it.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from coachbot.core import engine
from coachbot.core import state_machine as sm
from coachbot.core.dispatcher import HANDLED, DispatchResult, Dispatcher, get_dispatcher
from coachbot.observability.logging import log
import coachbot.observability.metrics as metrics
from coachbot.settings import settings
from coachbot.store.models import SubjectRecord
from coachbot.store.record_repo import RecordStore
from coachbot.utils.lock import LockUnavailableError, sweep_lock
from coachbot.utils.time import period_key

INITIATE = "initiate"
REMIND = "remind"
ESCALATE = "escalate"


class OnboardedSubjects:
    """Eligible for check-ins: onboarding finished and not opted out."""

    def __init__(self, store: RecordStore):
        self.store = store

    def __call__(self) -> List[str]:
        out = []
        for address in self.store.ids_in_states(sm.ONBOARDING, [sm.ONBOARDING_COMPLETE]):
            record = self.store.load_onboarding(address)
            if record is not None and record.state == sm.ONBOARDING_COMPLETE and not record.optedOut:
                out.append(address)
        return out


def _address_of(record_id: str) -> str:
    return record_id.split(":", 1)[0]


class Sweeper:
    def __init__(
        self,
        dispatcher: Optional[Dispatcher] = None,
        eligible: Optional[Callable[[], Iterable[str]]] = None,
        lock_sweep: Callable = sweep_lock,
        current_period: Callable[[], str] = period_key,
    ):
        self.dispatcher = dispatcher or get_dispatcher()
        self.store = self.dispatcher.store
        self.flow = self.dispatcher.checkin
        self.eligible = eligible or OnboardedSubjects(self.store)
        self.lock_sweep = lock_sweep
        self.current_period = current_period

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------
    def initiate(self) -> Dict[str, object]:
        period = self.current_period()
        return self._run(INITIATE, self.eligible, lambda address: self.open_checkin(address, period) is not None)

    def remind(self) -> Dict[str, object]:
        now = self.dispatcher.clock()
        quiet_ms = int(settings.REMINDER_QUIET_PERIOD_SEC) * 1000
        cap = int(settings.REMINDER_CAP)
        due = self._current_only(lambda rec: engine.remind(self.flow, rec, now, quiet_ms, cap))

        def candidates():
            return self.store.ids_in_states(self.flow.name, self.flow.reminders.keys())

        def process(record_id: str) -> bool:
            return self._apply(record_id, due)

        return self._run(REMIND, candidates, process)

    def escalate(self) -> Dict[str, object]:
        cap = int(settings.REMINDER_CAP)
        due = self._current_only(lambda rec: engine.escalate(self.flow, rec, cap))

        def candidates():
            return self.store.ids_in_states(self.flow.name, self.flow.closings.keys())

        def process(record_id: str) -> bool:
            return self._apply(record_id, due)

        return self._run(ESCALATE, candidates, process)

    def _current_only(
        self, due: Callable[[SubjectRecord], Optional[engine.Outcome]]
    ) -> Callable[[SubjectRecord], Optional[engine.Outcome]]:
        """
        Records from an earlier period, or of a subject who opted out, are
        closed without a message instead of being nudged.
        """
        period = self.current_period()

        def transition(record: SubjectRecord) -> Optional[engine.Outcome]:
            if record.periodStart != period or self._opted_out(record.address):
                return engine.expire(self.flow, record)
            return due(record)

        return transition

    def _opted_out(self, address: str) -> bool:
        onboarding = self.store.load_onboarding(address)
        return bool(onboarding is not None and onboarding.optedOut)

    # ------------------------------------------------------------------
    # Single subject
    # ------------------------------------------------------------------
    def open_checkin(self, address: str, period: Optional[str] = None) -> Optional[DispatchResult]:
        """
        Create this period's check-in record and send the opening prompt, closing
        any earlier week the subject left unfinished.
        Returns None when the subject already has a record for the period.
        """
        period = period or self.current_period()
        d = self.dispatcher
        with d.lock(address):
            if self.store.load_checkin(address, period) is not None:
                return None
            for stale in d.live_checkins(address):
                d.expire_checkin(stale)
            now = d.clock()
            record = SubjectRecord(
                address=address,
                flow=self.flow.name,
                state=self.flow.initial_state,
                lastMessageAt=now,
                periodStart=period,
                createdAt=now,
            )
            d.send(address, self.flow.opening_message)
            d.save(record, None)
        log(event="checkin_opened", address=address, periodStart=period)
        return DispatchResult(
            status=HANDLED, address=address, flow=self.flow.name,
            fromState=None, toState=record.state, messages=[self.flow.opening_message],
        )

    def _apply(self, record_id: str, transition: Callable[[SubjectRecord], Optional[engine.Outcome]]) -> bool:
        d = self.dispatcher
        with d.lock(_address_of(record_id)):
            record = self.store.load(self.flow.name, record_id)
            outcome = transition(record) if record is not None else None
            if outcome is None:
                return False
            d.commit(self.flow, record, outcome)
        return True

    def _run(self, name: str, candidates: Callable[[], Iterable[str]], process: Callable[[str], bool]) -> Dict[str, object]:
        summary: Dict[str, object] = {"sweep": name, "status": "ok", "scanned": 0, "processed": 0, "skipped": 0, "failed": 0}
        log(event="sweep_started", sweep=name)
        try:
            with self.lock_sweep(name):
                for key in candidates():
                    summary["scanned"] += 1
                    try:
                        done = process(key)
                    except Exception as e:
                        summary["failed"] += 1
                        log(
                            event="sweep_subject_failed",
                            sweep=name,
                            subject=key,
                            errorType=type(e).__name__,
                            error=str(e)[:300],
                        )
                        continue
                    summary["processed" if done else "skipped"] += 1
        except LockUnavailableError:
            summary["status"] = "already_running"
            log(event="sweep_overlap_skipped", sweep=name)
            return summary

        metrics.record_sweep(name, summary)
        log(event="sweep_finished", **summary)
        return summary


_default_sweeper: Optional[Sweeper] = None


def get_sweeper() -> Sweeper:
    global _default_sweeper
    if _default_sweeper is None:
        _default_sweeper = Sweeper()
    return _default_sweeper


def run_sweep(name: str) -> Dict[str, object]:
    sweeper = get_sweeper()
    sweeps = {INITIATE: sweeper.initiate, REMIND: sweeper.remind, ESCALATE: sweeper.escalate}
    if name not in sweeps:
        raise ValueError(f"unknown sweep: {name}")
    return sweeps[name]()
