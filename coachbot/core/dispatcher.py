"""
Inbound dispatch
----------------
(sender, body) -> owning record -> engine step -> send -> save.

Lookup order: the subject's current check-in record owns the message while it
is live; otherwise the onboarding record does. HELP and STOP are handled before
any state dispatch. Every mutation happens inside the per-subject lock, and
outbound messages go out before the record is saved, so a transport failure
leaves the stored record untouched and the transition can be replayed.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from coachbot.core import engine
from coachbot.core.checkin_flow import CHECKIN_FLOW
from coachbot.core.downstream import publish_completed
from coachbot.core.engine import FlowDefinition, Outcome
from coachbot.core.onboarding_flow import ONBOARDING_FLOW
from coachbot.messaging.client import send_message
from coachbot.observability.logging import log
import coachbot.observability.metrics as metrics
from coachbot.store.models import SubjectRecord
from coachbot.store.record_repo import RecordStore, StoreError, get_store
from coachbot.utils.lock import record_lock
from coachbot.utils.phone import normalize_address
from coachbot.utils.time import now_ms

UNKNOWN_SENDER_REPLY = "Sorry, I don't recognize your number. Please contact support to get started! 📞"

HELP_COMMAND = "HELP"
STOP_COMMAND = "STOP"

# DispatchResult.status values
HANDLED = "handled"
REPROMPTED = "reprompted"
UNEXPECTED = "unexpected"
HELP = "help"
STOPPED = "stopped"
UNKNOWN_SENDER = "unknown_sender"
EXISTS = "exists"
SKIPPED = "skipped"
EXPIRED = "expired"
RESCHEDULED = "rescheduled"


@dataclass
class DispatchResult:
    status: str
    address: str
    flow: Optional[str] = None
    fromState: Optional[str] = None
    toState: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "address": self.address,
            "flow": self.flow,
            "fromState": self.fromState,
            "toState": self.toState,
            "messagesSent": len(self.messages),
        }


def _default_schedule_kickoff(address: str) -> None:
    # Imported lazily: the queue jobs import this module
    from coachbot.queue.jobs import enqueue_onboarding_kickoff
    enqueue_onboarding_kickoff(address)


_STATUS_BY_KIND = {
    engine.ADVANCE: HANDLED,
    engine.REPROMPT: REPROMPTED,
    engine.UNEXPECTED: UNEXPECTED,
}


class Dispatcher:
    def __init__(
        self,
        store: Optional[RecordStore] = None,
        send: Callable[[str, str], str] = send_message,
        lock: Callable = record_lock,
        clock: Callable[[], int] = now_ms,
        schedule_kickoff: Callable[[str], None] = _default_schedule_kickoff,
        onboarding: FlowDefinition = ONBOARDING_FLOW,
        checkin: FlowDefinition = CHECKIN_FLOW,
    ):
        self.store = store or get_store()
        self.send = send
        self.lock = lock
        self.clock = clock
        self.schedule_kickoff = schedule_kickoff
        self.onboarding = onboarding
        self.checkin = checkin

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------
    def handle_inbound(self, sender: str, body: str) -> DispatchResult:
        """
        Route one inbound message. Raises TransportError / StoreError /
        LockUnavailableError; the webhook turns those into a logged 200.
        """
        address = normalize_address(sender)
        text = (body or "").strip()
        metrics.increment_inbound()
        log(event="inbound_received", address=address, body=text)

        if not address:
            log(event="inbound_unaddressable", sender=sender)
            return DispatchResult(status=UNKNOWN_SENDER, address="")

        with self.lock(address):
            checkin = self.store.load_current_checkin(address)
            onboarding = self.store.load_onboarding(address)
            owner, flow = self._resolve_owner(checkin, onboarding)

            if owner is None:
                metrics.increment_unknown_sender()
                log(event="inbound_unknown_sender", address=address)
                self.send(address, UNKNOWN_SENDER_REPLY)
                return DispatchResult(status=UNKNOWN_SENDER, address=address, messages=[UNKNOWN_SENDER_REPLY])

            command = text.upper()
            if command == HELP_COMMAND:
                self.send(address, flow.help_message)
                return DispatchResult(
                    status=HELP, address=address, flow=flow.name,
                    fromState=owner.state, toState=owner.state, messages=[flow.help_message],
                )
            if command == STOP_COMMAND:
                return self._stop(owner, flow, onboarding)

            outcome = engine.step(flow, owner, text)
            if outcome.kind == engine.REPROMPT:
                metrics.increment_reprompt()
            result, _ = self.commit(flow, owner, outcome)
            return result

    def _resolve_owner(
        self, checkin: Optional[SubjectRecord], onboarding: Optional[SubjectRecord]
    ) -> Tuple[Optional[SubjectRecord], Optional[FlowDefinition]]:
        if checkin is not None and not self.checkin.is_terminal(checkin.state):
            return checkin, self.checkin
        if onboarding is not None:
            return onboarding, self.onboarding
        return None, None

    def _stop(self, owner: SubjectRecord, flow: FlowDefinition, onboarding: Optional[SubjectRecord]) -> DispatchResult:
        result, updated = self.commit(flow, owner, engine.stop(flow, owner), status=STOPPED)
        if flow is self.onboarding:
            onboarding = updated
        # Earlier weeks the subject never finished are closed too, silently
        for stale in self.live_checkins(owner.address):
            self.expire_checkin(stale, status=STOPPED)
        if onboarding is not None and not onboarding.optedOut:
            self.save(replace(onboarding, optedOut=True), onboarding.state)
        log(event="subject_opted_out", address=owner.address, flow=flow.name, fromState=result.fromState)
        return result

    # ------------------------------------------------------------------
    # Check-in housekeeping (caller holds the subject lock)
    # ------------------------------------------------------------------
    def live_checkins(self, address: str) -> List[SubjectRecord]:
        """Every non-terminal check-in of the subject, across all periods."""
        prefix = f"{address}:"
        out = []
        for record_id in self.store.ids_in_states(self.checkin.name, self.checkin.expirations.keys()):
            if not record_id.startswith(prefix):
                continue
            record = self.store.load(self.checkin.name, record_id)
            if record is not None and not self.checkin.is_terminal(record.state):
                out.append(record)
        return out

    def expire_checkin(self, record: SubjectRecord, status: Optional[str] = None) -> Optional[DispatchResult]:
        outcome = engine.expire(self.checkin, record)
        if outcome is None:
            return None
        result, _ = self.commit(self.checkin, record, outcome, status=status or EXPIRED)
        log(
            event="checkin_expired",
            address=record.address,
            periodStart=record.periodStart,
            fromState=outcome.from_state,
            toState=outcome.to_state,
        )
        return result

    # ------------------------------------------------------------------
    # Onboarding entry points
    # ------------------------------------------------------------------
    def start_onboarding(self, raw_address: str) -> DispatchResult:
        """
        Create the onboarding record, send the welcome, schedule the round 1 questions.
        A record still in REGISTERED only gets its round 1 send booked again.
        """
        address = normalize_address(raw_address)
        if not address:
            raise ValueError(f"not a phone number: {raw_address!r}")

        with self.lock(address):
            existing = self.store.load_onboarding(address)
            if existing is not None and existing.state != self.onboarding.initial_state:
                log(event="onboarding_already_started", address=address, state=existing.state)
                return DispatchResult(
                    status=EXISTS, address=address, flow=self.onboarding.name,
                    fromState=existing.state, toState=existing.state,
                )

            if existing is not None:
                # Welcome already went out; only the round 1 booking can have been lost
                self.schedule_kickoff(address)
                log(event="onboarding_kickoff_rescheduled", address=address)
                return DispatchResult(
                    status=RESCHEDULED, address=address, flow=self.onboarding.name,
                    fromState=existing.state, toState=existing.state,
                )

            now = self.clock()
            record = SubjectRecord(
                address=address,
                flow=self.onboarding.name,
                state=self.onboarding.initial_state,
                lastMessageAt=now,
                createdAt=now,
            )
            self.send(address, self.onboarding.opening_message)
            self.save(record, None)

        self.schedule_kickoff(address)
        log(event="onboarding_started", address=address)
        return DispatchResult(
            status=HANDLED, address=address, flow=self.onboarding.name,
            fromState=None, toState=record.state, messages=[self.onboarding.opening_message],
        )

    def kickoff(self, address: str) -> DispatchResult:
        """Delayed hop REGISTERED -> ROUND_1_SENT. A no-op once the record has moved on."""
        with self.lock(address):
            record = self.store.load_onboarding(address)
            outcome = engine.kickoff(self.onboarding, record) if record is not None else None
            if outcome is None:
                log(event="onboarding_kickoff_skipped", address=address, state=getattr(record, "state", None))
                return DispatchResult(status=SKIPPED, address=address, flow=self.onboarding.name)
            result, _ = self.commit(self.onboarding, record, outcome)
            return result

    # ------------------------------------------------------------------
    # Shared: send, then persist
    # ------------------------------------------------------------------
    def commit(
        self, flow: FlowDefinition, record: SubjectRecord, outcome: Outcome, status: Optional[str] = None
    ) -> Tuple[DispatchResult, SubjectRecord]:
        for message in outcome.messages:
            self.send(record.address, message)

        updated = engine.apply_outcome(record, outcome, self.clock())
        if outcome.changed:
            updated = self.save(updated, outcome.from_state)
            metrics.record_transition(flow.name, outcome.from_state, outcome.to_state)
            log(
                event="transition_applied",
                flow=flow.name,
                address=record.address,
                fromState=outcome.from_state,
                toState=outcome.to_state,
                reminderCount=updated.reminderCount,
            )
            if flow.is_terminal(updated.state) and updated.answers and status != STOPPED:
                publish_completed(updated)
        else:
            log(event="transition_noop", flow=flow.name, address=record.address, state=record.state, kind=outcome.kind)

        result = DispatchResult(
            status=status or _STATUS_BY_KIND[outcome.kind],
            address=record.address,
            flow=flow.name,
            fromState=outcome.from_state,
            toState=outcome.to_state,
            messages=list(outcome.messages),
        )
        return result, updated

    def save(self, record: SubjectRecord, from_state: Optional[str]) -> SubjectRecord:
        try:
            return self.store.save(record)
        except StoreError as e:
            log(
                event="record_save_failed",
                flow=record.flow,
                address=record.address,
                periodStart=record.periodStart,
                fromState=from_state,
                toState=record.state,
                errorType=type(e).__name__,
                error=str(e)[:300],
            )
            raise


_default_dispatcher: Optional[Dispatcher] = None


def get_dispatcher() -> Dispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = Dispatcher()
    return _default_dispatcher
