"""
Conversation Engine
-------------------
One engine, two flow definitions (onboarding, weekly check-in).

A flow maps each answer-awaiting state to a step. `step()` turns
(record, inbound text) into an Outcome; `remind()` and `escalate()` do the same
for elapsed-time transitions, and `expire()` closes a record without a message.
All of them are pure: they never send, save or read the clock. The caller sends
Outcome.messages, then persists `apply_outcome(record, outcome, now)`.

Terminal states never have a step, so nothing leaves them.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

from coachbot.core.parser import RoundSchema, YES, parse_yes_no
from coachbot.store.models import SubjectRecord

ADVANCE = "advance"
REPROMPT = "reprompt"
UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class Advance:
    """Move to `state` and send `message`. `then` chains an immediate second hop."""
    state: str
    message: str
    reminder_count: int = 0
    then: Optional["Advance"] = None


@dataclass(frozen=True)
class ChoiceStep:
    yes: Advance
    no: Advance


@dataclass(frozen=True)
class RoundStep:
    schema: RoundSchema
    on_valid: Advance
    retry_message: str


Step = Union[ChoiceStep, RoundStep]


@dataclass(frozen=True)
class FlowDefinition:
    name: str
    initial_state: str
    opening_message: str
    steps: Dict[str, Step]
    terminal_states: frozenset
    help_message: str
    unexpected_message: str
    stop_state: str
    stop_message: str
    # Hops taken without an inbound message (e.g. the delayed round 1 send)
    kickoffs: Dict[str, Advance] = field(default_factory=dict)
    # Elapsed-time escalation: awaiting state -> reminder hop / no-response state -> closing hop
    reminders: Dict[str, Advance] = field(default_factory=dict)
    closings: Dict[str, Advance] = field(default_factory=dict)
    # Silent close of a superseded or opted-out record: live state -> terminal state
    expirations: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        for table in (self.steps, self.kickoffs, self.reminders, self.closings, self.expirations):
            leaked = set(table) & set(self.terminal_states)
            if leaked:
                raise ValueError(f"{self.name}: terminal states cannot have transitions: {sorted(leaked)}")

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


@dataclass
class Outcome:
    kind: str
    from_state: str
    to_state: str
    messages: List[str] = field(default_factory=list)
    answers: Optional[Tuple[str, dict]] = None
    reminder_count: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.kind == ADVANCE


def _follow(from_state: str, hop: Advance, answers=None) -> Outcome:
    out = Outcome(kind=ADVANCE, from_state=from_state, to_state=hop.state, answers=answers)
    while hop is not None:
        out.to_state = hop.state
        out.messages.append(hop.message)
        out.reminder_count = hop.reminder_count
        hop = hop.then
    return out


def _stay(kind: str, record: SubjectRecord, message: str) -> Outcome:
    return Outcome(kind=kind, from_state=record.state, to_state=record.state, messages=[message])


def step(flow: FlowDefinition, record: SubjectRecord, text: str) -> Outcome:
    """Transition for one inbound message. Always yields at least one outbound message."""
    current = flow.steps.get(record.state)

    if current is None:
        return _stay(UNEXPECTED, record, flow.unexpected_message)

    if isinstance(current, ChoiceStep):
        hop = current.yes if parse_yes_no(text) == YES else current.no
        return _follow(record.state, hop)

    answers = current.schema.validate(text)
    if answers is None:
        return _stay(REPROMPT, record, current.retry_message)
    return _follow(record.state, current.on_valid, answers=(current.schema.name, answers))


def kickoff(flow: FlowDefinition, record: SubjectRecord) -> Optional[Outcome]:
    hop = flow.kickoffs.get(record.state)
    if hop is None:
        return None
    return _follow(record.state, hop)


def reminder_due(flow: FlowDefinition, record: SubjectRecord, now_ms: int, quiet_ms: int, cap: int) -> bool:
    return (
        record.state in flow.reminders
        and int(record.reminderCount) < cap
        and int(record.lastMessageAt or 0) <= now_ms - quiet_ms
    )


def remind(flow: FlowDefinition, record: SubjectRecord, now_ms: int, quiet_ms: int, cap: int) -> Optional[Outcome]:
    """Reminder hop if the record has been quiet long enough and has reminders left."""
    if not reminder_due(flow, record, now_ms, quiet_ms, cap):
        return None
    out = _follow(record.state, flow.reminders[record.state])
    out.reminder_count = int(record.reminderCount) + 1
    return out


def escalation_due(flow: FlowDefinition, record: SubjectRecord, cap: int) -> bool:
    return record.state in flow.closings and int(record.reminderCount) >= cap


def escalate(flow: FlowDefinition, record: SubjectRecord, cap: int) -> Optional[Outcome]:
    """Closing hop into a terminal state once the reminder budget is spent."""
    if not escalation_due(flow, record, cap):
        return None
    out = _follow(record.state, flow.closings[record.state])
    out.reminder_count = int(record.reminderCount)
    return out


def expire(flow: FlowDefinition, record: SubjectRecord) -> Optional[Outcome]:
    """Close a live record without messaging the subject. None if there is nothing to close."""
    target = flow.expirations.get(record.state)
    if target is None:
        return None
    return Outcome(
        kind=ADVANCE,
        from_state=record.state,
        to_state=target,
        reminder_count=int(record.reminderCount),
    )


def stop(flow: FlowDefinition, record: SubjectRecord) -> Outcome:
    """STOP command: jump to the flow's opt-out terminal state (no-op hop if already terminal)."""
    if flow.is_terminal(record.state):
        return _stay(UNEXPECTED, record, flow.stop_message)
    return Outcome(
        kind=ADVANCE,
        from_state=record.state,
        to_state=flow.stop_state,
        messages=[flow.stop_message],
        reminder_count=int(record.reminderCount),
    )


def apply_outcome(record: SubjectRecord, outcome: Outcome, now_ms: int) -> SubjectRecord:
    """New record reflecting `outcome`. Re-prompts and unexpected input leave the record untouched."""
    if not outcome.changed:
        return record
    answers = {k: dict(v) for k, v in (record.answers or {}).items()}
    if outcome.answers is not None:
        round_name, values = outcome.answers
        answers[round_name] = dict(values)
    updated = replace(record, state=outcome.to_state, answers=answers)
    if outcome.reminder_count is not None:
        updated.reminderCount = outcome.reminder_count
    if outcome.messages:
        updated.lastMessageAt = now_ms
    return updated
