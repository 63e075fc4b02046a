from dataclasses import dataclass, field
from typing import Dict, Optional, Union

AnswerValue = Union[int, float, str]


@dataclass
class SubjectRecord:
    # Core identifiers
    address: str = ""  # canonical digits, see utils.phone.normalize_address
    flow: str = "onboarding"  # onboarding / checkin

    # State
    state: str = ""
    reminderCount: int = 0
    lastMessageAt: int = 0  # epoch ms of the last outbound message

    # roundName -> fieldName -> value; one round is always written as a whole
    answers: Dict[str, Dict[str, AnswerValue]] = field(default_factory=dict)

    # Check-in only: ISO date of the Sunday that opens this record's week
    periodStart: Optional[str] = None

    # Set by STOP; excluded from weekly check-in initiation
    optedOut: bool = False

    # Ops
    version: int = 0
    createdAt: int = 0
    updatedAt: int = 0

    @property
    def record_id(self) -> str:
        if self.periodStart:
            return f"{self.address}:{self.periodStart}"
        return self.address

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "flow": self.flow,
            "state": self.state,
            "reminderCount": int(self.reminderCount),
            "lastMessageAt": int(self.lastMessageAt),
            "answers": {k: dict(v) for k, v in (self.answers or {}).items()},
            "periodStart": self.periodStart,
            "optedOut": bool(self.optedOut),
            "version": int(self.version),
            "createdAt": int(self.createdAt),
            "updatedAt": int(self.updatedAt),
        }
