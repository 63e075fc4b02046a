"""
Reply parsing and validation
----------------------------
Strictly positional: no language understanding. Every function here is total;
a reply that does not fit yields None, never an exception.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

YES = "Y"
NO = "N"
YES_NO = frozenset({YES, NO})

_AFFIRMATIVE = {"Y", "YES"}
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")

Number = Union[int, float]


def parse_yes_no(text: str) -> str:
    """
    "Y"/"YES" (any case, surrounding whitespace ignored) -> "Y"; anything else -> "N".
    Garbage counts as "N" on purpose: the flows have no "unrecognized" branch for Y/N prompts.
    """
    return YES if (text or "").strip().upper() in _AFFIRMATIVE else NO


def split_answers(text: str) -> List[str]:
    """Uppercase, split on commas, trim each token. Empty tokens are kept so counts stay exact."""
    return [t.strip() for t in (text or "").strip().upper().split(",")]


def parse_number(token: str) -> Optional[Number]:
    if not _NUMBER_RE.match(token or ""):
        return None
    value = float(token)
    return int(value) if value.is_integer() else value


@dataclass(frozen=True)
class NumberField:
    name: str
    low: Number
    high: Number

    def parse(self, token: str) -> Optional[Number]:
        value = parse_number(token)
        if value is None or not (self.low <= value <= self.high):
            return None
        return value


@dataclass(frozen=True)
class ChoiceField:
    name: str
    choices: FrozenSet[str] = YES_NO

    def parse(self, token: str) -> Optional[str]:
        return token if token in self.choices else None


Field = Union[NumberField, ChoiceField]


@dataclass(frozen=True)
class RoundSchema:
    """One round: a fixed, ordered list of fields answered as a single comma-separated reply."""
    name: str
    fields: Tuple[Field, ...]

    @property
    def size(self) -> int:
        return len(self.fields)

    def validate(self, text: str) -> Optional[Dict[str, Union[Number, str]]]:
        """
        Typed answers keyed by field name, or None.
        Wrong field count and a bad field are rejected the same way: no partial credit.
        """
        tokens = split_answers(text)
        if len(tokens) != self.size:
            return None
        answers: Dict[str, Union[Number, str]] = {}
        for fld, token in zip(self.fields, tokens):
            value = fld.parse(token)
            if value is None:
                return None
            answers[fld.name] = value
        return answers


def yes_no_fields(*names: str) -> Tuple[ChoiceField, ...]:
    return tuple(ChoiceField(n) for n in names)
