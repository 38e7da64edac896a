"""
Typed answer values.

A respondent's answer to a question is one of a closed set of variants:

    Choices    - selected option values (single or multi choice, matrix)
    Text       - free text, email, phone, url, time
    Number     - numeric / decimal input
    Boolean    - yes/no toggles, consent
    DateValue  - calendar dates
    JsonValue  - anything structured (ranking, constant sum, file refs)

The evaluator reads answers only through selected_values() and
primary_value(). Both match every variant explicitly and raise
EvaluationFault for anything else, so adding a variant without teaching
these helpers about it fails loudly in the logs instead of silently
comparing garbage.
"""

from __future__ import annotations

import datetime as _dt
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from surveynav.errors import EvaluationFault


@dataclass(frozen=True)
class Choices:
    values: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Number:
    value: Union[int, float, Decimal]


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class DateValue:
    value: _dt.date


@dataclass(frozen=True)
class JsonValue:
    value: Any


AnswerValue = Union[Choices, Text, Number, Boolean, DateValue, JsonValue]


@dataclass(frozen=True)
class Answer:
    """One respondent answer for one question within a session."""

    question_id: str
    value: AnswerValue


def _number_to_str(number: Union[int, float, Decimal]) -> str:
    # 3.0 reads as "3" so that equals(answer('Q2'), '3') matches a numeric 3
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    if isinstance(number, Decimal) and number == number.to_integral_value():
        return str(number.quantize(Decimal(1)))
    return str(number)


def selected_values(value: AnswerValue) -> Tuple[str, ...]:
    """Return the answer as a set-like tuple of string values."""
    if isinstance(value, Choices):
        return tuple(value.values)
    if isinstance(value, Text):
        return (value.value,)
    if isinstance(value, Number):
        return (_number_to_str(value.value),)
    if isinstance(value, Boolean):
        return ("true" if value.value else "false",)
    if isinstance(value, DateValue):
        return (value.value.isoformat(),)
    if isinstance(value, JsonValue):
        if isinstance(value.value, (list, tuple)):
            return tuple(str(v) for v in value.value)
        try:
            return (json.dumps(value.value, sort_keys=True),)
        except (TypeError, ValueError) as exc:
            raise EvaluationFault(f"structured answer is not JSON: {exc}") from exc
    raise EvaluationFault(f"unsupported answer value: {type(value).__name__}")


def primary_value(value: AnswerValue) -> Optional[str]:
    """Return the single value compared by equals(): first choice or coerced scalar."""
    if isinstance(value, Choices):
        return value.values[0] if value.values else None
    if isinstance(value, (Text, Number, Boolean, DateValue, JsonValue)):
        values = selected_values(value)
        return values[0] if values else None
    raise EvaluationFault(f"unsupported answer value: {type(value).__name__}")


# Payload keys used by the response store, in the order they are consulted.
_SCALAR_KEYS = (
    ("textValue", Text),
    ("emailValue", Text),
    ("phoneValue", Text),
    ("urlValue", Text),
    ("timeValue", Text),
    ("numericValue", Number),
    ("decimalValue", Number),
    ("booleanValue", Boolean),
)


def answer_from_payload(question_id: str, payload: Mapping[str, Any]) -> Answer:
    """
    Build a typed Answer from a loosely-typed response payload.

    Raises:
        EvaluationFault: if the payload carries no recognised value
    """
    choices = payload.get("choices")
    if choices:
        return Answer(question_id, Choices(tuple(str(c) for c in choices)))

    for key, variant in _SCALAR_KEYS:
        raw = payload.get(key)
        if raw is None:
            continue
        if variant is Number and isinstance(raw, str):
            raw = Decimal(raw)
        return Answer(question_id, variant(raw))

    raw_date = payload.get("dateValue")
    if raw_date is not None:
        if isinstance(raw_date, str):
            raw_date = _dt.date.fromisoformat(raw_date[:10])
        elif isinstance(raw_date, _dt.datetime):
            raw_date = raw_date.date()
        return Answer(question_id, DateValue(raw_date))

    if payload.get("jsonValue") is not None:
        return Answer(question_id, JsonValue(payload["jsonValue"]))

    if choices is not None:
        return Answer(question_id, Choices(()))

    raise EvaluationFault(f"no recognised value in answer payload for {question_id}")


@dataclass
class AnswerSet:
    """Answers accumulated by one session, keyed by question id."""

    answers: Dict[str, Answer] = field(default_factory=dict)

    @classmethod
    def of(cls, *answers: Answer) -> AnswerSet:
        return cls({a.question_id: a for a in answers})

    def put(self, answer: Answer) -> None:
        self.answers[answer.question_id] = answer

    def get(self, question_id: str) -> Optional[Answer]:
        return self.answers.get(question_id)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self.answers

    def __iter__(self) -> Iterator[Answer]:
        return iter(self.answers.values())

    def __len__(self) -> int:
        return len(self.answers)
