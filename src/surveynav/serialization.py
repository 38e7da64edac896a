"""
Serialization helpers for surveynav objects (Survey, jumps, answers, render state).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
This module intentionally keeps serialization structure stable and explicit.
"""
from __future__ import annotations

import datetime as _dt
import json
from decimal import Decimal
from typing import Any, Dict

import yaml

from surveynav.answers import (
    Answer,
    AnswerValue,
    Boolean,
    Choices,
    DateValue,
    JsonValue,
    Number,
    Text,
)
from surveynav.model import (
    CachedOrder,
    Expression,
    Option,
    OrderMode,
    Page,
    PageJump,
    Question,
    QuestionJump,
    Survey,
)


def expression_to_dict(e: Expression) -> Dict[str, Any]:
    return {"id": e.id, "dsl": e.dsl, "description": e.description}


def expression_from_dict(d: Dict[str, Any]) -> Expression:
    return Expression(id=d["id"], dsl=d.get("dsl", ""), description=d.get("description"))


def option_to_dict(o: Option) -> Dict[str, Any]:
    return {
        "id": o.id,
        "value": o.value,
        "label": o.label,
        "index": o.index,
        "weight": o.weight,
        "group_key": o.group_key,
    }


def option_from_dict(d: Dict[str, Any]) -> Option:
    return Option(
        id=d["id"],
        value=d.get("value", ""),
        label=d.get("label", ""),
        index=d.get("index", 0),
        weight=d.get("weight"),
        group_key=d.get("group_key"),
    )


def page_to_dict(p: Page) -> Dict[str, Any]:
    return {
        "id": p.id,
        "survey_id": p.survey_id,
        "index": p.index,
        "question_order_mode": p.question_order_mode.value,
        "group_order_mode": p.group_order_mode.value,
        "visible_if_expression_id": p.visible_if_expression_id,
    }


def page_from_dict(d: Dict[str, Any]) -> Page:
    return Page(
        id=d["id"],
        survey_id=d["survey_id"],
        index=d.get("index", 0),
        question_order_mode=OrderMode(d.get("question_order_mode", "SEQUENTIAL")),
        group_order_mode=OrderMode(d.get("group_order_mode", "SEQUENTIAL")),
        visible_if_expression_id=d.get("visible_if_expression_id"),
    )


def question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": q.id,
        "survey_id": q.survey_id,
        "page_id": q.page_id,
        "index": q.index,
        "variable_name": q.variable_name,
        "type": q.type,
        "options": [option_to_dict(o) for o in q.options],
        "items": [option_to_dict(o) for o in q.items],
        "scales": [option_to_dict(o) for o in q.scales],
        "option_order_mode": q.option_order_mode.value,
        "item_order_mode": q.item_order_mode.value,
        "scale_order_mode": q.scale_order_mode.value,
        "group_key": q.group_key,
        "weight": q.weight,
        "visible_if_expression_id": q.visible_if_expression_id,
        "terminate_if_expression_id": q.terminate_if_expression_id,
    }


def question_from_dict(d: Dict[str, Any]) -> Question:
    return Question(
        id=d["id"],
        survey_id=d["survey_id"],
        page_id=d["page_id"],
        index=d.get("index", 0),
        variable_name=d["variable_name"],
        type=d.get("type", "SINGLE_CHOICE"),
        options=[option_from_dict(o) for o in d.get("options", [])],
        items=[option_from_dict(o) for o in d.get("items", [])],
        scales=[option_from_dict(o) for o in d.get("scales", [])],
        option_order_mode=OrderMode(d.get("option_order_mode", "SEQUENTIAL")),
        item_order_mode=OrderMode(d.get("item_order_mode", "SEQUENTIAL")),
        scale_order_mode=OrderMode(d.get("scale_order_mode", "SEQUENTIAL")),
        group_key=d.get("group_key"),
        weight=d.get("weight"),
        visible_if_expression_id=d.get("visible_if_expression_id"),
        terminate_if_expression_id=d.get("terminate_if_expression_id"),
    )


def question_jump_to_dict(j: QuestionJump) -> Dict[str, Any]:
    return {
        "id": j.id,
        "survey_id": j.survey_id,
        "from_question_id": j.from_question_id,
        "to_question_id": j.to_question_id,
        "to_page_id": j.to_page_id,
        "condition_expression_id": j.condition_expression_id,
        "priority": j.priority,
    }


def question_jump_from_dict(d: Dict[str, Any]) -> QuestionJump:
    return QuestionJump(
        id=d["id"],
        survey_id=d["survey_id"],
        from_question_id=d["from_question_id"],
        to_question_id=d.get("to_question_id"),
        to_page_id=d.get("to_page_id"),
        condition_expression_id=d.get("condition_expression_id"),
        priority=d.get("priority", 0),
    )


def page_jump_to_dict(j: PageJump) -> Dict[str, Any]:
    return {
        "id": j.id,
        "survey_id": j.survey_id,
        "from_page_id": j.from_page_id,
        "to_page_id": j.to_page_id,
        "condition_expression_id": j.condition_expression_id,
        "priority": j.priority,
    }


def page_jump_from_dict(d: Dict[str, Any]) -> PageJump:
    return PageJump(
        id=d["id"],
        survey_id=d["survey_id"],
        from_page_id=d["from_page_id"],
        to_page_id=d["to_page_id"],
        condition_expression_id=d.get("condition_expression_id"),
        priority=d.get("priority", 0),
    )


def survey_to_dict(s: Survey) -> Dict[str, Any]:
    return {
        "id": s.id,
        "name": s.name,
        "pages": [page_to_dict(p) for p in s.pages],
        "questions": [question_to_dict(q) for q in s.questions],
        "expressions": [expression_to_dict(e) for e in s.expressions],
        "question_jumps": [question_jump_to_dict(j) for j in s.question_jumps],
        "page_jumps": [page_jump_to_dict(j) for j in s.page_jumps],
        "metadata": s.metadata,
    }


def survey_from_dict(d: Dict[str, Any]) -> Survey:
    s = Survey(id=d["id"], name=d.get("name", ""))
    s.pages = [page_from_dict(p) for p in d.get("pages", [])]
    s.questions = [question_from_dict(q) for q in d.get("questions", [])]
    s.expressions = [expression_from_dict(e) for e in d.get("expressions", [])]
    s.question_jumps = [question_jump_from_dict(j) for j in d.get("question_jumps", [])]
    s.page_jumps = [page_jump_from_dict(j) for j in d.get("page_jumps", [])]
    s.metadata = d.get("metadata", {})
    return s


def survey_to_json(s: Survey) -> str:
    return json.dumps(survey_to_dict(s), sort_keys=True)


def survey_from_json(s: str) -> Survey:
    d = json.loads(s)
    return survey_from_dict(d)


def survey_to_yaml(s: Survey) -> str:
    return yaml.safe_dump(survey_to_dict(s))


def survey_from_yaml(s: str) -> Survey:
    d = yaml.safe_load(s)
    return survey_from_dict(d)


# ----- answers -----


def answer_value_to_dict(v: AnswerValue) -> Dict[str, Any]:
    if isinstance(v, Choices):
        return {"kind": "choices", "value": list(v.values)}
    if isinstance(v, Text):
        return {"kind": "text", "value": v.value}
    if isinstance(v, Number):
        value = str(v.value) if isinstance(v.value, Decimal) else v.value
        return {"kind": "number", "value": value, "decimal": isinstance(v.value, Decimal)}
    if isinstance(v, Boolean):
        return {"kind": "boolean", "value": v.value}
    if isinstance(v, DateValue):
        return {"kind": "date", "value": v.value.isoformat()}
    if isinstance(v, JsonValue):
        return {"kind": "json", "value": v.value}
    raise TypeError(f"Unsupported AnswerValue type: {type(v)}")


def answer_value_from_dict(d: Dict[str, Any]) -> AnswerValue:
    kind = d.get("kind")
    if kind == "choices":
        return Choices(tuple(d.get("value", [])))
    if kind == "text":
        return Text(d["value"])
    if kind == "number":
        return Number(Decimal(d["value"]) if d.get("decimal") else d["value"])
    if kind == "boolean":
        return Boolean(bool(d["value"]))
    if kind == "date":
        return DateValue(_dt.date.fromisoformat(d["value"]))
    if kind == "json":
        return JsonValue(d["value"])
    raise TypeError(f"Unsupported answer dict kind: {kind}")


def answer_to_dict(a: Answer) -> Dict[str, Any]:
    return {"question_id": a.question_id, "value": answer_value_to_dict(a.value)}


def answer_from_dict(d: Dict[str, Any]) -> Answer:
    return Answer(question_id=d["question_id"], value=answer_value_from_dict(d["value"]))


# ----- render state -----


def cached_order_to_dict(c: CachedOrder) -> Dict[str, Any]:
    return {"order": list(c.order), "mode": c.mode.value, "computed_at": c.computed_at.isoformat()}


def _parse_timestamp(value: str) -> _dt.datetime:
    # fromisoformat only takes a trailing "Z" from Python 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return _dt.datetime.fromisoformat(value)


def cached_order_from_dict(d: Dict[str, Any]) -> CachedOrder:
    """
    Accepts both {order, mode, computed_at} and the older
    {order, mode, timestamp} render-state shape.

    Raises:
        KeyError: if there is no order
        ValueError: if the mode or timestamp is unreadable
    """
    stamp = d.get("computed_at") or d.get("timestamp")
    if stamp is None:
        return CachedOrder(order=tuple(d["order"]), mode=OrderMode(d.get("mode", "SEQUENTIAL")))
    return CachedOrder(
        order=tuple(d["order"]),
        mode=OrderMode(d.get("mode", "SEQUENTIAL")),
        computed_at=_parse_timestamp(stamp),
    )


def cached_order_to_json(c: CachedOrder) -> str:
    return json.dumps(cached_order_to_dict(c), sort_keys=True)


def cached_order_from_json(s: str) -> CachedOrder:
    return cached_order_from_dict(json.loads(s))
