"""Typed answer values.

Stored answers are loosely shaped JSON. ``coerce_answer`` reads them through
the owning question's declared type so aggregation never has to guess.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from ..questionnaire import Question, QuestionType

# A choice is an option index (current storage) or a literal label (legacy).
Choice = Union[int, str]


@dataclass(frozen=True)
class ScaleAnswer:
    value: float


@dataclass(frozen=True)
class SingleChoiceAnswer:
    choice: Choice


@dataclass(frozen=True)
class MultipleChoiceAnswer:
    choices: tuple[Choice, ...]


@dataclass(frozen=True)
class RankingAnswer:
    # Position is the assigned rank; unreadable entries stay as None so later
    # items keep their rank.
    items: tuple[Choice | None, ...]


@dataclass(frozen=True)
class FreeTextAnswer:
    text: str


Answer = Union[ScaleAnswer, SingleChoiceAnswer, MultipleChoiceAnswer, RankingAnswer, FreeTextAnswer]


def _as_choice(raw: Any) -> Choice | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        return raw
    return None


def _as_choices(raw: Any) -> tuple[Choice, ...] | None:
    if not isinstance(raw, list):
        return None
    out = []
    for item in raw:
        choice = _as_choice(item)
        if choice is not None:
            out.append(choice)
    return tuple(out)


def coerce_answer(question: Question, raw: Any) -> Answer | None:
    if raw is None:
        return None
    qtype = question.type
    if qtype == QuestionType.SCALE:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        return ScaleAnswer(value=raw)
    if qtype == QuestionType.SINGLE_CHOICE:
        choice = _as_choice(raw)
        return SingleChoiceAnswer(choice=choice) if choice is not None else None
    if qtype == QuestionType.MULTIPLE_CHOICE:
        choices = _as_choices(raw)
        return MultipleChoiceAnswer(choices=choices) if choices is not None else None
    if qtype == QuestionType.RANKING:
        if not isinstance(raw, list):
            return None
        return RankingAnswer(items=tuple(_as_choice(item) for item in raw))
    if qtype == QuestionType.FREE_TEXT:
        if not isinstance(raw, str) or not raw.strip():
            return None
        return FreeTextAnswer(text=raw)
    return None
