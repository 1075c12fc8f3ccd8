from __future__ import annotations

import logging
from typing import Any

from ..questionnaire import Question, QuestionnaireSchema, QuestionType, Section, TranslationSet, resolve_options
from . import statistics as stats
from .answers import (
    FreeTextAnswer,
    MultipleChoiceAnswer,
    RankingAnswer,
    ScaleAnswer,
    SingleChoiceAnswer,
    coerce_answer,
)
from .question_mapper import extract_answer
from .reconciliation import LabelReconciler

logger = logging.getLogger(__name__)

NO_RESPONSES_MESSAGE = "No responses available"


def _base(question: Question, section: Section) -> dict[str, Any]:
    return {
        "questionText": question.text,
        "sectionTitle": section.title,
        "type": question.raw_type,
    }


def _raw_values(question_id: str, responses: list[dict[str, Any]]) -> list[Any]:
    values = []
    for response in responses:
        value = extract_answer(response, question_id)
        if value is not None:
            values.append(value)
    return values


def _unreconciled(labels: list[str]) -> dict[str, Any]:
    return {"unreconciledCount": len(labels), "unreconciledLabels": sorted(set(labels))}


def _aggregate_scale(question: Question, section: Section, raw_values: list[Any]) -> dict[str, Any]:
    values = []
    for raw in raw_values:
        answer = coerce_answer(question, raw)
        if isinstance(answer, ScaleAnswer):
            values.append(answer.value)
    out = _base(question, section)
    out["scale"] = question.scale.as_dict() if question.scale else None
    if not values:
        out.update({"responseCount": 0, "average": 0, "distribution": {}})
        return out
    bounds = stats.value_range(values)
    out.update(
        {
            "responseCount": len(values),
            "average": stats.round2(stats.average(values)),
            "median": stats.round2(stats.median(values)),
            "min": bounds["min"],
            "max": bounds["max"],
            "standardDeviation": stats.round2(stats.standard_deviation(values)),
            "distribution": stats.distribution(values),
        }
    )
    return out


def _aggregate_single_choice(
    question: Question, section: Section, raw_values: list[Any], reconciler: LabelReconciler
) -> dict[str, Any]:
    labels: list[str] = []
    unreconciled: list[str] = []
    for raw in raw_values:
        answer = coerce_answer(question, raw)
        if not isinstance(answer, SingleChoiceAnswer):
            continue
        resolved = reconciler.resolve(answer.choice)
        if resolved is None:
            continue
        labels.append(resolved.label)
        if not resolved.reconciled:
            unreconciled.append(resolved.label)
    out = _base(question, section)
    out.update(
        {
            "options": reconciler.master_options,
            "responseCount": len(labels),
            "distribution": stats.distribution(labels),
            "topAnswer": stats.mode(labels),
        }
    )
    out.update(_unreconciled(unreconciled))
    return out


def _aggregate_multiple_choice(
    question: Question, section: Section, raw_values: list[Any], reconciler: LabelReconciler
) -> dict[str, Any]:
    selections: list[str] = []
    unreconciled: list[str] = []
    for raw in raw_values:
        answer = coerce_answer(question, raw)
        if not isinstance(answer, MultipleChoiceAnswer):
            continue
        for choice in answer.choices:
            resolved = reconciler.resolve(choice)
            if resolved is None:
                continue
            selections.append(resolved.label)
            if not resolved.reconciled:
                unreconciled.append(resolved.label)
    out = _base(question, section)
    out.update(
        {
            "options": reconciler.master_options,
            # Respondents, not selections.
            "responseCount": len(raw_values),
            "totalSelections": len(selections),
            "distribution": stats.distribution(selections),
        }
    )
    out.update(_unreconciled(unreconciled))
    return out


def _aggregate_ranking(
    question: Question, section: Section, raw_values: list[Any], reconciler: LabelReconciler
) -> dict[str, Any]:
    rank_sums = {option: 0 for option in reconciler.master_options}
    rank_counts = {option: 0 for option in reconciler.master_options}
    unreconciled: list[str] = []
    for raw in raw_values:
        answer = coerce_answer(question, raw)
        if not isinstance(answer, RankingAnswer):
            continue
        for position, item in enumerate(answer.items):
            if item is None:
                continue
            resolved = reconciler.resolve(item)
            if resolved is None or not resolved.label:
                continue
            rank_sums[resolved.label] = rank_sums.get(resolved.label, 0) + position + 1
            rank_counts[resolved.label] = rank_counts.get(resolved.label, 0) + 1
            if not resolved.reconciled:
                unreconciled.append(resolved.label)

    average_ranks = {
        option: stats.round2(rank_sums[option] / rank_counts[option])
        for option in rank_sums
        if rank_counts[option] > 0
    }
    out = _base(question, section)
    out.update(
        {
            "options": reconciler.master_options,
            "responseCount": len(raw_values),
            "averageRanks": average_ranks,
            "rankCounts": rank_counts,
        }
    )
    out.update(_unreconciled(unreconciled))
    return out


def _aggregate_free_text(question: Question, section: Section, raw_values: list[Any]) -> dict[str, Any]:
    texts = []
    for raw in raw_values:
        answer = coerce_answer(question, raw)
        if isinstance(answer, FreeTextAnswer):
            texts.append(answer.text)
    out = _base(question, section)
    out.update({"maxLength": question.max_length, "responseCount": len(texts), "responses": texts})
    return out


def aggregate_question(
    question: Question,
    section: Section,
    responses: list[dict[str, Any]],
    translations: TranslationSet | None = None,
) -> dict[str, Any]:
    raw_values = _raw_values(question.id, responses)
    qtype = question.type

    if qtype == QuestionType.SCALE:
        return _aggregate_scale(question, section, raw_values)
    if qtype == QuestionType.FREE_TEXT:
        return _aggregate_free_text(question, section, raw_values)
    if qtype in (QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE, QuestionType.RANKING):
        language = translations.master_language if translations else None
        reconciler = LabelReconciler(question.id, resolve_options(question, language), translations)
        if qtype == QuestionType.SINGLE_CHOICE:
            return _aggregate_single_choice(question, section, raw_values, reconciler)
        if qtype == QuestionType.MULTIPLE_CHOICE:
            return _aggregate_multiple_choice(question, section, raw_values, reconciler)
        return _aggregate_ranking(question, section, raw_values, reconciler)

    out = _base(question, section)
    out["responseCount"] = len(raw_values)
    return out


def aggregate_questions(
    schema: QuestionnaireSchema,
    responses: list[dict[str, Any]],
    question_ids: list[str],
    translations: TranslationSet | None = None,
    questionnaire_title: str | None = None,
) -> dict[str, Any]:
    """Per-question summaries in the master label space.

    Ids missing from ``schema`` are skipped. Zero responses is a success
    payload carrying a message, not an error.
    """
    if not responses:
        return {"questions": {}, "responseCount": 0, "message": NO_RESPONSES_MESSAGE}

    questions: dict[str, Any] = {}
    for question_id in question_ids:
        found = schema.find_question(question_id)
        if not found:
            logger.info("[ANALYTICS] skipping unknown question id=%s", question_id)
            continue
        question, section = found
        questions[question_id] = aggregate_question(question, section, responses, translations)

    return {
        "questions": questions,
        "responseCount": len(responses),
        "questionnaireTitle": questionnaire_title,
    }
