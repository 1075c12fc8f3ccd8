from __future__ import annotations

from typing import Any

from ..questionnaire import QuestionnaireSchema


def lookup_path(obj: Any, path: str) -> Any:
    """Resolve a dot path such as ``metadata.cohort`` against nested dicts."""
    current = obj
    for part in str(path or "").split("."):
        if not part:
            continue
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def extract_answer(response: dict[str, Any], question_id: str) -> Any:
    answers = response.get("answers")
    if not isinstance(answers, dict):
        return None
    if answers.get(question_id) is not None:
        return answers[question_id]
    # Section-nested storage: {"section-1": {"q1": ...}}.
    for value in answers.values():
        if isinstance(value, dict) and value.get(question_id) is not None:
            return value[question_id]
    return None


def matches_filters(response: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    for key, expected in filters.items():
        actual = lookup_path(response, key)
        if isinstance(expected, (list, tuple, set)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def map_questions_to_data(
    schema: QuestionnaireSchema,
    responses: list[dict[str, Any]],
    data_mappings: dict[str, dict[str, Any]],
) -> dict[str, list[dict[str, Any]]]:
    mapped: dict[str, list[dict[str, Any]]] = {key: [] for key in data_mappings}
    for response in responses:
        for dimension_key, mapping in data_mappings.items():
            if not matches_filters(response, mapping.get("filters")):
                continue
            for question_id in mapping.get("questionIds") or []:
                value = extract_answer(response, question_id)
                if value is None:
                    continue
                mapped[dimension_key].append(
                    {
                        "questionId": question_id,
                        "value": value,
                        "participantId": response.get("participant_id"),
                    }
                )
    return mapped


def validate_mappings(schema: QuestionnaireSchema, data_mappings: dict[str, dict[str, Any]]) -> dict[str, Any]:
    known = set(schema.question_ids())
    missing: list[str] = []
    for mapping in data_mappings.values():
        for question_id in mapping.get("questionIds") or []:
            if question_id not in known and question_id not in missing:
                missing.append(question_id)
    return {"valid": not missing, "missingQuestions": missing}
