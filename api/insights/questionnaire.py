from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import DEFAULT_MASTER_LANGUAGE, FREE_TEXT_DEFAULT_MAX_LENGTH, OPTION_LANGUAGE_FALLBACKS


class QuestionType(str, Enum):
    SCALE = "scale"
    SINGLE_CHOICE = "single-choice"
    MULTIPLE_CHOICE = "multiple-choice"
    RANKING = "ranking"
    FREE_TEXT = "free-text"


CHOICE_TYPES = {QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE, QuestionType.RANKING}


@dataclass(frozen=True)
class ScaleSpec:
    min: int
    max: int
    min_label: str = ""
    max_label: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "minLabel": self.min_label, "maxLabel": self.max_label}


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    raw_type: str
    type: QuestionType | None
    required: bool = True
    scale: ScaleSpec | None = None
    # Either a flat list (current format) or language -> list (legacy master format).
    options: list[str] | dict[str, list[str]] | None = None
    max_length: int = FREE_TEXT_DEFAULT_MAX_LENGTH


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    description: str | None = None
    questions: tuple[Question, ...] = ()


@dataclass(frozen=True)
class QuestionnaireSchema:
    sections: tuple[Section, ...] = ()

    def iter_questions(self):
        for section in self.sections:
            for question in section.questions:
                yield question, section

    def question_ids(self) -> list[str]:
        return [q.id for q, _ in self.iter_questions()]

    def find_question(self, question_id: str) -> tuple[Question, Section] | None:
        for question, section in self.iter_questions():
            if question.id == question_id:
                return question, section
        return None

    def total_questions(self) -> int:
        return sum(len(s.questions) for s in self.sections)


@dataclass
class TranslationSet:
    """Every language variant of one published version, keyed by language code.

    The master language maps to the version's own schema; translated rows are
    added next to it. Option position is the cross-language key.
    """

    master_language: str = DEFAULT_MASTER_LANGUAGE
    schemas: dict[str, QuestionnaireSchema] = field(default_factory=dict)

    @property
    def master_schema(self) -> QuestionnaireSchema | None:
        return self.schemas.get(self.master_language)

    def languages(self) -> list[str]:
        return list(self.schemas.keys())


def _to_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return default


def _parse_options(raw: Any) -> list[str] | dict[str, list[str]] | None:
    if isinstance(raw, list):
        return [str(o) for o in raw]
    if isinstance(raw, dict):
        out: dict[str, list[str]] = {}
        for lang, opts in raw.items():
            if isinstance(opts, list):
                out[str(lang)] = [str(o) for o in opts]
        return out
    return None


def _parse_question_type(raw_type: str) -> QuestionType | None:
    try:
        return QuestionType(raw_type)
    except ValueError:
        return None


def parse_question(raw: dict[str, Any]) -> Question | None:
    qid = str(raw.get("id") or "").strip()
    if not qid:
        return None
    raw_type = str(raw.get("type") or "").strip()
    qtype = _parse_question_type(raw_type)

    scale = None
    raw_scale = raw.get("scale")
    if isinstance(raw_scale, dict):
        lo = _to_int(raw_scale.get("min"), 1)
        hi = _to_int(raw_scale.get("max"), 5)
        scale = ScaleSpec(
            min=min(lo, hi),
            max=max(lo, hi),
            min_label=str(raw_scale.get("minLabel") or ""),
            max_label=str(raw_scale.get("maxLabel") or ""),
        )

    max_length = _to_int(raw.get("maxLength"), FREE_TEXT_DEFAULT_MAX_LENGTH)
    if max_length <= 0:
        max_length = FREE_TEXT_DEFAULT_MAX_LENGTH

    required = raw.get("required")
    return Question(
        id=qid,
        text=str(raw.get("text") or ""),
        raw_type=raw_type,
        type=qtype,
        required=True if required is None else bool(required),
        scale=scale,
        options=_parse_options(raw.get("options")),
        max_length=max_length,
    )


def parse_schema(raw: Any) -> QuestionnaireSchema:
    """Build a schema from stored JSON, keeping section and question order."""
    if not isinstance(raw, dict):
        return QuestionnaireSchema()
    sections: list[Section] = []
    raw_sections = raw.get("sections") if isinstance(raw.get("sections"), list) else []
    for s_idx, raw_section in enumerate(raw_sections):
        if not isinstance(raw_section, dict):
            continue
        raw_questions = raw_section.get("questions") if isinstance(raw_section.get("questions"), list) else []
        questions = []
        for raw_question in raw_questions:
            if not isinstance(raw_question, dict):
                continue
            question = parse_question(raw_question)
            if question:
                questions.append(question)
        sections.append(
            Section(
                id=str(raw_section.get("id") or f"section-{s_idx + 1}"),
                title=str(raw_section.get("title") or ""),
                description=raw_section.get("description"),
                questions=tuple(questions),
            )
        )
    return QuestionnaireSchema(sections=tuple(sections))


def resolve_options(question: Question, language: str | None = None) -> list[str]:
    """Ordered option labels for ``language``, whatever the storage shape.

    Per-language storage falls back to the configured fallback languages and
    finally to the first language present.
    """
    options = question.options
    if options is None:
        return []
    if isinstance(options, list):
        return list(options)
    candidates = [language] if language else []
    candidates.extend(OPTION_LANGUAGE_FALLBACKS)
    for lang in candidates:
        if lang and options.get(lang):
            return list(options[lang])
    for opts in options.values():
        return list(opts)
    return []


def build_translation_set(
    master_schema: Any,
    master_language: str | None,
    translations: list[dict[str, Any]] | None = None,
) -> TranslationSet:
    language = str(master_language or DEFAULT_MASTER_LANGUAGE).strip().lower() or DEFAULT_MASTER_LANGUAGE
    out = TranslationSet(master_language=language)
    out.schemas[language] = master_schema if isinstance(master_schema, QuestionnaireSchema) else parse_schema(master_schema)
    for row in translations or []:
        lang = str(row.get("language") or "").strip().lower()
        if not lang or lang == language:
            continue
        out.schemas[lang] = parse_schema(row.get("schema"))
    return out
