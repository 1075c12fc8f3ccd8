from typing import Any

from . import reporting_repo
from .config import DEFAULT_MASTER_LANGUAGE
from .questionnaire import QuestionnaireSchema, TranslationSet, build_translation_set, parse_schema


def load_translation_set(db, questionnaire: dict[str, Any]) -> TranslationSet:
    """Schemas to analyse ``questionnaire`` against.

    Questionnaires pinned to a published version read the version's master
    schema plus its translations; unpinned ones fall back to their own draft.
    """
    version_id = questionnaire.get("approach_questionnaire_version_id")
    if version_id:
        version = reporting_repo.get_version(db, str(version_id))
        if version:
            translations = reporting_repo.list_translations(db, str(version_id))
            return build_translation_set(version.get("schema"), version.get("master_language"), translations)
    return build_translation_set(questionnaire.get("schema"), DEFAULT_MASTER_LANGUAGE)


def load_draft_schema(questionnaire: dict[str, Any]) -> QuestionnaireSchema:
    return parse_schema(questionnaire.get("schema"))
