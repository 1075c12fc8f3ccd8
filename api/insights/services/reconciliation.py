"""Map stored choices back onto the master-language option labels.

Answers reference options either by position (current storage) or by the
literal label the participant saw (legacy storage). Position is the
cross-language key, so a label found at index ``i`` of any translation
resolves to ``master_options[i]``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..questionnaire import TranslationSet, resolve_options
from .answers import Choice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLabel:
    label: str
    # False when a legacy label matched no known option and is kept verbatim.
    reconciled: bool = True


class LabelReconciler:
    def __init__(self, question_id: str, master_options: list[str], translations: TranslationSet | None = None):
        self.question_id = question_id
        self.master_options = list(master_options)
        self._master_lookup = {label: label for label in self.master_options}
        self._translated_lookup: dict[str, str] = {}
        if translations is not None:
            self._index_translations(translations)

    def _index_translations(self, translations: TranslationSet) -> None:
        for language, schema in translations.schemas.items():
            found = schema.find_question(self.question_id)
            if not found:
                continue
            question = found[0]
            if isinstance(question.options, dict):
                # Legacy per-language storage carries every language inline.
                option_lists = list(question.options.values())
            elif language == translations.master_language:
                continue
            else:
                option_lists = [resolve_options(question, language)]
            for options in option_lists:
                for idx, label in enumerate(options[: len(self.master_options)]):
                    self._translated_lookup.setdefault(label, self.master_options[idx])

    def resolve(self, choice: Choice) -> ResolvedLabel | None:
        if isinstance(choice, int):
            if 0 <= choice < len(self.master_options):
                return ResolvedLabel(self.master_options[choice])
            return None
        if choice in self._master_lookup:
            return ResolvedLabel(choice)
        if choice in self._translated_lookup:
            return ResolvedLabel(self._translated_lookup[choice])
        logger.debug("[ANALYTICS] unreconciled label question=%s label=%r", self.question_id, choice)
        return ResolvedLabel(choice, reconciled=False)
