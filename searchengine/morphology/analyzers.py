"""Morphological analyzers used by the lemmatizer.

Both backends answer the same question for a single lower-case word: which
parts of speech it may be and which dictionary forms it may come from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Protocol, Tuple

import pymorphy3
from loguru import logger


@dataclass(frozen=True)
class MorphInfo:
    pos_tags: Tuple[str, ...]
    normal_forms: Tuple[str, ...]


class MorphAnalyzer(Protocol):
    def analyze(self, word: str) -> MorphInfo: ...


class PymorphyAnalyzer:
    """OpenCorpora dictionary analysis through pymorphy3."""

    def __init__(self, morph: pymorphy3.MorphAnalyzer | None = None):
        self.morph = morph or pymorphy3.MorphAnalyzer(lang="ru")

    def analyze(self, word: str) -> MorphInfo:
        parses = self.morph.parse(word)
        pos_tags = tuple(dict.fromkeys(str(p.tag.POS) for p in parses if p.tag.POS))
        normal_forms = tuple(dict.fromkeys(p.normal_form for p in parses if p.normal_form))
        return MorphInfo(pos_tags=pos_tags, normal_forms=normal_forms)


IRREGULAR_FORMS: Dict[str, str] = {
    "повторное": "повторный",
    "позволяет": "позволять",
    "обитает": "обитать",
    "некоторых": "некоторый",
    "районах": "район",
    "северного": "северный",
    "осетия": "осетия",
    "осети": "осетия",
    "осетии": "осетия",
}

# (endings, chars to strip), tried in order; the first match wins
SUFFIX_RULES: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("я", "а"), 1),
    (("ы", "и"), 1),
    (("ов", "ев"), 2),
    (("ем",), 2),
    (("т",), 1),
)


class SuffixRuleAnalyzer:
    """
    Dictionary-free fallback: a handful of irregular forms plus literal
    ending stripping. It knows nothing about parts of speech, so stop words
    are the only filter applied to its output.
    """

    def __init__(self, irregular_forms: Dict[str, str] | None = None):
        self.irregular_forms = IRREGULAR_FORMS if irregular_forms is None else irregular_forms

    def analyze(self, word: str) -> MorphInfo:
        return MorphInfo(pos_tags=(), normal_forms=(self.lemmatize(word),))

    def lemmatize(self, word: str) -> str:
        irregular = self.irregular_forms.get(word)
        if irregular is not None:
            return irregular

        for endings, length in SUFFIX_RULES:
            if word.endswith(endings):
                return word[:-length]
        return word


def create_analyzer(backend: str) -> MorphAnalyzer:
    """Analyzer for the configured backend name (``pymorphy`` or ``rules``)."""
    backend = backend.lower()
    if backend == "pymorphy":
        logger.info("[Morphology] Loading pymorphy3 Russian dictionaries")
        return PymorphyAnalyzer()
    if backend == "rules":
        logger.info("[Morphology] Using suffix-rule lemmatization")
        return SuffixRuleAnalyzer()
    raise ValueError(f"Unknown morphology backend: {backend}")
