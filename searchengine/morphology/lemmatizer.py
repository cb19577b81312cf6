from __future__ import annotations

import re
import threading
from collections import Counter
from typing import Callable, Dict, Iterable, Optional, Tuple

from loguru import logger

from searchengine.morphology.analyzers import MorphAnalyzer, create_analyzer
from searchengine.utils.config_loader import (
    DEFAULT_EXCLUDED_POS_TAGS,
    DEFAULT_STOP_WORDS,
    Config,
)

NON_CYRILLIC_RE = re.compile(r"[^а-яё\s]")

# Lemma.lemma column width; longer runs of letters are not words
MAX_WORD_LENGTH = 255

Lemmas = Tuple[str, ...]


class LemmaCache:
    """Word -> lemmas memo shared by every thread that lemmatizes pages.

    The first outcome stored for a word wins; concurrent misses may compute
    the same value twice, which is harmless because analysis is pure.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Lemmas] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, word: str, compute: Callable[[str], Lemmas]) -> Lemmas:
        cached = self._data.get(word)
        if cached is not None:
            return cached

        value = compute(word)
        with self._lock:
            return self._data.setdefault(word, value)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, word: object) -> bool:
        return word in self._data

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


def tokenize(text: str) -> list[str]:
    """Lower-case Cyrillic words of ``text``; everything else separates words."""
    words = NON_CYRILLIC_RE.sub(" ", text.lower()).split()
    return [word for word in words if len(word) <= MAX_WORD_LENGTH]


class Lemmatizer:
    def __init__(
        self,
        analyzer: MorphAnalyzer,
        excluded_pos_tags: Optional[Iterable[str]] = None,
        stop_words: Optional[Iterable[str]] = None,
        cache: Optional[LemmaCache] = None,
    ):
        self.analyzer = analyzer
        tags = DEFAULT_EXCLUDED_POS_TAGS if excluded_pos_tags is None else excluded_pos_tags
        words = DEFAULT_STOP_WORDS if stop_words is None else stop_words
        self.excluded_pos_tags = frozenset(tag.upper() for tag in tags)
        self.stop_words = frozenset(word.lower() for word in words)
        self.cache = cache if cache is not None else LemmaCache()

    @classmethod
    def from_config(cls, config: Config) -> "Lemmatizer":
        return cls(
            create_analyzer(config.morphology_backend),
            excluded_pos_tags=config.excluded_pos_tags,
            stop_words=config.stop_words,
        )

    def lemmas_of(self, text: str | None) -> Dict[str, int]:
        """
        Count lemma occurrences in ``text``.

        Every token adds one to each of its candidate lemmas, so an ambiguous
        word contributes to several keys.
        """
        if not text or not text.strip():
            logger.warning("[Lemmatizer] Empty text passed for lemmatization")
            return {}

        counts: Counter[str] = Counter()
        for word in tokenize(text):
            counts.update(self.lemmas_for_word(word))
        return dict(counts)

    def lemmas_for_word(self, word: str) -> Lemmas:
        return self.cache.get_or_compute(word, self._analyze_word)

    def _analyze_word(self, word: str) -> Lemmas:
        try:
            info = self.analyzer.analyze(word)
        except Exception:
            logger.exception(f"[Lemmatizer] Morphological analysis failed for '{word}'")
            return ()

        if any(tag.upper() in self.excluded_pos_tags for tag in info.pos_tags):
            return ()

        return tuple(
            lemma
            for lemma in dict.fromkeys(info.normal_forms)
            if lemma and len(lemma) <= MAX_WORD_LENGTH and lemma.lower() not in self.stop_words
        )
