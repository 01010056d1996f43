"""
Term normalization used when matching ranked terms against a gold standard.
"""

from __future__ import annotations

import re
from functools import cached_property
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from term_ranking.config import EvaluationConfig

_SYMBOLS = re.compile(r"[^\w\s]|_")
_DIGITS = re.compile(r"\d+")


class TermNormalizer:
    """
    Callable mapping a term string to its comparison form.

    Steps, each behind its flag: case folding, replacing punctuation and
    hyphens with spaces, dropping digits, Porter stemming of every word.
    Whitespace is always collapsed.
    """

    def __init__(
        self,
        lowercase: bool = True,
        ignore_symbols: bool = True,
        ignore_digits: bool = False,
        stem: bool = False,
    ):
        self.lowercase = lowercase
        self.ignore_symbols = ignore_symbols
        self.ignore_digits = ignore_digits
        self.stem = stem

    @classmethod
    def from_config(cls, config: EvaluationConfig) -> TermNormalizer:
        return cls(config.lowercase, config.ignore_symbols, config.ignore_digits, config.stem)

    @cached_property
    def _stemmer(self):
        from nltk.stem import PorterStemmer

        return PorterStemmer()

    def __call__(self, text: str) -> str:
        if self.lowercase:
            text = text.lower()
        if self.ignore_symbols:
            text = _SYMBOLS.sub(" ", text)
        if self.ignore_digits:
            text = _DIGITS.sub(" ", text)
        words = text.split()
        if self.stem:
            words = [self._stemmer.stem(word, to_lowercase=self.lowercase) for word in words]
        return " ".join(words)

    def __repr__(self) -> str:
        return (
            f"TermNormalizer(lowercase={self.lowercase}, ignore_symbols={self.ignore_symbols}, "
            f"ignore_digits={self.ignore_digits}, stem={self.stem})"
        )


def identity(text: str) -> str:
    """Verbatim comparison form."""
    return text


def normalizers_for(config: EvaluationConfig):
    """(candidate normalizer, gold normalizer) as selected by the side flags."""
    normalizer = TermNormalizer.from_config(config)
    return (
        normalizer if config.normalize_candidates else identity,
        normalizer if config.normalize_gold else identity,
    )
