"""
Term scoring algorithms.

Every algorithm implements one capability: turn the statistics of a
candidate (and, for the contrastive ones, a reference corpus) into a real
number, higher meaning more term-like. They are selected by name through
the registry, so the ranking and evaluation code never depends on a
concrete class.

Usage:
    from term_ranking.algorithms import get_algorithm

    tfidf = get_algorithm("TFIDF")
    score = tfidf.bind(index, index.terms)
    score(Term("cell"))

Registration:
    @register_algorithm("MyScore")
    class MyScore(BaseAlgorithm):
        def _bind(self, index, candidates, reference):
            return lambda term: ...
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

import numpy as np
from scipy.stats import poisson

from term_ranking.cooccurrence import build_context_matrix, build_word_graph, chi_square_scores
from term_ranking.errors import ConfigurationError
from term_ranking.types import Term

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from term_ranking.config import RankingConfig
    from term_ranking.corpus import ReferenceStatisticsProvider, TermStatisticsIndex

ScoreFunction = Callable[[Term], float]

# Floor for a zero relative frequency inside a ratio or logarithm
_LOG_FLOOR = 1e-12


# =============================================================================
# Contract
# =============================================================================


class ScoringAlgorithm(Protocol):
    """
    Structural contract shared by all algorithms.

    ``bind`` is the explicit build phase: anything that depends on the whole
    candidate set (graphs, frequent-term sets) is computed there, and the
    returned function is pure.
    """

    name: str
    requires_reference: bool

    def bind(
        self,
        index: TermStatisticsIndex,
        candidates: Sequence[Term],
        reference: ReferenceStatisticsProvider | None = None,
    ) -> ScoreFunction: ...

    def score(
        self,
        term: str | Term,
        index: TermStatisticsIndex,
        reference: ReferenceStatisticsProvider | None = None,
    ) -> float: ...

    def get_config(self) -> dict[str, Any]: ...


class BaseAlgorithm:
    """Shared plumbing: reference checks, single-term scoring, vectorized scoring."""

    name: str = "Base"
    requires_reference: bool = False

    def bind(
        self,
        index: TermStatisticsIndex,
        candidates: Sequence[Term],
        reference: ReferenceStatisticsProvider | None = None,
    ) -> ScoreFunction:
        if self.requires_reference and reference is None:
            raise ConfigurationError("reference.source", f"{self.name} requires a reference corpus")
        return self._bind(index, list(candidates), reference)

    def _bind(
        self,
        index: TermStatisticsIndex,
        candidates: list[Term],
        reference: ReferenceStatisticsProvider | None,
    ) -> ScoreFunction:
        raise NotImplementedError

    def score(
        self,
        term: str | Term,
        index: TermStatisticsIndex,
        reference: ReferenceStatisticsProvider | None = None,
    ) -> float:
        """Score one term against every candidate of *index*."""
        return self.bind(index, index.terms, reference)(Term.of(term))

    def score_all(
        self,
        index: TermStatisticsIndex,
        candidates: Sequence[Term],
        reference: ReferenceStatisticsProvider | None = None,
    ) -> NDArray[np.float64]:
        """Scores of *candidates*, in order."""
        candidates = list(candidates)
        score = self.bind(index, candidates, reference)
        return np.array([score(term) for term in candidates], dtype=np.float64)

    def get_config(self) -> dict[str, Any]:
        return {}

    def __repr__(self) -> str:
        params = ", ".join(f"{key}={value!r}" for key, value in self.get_config().items())
        return f"{type(self).__name__}({params})"


# =============================================================================
# Registry
# =============================================================================

_ALGORITHM_REGISTRY: dict[str, type[BaseAlgorithm]] = {}


def register_algorithm(name: str):
    """
    Class decorator making an algorithm available to get_algorithm().

    Lookup is case-insensitive; the registered spelling becomes ``cls.name``.

    Raises:
        ValueError: The name is already taken.
    """

    def decorator(cls: type[BaseAlgorithm]) -> type[BaseAlgorithm]:
        key = name.lower()
        if key in _ALGORITHM_REGISTRY:
            raise ValueError(
                f"Algorithm '{name}' is already registered "
                f"(existing: {_ALGORITHM_REGISTRY[key].__name__}, new: {cls.__name__})"
            )
        cls.name = name
        _ALGORITHM_REGISTRY[key] = cls
        return cls

    return decorator


def get_algorithm(name: str, **params) -> BaseAlgorithm:
    """
    Instantiate an algorithm by registered name.

    Raises:
        ConfigurationError: Unknown name or invalid tunables.
    """
    cls = _ALGORITHM_REGISTRY.get(name.lower())
    if cls is None:
        raise ConfigurationError(
            "algorithm", f"unknown algorithm '{name}' (available: {', '.join(available_algorithms())})"
        )
    try:
        return cls(**params)
    except TypeError as exc:
        raise ConfigurationError(name.lower(), str(exc)) from exc


def available_algorithms() -> list[str]:
    """Registered names, in registration order."""
    return [cls.name for cls in _ALGORITHM_REGISTRY.values()]


def create_algorithm(name: str, config: RankingConfig | None = None) -> BaseAlgorithm:
    """Instantiate *name* with its tunables taken from *config*."""
    params = config.params_for(name) if config is not None else {}
    return get_algorithm(name, **params)


# =============================================================================
# Frequency-based algorithms
# =============================================================================


@register_algorithm("TTF")
class TTF(BaseAlgorithm):
    """Total term frequency."""

    def _bind(self, index, candidates, reference):
        return lambda term: float(index.total_frequency(term))


@register_algorithm("ATTF")
class ATTF(BaseAlgorithm):
    """Average frequency per containing document: f / max(df, 1)."""

    def _bind(self, index, candidates, reference):
        def score(term: Term) -> float:
            return index.total_frequency(term) / max(index.document_frequency(term), 1)

        return score


@register_algorithm("TFIDF")
class TFIDF(BaseAlgorithm):
    """
    f x ln(N / max(df, 1)).

    A document frequency of 0 is treated as 1; an empty corpus scores 0.
    """

    def _bind(self, index, candidates, reference):
        n_docs = index.corpus_size

        def score(term: Term) -> float:
            if n_docs == 0:
                return 0.0
            df = max(index.document_frequency(term), 1)
            return index.total_frequency(term) * math.log(n_docs / df)

        return score


@register_algorithm("RIDF")
class RIDF(BaseAlgorithm):
    """
    Residual IDF: observed IDF minus the IDF a Poisson-distributed term of
    the same total frequency would have.

        ridf = log2(N / df) + log2(P(X >= 1)),  X ~ Poisson(f / N)
    """

    def _bind(self, index, candidates, reference):
        n_docs = index.corpus_size

        def score(term: Term) -> float:
            f = index.total_frequency(term)
            if f == 0 or n_docs == 0:
                return 0.0
            idf = math.log2(n_docs / max(index.document_frequency(term), 1))
            # logsf(0) = ln P(X > 0), kept in log space for tiny rates
            expected_idf = -float(poisson.logsf(0, f / n_docs)) / math.log(2)
            return idf - expected_idf

        return score


# =============================================================================
# Context algorithms
# =============================================================================


@register_algorithm("ChiSquare")
class ChiSquare(BaseAlgorithm):
    """
    Chi-square of document co-occurrence with the most frequent candidates.

    Args:
        freq_term_cutoff_percentage: Share of candidates (by frequency) that
            form the frequent set, in (0, 1].
        robust: Drop the largest single contribution, so one dominant
            co-occurring term cannot decide the score.
    """

    def __init__(self, freq_term_cutoff_percentage: float = 0.3, robust: bool = True):
        if not 0.0 < freq_term_cutoff_percentage <= 1.0:
            raise ConfigurationError(
                "chisquare.freq_term_cutoff_percentage",
                f"must be in (0, 1], got {freq_term_cutoff_percentage!r}",
            )
        self.freq_term_cutoff_percentage = freq_term_cutoff_percentage
        self.robust = robust

    def _bind(self, index, candidates, reference):
        context = build_context_matrix(index, candidates)
        scores = chi_square_scores(context, self.freq_term_cutoff_percentage, self.robust)
        by_key = {term.key: float(value) for term, value in zip(candidates, scores)}
        return lambda term: by_key.get(term.key, 0.0)

    def get_config(self) -> dict[str, Any]:
        return {"freq_term_cutoff_percentage": self.freq_term_cutoff_percentage, "robust": self.robust}


@register_algorithm("CValue")
class CValue(BaseAlgorithm):
    """
    C-value: rewards multi-word candidates that occur independently of the
    longer candidates containing them.

        n = 1:               f(a)
        n > 1, not nested:   log2(n) * f(a)
        n > 1, nested:       log2(n) * (f(a) - sum f(b) / |T_a|)

    T_a is the set of longer candidates containing a.
    """

    def _bind(self, index, candidates, reference):
        candidate_keys = {term.key for term in candidates}

        def score(term: Term) -> float:
            f = index.total_frequency(term)
            n = term.word_count
            if n <= 1:
                return float(f)
            containers = [
                ttf for key, ttf in index.containing_terms(term).items() if key in candidate_keys
            ]
            if not containers:
                return math.log2(n) * f
            return math.log2(n) * (f - sum(containers) / len(containers))

        return score


@register_algorithm("RAKE")
class RAKE(BaseAlgorithm):
    """
    Rapid Automatic Keyword Extraction over the candidate phrases.

    Score = sum over the phrase's words of deg(w) / freq(w), where the
    degree comes from the word co-occurrence graph of all candidates.
    """

    def _bind(self, index, candidates, reference):
        graph = build_word_graph([(term.words, index.total_frequency(term)) for term in candidates])

        def score(term: Term) -> float:
            return float(sum(graph.word_score(word) for word in term.words))

        return score


# =============================================================================
# Contrastive algorithms (need a reference corpus)
# =============================================================================


def _domain_relative_frequency(index: TermStatisticsIndex) -> Callable[[str], float]:
    total = index.total_words

    def relative(word: str) -> float:
        return index.word_frequency(word) / total if total > 0 else 0.0

    return relative


def _background(reference: ReferenceStatisticsProvider) -> Callable[[str], float]:
    """Reference relative frequency, floored so ratios and logs stay finite."""

    def relative(word: str) -> float:
        return max(reference.relative_frequency(word), _LOG_FLOOR)

    return relative


def _term_cohesion(index: TermStatisticsIndex, term: Term) -> float:
    """n * f * log10(f) / sum of the term's word frequencies."""
    f = index.total_frequency(term)
    word_total = sum(index.word_frequency(word) for word in term.words)
    if f <= 0 or word_total <= 0:
        return 0.0
    return term.word_count * f * math.log10(f) / word_total


@register_algorithm("Weirdness")
class Weirdness(BaseAlgorithm):
    """Mean over words of domain relative frequency / reference relative frequency."""

    requires_reference = True

    def _bind(self, index, candidates, reference):
        rel_d = _domain_relative_frequency(index)
        rel_r = _background(reference)

        def score(term: Term) -> float:
            words = term.words
            if index.total_words == 0 or not words:
                return 0.0
            return sum(rel_d(word) / rel_r(word) for word in words) / len(words)

        return score


@register_algorithm("GlossEx")
class GlossEx(BaseAlgorithm):
    """
    alpha * domain specificity + beta * term cohesion.

    Domain specificity is the mean log ratio of domain to reference relative
    frequency over the term's words; cohesion is n * f * log10(f) divided by
    the summed frequencies of the words.

    Args:
        alpha: Weight of the domain specificity component.
        beta: Weight of the cohesion component.
    """

    requires_reference = True

    def __init__(self, alpha: float = 0.2, beta: float = 0.8):
        for key, value in (("glossex.alpha", alpha), ("glossex.beta", beta)):
            if value < 0:
                raise ConfigurationError(key, f"must be >= 0, got {value!r}")
        self.alpha = alpha
        self.beta = beta

    def _bind(self, index, candidates, reference):
        rel_d = _domain_relative_frequency(index)
        rel_r = _background(reference)

        def score(term: Term) -> float:
            words = term.words
            if not words:
                return 0.0
            specificity = sum(
                math.log(max(rel_d(word), _LOG_FLOOR) / rel_r(word)) for word in words
            ) / len(words)
            return self.alpha * specificity + self.beta * _term_cohesion(index, term)

        return score

    def get_config(self) -> dict[str, Any]:
        return {"alpha": self.alpha, "beta": self.beta}


@register_algorithm("TermEx")
class TermEx(BaseAlgorithm):
    """
    alpha * domain pertinence + beta * domain consensus + zeta * lexical cohesion.

    Domain pertinence averages rel_d / max(rel_d, rel_r) over the words.
    Domain consensus is the entropy (bits) of the term's distribution over
    documents; log2(df) stands in when only aggregate counts are known.
    Lexical cohesion is the GlossEx cohesion.
    """

    requires_reference = True

    def __init__(self, alpha: float = 1 / 3, beta: float = 1 / 3, zeta: float = 1 / 3):
        for key, value in (("termex.alpha", alpha), ("termex.beta", beta), ("termex.zeta", zeta)):
            if value < 0:
                raise ConfigurationError(key, f"must be >= 0, got {value!r}")
        self.alpha = alpha
        self.beta = beta
        self.zeta = zeta

    def _bind(self, index, candidates, reference):
        rel_d = _domain_relative_frequency(index)
        rel_r = _background(reference)

        def consensus(term: Term) -> float:
            counts = np.fromiter(index.document_distribution(term).values(), dtype=np.float64)
            if counts.size == 0:
                df = index.document_frequency(term)
                return math.log2(df) if df > 0 else 0.0
            p = counts / counts.sum()
            return float(-(p * np.log2(p)).sum())

        def score(term: Term) -> float:
            words = term.words
            if not words:
                return 0.0
            pertinence = 0.0
            for word in words:
                domain, background = rel_d(word), rel_r(word)
                pertinence += domain / max(domain, background)
            pertinence /= len(words)
            return (
                self.alpha * pertinence
                + self.beta * consensus(term)
                + self.zeta * _term_cohesion(index, term)
            )

        return score

    def get_config(self) -> dict[str, Any]:
        return {"alpha": self.alpha, "beta": self.beta, "zeta": self.zeta}
