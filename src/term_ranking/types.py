"""
Core value types shared by the index, the algorithms and the scorer.

All of them are immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Sequence, overload

import numpy as np

from term_ranking.errors import InputDataError


def normalize_key(text: str) -> str:
    """Identity form of a term: lower-cased, whitespace collapsed."""
    return " ".join(text.lower().split())


@dataclass(frozen=True)
class Term:
    """
    A candidate term.

    ``surface`` keeps the case of the first extraction; equality and hashing
    use ``key`` only, so "Protein Kinase" and "protein  kinase" are one term.
    """

    surface: str = field(compare=False)
    key: str = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "key", normalize_key(self.surface))

    @classmethod
    def of(cls, value: str | Term) -> Term:
        return value if isinstance(value, Term) else cls(value)

    @property
    def words(self) -> tuple[str, ...]:
        return tuple(self.key.split())

    @property
    def word_count(self) -> int:
        return len(self.words)

    def __str__(self) -> str:
        return self.surface


@dataclass(frozen=True, eq=False)
class TermStatistics:
    """
    Corpus statistics of one candidate term.

    Attributes:
        term: The candidate.
        total_frequency: Occurrences across the whole corpus.
        document_frequency: Number of documents containing the term.
        document_frequencies: Per-document counts (doc id -> count). Empty
            when the index was built from aggregated counts.
        containing: Key of every longer candidate that contains this term as
            a contiguous word sub-sequence, mapped to its total frequency.
    """

    term: Term
    total_frequency: int
    document_frequency: int
    document_frequencies: Mapping[str, int] = field(default_factory=dict)
    containing: Mapping[str, int] = field(default_factory=dict)

    @property
    def is_nested(self) -> bool:
        return bool(self.containing)


@dataclass(frozen=True)
class ScoredTerm:
    term: Term
    score: float
    rank: int


class RankedTermList(Sequence[ScoredTerm]):
    """
    Candidates in descending score order, produced by one algorithm run.

    Construction checks that ranks run 1..n without gaps, that scores never
    increase with rank and that no two entries share a normalized key.
    """

    def __init__(self, entries: Iterable[ScoredTerm], algorithm: str = ""):
        self._entries: tuple[ScoredTerm, ...] = tuple(entries)
        self.algorithm = algorithm
        self._validate()

    @classmethod
    def from_sorted(
        cls, terms: Sequence[Term], scores: Sequence[float], algorithm: str = ""
    ) -> RankedTermList:
        """Assign ranks 1..n to terms already in descending score order."""
        return cls(
            (ScoredTerm(term, float(score), rank) for rank, (term, score) in enumerate(zip(terms, scores), start=1)),
            algorithm,
        )

    def _validate(self) -> None:
        seen: set[str] = set()
        previous = float("inf")
        for expected_rank, entry in enumerate(self._entries, start=1):
            if entry.rank != expected_rank:
                raise InputDataError(
                    f"rank {entry.rank} at position {expected_rank} in ranked list '{self.algorithm}'"
                )
            if entry.score > previous:
                raise InputDataError(
                    f"score increases at rank {entry.rank} in ranked list '{self.algorithm}'"
                )
            if entry.term.key in seen:
                raise InputDataError(
                    f"duplicate term '{entry.term.key}' in ranked list '{self.algorithm}'"
                )
            seen.add(entry.term.key)
            previous = entry.score

    @overload
    def __getitem__(self, index: int) -> ScoredTerm: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[ScoredTerm]: ...

    def __getitem__(self, index):
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ScoredTerm]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RankedTermList):
            return NotImplemented
        return self.algorithm == other.algorithm and self._entries == other._entries

    def __hash__(self) -> int:
        return hash((self.algorithm, self._entries))

    def __repr__(self) -> str:
        return f"RankedTermList(algorithm={self.algorithm!r}, size={len(self)})"

    @property
    def terms(self) -> list[Term]:
        return [entry.term for entry in self._entries]

    @property
    def scores(self) -> np.ndarray:
        return np.array([entry.score for entry in self._entries], dtype=np.float64)

    def head(self, n: int) -> RankedTermList:
        """The leading *n* entries as a new list (ranks are unchanged)."""
        return RankedTermList(self._entries[: max(n, 0)], self.algorithm)


@dataclass(frozen=True)
class ScoreReport:
    """
    Evaluation result: metric name -> value, plus the parameters used.

    Metric names are ``"precision@K"`` for every requested K and ``"recall"``.
    """

    metrics: dict[str, float]
    parameters: dict[str, Any] = field(default_factory=dict)

    def precision(self, k: int) -> float:
        return self.metrics[f"precision@{k}"]

    @property
    def recall(self) -> float:
        return self.metrics["recall"]

    def to_dict(self) -> dict[str, Any]:
        return {"metrics": dict(self.metrics), "parameters": dict(self.parameters)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScoreReport:
        return cls(dict(data["metrics"]), dict(data.get("parameters", {})))
