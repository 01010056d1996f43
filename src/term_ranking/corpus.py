"""
Corpus-side statistics: the candidate term index and the reference corpus.

TermStatisticsIndex is built once per corpus in a single bulk pass and is
read-only afterwards, so any number of algorithms may query it
concurrently. ReferenceStatistics holds background-corpus frequencies for
the contrastive algorithms.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Protocol, Sequence

from term_ranking.errors import InputDataError, NotFoundError
from term_ranking.logging_utils import get_logger
from term_ranking.types import Term, TermStatistics, normalize_key

logger = get_logger(__name__)


def _key(term: str | Term) -> str:
    return term.key if isinstance(term, Term) else normalize_key(term)


# =============================================================================
# Corpus documents
# =============================================================================


@dataclass(frozen=True)
class CorpusDocument:
    """
    One document, already reduced to its candidate terms.

    Args:
        doc_id: Unique document identifier.
        candidates: Either the sequence of candidate occurrences (one entry
            per occurrence, surface form) or a mapping surface -> count.
        token_count: Number of word tokens in the document, when known.
    """

    doc_id: str
    candidates: Sequence[str] | Mapping[str, int] = field(default_factory=tuple)
    token_count: int | None = None

    def __post_init__(self):
        token_count = self.token_count
        if token_count is not None and (isinstance(token_count, bool) or not isinstance(token_count, int)):
            raise InputDataError(f"token count in document '{self.doc_id}' must be an integer, got {token_count!r}")
        if token_count is not None and token_count < 0:
            raise InputDataError(f"negative token count in document '{self.doc_id}'")
        self.candidate_counts()

    def candidate_counts(self) -> list[tuple[str, int]]:
        """(surface, count) pairs in first-occurrence order."""
        surfaces = list(self.candidates)
        for surface in surfaces:
            if not isinstance(surface, str):
                raise InputDataError(f"candidate {surface!r} in document '{self.doc_id}' is not a string")
        if isinstance(self.candidates, Mapping):
            pairs = [(surface, self.candidates[surface]) for surface in surfaces]
        else:
            pairs = list(Counter(surfaces).items())
        for surface, count in pairs:
            if isinstance(count, bool) or not isinstance(count, int):
                raise InputDataError(f"count for '{surface}' in document '{self.doc_id}' must be an integer, got {count!r}")
            if count < 0:
                raise InputDataError(f"negative count {count} for '{surface}' in document '{self.doc_id}'")
        return pairs


@dataclass
class _PartialCounts:
    """Accumulated counts for one chunk of documents."""

    order: list[str] = field(default_factory=list)
    surfaces: dict[str, str] = field(default_factory=dict)
    distributions: dict[str, dict[str, int]] = field(default_factory=dict)
    document_lengths: dict[str, int] = field(default_factory=dict)
    token_counts: list[int | None] = field(default_factory=list)

    def merge(self, other: _PartialCounts) -> None:
        for key in other.order:
            if key not in self.distributions:
                self.order.append(key)
                self.surfaces[key] = other.surfaces[key]
                self.distributions[key] = {}
            target = self.distributions[key]
            for doc_id, count in other.distributions[key].items():
                target[doc_id] = target.get(doc_id, 0) + count
        self.document_lengths.update(other.document_lengths)
        self.token_counts.extend(other.token_counts)


def _accumulate(documents: Sequence[CorpusDocument]) -> _PartialCounts:
    partial = _PartialCounts()
    for document in documents:
        length = 0
        for surface, count in document.candidate_counts():
            if count == 0:
                continue
            key = normalize_key(surface)
            if not key:
                raise InputDataError(f"empty candidate term in document '{document.doc_id}'")
            if key not in partial.distributions:
                partial.order.append(key)
                partial.surfaces[key] = surface
                partial.distributions[key] = {}
            per_doc = partial.distributions[key]
            per_doc[document.doc_id] = per_doc.get(document.doc_id, 0) + count
            length += count * len(key.split())
        token_count = document.token_count
        partial.document_lengths[document.doc_id] = token_count if token_count is not None else length
        partial.token_counts.append(token_count)
    return partial


def _chunk(items: Sequence, parts: int) -> list[Sequence]:
    size = max(1, -(-len(items) // max(parts, 1)))
    return [items[i : i + size] for i in range(0, len(items), size)]


# =============================================================================
# Term statistics index
# =============================================================================


class TermStatisticsIndex:
    """
    Read-only per-term corpus statistics.

    Args:
        records: One TermStatistics per candidate. Their ``containing`` maps
            are recomputed from the candidate set.
        corpus_size: Number of documents N.
        total_words: Word tokens in the corpus. Defaults to the sum of
            candidate word frequencies.
        document_lengths: Length of every document (doc id -> words). When
            omitted it is derived from the per-document distributions.

    Raises:
        InputDataError: A record violates ``0 <= df <= min(ttf, N)``, its
            per-document distribution disagrees with its totals, or two
            records share a normalized key.
    """

    def __init__(
        self,
        records: Iterable[TermStatistics],
        corpus_size: int,
        total_words: int | None = None,
        document_lengths: Mapping[str, int] | None = None,
    ):
        if corpus_size < 0:
            raise InputDataError(f"corpus size must be >= 0, got {corpus_size}")
        if total_words is not None and total_words < 0:
            raise InputDataError(f"total word count must be >= 0, got {total_words}")

        validated: dict[str, TermStatistics] = {}
        for record in records:
            _validate_record(record, corpus_size)
            if record.term.key in validated:
                raise InputDataError(f"duplicate candidate term '{record.term.key}'")
            validated[record.term.key] = record

        containing = _containment(validated)
        self._stats: Mapping[str, TermStatistics] = MappingProxyType(
            {
                key: replace(
                    record,
                    document_frequencies=MappingProxyType(dict(record.document_frequencies)),
                    containing=MappingProxyType(containing.get(key, {})),
                )
                for key, record in validated.items()
            }
        )
        self._corpus_size = corpus_size
        self._total_words = total_words

        if document_lengths is None:
            lengths: dict[str, int] = {}
            for record in validated.values():
                for doc_id, count in record.document_frequencies.items():
                    lengths[doc_id] = lengths.get(doc_id, 0) + count * record.term.word_count
            document_lengths = lengths
        self._document_lengths: Mapping[str, int] = MappingProxyType(dict(document_lengths))

    @classmethod
    def from_documents(cls, documents: Iterable[CorpusDocument], workers: int = 1) -> TermStatisticsIndex:
        """
        Build the index in one pass over the corpus.

        Documents are split into contiguous chunks; with ``workers > 1`` the
        chunks are counted in a thread pool. Partial counts are merged in
        corpus order, so the result never depends on scheduling.
        """
        documents = list(documents)
        ids = [document.doc_id for document in documents]
        if len(set(ids)) != len(ids):
            duplicate = next(doc_id for doc_id, n in Counter(ids).items() if n > 1)
            raise InputDataError(f"duplicate document id '{duplicate}'")

        chunks = _chunk(documents, workers)
        if workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                partials = list(executor.map(_accumulate, chunks))
        else:
            partials = [_accumulate(chunk) for chunk in chunks]

        merged = _PartialCounts()
        for partial in partials:
            merged.merge(partial)

        records = []
        for key in merged.order:
            distribution = merged.distributions[key]
            records.append(
                TermStatistics(
                    term=Term(merged.surfaces[key]),
                    total_frequency=sum(distribution.values()),
                    document_frequency=len(distribution),
                    document_frequencies=distribution,
                )
            )

        token_counts = merged.token_counts
        total_words = (
            sum(token_counts) if token_counts and all(n is not None for n in token_counts) else None
        )
        index = cls(records, len(documents), total_words, merged.document_lengths)
        logger.info(
            "Built term statistics index: %d candidates from %d documents (workers=%d)",
            len(index),
            index.corpus_size,
            workers,
        )
        return index

    @classmethod
    def from_counts(
        cls,
        counts: Mapping[str, tuple[int, int]],
        corpus_size: int,
        total_words: int | None = None,
    ) -> TermStatisticsIndex:
        """Build from aggregated ``term -> (total_frequency, document_frequency)``."""
        records = [
            TermStatistics(Term(surface), total_frequency=ttf, document_frequency=df)
            for surface, (ttf, df) in counts.items()
        ]
        return cls(records, corpus_size, total_words)

    # -------------------------------------------------------------------------
    # Collection protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._stats)

    def __contains__(self, term: object) -> bool:
        if not isinstance(term, (str, Term)):
            return False
        return _key(term) in self._stats

    def __iter__(self) -> Iterator[Term]:
        return iter(self.terms)

    def __repr__(self) -> str:
        return f"TermStatisticsIndex(terms={len(self)}, corpus_size={self._corpus_size})"

    # -------------------------------------------------------------------------
    # Corpus-level statistics
    # -------------------------------------------------------------------------

    @property
    def corpus_size(self) -> int:
        return self._corpus_size

    @cached_property
    def terms(self) -> tuple[Term, ...]:
        """Candidates in first-seen order."""
        return tuple(record.term for record in self._stats.values())

    @cached_property
    def word_frequencies(self) -> Mapping[str, int]:
        """Word -> sum over candidates of total frequency x occurrences in the candidate."""
        frequencies: dict[str, int] = {}
        for record in self._stats.values():
            for word in record.term.words:
                frequencies[word] = frequencies.get(word, 0) + record.total_frequency
        return MappingProxyType(frequencies)

    @cached_property
    def total_words(self) -> int:
        if self._total_words is not None:
            return self._total_words
        return sum(self.word_frequencies.values())

    @property
    def document_lengths(self) -> Mapping[str, int]:
        return self._document_lengths

    @cached_property
    def has_document_frequencies(self) -> bool:
        """True when every occurring candidate carries its per-document counts."""
        return all(
            record.document_frequencies or record.total_frequency == 0 for record in self._stats.values()
        )

    # -------------------------------------------------------------------------
    # Per-term queries
    # -------------------------------------------------------------------------

    def lookup(self, term: str | Term) -> TermStatistics:
        """
        Full statistics record of *term*.

        Raises:
            NotFoundError: The term is not a candidate of this corpus.
        """
        try:
            return self._stats[_key(term)]
        except KeyError:
            raise NotFoundError(str(term)) from None

    def get(self, term: str | Term) -> TermStatistics | None:
        return self._stats.get(_key(term))

    def total_frequency(self, term: str | Term) -> int:
        record = self._stats.get(_key(term))
        return record.total_frequency if record else 0

    def document_frequency(self, term: str | Term) -> int:
        record = self._stats.get(_key(term))
        return record.document_frequency if record else 0

    def containing_terms(self, term: str | Term) -> Mapping[str, int]:
        """Longer candidates containing *term*, with their total frequencies."""
        record = self._stats.get(_key(term))
        return record.containing if record else MappingProxyType({})

    def document_distribution(self, term: str | Term) -> Mapping[str, int]:
        record = self._stats.get(_key(term))
        return record.document_frequencies if record else MappingProxyType({})

    def word_frequency(self, word: str) -> int:
        return self.word_frequencies.get(word.lower(), 0)


def _validate_record(record: TermStatistics, corpus_size: int) -> None:
    key = record.term.key
    ttf, df = record.total_frequency, record.document_frequency
    if not key:
        raise InputDataError("empty candidate term")
    if ttf < 0 or df < 0:
        raise InputDataError(f"negative frequency for '{key}' (ttf={ttf}, df={df})")
    if df > ttf:
        raise InputDataError(f"document frequency {df} exceeds total frequency {ttf} for '{key}'")
    if df > corpus_size:
        raise InputDataError(f"document frequency {df} exceeds corpus size {corpus_size} for '{key}'")

    distribution = record.document_frequencies
    if distribution:
        if any(count <= 0 for count in distribution.values()):
            raise InputDataError(f"non-positive per-document count for '{key}'")
        if sum(distribution.values()) != ttf or len(distribution) != df:
            raise InputDataError(f"per-document counts for '{key}' disagree with ttf={ttf}, df={df}")


def _containment(stats: Mapping[str, TermStatistics]) -> dict[str, dict[str, int]]:
    """Map each candidate to the longer candidates it is a contiguous sub-sequence of."""
    containing: dict[str, dict[str, int]] = {}
    for key, record in stats.items():
        words = record.term.words
        n = len(words)
        subsequences = {
            " ".join(words[start : start + length])
            for length in range(1, n)
            for start in range(n - length + 1)
        }
        for sub in subsequences:
            if sub in stats:
                containing.setdefault(sub, {})[key] = record.total_frequency
    return containing


# =============================================================================
# Reference corpus
# =============================================================================


class ReferenceStatisticsProvider(Protocol):
    """
    What contrastive algorithms need from a background corpus.

    ``relative_frequency`` should be positive; a zero is floored by the
    algorithms that divide by it.
    """

    def frequency(self, term: str | Term) -> float: ...

    def relative_frequency(self, term: str | Term) -> float: ...


class ReferenceStatistics:
    """
    Term/word frequencies from a general-domain reference corpus.

    An entry absent from the reference is a normal state: its relative
    frequency falls back to ``unseen_probability``, which defaults to
    ``1 / (total + 1)``.

    Args:
        frequencies: Surface form -> frequency. Keys are normalized and
            duplicates summed.
        total: Size of the reference corpus; defaults to the sum of the
            frequencies.
        unseen_probability: Relative frequency used for unseen entries.
        source: Identifier of where the frequencies came from.
    """

    def __init__(
        self,
        frequencies: Mapping[str, float],
        total: float | None = None,
        unseen_probability: float | None = None,
        source: str | None = None,
    ):
        merged: dict[str, float] = {}
        for surface, frequency in frequencies.items():
            if frequency < 0:
                raise InputDataError(f"negative reference frequency for '{surface}'")
            key = normalize_key(surface)
            merged[key] = merged.get(key, 0) + frequency

        observed = sum(merged.values())
        if total is None:
            total = observed
        if total < 0:
            raise InputDataError(f"reference total must be >= 0, got {total}")

        if unseen_probability is None:
            unseen_probability = 1.0 / (total + 1.0)
        if not 0.0 < unseen_probability <= 1.0:
            raise InputDataError(f"unseen probability must be in (0, 1], got {unseen_probability}")

        self._frequencies: Mapping[str, float] = MappingProxyType(merged)
        self.total = total
        self.unseen_probability = unseen_probability
        self.source = source

    def __len__(self) -> int:
        return len(self._frequencies)

    def __contains__(self, term: object) -> bool:
        if not isinstance(term, (str, Term)):
            return False
        return self._frequencies.get(_key(term), 0) > 0

    def __repr__(self) -> str:
        return f"ReferenceStatistics(entries={len(self)}, total={self.total}, source={self.source!r})"

    def frequency(self, term: str | Term) -> float:
        return self._frequencies.get(_key(term), 0)

    def relative_frequency(self, term: str | Term) -> float:
        frequency = self._frequencies.get(_key(term), 0)
        if frequency <= 0 or self.total <= 0:
            return self.unseen_probability
        return frequency / self.total
