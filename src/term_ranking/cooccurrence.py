"""
Co-occurrence structures built once per algorithm run, before any term is
scored.

- WordGraph: undirected word co-occurrence graph over candidate phrases
  (RAKE).
- ContextMatrix: binary candidate x document incidence matrix and the
  chi-square statistic against a set of frequent candidates (ChiSquare).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

from term_ranking.errors import InputDataError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from term_ranking.corpus import TermStatisticsIndex
    from term_ranking.types import Term


# =============================================================================
# Word co-occurrence graph
# =============================================================================


@dataclass(frozen=True)
class WordGraph:
    """
    Symmetric word x word matrix; entry (i, j) sums the frequencies of the
    phrases in which words i and j co-occur (self pairs included).

    Attributes:
        vocabulary: Word -> row index.
        matrix: The co-occurrence matrix (V, V).
        degree: Row sums of ``matrix`` (V,).
        frequency: Per-word frequency, phrase frequency x occurrences (V,).
    """

    vocabulary: dict[str, int]
    matrix: csr_matrix
    degree: NDArray[np.float64]
    frequency: NDArray[np.float64]

    def word_score(self, word: str) -> float:
        """deg(w) / freq(w); 0 for unknown or zero-frequency words."""
        idx = self.vocabulary.get(word)
        if idx is None or self.frequency[idx] == 0:
            return 0.0
        return float(self.degree[idx] / self.frequency[idx])


def build_word_graph(phrases: Sequence[tuple[Sequence[str], int]]) -> WordGraph:
    """
    Build the co-occurrence graph.

    Args:
        phrases: (words, frequency) for every candidate phrase.
    """
    vocabulary: dict[str, int] = {}
    rows: list[int] = []
    cols: list[int] = []
    data: list[float] = []
    word_counts: list[float] = []

    for words, frequency in phrases:
        ids = []
        for word in words:
            if word not in vocabulary:
                vocabulary[word] = len(vocabulary)
                word_counts.append(0.0)
            ids.append(vocabulary[word])
        for i in ids:
            word_counts[i] += frequency
            for j in ids:
                rows.append(i)
                cols.append(j)
                data.append(frequency)

    size = len(vocabulary)
    # COO -> CSR sums duplicate (i, j) entries
    matrix = coo_matrix((data, (rows, cols)), shape=(size, size), dtype=np.float64).tocsr()
    degree = np.asarray(matrix.sum(axis=1), dtype=np.float64).ravel()
    return WordGraph(vocabulary, matrix, degree, np.array(word_counts, dtype=np.float64))


# =============================================================================
# Candidate x document context matrix
# =============================================================================


@dataclass(frozen=True)
class ContextMatrix:
    """
    Attributes:
        incidence: Binary candidate x document matrix (C, D).
        document_lengths: Length of every document column (D,).
        frequencies: Total frequency of every candidate row (C,).
    """

    incidence: csr_matrix
    document_lengths: NDArray[np.float64]
    frequencies: NDArray[np.float64]

    @property
    def context_lengths(self) -> NDArray[np.float64]:
        """n_w: summed length of the documents containing each candidate."""
        return np.asarray(self.incidence @ self.document_lengths, dtype=np.float64).ravel()

    def frequent_rows(self, fraction: float) -> NDArray[np.int64]:
        """Rows of the top ceil(fraction x C) candidates by frequency (stable)."""
        n_rows = self.incidence.shape[0]
        size = min(n_rows, int(np.ceil(fraction * n_rows - 1e-9)))
        return np.argsort(-self.frequencies, kind="stable")[:size].astype(np.int64)


def build_context_matrix(index: TermStatisticsIndex, candidates: Sequence[Term]) -> ContextMatrix:
    """
    Raises:
        InputDataError: The index only holds aggregated counts.
    """
    if not index.has_document_frequencies:
        raise InputDataError("ChiSquare needs per-document term frequencies")

    columns = {doc_id: col for col, doc_id in enumerate(index.document_lengths)}
    rows: list[int] = []
    cols: list[int] = []
    for row, term in enumerate(candidates):
        for doc_id in index.document_distribution(term):
            if doc_id not in columns:
                columns[doc_id] = len(columns)
            rows.append(row)
            cols.append(columns[doc_id])

    lengths = np.zeros(len(columns), dtype=np.float64)
    for doc_id, col in columns.items():
        lengths[col] = index.document_lengths.get(doc_id, 0)

    incidence = coo_matrix(
        (np.ones(len(rows), dtype=np.float64), (rows, cols)),
        shape=(len(candidates), len(columns)),
    ).tocsr()
    frequencies = np.array([index.total_frequency(term) for term in candidates], dtype=np.float64)
    return ContextMatrix(incidence, lengths, frequencies)


def chi_square_scores(context: ContextMatrix, frequent_fraction: float, robust: bool = True) -> NDArray[np.float64]:
    """
    Chi-square of every candidate against the frequent candidates G.

        chi2(w) = sum over g in G, g != w of (freq(w, g) - n_w p_g)^2 / (n_w p_g)

    freq(w, g) counts documents shared by w and g, n_w is the summed length
    of the documents containing w and p_g = n_g / total length. A zero
    expected value contributes 0. The robust variant drops the largest
    single contribution.

    Only the non-zero co-occurrences are visited: every g with
    freq(w, g) = 0 contributes exactly n_w p_g, so those are summed in bulk.
    """
    n_rows = context.incidence.shape[0]
    scores = np.zeros(n_rows, dtype=np.float64)
    total_length = float(context.document_lengths.sum())
    if n_rows == 0 or total_length <= 0:
        return scores

    n_w = context.context_lengths
    frequent = context.frequent_rows(frequent_fraction)
    if frequent.size == 0:
        return scores

    p_g = n_w[frequent] / total_length
    p_total = float(p_g.sum())
    frequent_position = {int(row): pos for pos, row in enumerate(frequent)}
    # Frequent positions by descending probability, for the robust maximum
    by_probability = np.argsort(-p_g, kind="stable")

    # (C, |G|) shared-document counts
    shared = (context.incidence @ context.incidence[frequent].T).tocsr()

    for w in range(n_rows):
        if n_w[w] <= 0:
            continue
        own = frequent_position.get(w)

        start, end = shared.indptr[w], shared.indptr[w + 1]
        positions = shared.indices[start:end]
        observed = shared.data[start:end]
        if own is not None:
            keep = positions != own
            positions, observed = positions[keep], observed[keep]

        expected = n_w[w] * p_g[positions]
        with np.errstate(divide="ignore", invalid="ignore"):
            contributions = np.where(expected > 0, (observed - expected) ** 2 / expected, 0.0)

        p_rest = p_total - float(p_g[positions].sum()) - (float(p_g[own]) if own is not None else 0.0)
        zero_sum = n_w[w] * max(p_rest, 0.0)
        total = float(contributions.sum()) + zero_sum

        if robust:
            largest = float(contributions.max()) if contributions.size else 0.0
            seen = set(positions.tolist())
            if own is not None:
                seen.add(own)
            for pos in by_probability:
                if int(pos) not in seen:
                    largest = max(largest, float(n_w[w] * p_g[pos]))
                    break
            total -= largest

        scores[w] = max(total, 0.0)
    return scores
