"""
Running scoring algorithms end to end.

This module turns an algorithm plus an index into a RankedTermList:
1. Pre-filter - drop low-frequency candidates
2. Scoring - one vectorized array of scores
3. Stable sort - np.argsort(kind="stable") keeps extraction order on ties
4. Cutoff - keep the leading fraction

Several algorithms can be run against the same (read-only) index at once
with batch_rank_parallel.

Usage:
    from term_ranking.ranking import rank_terms, batch_rank_parallel
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Iterable

import numpy as np

from term_ranking.algorithms import ScoringAlgorithm, create_algorithm
from term_ranking.errors import ConfigurationError, TermRankingError
from term_ranking.filters import CandidateFilterPipeline
from term_ranking.logging_utils import get_logger
from term_ranking.types import RankedTermList, Term

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from term_ranking.config import RankingConfig
    from term_ranking.corpus import ReferenceStatisticsProvider, TermStatisticsIndex

logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================

# Default number of workers for running algorithms side by side
DEFAULT_NUM_WORKERS = 4

# Score given to NaN results so they sort last
NAN_SCORE_FLOOR = -np.inf


# =============================================================================
# Sorting
# =============================================================================


def sort_scores(scores: NDArray[np.float64]) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """
    Sort scores in descending order, ties kept in input order.

    Returns:
        (sorted_indices, sorted_scores)
    """
    sorted_indices = np.argsort(-scores, kind="stable").astype(np.int64)
    return sorted_indices, scores[sorted_indices]


def _sanitize(scores: NDArray[np.float64], algorithm: str) -> NDArray[np.float64]:
    nan_mask = np.isnan(scores)
    if nan_mask.any():
        logger.warning("%s produced %d NaN scores; ranking them last", algorithm, int(nan_mask.sum()))
        scores = np.where(nan_mask, NAN_SCORE_FLOOR, scores)
    return scores


# =============================================================================
# Single algorithm
# =============================================================================


def rank_terms(
    algorithm: ScoringAlgorithm | str,
    index: TermStatisticsIndex,
    reference: ReferenceStatisticsProvider | None = None,
    *,
    pipeline: CandidateFilterPipeline | None = None,
    config: RankingConfig | None = None,
) -> RankedTermList:
    """
    Score, sort and cut off the candidates of *index*.

    Args:
        algorithm: An algorithm instance or a registered name.
        index: Corpus statistics.
        reference: Reference corpus (required by contrastive algorithms).
        pipeline: Filtering policies; built from *config* when omitted.
        config: Source of algorithm tunables and filter settings.

    Raises:
        ConfigurationError: Unknown algorithm, bad tunables or a missing
            reference corpus.
        InputDataError: The index lacks statistics the algorithm needs.
    """
    if isinstance(algorithm, str):
        algorithm = create_algorithm(algorithm, config)
    if pipeline is None:
        pipeline = CandidateFilterPipeline.from_config(config) if config is not None else CandidateFilterPipeline()

    start = time.perf_counter()
    candidates: list[Term] = pipeline.prefilter(index)
    score = algorithm.bind(index, candidates, reference)
    scores = _sanitize(np.array([score(term) for term in candidates], dtype=np.float64), algorithm.name)

    order, sorted_scores = sort_scores(scores)
    ranked = RankedTermList.from_sorted([candidates[i] for i in order], sorted_scores, algorithm.name)
    ranked = pipeline.cutoff(ranked)

    logger.info(
        "%s ranked %d candidates (%d after pre-filter, %d kept) in %.3fs",
        algorithm.name,
        len(index),
        len(candidates),
        len(ranked),
        time.perf_counter() - start,
    )
    return ranked


# =============================================================================
# Parallel batch over algorithms
# =============================================================================


def batch_rank_parallel(
    algorithms: Iterable[ScoringAlgorithm | str],
    index: TermStatisticsIndex,
    reference: ReferenceStatisticsProvider | None = None,
    *,
    pipeline: CandidateFilterPipeline | None = None,
    config: RankingConfig | None = None,
    num_workers: int | None = None,
) -> dict[str, RankedTermList | TermRankingError]:
    """
    Run several algorithms against the same index.

    A TermRankingError in one algorithm is logged and returned in place of
    its ranking; the others complete normally.

    Args:
        algorithms: Instances or registered names.
        num_workers: Thread count (defaults to ``config.workers`` or
            DEFAULT_NUM_WORKERS).

    Returns:
        Registered algorithm name -> ranked list or the error it raised, in
        input order. A name that cannot be resolved keys its error under the
        spelling given.

    Raises:
        ConfigurationError: Two entries resolve to the same algorithm.
    """
    resolved: dict[str, ScoringAlgorithm | TermRankingError] = {}
    for algorithm in algorithms:
        if isinstance(algorithm, str):
            try:
                algorithm = create_algorithm(algorithm, config)
            except TermRankingError as exc:
                if algorithm in resolved:
                    raise ConfigurationError("algorithms", f"duplicate algorithm '{algorithm}'") from exc
                logger.error("%s failed: %s", algorithm, exc)
                resolved[algorithm] = exc
                continue
        if algorithm.name in resolved:
            raise ConfigurationError("algorithms", f"duplicate algorithm '{algorithm.name}'")
        resolved[algorithm.name] = algorithm

    if num_workers is None:
        num_workers = config.workers if config is not None else DEFAULT_NUM_WORKERS

    def run_one(algorithm: ScoringAlgorithm | TermRankingError) -> RankedTermList | TermRankingError:
        if isinstance(algorithm, TermRankingError):
            return algorithm
        try:
            return rank_terms(algorithm, index, reference, pipeline=pipeline, config=config)
        except TermRankingError as exc:
            logger.error("%s failed: %s", algorithm.name, exc)
            return exc

    entries = list(resolved.values())
    if num_workers <= 1 or len(entries) <= 1:
        results = [run_one(entry) for entry in entries]
    else:
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            results = list(executor.map(run_one, entries))

    return dict(zip(resolved, results))


def failed(results: dict[str, RankedTermList | TermRankingError]) -> list[str]:
    """Names of the algorithms whose batch entry is an error."""
    return [name for name, result in results.items() if isinstance(result, TermRankingError)]


def ranked_only(results: dict[str, RankedTermList | TermRankingError]) -> dict[str, RankedTermList]:
    return {name: result for name, result in results.items() if isinstance(result, RankedTermList)}
