"""
Evaluation of a ranked term list against a gold-standard term list.

Matching is a single pass over the ranked list in rank order. A set of
already-matched gold entries guarantees that each gold term satisfies at
most one candidate, so the resulting hit array never double counts.
precision@K for every K is read off one cumulative sum of that array.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from term_ranking.config import EvaluationConfig, check_k_values
from term_ranking.logging_utils import get_logger
from term_ranking.metrics import precision_at_ks, recall
from term_ranking.normalization import normalizers_for
from term_ranking.types import RankedTermList, ScoreReport

logger = get_logger(__name__)


def _is_partial_match(candidate: str, gold: str) -> bool:
    return candidate in gold or gold in candidate


class Scorer:
    """
    Args:
        config: Normalization, matching and K settings. Defaults to
            EvaluationConfig().
    """

    def __init__(self, config: EvaluationConfig | None = None):
        self.config = config or EvaluationConfig()
        self._normalize_candidate, self._normalize_gold = normalizers_for(self.config)

    def gold_set(self, gold: Iterable[str]) -> list[str]:
        """Normalized gold entries, de-duplicated, in first-seen order."""
        seen: dict[str, None] = {}
        for entry in gold:
            normalized = self._normalize_gold(entry)
            if normalized:
                seen.setdefault(normalized, None)
        return list(seen)

    def candidates(self, ranked: RankedTermList | Sequence[str]) -> list[str]:
        """Normalized candidate strings in rank order."""
        surfaces = [entry.term.surface for entry in ranked] if isinstance(ranked, RankedTermList) else list(ranked)
        return [self._normalize_candidate(surface) for surface in surfaces]

    def hits(self, candidates: Sequence[str], gold: Sequence[str]) -> np.ndarray:
        """
        Boolean hit array over *candidates* (already normalized).

        A candidate is a hit when it matches a gold entry that no earlier
        candidate has claimed.
        """
        gold_lookup = set(gold)
        matched: set[str] = set()
        hits = np.zeros(len(candidates), dtype=bool)
        # Unclaimed gold entries in order, scanned only in partial mode
        unclaimed = list(gold)

        for position, candidate in enumerate(candidates):
            if not candidate:
                continue
            if candidate in gold_lookup and candidate not in matched:
                claim = candidate
            elif self.config.partial_match:
                claim = next((g for g in unclaimed if _is_partial_match(candidate, g)), None)
            else:
                claim = None

            if claim is not None:
                hits[position] = True
                matched.add(claim)
                if self.config.partial_match:
                    unclaimed.remove(claim)
        return hits

    def matched_gold(self, candidates: Sequence[str], gold: Sequence[str]) -> set[str]:
        """Gold entries matched by at least one candidate anywhere in the list."""
        present = {candidate for candidate in candidates if candidate}
        if not self.config.partial_match:
            return present.intersection(gold)
        return {g for g in gold if g in present or any(_is_partial_match(c, g) for c in present)}

    def evaluate(
        self,
        ranked: RankedTermList | Sequence[str],
        gold: Iterable[str],
        k_values: Iterable[int] | None = None,
    ) -> ScoreReport:
        """
        Precision@K for every K and overall recall.

        Args:
            ranked: Ranked list (or plain strings in rank order).
            gold: Gold-standard terms.
            k_values: Overrides ``config.k_values``.

        Raises:
            ConfigurationError: A K value is not a positive integer.
        """
        ks = tuple(self.config.k_values if k_values is None else k_values)
        check_k_values(ks)

        candidates = self.candidates(ranked)
        gold_terms = self.gold_set(gold)

        hits = self.hits(candidates, gold_terms)
        metrics = {f"precision@{k}": value for k, value in precision_at_ks(hits, ks).items()}
        metrics["recall"] = recall(len(self.matched_gold(candidates, gold_terms)), len(gold_terms))

        digits = self.config.precision_digits
        if digits is not None:
            metrics = {name: round(value, digits) for name, value in metrics.items()}

        parameters = self.config.to_params()
        parameters["k_values"] = list(ks)
        parameters["ranked_size"] = len(candidates)
        parameters["gold_size"] = len(gold_terms)
        if isinstance(ranked, RankedTermList):
            parameters["algorithm"] = ranked.algorithm

        logger.debug(
            "Evaluated %d candidates against %d gold terms: %d hits",
            len(candidates),
            len(gold_terms),
            int(hits.sum()),
        )
        return ScoreReport(metrics, parameters)


def evaluate(
    ranked: RankedTermList | Sequence[str],
    gold: Iterable[str],
    config: EvaluationConfig | None = None,
) -> ScoreReport:
    """Shortcut for ``Scorer(config).evaluate(ranked, gold)``."""
    return Scorer(config).evaluate(ranked, gold)
