"""
Candidate filtering applied around every algorithm run.

Two independent policies:
    - pre-filter: drop candidates whose total frequency is below a threshold
      before anything is scored;
    - cutoff: keep only the leading fraction of a ranked list.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from term_ranking.errors import ConfigurationError
from term_ranking.types import RankedTermList, Term

if TYPE_CHECKING:
    from term_ranking.config import RankingConfig
    from term_ranking.corpus import TermStatisticsIndex

# Absorbs binary floating error in n * fraction (0.29 * 100 == 28.999999999999996).
_CUTOFF_TOLERANCE = 1e-9


@dataclass(frozen=True)
class CandidateFilterPipeline:
    """
    Args:
        min_total_frequency: Candidates with a smaller total frequency are
            never scored. 0 disables the pre-filter.
        top_k_percent: Fraction of the ranked list to keep, in (0, 1].
            1.0 disables the cutoff.
    """

    min_total_frequency: int = 0
    top_k_percent: float = 1.0

    def __post_init__(self):
        if (
            isinstance(self.min_total_frequency, bool)
            or not isinstance(self.min_total_frequency, int)
            or self.min_total_frequency < 0
        ):
            raise ConfigurationError("prefilter.min_total_freq", f"must be an integer >= 0, got {self.min_total_frequency!r}")
        if not 0.0 < self.top_k_percent <= 1.0:
            raise ConfigurationError("cutoff.top_k_percent", f"must be in (0, 1], got {self.top_k_percent!r}")

    @classmethod
    def from_config(cls, config: RankingConfig) -> CandidateFilterPipeline:
        return cls(config.min_total_frequency, config.top_k_percent)

    def prefilter(self, index: TermStatisticsIndex) -> list[Term]:
        """Index candidates that survive the frequency threshold, in index order."""
        if self.min_total_frequency == 0:
            return list(index.terms)
        return [term for term in index.terms if index.total_frequency(term) >= self.min_total_frequency]

    def cutoff_size(self, n: int) -> int:
        """Number of entries kept from a ranked list of *n* entries."""
        if n == 0:
            return 0
        return max(1, math.floor(n * self.top_k_percent + _CUTOFF_TOLERANCE))

    def cutoff(self, ranked: RankedTermList) -> RankedTermList:
        keep = self.cutoff_size(len(ranked))
        if keep == len(ranked):
            return ranked
        return ranked.head(keep)
