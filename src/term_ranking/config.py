"""
Run configuration for ranking and evaluation.

Every invocation is parameterized by a flat mapping of named options.
Values may be native Python values or strings (``"2"``, ``"0.99999"``,
``"true"``), so parameter files and environment variables pass through
unchanged.

Centralized defaults live in the two schemas below. Each entry is
``key: (type, default)``; a default of None means "optional, absent".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from term_ranking.errors import ConfigurationError

DEFAULT_K_VALUES: tuple[int, ...] = (50, 100, 500, 1000, 3000, 5000, 8000, 10000)

RANKING_SCHEMA: dict[str, tuple[type, Any]] = {
    # Candidate filtering
    "prefilter.min_total_freq":              (int,   0),
    "cutoff.top_k_percent":                  (float, 1.0),

    # Reference corpus (contrastive algorithms)
    "reference.source":                      (str,   None),
    "reference.unseen_probability":          (float, None),

    # Algorithm tunables
    "chisquare.freq_term_cutoff_percentage": (float, 0.3),
    "chisquare.robust":                      (bool,  True),
    "glossex.alpha":                         (float, 0.2),
    "glossex.beta":                          (float, 0.8),
    "termex.alpha":                          (float, 1 / 3),
    "termex.beta":                           (float, 1 / 3),
    "termex.zeta":                           (float, 1 / 3),

    # Execution
    "workers":                               (int,   1),
}

EVALUATION_SCHEMA: dict[str, tuple[type, Any]] = {
    "eval.k_values":             (tuple, DEFAULT_K_VALUES),
    "eval.lowercase":            (bool,  True),
    "eval.ignore_symbols":       (bool,  True),
    "eval.ignore_digits":        (bool,  False),
    "eval.stem":                 (bool,  False),
    "eval.normalize_candidates": (bool,  True),
    "eval.normalize_gold":       (bool,  True),
    "eval.partial_match":        (bool,  False),
    "eval.precision_digits":     (int,   None),
}

def check_k_values(k_values) -> None:
    """Raise ConfigurationError unless every K is a positive integer."""
    for k in k_values:
        if isinstance(k, bool) or not isinstance(k, int):
            raise ConfigurationError("eval.k_values", f"K must be an integer, got {k!r}")
        if k <= 0:
            raise ConfigurationError("eval.k_values", f"K must be > 0, got {k}")


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def _coerce(key: str, value: Any, expected: type) -> Any:
    """Convert *value* to *expected*, raising ConfigurationError on mismatch."""
    if value is None:
        return None

    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
            return True
        if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
            return False
        raise ConfigurationError(key, f"expected a boolean, got {value!r}")

    if expected is int:
        if isinstance(value, bool):
            raise ConfigurationError(key, f"expected an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise ConfigurationError(key, f"expected an integer, got {value!r}") from None
        raise ConfigurationError(key, f"expected an integer, got {value!r}")

    if expected is float:
        if isinstance(value, bool):
            raise ConfigurationError(key, f"expected a number, got {value!r}")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ConfigurationError(key, f"expected a number, got {value!r}") from None
        raise ConfigurationError(key, f"expected a number, got {value!r}")

    if expected is str:
        return str(value)

    if expected is tuple:
        items = value.split(",") if isinstance(value, str) else list(value)
        return tuple(_coerce(key, item, int) for item in items if str(item).strip())

    raise ConfigurationError(key, f"unsupported schema type {expected!r}")


def _resolve(params: Mapping[str, Any], schema: dict[str, tuple[type, Any]]) -> dict[str, Any]:
    unknown = sorted(set(params) - set(schema))
    if unknown:
        raise ConfigurationError(unknown[0], "unknown parameter")

    resolved = {}
    for key, (expected, default) in schema.items():
        value = _coerce(key, params[key], expected) if key in params else None
        resolved[key] = default if value is None else value
    return resolved


@dataclass(frozen=True)
class RankingConfig:
    """
    Parameters for one ranking run.

    Attributes:
        min_total_frequency: Pre-filter threshold (0 disables).
        top_k_percent: Fraction of the ranked list to keep, in (0, 1].
        reference_source: Identifier of the reference frequency source.
        unseen_probability: Fallback relative frequency for terms absent
            from the reference corpus (None lets the provider decide).
        algorithm_params: Per-algorithm tunables keyed by lower-case
            algorithm name.
        workers: Thread count for index construction and batch ranking.
    """

    min_total_frequency: int = 0
    top_k_percent: float = 1.0
    reference_source: str | None = None
    unseen_probability: float | None = None
    algorithm_params: dict[str, dict[str, Any]] = field(default_factory=dict)
    workers: int = 1

    def __post_init__(self):
        if (
            isinstance(self.min_total_frequency, bool)
            or not isinstance(self.min_total_frequency, int)
            or self.min_total_frequency < 0
        ):
            raise ConfigurationError("prefilter.min_total_freq", f"must be an integer >= 0, got {self.min_total_frequency!r}")
        if not 0.0 < self.top_k_percent <= 1.0:
            raise ConfigurationError("cutoff.top_k_percent", "must be in (0, 1]")
        if self.unseen_probability is not None and not 0.0 < self.unseen_probability <= 1.0:
            raise ConfigurationError("reference.unseen_probability", "must be in (0, 1]")
        if self.workers < 1:
            raise ConfigurationError("workers", "must be >= 1")

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> RankingConfig:
        """Build a config from a flat ``key -> value`` mapping (see RANKING_SCHEMA)."""
        values = _resolve(params or {}, RANKING_SCHEMA)

        algorithm_params: dict[str, dict[str, Any]] = {}
        for key, value in values.items():
            prefix, _, option = key.partition(".")
            if prefix in ("chisquare", "glossex", "termex"):
                algorithm_params.setdefault(prefix, {})[option] = value

        return cls(
            min_total_frequency=values["prefilter.min_total_freq"],
            top_k_percent=values["cutoff.top_k_percent"],
            reference_source=values["reference.source"],
            unseen_probability=values["reference.unseen_probability"],
            algorithm_params=algorithm_params,
            workers=values["workers"],
        )

    def params_for(self, algorithm: str) -> dict[str, Any]:
        """Tunables for *algorithm* (empty if it has none)."""
        return dict(self.algorithm_params.get(algorithm.lower(), {}))


@dataclass(frozen=True)
class EvaluationConfig:
    """
    Parameters for one evaluation run.

    The two ``normalize_*`` flags decide which side of the comparison the
    normalization steps apply to; a side with its flag off is compared
    verbatim.
    """

    k_values: tuple[int, ...] = DEFAULT_K_VALUES
    lowercase: bool = True
    ignore_symbols: bool = True
    ignore_digits: bool = False
    stem: bool = False
    normalize_candidates: bool = True
    normalize_gold: bool = True
    partial_match: bool = False
    precision_digits: int | None = None

    def __post_init__(self):
        check_k_values(self.k_values)
        if self.precision_digits is not None and self.precision_digits < 0:
            raise ConfigurationError("eval.precision_digits", "must be >= 0")

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> EvaluationConfig:
        """Build a config from a flat ``eval.* -> value`` mapping."""
        values = _resolve(params or {}, EVALUATION_SCHEMA)
        return cls(**{key.partition(".")[2]: value for key, value in values.items()})

    def to_params(self) -> dict[str, Any]:
        """Parameters recorded in a ScoreReport for reproducibility."""
        return {
            "k_values": list(self.k_values),
            "lowercase": self.lowercase,
            "ignore_symbols": self.ignore_symbols,
            "ignore_digits": self.ignore_digits,
            "stem": self.stem,
            "normalize_candidates": self.normalize_candidates,
            "normalize_gold": self.normalize_gold,
            "partial_match": self.partial_match,
            "precision_digits": self.precision_digits,
        }
