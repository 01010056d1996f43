"""
Exception hierarchy for term_ranking.

Configuration and input-data failures abort the run that hit them and are
surfaced to the caller. Numeric boundary cases (zero document frequency,
zero expected counts, empty lists) are not errors: each algorithm and the
scorer return a defined value for them instead.
"""


class TermRankingError(Exception):
    """Base exception for all term_ranking errors."""


class ConfigurationError(TermRankingError):
    """Raised when a required parameter is missing or outside its valid domain."""

    def __init__(self, key: str, reason: str = "missing or None"):
        self.key = key
        self.reason = reason
        super().__init__(f"Configuration error for '{key}': {reason}")


class InputDataError(TermRankingError):
    """Raised when corpus or reference statistics are malformed."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid input data: {detail}")


class NotFoundError(TermRankingError):
    """Raised when a term is not present in a statistics index."""

    def __init__(self, term: str):
        self.term = term
        super().__init__(f"Term not found in index: '{term}'")
