import pytest

from term_ranking.config import RankingConfig
from term_ranking.errors import ConfigurationError
from term_ranking.filters import CandidateFilterPipeline
from term_ranking.types import RankedTermList, Term


def make_ranked(n: int) -> RankedTermList:
    return RankedTermList.from_sorted([Term(f"term {i}") for i in range(n)], [float(n - i) for i in range(n)], "test")


@pytest.mark.parametrize(
    "n, fraction, expected",
    [
        (100, 0.5, 50),
        (100, 1.0, 100),
        (100, 0.29, 29),
        (10681, 0.99999, 10680),
        (3, 0.1, 1),
        (1, 0.01, 1),
        (0, 0.5, 0),
    ],
)
def test_cutoff_size(n, fraction, expected):
    pipeline = CandidateFilterPipeline(top_k_percent=fraction)
    assert pipeline.cutoff_size(n) == expected
    assert len(pipeline.cutoff(make_ranked(n))) == expected


def test_cutoff_keeps_leading_entries():
    ranked = make_ranked(10)
    kept = CandidateFilterPipeline(top_k_percent=0.3).cutoff(ranked)
    assert [entry.term for entry in kept] == ranked.terms[:3]
    assert [entry.rank for entry in kept] == [1, 2, 3]
    assert kept.algorithm == "test"


def test_full_cutoff_returns_input():
    ranked = make_ranked(7)
    assert CandidateFilterPipeline().cutoff(ranked) is ranked


@pytest.mark.parametrize(
    "threshold, expected",
    [
        (0, ["protein kinase", "protein kinase c", "cell", "t cell", "t cell receptor"]),
        (2, ["protein kinase c", "cell", "t cell"]),
        (3, ["cell"]),
        (10, []),
    ],
)
def test_prefilter(index, threshold, expected):
    pipeline = CandidateFilterPipeline(min_total_frequency=threshold)
    assert [term.key for term in pipeline.prefilter(index)] == expected


@pytest.mark.parametrize(
    "kwargs, key",
    [
        ({"top_k_percent": 0.0}, "cutoff.top_k_percent"),
        ({"top_k_percent": 1.5}, "cutoff.top_k_percent"),
        ({"top_k_percent": -0.1}, "cutoff.top_k_percent"),
        ({"min_total_frequency": -1}, "prefilter.min_total_freq"),
        ({"min_total_frequency": 1.5}, "prefilter.min_total_freq"),
        ({"min_total_frequency": True}, "prefilter.min_total_freq"),
    ],
)
def test_invalid_policies(kwargs, key):
    with pytest.raises(ConfigurationError) as excinfo:
        CandidateFilterPipeline(**kwargs)
    assert excinfo.value.key == key


def test_from_config():
    config = RankingConfig.from_params({"prefilter.min_total_freq": "2", "cutoff.top_k_percent": "0.99999"})
    pipeline = CandidateFilterPipeline.from_config(config)
    assert pipeline.min_total_frequency == 2
    assert pipeline.top_k_percent == pytest.approx(0.99999)
