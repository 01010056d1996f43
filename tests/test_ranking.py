import math

import numpy as np
import pytest

from term_ranking.algorithms import BaseAlgorithm, available_algorithms, get_algorithm
from term_ranking.config import RankingConfig
from term_ranking.errors import ConfigurationError, InputDataError
from term_ranking.filters import CandidateFilterPipeline
from term_ranking.ranking import batch_rank_parallel, failed, rank_terms, ranked_only, sort_scores
from term_ranking.types import RankedTermList, ScoredTerm, Term


class NanForReceptor(BaseAlgorithm):
    name = "NanForReceptor"

    def _bind(self, index, candidates, reference):
        return lambda term: math.nan if "receptor" in term.words else float(index.total_frequency(term))


def test_sort_scores_is_stable():
    indices, scores = sort_scores(np.array([1.0, 3.0, 3.0, 2.0, 3.0]))
    assert indices.tolist() == [1, 2, 4, 3, 0]
    assert scores.tolist() == [3.0, 3.0, 3.0, 2.0, 1.0]


@pytest.mark.parametrize("name", available_algorithms())
def test_ranked_list_invariants(index, reference, name):
    ranked = rank_terms(name, index, reference)
    assert ranked.algorithm == name
    assert [entry.rank for entry in ranked] == list(range(1, len(ranked) + 1))
    assert np.all(np.diff(ranked.scores) <= 0)
    assert len({entry.term.key for entry in ranked}) == len(ranked) == len(index)


@pytest.mark.parametrize("name", available_algorithms())
def test_ranking_is_deterministic(index, reference, name):
    assert rank_terms(name, index, reference) == rank_terms(name, index, reference)


@pytest.mark.parametrize("name", available_algorithms())
def test_prefiltered_terms_never_ranked(index, reference, name):
    pipeline = CandidateFilterPipeline(min_total_frequency=2)
    ranked = rank_terms(name, index, reference, pipeline=pipeline)
    keys = {entry.term.key for entry in ranked}
    assert keys == {"protein kinase c", "cell", "t cell"}


def test_ties_keep_extraction_order(index):
    ranked = rank_terms("TTF", index)
    assert [entry.term.key for entry in ranked] == [
        "cell",
        "protein kinase c",
        "t cell",
        "protein kinase",
        "t cell receptor",
    ]


def test_cutoff_from_config(index):
    config = RankingConfig.from_params({"cutoff.top_k_percent": "0.5"})
    ranked = rank_terms("TTF", index, config=config)
    assert [entry.term.key for entry in ranked] == ["cell", "protein kinase c"]


def test_nan_scores_rank_last(index):
    ranked = rank_terms(NanForReceptor(), index)
    assert ranked[-1].term.key == "t cell receptor"
    assert ranked[-1].score == -math.inf


def test_missing_reference_raises(index):
    with pytest.raises(ConfigurationError):
        rank_terms("Weirdness", index)


def test_batch_matches_sequential(index, reference):
    names = ["TTF", "CValue", "RAKE", "GlossEx"]
    results = batch_rank_parallel(names, index, reference, num_workers=4)
    assert list(results) == names
    for name in names:
        assert results[name] == rank_terms(name, index, reference)


def test_batch_isolates_failures(index, tfidf_index):
    results = batch_rank_parallel(["TTF", "Weirdness", "NoSuchAlgorithm", "CValue"], index, num_workers=3)
    assert isinstance(results["Weirdness"], ConfigurationError)
    assert isinstance(results["NoSuchAlgorithm"], ConfigurationError)
    assert isinstance(results["TTF"], RankedTermList)
    assert isinstance(results["CValue"], RankedTermList)
    assert failed(results) == ["Weirdness", "NoSuchAlgorithm"]
    assert list(ranked_only(results)) == ["TTF", "CValue"]

    results = batch_rank_parallel(["ChiSquare", "TFIDF"], tfidf_index)
    assert isinstance(results["ChiSquare"], InputDataError)
    assert results["TFIDF"][0].score == pytest.approx(100 * math.log(4))


def test_batch_accepts_instances(index):
    results = batch_rank_parallel([get_algorithm("ATTF"), NanForReceptor()], index, num_workers=1)
    assert list(results) == ["ATTF", "NanForReceptor"]


@pytest.mark.parametrize(
    "entries",
    [
        [ScoredTerm(Term("a"), 2.0, 1), ScoredTerm(Term("b"), 1.0, 3)],
        [ScoredTerm(Term("a"), 1.0, 1), ScoredTerm(Term("b"), 2.0, 2)],
        [ScoredTerm(Term("a"), 2.0, 1), ScoredTerm(Term("A"), 1.0, 2)],
    ],
)
def test_ranked_list_validation(entries):
    with pytest.raises(InputDataError):
        RankedTermList(entries, "test")


def test_batch_keys_by_registered_name(index):
    results = batch_rank_parallel(["cvalue", "ttf"], index, num_workers=2)
    assert list(results) == ["CValue", "TTF"]
    assert results["CValue"] == rank_terms("CValue", index)


@pytest.mark.parametrize("entries", [["CValue", "cvalue"], ["TTF", get_algorithm("ttf")], ["Nope", "nope"]])
def test_batch_rejects_duplicates(index, entries):
    with pytest.raises(ConfigurationError) as excinfo:
        batch_rank_parallel(entries, index, num_workers=1)
    assert excinfo.value.key == "algorithms"
