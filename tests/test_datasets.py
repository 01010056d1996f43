import json
import logging
import sys

import pytest

from term_ranking.benchmark import main, run_benchmark
from term_ranking.config import EvaluationConfig, RankingConfig
from term_ranking.corpus import TermStatisticsIndex
from term_ranking.datasets import (
    load_corpus_documents,
    load_gold_standard,
    load_reference_frequencies,
    load_reports,
    save_reports,
)
from term_ranking.errors import ConfigurationError, InputDataError
from term_ranking.logging_utils import JsonFormatter, configure_logging, get_logger
from term_ranking.types import ScoreReport


@pytest.fixture
def corpus_file(tmp_path):
    path = tmp_path / "corpus.jsonl"
    records = [
        {"id": "d1", "candidates": ["Protein Kinase", "protein kinase C", "cell", "cell"], "token_count": 20},
        {"id": "d2", "candidates": {"protein kinase C": 1, "T cell": 1, "cell": 1}, "token_count": 15},
        {"id": 3, "candidates": ["cell", "T cell receptor", "T cell"], "token_count": 10},
    ]
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n\n", encoding="utf-8")
    return path


@pytest.fixture
def gold_file(tmp_path):
    path = tmp_path / "gold.txt"
    path.write_text("# GENIA-style gold list\nprotein kinase C\n\nT cell\nT-cell receptor\n", encoding="utf-8")
    return path


@pytest.fixture
def reference_file(tmp_path):
    path = tmp_path / "reference.tsv"
    path.write_text("cell\t50\nprotein\t10\nthe\t1000\nkinase\t1\nt\t100\nreceptor\t20\nCell\t5\n", encoding="utf-8")
    return path


def test_load_gold_standard(gold_file):
    assert load_gold_standard(gold_file) == ["protein kinase C", "T cell", "T-cell receptor"]


def test_load_corpus_documents(corpus_file, index):
    documents = load_corpus_documents(corpus_file)
    assert [d.doc_id for d in documents] == ["d1", "d2", "3"]
    loaded = TermStatisticsIndex.from_documents(documents)
    assert loaded.terms == index.terms
    assert loaded.total_frequency("cell") == 4
    assert loaded.total_words == 45


@pytest.mark.parametrize(
    "content",
    [
        '{"id": "d1", "candidates": [}\n',
        '{"candidates": ["cell"]}\n',
        "5\n",
        '["d1", "cell"]\n',
        '{"id": "d1", "candidates": {"cell": "3"}}\n',
        '{"id": "d1", "candidates": {"cell": 1.5}}\n',
        '{"id": "d1", "candidates": [7]}\n',
        '{"id": "d1", "candidates": "cell"}\n',
        '{"id": "d1", "candidates": ["cell"], "token_count": "20"}\n',
    ],
)
def test_bad_corpus_lines(tmp_path, content):
    path = tmp_path / "bad.jsonl"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(InputDataError):
        load_corpus_documents(path)


def test_load_reference_frequencies(reference_file):
    reference = load_reference_frequencies(reference_file)
    assert reference.frequency("cell") == 55
    assert reference.total == 1186
    assert reference.source == str(reference_file)
    assert reference.relative_frequency("unseen") == pytest.approx(1 / 1187)


@pytest.mark.parametrize("content", ["cell 50\n", "cell\tmany\n"])
def test_bad_reference_lines(tmp_path, content):
    path = tmp_path / "bad.tsv"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(InputDataError):
        load_reference_frequencies(path)


def test_reports_round_trip(tmp_path):
    reports = {"TTF": ScoreReport({"precision@50": 0.5, "recall": 0.75}, {"k_values": [50]})}
    path = tmp_path / "out" / "reports.json"
    save_reports(reports, path)
    assert load_reports(path) == reports


# =============================================================================
# Benchmark driver
# =============================================================================


def test_run_benchmark(index, reference):
    gold = ["protein kinase C", "T cell"]
    results = run_benchmark(
        index,
        gold,
        ["TTF", "CValue", "Weirdness"],
        RankingConfig(min_total_frequency=2),
        EvaluationConfig(k_values=(1, 3)),
        reference,
    )
    assert list(results) == ["TTF", "CValue", "Weirdness"]
    assert results["TTF"].precision(1) == 0.0
    assert results["TTF"].precision(3) == pytest.approx(2 / 3)
    assert results["CValue"].precision(1) == 0.0
    assert results["Weirdness"].precision(1) == 1.0
    assert all(report.recall == 1.0 for report in results.values())


def test_main_writes_reports(corpus_file, gold_file, reference_file, tmp_path, capsys):
    output = tmp_path / "reports.json"
    exit_code = main(
        [
            str(corpus_file),
            str(gold_file),
            "--reference",
            str(reference_file),
            "--algorithms",
            "all",
            "--min-ttf",
            "2",
            "--cutoff",
            "0.99999",
            "--k",
            "1,2",
            "--output",
            str(output),
        ]
    )
    assert exit_code == 0

    summary = json.loads(capsys.readouterr().out)
    reports = load_reports(output)
    assert set(summary) == set(reports) == {
        "TTF", "ATTF", "TFIDF", "RIDF", "ChiSquare", "CValue", "RAKE", "Weirdness", "GlossEx", "TermEx",
    }
    for name, report in reports.items():
        assert set(report.metrics) == {"precision@1", "precision@2", "recall"}
        assert summary[name] == report.metrics


def test_main_reports_failed_algorithms(corpus_file, gold_file, capsys):
    exit_code = main([str(corpus_file), str(gold_file), "--algorithms", "TTF,GlossEx", "--k", "5"])
    assert exit_code == 1
    summary = json.loads(capsys.readouterr().out)
    assert "recall" in summary["TTF"]
    assert "reference.source" in summary["GlossEx"]["error"]


def test_main_rejects_bad_parameters(corpus_file, gold_file):
    with pytest.raises(SystemExit):
        main([str(corpus_file), str(gold_file), "--cutoff", "1.5"])


def test_main_missing_input(tmp_path, gold_file):
    assert main([str(tmp_path / "missing.jsonl"), str(gold_file)]) == 2


def test_main_malformed_corpus(tmp_path, gold_file):
    corpus = tmp_path / "bad.jsonl"
    corpus.write_text("5\n", encoding="utf-8")
    assert main([str(corpus), str(gold_file)]) == 2


def test_main_rejects_duplicate_algorithms(corpus_file, gold_file):
    with pytest.raises(SystemExit):
        main([str(corpus_file), str(gold_file), "--algorithms", "TTF,ttf"])


# =============================================================================
# Logging
# =============================================================================


def test_get_logger_namespace():
    assert get_logger("ranking").name == "term_ranking.ranking"
    assert get_logger("term_ranking.scorer").name == "term_ranking.scorer"


def test_configure_logging_writes_json_lines(tmp_path):
    logger = configure_logging(logging.DEBUG, tmp_path, console=False)
    assert configure_logging(logging.INFO, tmp_path, console=False) is logger
    assert len(logger.handlers) == 1

    get_logger("tests").warning("index built: %d terms", 5)
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "term_ranking.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["level"] == "WARNING"
    assert entry["name"] == "term_ranking.tests"
    assert entry["message"] == "index built: 5 terms"
    assert set(entry) == {"timestamp", "level", "name", "message"}


def test_json_formatter_includes_exceptions():
    try:
        raise ConfigurationError("workers", "must be >= 1")
    except ConfigurationError:
        record = logging.LogRecord("term_ranking", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    entry = json.loads(JsonFormatter().format(record))
    assert "Configuration error for 'workers'" in entry["exception"]
