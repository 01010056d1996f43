"""
Benchmark driver: rank one corpus with several algorithms and score each
ranking against a gold standard.

Configure via environment variables (command-line flags take precedence):
    TERM_RANKING_ALGORITHMS=TTF,CValue   # Comma-separated, or "all"
    TERM_RANKING_MIN_TTF=2               # Pre-filter threshold (0 = off)
    TERM_RANKING_CUTOFF=0.99999          # Top-K-percent cutoff
    TERM_RANKING_K=50,100,500            # Precision cutoffs
    TERM_RANKING_WORKERS=4               # Threads for indexing and ranking

Run with:
    term-ranking-eval corpus.jsonl gold.txt --reference reference.tsv \
        --algorithms all --min-ttf 2 --cutoff 0.99999
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import time
from typing import Sequence

from term_ranking.algorithms import available_algorithms
from term_ranking.config import DEFAULT_K_VALUES, EvaluationConfig, RankingConfig
from term_ranking.corpus import ReferenceStatistics, TermStatisticsIndex
from term_ranking.datasets import (
    load_corpus_documents,
    load_gold_standard,
    load_reference_frequencies,
    save_reports,
)
from term_ranking.errors import ConfigurationError, TermRankingError
from term_ranking.logging_utils import configure_logging, get_logger
from term_ranking.ranking import batch_rank_parallel
from term_ranking.scorer import Scorer
from term_ranking.types import ScoreReport

logger = get_logger(__name__)

# Default benchmark settings (can be overridden via env vars)
DEFAULT_ALGORITHMS = os.environ.get("TERM_RANKING_ALGORITHMS", "all")
DEFAULT_MIN_TTF = os.environ.get("TERM_RANKING_MIN_TTF", "0")
DEFAULT_CUTOFF = os.environ.get("TERM_RANKING_CUTOFF", "1.0")
DEFAULT_K = os.environ.get("TERM_RANKING_K", ",".join(str(k) for k in DEFAULT_K_VALUES))
DEFAULT_WORKERS = os.environ.get("TERM_RANKING_WORKERS", "1")


def _parse_list(value: str, all_values: list[str]) -> list[str]:
    """Parse comma-separated list or 'all'."""
    if not value:
        return []
    if value.lower() == "all":
        return all_values
    return [v.strip() for v in value.split(",") if v.strip()]


def run_benchmark(
    index: TermStatisticsIndex,
    gold: Sequence[str],
    algorithms: Sequence[str],
    ranking_config: RankingConfig | None = None,
    evaluation_config: EvaluationConfig | None = None,
    reference: ReferenceStatistics | None = None,
) -> dict[str, ScoreReport | TermRankingError]:
    """
    Rank *index* with every algorithm and evaluate each ranking.

    Returns:
        Algorithm name -> score report, or the error that stopped it.
    """
    ranking_config = ranking_config or RankingConfig()
    scorer = Scorer(evaluation_config)

    rankings = batch_rank_parallel(algorithms, index, reference, config=ranking_config)

    results: dict[str, ScoreReport | TermRankingError] = {}
    for name, ranked in rankings.items():
        if isinstance(ranked, TermRankingError):
            results[name] = ranked
            continue
        report = scorer.evaluate(ranked, gold)
        results[name] = report
        logger.info(
            "%s: %s, recall=%.4f",
            name,
            ", ".join(f"P@{k}={report.precision(k):.4f}" for k in scorer.config.k_values),
            report.recall,
        )
    return results


def summarize(results: dict[str, ScoreReport | TermRankingError]) -> dict[str, dict]:
    """JSON-friendly view: metrics per algorithm, or its error message."""
    return {
        name: {"error": str(result)} if isinstance(result, TermRankingError) else dict(result.metrics)
        for name, result in results.items()
    }


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Rank candidate terms with several algorithms and score them against a gold standard.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Frequency-based algorithms only
  term-ranking-eval corpus.jsonl gold.txt --algorithms TTF,ATTF,TFIDF,RIDF,CValue

  # Everything, with a reference corpus for Weirdness/GlossEx/TermEx
  term-ranking-eval corpus.jsonl gold.txt --reference bnc_unifrqs.tsv \\
      --algorithms all --min-ttf 2 --cutoff 0.99999 --output reports.json

Available algorithms:
  {", ".join(available_algorithms())}
""",
    )
    parser.add_argument("corpus", help="JSON-lines corpus of candidate counts per document.")
    parser.add_argument("gold", help="Gold-standard term list, one term per line.")
    parser.add_argument("--reference", default=None, help="Reference frequency list (term<TAB>frequency).")
    parser.add_argument(
        "--algorithms",
        default=DEFAULT_ALGORITHMS,
        help="Algorithms (comma-separated, or 'all'; default: %(default)s).",
    )
    parser.add_argument("--min-ttf", default=DEFAULT_MIN_TTF, help="Minimum total frequency (default: %(default)s).")
    parser.add_argument("--cutoff", default=DEFAULT_CUTOFF, help="Top-K-percent cutoff (default: %(default)s).")
    parser.add_argument("--k", default=DEFAULT_K, help="Precision cutoffs, comma-separated (default: %(default)s).")
    parser.add_argument("--workers", default=DEFAULT_WORKERS, help="Worker threads (default: %(default)s).")
    parser.add_argument("--chisquare-cutoff", default=None, help="ChiSquare frequent-term share (default: 0.3).")
    parser.add_argument("--unseen-probability", default=None, help="Reference fallback probability.")
    parser.add_argument("--no-normalize", action="store_true", help="Compare terms verbatim.")
    parser.add_argument("--ignore-digits", action="store_true", help="Drop digits before matching.")
    parser.add_argument("--stem", action="store_true", help="Porter-stem words before matching.")
    parser.add_argument("--partial", action="store_true", help="Accept sub/super-string matches.")
    parser.add_argument("--digits", default=None, help="Round reported metrics to this many decimals.")
    parser.add_argument("--output", default=None, help="Write score reports to this JSON file.")
    parser.add_argument("--log-dir", default=None, help="Also write JSON-lines logs here.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    algorithms = _parse_list(args.algorithms, available_algorithms())
    if not algorithms:
        parser.error("At least one algorithm must be specified.")

    ranking_params = {
        "prefilter.min_total_freq": args.min_ttf,
        "cutoff.top_k_percent": args.cutoff,
        "workers": args.workers,
        "reference.source": args.reference,
        "reference.unseen_probability": args.unseen_probability,
        "chisquare.freq_term_cutoff_percentage": args.chisquare_cutoff,
    }
    normalize = not args.no_normalize
    evaluation_params = {
        "eval.k_values": args.k,
        "eval.normalize_candidates": normalize,
        "eval.normalize_gold": normalize,
        "eval.ignore_digits": args.ignore_digits,
        "eval.stem": args.stem,
        "eval.partial_match": args.partial,
        "eval.precision_digits": args.digits,
    }
    try:
        ranking_config = RankingConfig.from_params(ranking_params)
        evaluation_config = EvaluationConfig.from_params(evaluation_params)
    except ConfigurationError as e:
        parser.error(str(e))

    configure_logging(getattr(logging, args.log_level), args.log_dir)

    start = time.perf_counter()
    try:
        index = TermStatisticsIndex.from_documents(
            load_corpus_documents(args.corpus), workers=ranking_config.workers
        )
        gold = load_gold_standard(args.gold)
        reference = None
        if ranking_config.reference_source is not None:
            reference = load_reference_frequencies(
                ranking_config.reference_source, ranking_config.unseen_probability
            )
    except (OSError, TermRankingError) as e:
        logger.error("Could not load benchmark inputs: %s", e)
        return 2

    try:
        results = run_benchmark(index, gold, algorithms, ranking_config, evaluation_config, reference)
    except ConfigurationError as e:
        parser.error(str(e))
    logger.info("Benchmark finished in %.2fs", time.perf_counter() - start)

    if args.output:
        save_reports(
            {name: r for name, r in results.items() if isinstance(r, ScoreReport)},
            args.output,
        )

    print(json.dumps(summarize(results), indent=2))
    return 1 if any(isinstance(r, TermRankingError) for r in results.values()) else 0


if __name__ == "__main__":
    raise SystemExit(main())
