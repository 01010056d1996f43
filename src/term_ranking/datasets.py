"""
Loaders for benchmark inputs and a writer for score reports.

Formats:
    gold standard   one term per line; blank lines and '#' comments skipped
    corpus          JSON lines: {"id": ..., "candidates": [...] | {...}, "token_count": ...}
    reference       "term<TAB>frequency" per line
    reports         JSON
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator, Mapping

from term_ranking.corpus import CorpusDocument, ReferenceStatistics
from term_ranking.errors import InputDataError
from term_ranking.types import ScoreReport


def load_gold_standard(path: str | Path) -> list[str]:
    """
    Reads a gold-standard term list.

    Returns:
        Terms as written, in file order (normalization happens in the scorer).
    """
    terms = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                terms.append(line)
    return terms


def iter_corpus_documents(path: str | Path) -> Iterator[CorpusDocument]:
    """
    Streams documents from a JSON-lines corpus file.

    Raises:
        InputDataError: A line is not a JSON object, lacks an id or has
            malformed candidates.
    """
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise InputDataError(f"{path}:{line_no}: {exc.msg}") from exc
            if not isinstance(record, dict):
                raise InputDataError(f"{path}:{line_no}: expected a JSON object")
            if "id" not in record:
                raise InputDataError(f"{path}:{line_no}: missing document id")
            candidates = record.get("candidates", [])
            if not isinstance(candidates, (list, dict)):
                raise InputDataError(f"{path}:{line_no}: candidates must be a list or an object")
            yield CorpusDocument(
                doc_id=str(record["id"]),
                candidates=dict(candidates) if isinstance(candidates, Mapping) else tuple(candidates),
                token_count=record.get("token_count"),
            )


def load_corpus_documents(path: str | Path) -> list[CorpusDocument]:
    return list(iter_corpus_documents(path))


def load_reference_frequencies(
    path: str | Path,
    unseen_probability: float | None = None,
) -> ReferenceStatistics:
    """
    Reads a reference frequency list (``term<TAB>frequency`` per line).

    Duplicate terms are summed. The file path is kept as the source id.
    """
    frequencies: dict[str, float] = {}
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\n")
            if not line.strip() or line.startswith("#"):
                continue
            term, sep, value = line.rpartition("\t")
            if not sep:
                raise InputDataError(f"{path}:{line_no}: expected 'term<TAB>frequency'")
            try:
                frequency = float(value)
            except ValueError:
                raise InputDataError(f"{path}:{line_no}: bad frequency {value!r}") from None
            frequencies[term] = frequencies.get(term, 0.0) + frequency
    return ReferenceStatistics(frequencies, unseen_probability=unseen_probability, source=str(path))


def save_reports(reports: Mapping[str, ScoreReport], path: str | Path) -> None:
    """Writes ``{algorithm: report}`` as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({name: report.to_dict() for name, report in reports.items()}, f, indent=2)


def load_reports(path: str | Path) -> dict[str, ScoreReport]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return {name: ScoreReport.from_dict(report) for name, report in data.items()}
