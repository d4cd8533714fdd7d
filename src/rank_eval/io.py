"""
IO - Read judgments, runs and metric configs; write evaluation results.

Supported inputs:
- qrels: TREC qrels, read with autojudge_base
- run: query_id Q0 doc_id rank score tag (TREC run, 6 cols)
- metric config: YAML or JSON mapping {metric_name: {field: value}}

Supported result formats:
- tot: run_id measure query_id value (4 cols)
- ir_measures: run_id query_id measure value (4 cols)
- jsonl: JSON lines with run_id, query_id, measure, value, details
"""

from __future__ import annotations

import json
import sys
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Literal, Tuple

import yaml
from autojudge_base.qrels import Qrels
from autojudge_base.qrels.qrels import read_qrel_file

from .evaluation import RankEvalResult
from .judgments import DEFAULT_COLLECTION, Hit, Judgment
from .metrics import Metric, metric_from_dict

ResultFormat = Literal["tot", "ir_measures", "jsonl"]
RESULT_FORMATS = ["tot", "ir_measures", "jsonl"]

# Reserved query_id for the corpus-level (macro-average) row
ALL_QUERY_ID = "all"


def _read_lines(path: Path) -> List[Tuple[int, str]]:
    text = path.read_text(encoding="utf-8")
    return [
        (lineno, line)
        for lineno, line in enumerate(text.split("\n"), start=1)
        if line.strip()
    ]


# =============================================================================
# Qrels
# =============================================================================


def qrels_to_judgments(qrels: Qrels, collection: str = DEFAULT_COLLECTION) -> Dict[str, List[Judgment]]:
    """
    Group qrel rows into query_id -> judgments, in file order.

    Every judgment gets ``collection``. Negative grades are rejected by Judgment.
    """
    judgments: Dict[str, List[Judgment]] = defaultdict(list)
    for row in qrels.rows:
        judgments[row.topic_id].append(
            Judgment(collection=collection, doc_id=row.doc_id, rating=int(row.grade))
        )
    return dict(judgments)


def read_qrels(path: Path, collection: str = DEFAULT_COLLECTION) -> Dict[str, List[Judgment]]:
    """Read a TREC qrels file into query_id -> judgments."""
    return qrels_to_judgments(read_qrel_file(path), collection)


# =============================================================================
# Run
# =============================================================================


def read_run(path: Path, collection: str = DEFAULT_COLLECTION) -> Tuple[Dict[str, List[Hit]], str]:
    """
    Read a TREC run file into (query_id -> hits in rank order, run_id).

    Hits are ordered by ascending rank, then descending score, then file order.
    The run_id is the tag column of the first line, or the filename for an
    empty run.
    """
    rows: Dict[str, List[Tuple[int, float, int, str]]] = defaultdict(list)
    run_id = None

    for lineno, line in _read_lines(path):
        parts = line.split()
        if len(parts) != 6:
            raise ValueError(
                f"{path.name}:{lineno}: run format expects 6 columns, got {len(parts)}: {line!r}"
            )
        query_id, _q0, doc_id, rank, score, tag = parts
        try:
            rows[query_id].append((int(rank), float(score), lineno, doc_id))
        except ValueError:
            raise ValueError(f"{path.name}:{lineno}: rank must be an integer and score a number: {line!r}") from None
        if run_id is None:
            run_id = tag

    run: Dict[str, List[Hit]] = {}
    for query_id, entries in rows.items():
        entries.sort(key=lambda e: (e[0], -e[1], e[2]))
        run[query_id] = [Hit(collection=collection, doc_id=doc_id, score=score) for _, score, _, doc_id in entries]

    return run, run_id if run_id is not None else path.name


# =============================================================================
# Metric config
# =============================================================================


def load_metric_config(path: Path) -> Metric:
    """Load a metric from a YAML (.yaml/.yml) or JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    return metric_from_dict(data)


# =============================================================================
# Write
# =============================================================================


def measure_name(metric: Metric) -> str:
    return f"{metric.name}@{metric.k}"


def write_results(
    result: RankEvalResult,
    path: Path,
    format: ResultFormat,
    run_id: str,
) -> None:
    """
    Write per-query scores plus an ALL_QUERY_ID row with the corpus score.
    """
    measure = measure_name(result.metric)
    lines = []

    for query_id, quality in result.query_qualities.items():
        lines.append(_format_line(
            run_id, query_id, measure, quality.metric_score, format,
            details=quality.metric_details.to_dict(),
        ))
    lines.append(_format_line(run_id, ALL_QUERY_ID, measure, result.metric_score, format))

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    print(f"Wrote {len(lines)} entries to {path}", file=sys.stderr)


def _format_line(
    run_id: str,
    query_id: str,
    measure: str,
    value: float,
    format: ResultFormat,
    details: Dict | None = None,
) -> str:
    if format == "tot":
        return f"{run_id}\t{measure}\t{query_id}\t{value}"

    elif format == "ir_measures":
        return f"{run_id}\t{query_id}\t{measure}\t{value}"

    elif format == "jsonl":
        obj = {
            "run_id": run_id,
            "query_id": query_id,
            "measure": measure,
            "value": value,
        }
        if details is not None:
            obj["details"] = details
        return json.dumps(obj)

    else:
        raise ValueError(f"Unknown format: {format!r}")
