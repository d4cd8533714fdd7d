"""CLI command for scoring a TREC run against qrels with one ranking metric."""

from pathlib import Path
from typing import Optional

import click
import pandas as pd
from click.core import ParameterSource

from rank_eval.evaluation import ON_MISSING_POLICIES, RankEvaluator
from rank_eval.io import RESULT_FORMATS, load_metric_config, read_qrels, read_run, write_results
from rank_eval.judgments import DEFAULT_COLLECTION
from rank_eval.metrics import (
    DEFAULT_K,
    DEFAULT_RELEVANT_RATING_THRESHOLD,
    METRICS,
    Metric,
)

# Options that only apply to --metric; a metric config file sets these itself
METRIC_FIELD_OPTIONS = {
    "k": "--k",
    "relevant_rating_threshold": "--relevant-rating-threshold",
    "ignore_unlabeled": "--ignore-unlabeled",
}


def _build_metric(
    metric_name: Optional[str],
    metric_config: Optional[Path],
    relevant_rating_threshold: int,
    ignore_unlabeled: bool,
    k: int,
) -> Metric:
    """Build the metric from either --metric options or --metric-config."""
    if metric_name and metric_config:
        raise click.UsageError("Specify only one of --metric or --metric-config, not both.")
    if not metric_name and not metric_config:
        raise click.UsageError("Specify either --metric or --metric-config.")

    if metric_config:
        ctx = click.get_current_context()
        given = [
            flag for name, flag in METRIC_FIELD_OPTIONS.items()
            if ctx.get_parameter_source(name) is not ParameterSource.DEFAULT
        ]
        if given:
            raise click.UsageError(
                f"{', '.join(given)} cannot be combined with --metric-config; set them in the config file."
            )

    try:
        if metric_config:
            return load_metric_config(metric_config)
        return METRICS[metric_name](
            relevant_rating_threshold=relevant_rating_threshold,
            ignore_unlabeled=ignore_unlabeled,
            k=k,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def results_table(result) -> pd.DataFrame:
    """One row per query plus a MEAN row holding the corpus score."""
    rows = []
    for query_id, q in result.query_qualities.items():
        rows.append({
            "Query": query_id,
            "Score": round(q.metric_score, 4),
            "RelevantRetrieved": q.metric_details.relevant_retrieved,
            "Retrieved": q.metric_details.retrieved,
            "Unrated": len(q.unrated_docs),
        })

    df = pd.DataFrame(rows, columns=["Query", "Score", "RelevantRetrieved", "Retrieved", "Unrated"])
    mean_row = {
        "Query": "MEAN",
        "Score": round(result.metric_score, 4),
        "RelevantRetrieved": "",
        "Retrieved": "",
        "Unrated": "",
    }
    return pd.concat([df, pd.DataFrame([mean_row])], ignore_index=True)


@click.command()
@click.option("--qrels", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True,
              help="Relevance judgments (TREC qrels format)")
@click.option("--run", "run_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True,
              help="Ranked hits (TREC run format)")
@click.option("--metric", "metric_name", type=click.Choice(sorted(METRICS)), default=None,
              help="Metric to compute.")
@click.option("--metric-config", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="YAML or JSON metric config, e.g. {recall: {k: 5}}. Replaces --metric; "
                   "cannot be combined with --k, --relevant-rating-threshold or --ignore-unlabeled.")
@click.option("--relevant-rating-threshold", type=int, default=DEFAULT_RELEVANT_RATING_THRESHOLD,
              help="Ratings >= threshold count as relevant.")
@click.option("--ignore-unlabeled/--no-ignore-unlabeled", default=False,
              help="Skip unjudged hits instead of counting them as irrelevant.")
@click.option("--k", type=int, default=DEFAULT_K, help="Number of top hits evaluated per query.")
@click.option("--collection", type=str, default=DEFAULT_COLLECTION,
              help="Collection name assigned to qrels and run documents.")
@click.option(
    "--on-missing",
    type=click.Choice(ON_MISSING_POLICIES),
    default="default",
    help="How to handle queries present in only one of run/qrels: "
         "error=raise, warn=warn+skip, default=treat missing side as empty, skip=silently skip",
)
@click.option("--output", type=click.Path(path_type=Path), default=None,
              help="Output file. .jsonl or .csv write the table; otherwise see --output-format.")
@click.option("--output-format", type=click.Choice(RESULT_FORMATS), default=None,
              help="Write result lines in this format instead of the table.")
def evaluate(
    qrels: Path,
    run_file: Path,
    metric_name: Optional[str],
    metric_config: Optional[Path],
    relevant_rating_threshold: int,
    ignore_unlabeled: bool,
    k: int,
    collection: str,
    on_missing: str,
    output: Optional[Path],
    output_format: Optional[str],
):
    """Score a run against qrels with Recall@K or MAP@K.

    Each query's hits are cut to the metric's k before scoring. The MEAN row
    is the average of the per-query scores.
    """
    metric = _build_metric(metric_name, metric_config, relevant_rating_threshold, ignore_unlabeled, k)

    evaluator = RankEvaluator(metric, on_missing=on_missing)
    try:
        judgments = read_qrels(qrels, collection=collection)
        run, run_id = read_run(run_file, collection=collection)
        result = evaluator.evaluate(run, judgments)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if not result.query_qualities:
        click.echo("No queries to evaluate.")
        return

    df = results_table(result)
    click.echo(f"{run_id} {metric.name}@{metric.k}")
    click.echo(df.to_string(index=False))

    if output:
        if output_format:
            write_results(result, output, output_format, run_id)
            return
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.name.endswith(".jsonl"):
            df.to_json(output, lines=True, orient="records")
        elif output.name.endswith(".csv"):
            df.to_csv(output, index=False)
        else:
            raise click.ClickException(f"Unknown output format: {output}. Use .jsonl, .csv or --output-format.")
