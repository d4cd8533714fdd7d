"""
rank_eval - Ranking quality evaluation against relevance judgments.

Provides:
- judgments.py: Judgment/Hit data and the hit-rating join
- metrics.py: Recall@K and MAP@K, detail records, combine()
- query_quality.py: EvalQueryQuality per-query result
- evaluation.py: RankEvaluator for whole runs
- io.py: TREC qrels/run readers, metric configs, result writers
- _commands/: CLI commands (evaluate)
"""

__version__ = '0.1.0'

from click import group

from ._commands._evaluate import evaluate


@group()
def main():
    pass


main.add_command(evaluate, "evaluate")
