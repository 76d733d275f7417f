"""
Ranking aggregator: order a repository's score breakdowns, assign shared ranks for ties
and compute each participant's share of the repository total.
"""
import logging
from typing import List, Optional, Sequence
from normalize.models import ScoreBreakdown, RankedScore

logger = logging.getLogger(__name__)


def format_rate(score: int, total: int) -> str:
    """Percentage of total as a two-decimal string; '0.00' when the total is zero."""
    if total <= 0:
        return '0.00'
    return f"{score / total * 100:.2f}"


def rank_scores(scores: Sequence[ScoreBreakdown]) -> List[RankedScore]:
    """
    Sort by total score descending and attach rank and rate.

    Equal totals share the rank of the first of them; the next different total gets its
    position (1, 2, 2, 4), not the previous rank plus one.
    """
    ordered = sorted(scores, key=lambda s: s.total_score, reverse=True)
    repo_total = sum(s.total_score for s in ordered)
    rows: List[RankedScore] = []
    prev_total = None
    rank = 0
    for index, s in enumerate(ordered):
        if s.total_score != prev_total:
            rank = index + 1
        prev_total = s.total_score
        rows.append(RankedScore(rank, *s, format_rate(s.total_score, repo_total)))
    return rows


def average_score(scores: Sequence[ScoreBreakdown], repo_name: str = '') -> Optional[float]:
    """Mean total score of a repository, or None when it has no participants."""
    if not scores:
        logger.info("No participants in %s; average score not computed", repo_name or 'repository')
        return None
    average = sum(s.total_score for s in scores) / len(scores)
    logger.info("%s average score: %.2f", repo_name or 'repository', average)
    return average
