"""
Priority ordering of summaries.
"""
from typing import Dict, List, Sequence

from mention_digest.models.summary import SummaryResult

# Labels outside this table (P3, unranked, unparsed) share the last bucket
PRIORITY_RANKS: Dict[str, int] = {
    "P0": 0,
    "P1": 1,
    "P2": 2,
}
UNRANKED = len(PRIORITY_RANKS)


def priority_rank(priority: str) -> int:
    """Rank of a priority label; lower sorts first."""
    return PRIORITY_RANKS.get((priority or "").strip().upper(), UNRANKED)


def sort_by_priority(results: Sequence[SummaryResult]) -> List[SummaryResult]:
    """Return results ordered by priority rank, keeping input order within a rank."""
    return sorted(results, key=lambda result: priority_rank(result.priority))
