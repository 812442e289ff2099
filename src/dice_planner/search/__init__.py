"""Search algorithms for the dice planner.

This module implements the branch-and-bound plan search and the heuristics
that price pending states while plans are still incomplete.
"""

from .heuristics import (
    BaseHeuristic, ZeroHeuristic, NaiveSolverHeuristic, CachedHeuristic,
    create_heuristic, naive_solver
)
from .branch_and_bound import (
    PlanSearch, SearchConfig, SearchResult, SearchStatistics, create_plan_search, solve
)

__all__ = [
    'BaseHeuristic',
    'ZeroHeuristic',
    'NaiveSolverHeuristic',
    'CachedHeuristic',
    'create_heuristic',
    'naive_solver',
    'PlanSearch',
    'SearchConfig',
    'SearchResult',
    'SearchStatistics',
    'create_plan_search',
    'solve'
]
