"""Heuristics for pricing pending states during plan search.

A heuristic is a strategy object mapping a state to a provisional cost.
Implementations are interchangeable:
- ZeroHeuristic: always 0, a true lower bound (admissible, weak)
- NaiveSolverHeuristic: exact cost of the naive plan (an upper bound)
- CachedHeuristic: any solver-derived cost memoized through a HeuristicCache
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from dice_planner.core.data_models import State, Throw, Map, Pending
from dice_planner.planning.plan_graph import PlanGraph
from dice_planner.caching.heuristic_cache import HeuristicCache, HeuristicContractError

logger = logging.getLogger(__name__)


def naive_solver(state: State) -> PlanGraph:
    """Fast, suboptimal plan: throw until there are enough outcomes, then map them all.

    Pending states are resolved in insertion order until none is left, so the
    returned plan is always fully resolved.
    """
    logger.debug(f"Naive solver for {state}")
    plan = PlanGraph(state)

    while True:
        pending = next((s for s, branch in plan.items() if isinstance(branch, Pending)), None)
        if pending is None:
            return plan

        if pending.units < pending.target:
            plan.apply(pending, Throw())
        else:
            plan.apply(pending, Map(pending.target))


class BaseHeuristic(ABC):
    """Abstract base class for heuristics."""

    def __init__(self, name: str):
        """Initialize heuristic.

        Args:
            name: Name of the heuristic
        """
        self.name = name
        self.computation_count = 0
        self.total_computation_time = 0.0

    @abstractmethod
    def estimate(self, state: State) -> float:
        """Provisional cost of completing ``state``."""

    def __call__(self, state: State) -> float:
        """Compute heuristic with timing and statistics."""
        start_time = time.perf_counter()
        value = self.estimate(state)
        self.computation_count += 1
        self.total_computation_time += time.perf_counter() - start_time
        return value

    @property
    def admissible(self) -> bool:
        """Whether the estimate never exceeds the true optimal cost."""
        return False

    def get_stats(self) -> Dict[str, Any]:
        """Get computation statistics."""
        avg_time = (self.total_computation_time / self.computation_count
                    if self.computation_count > 0 else 0.0)

        return {
            'name': self.name,
            'computation_count': self.computation_count,
            'total_time': self.total_computation_time,
            'average_time': avg_time,
            'average_time_us': avg_time * 1000000
        }


class ZeroHeuristic(BaseHeuristic):
    """Prices every pending state at zero."""

    def __init__(self):
        super().__init__("zero")

    def estimate(self, state: State) -> float:
        return 0.0

    @property
    def admissible(self) -> bool:
        return True


class NaiveSolverHeuristic(BaseHeuristic):
    """Exact cost of the naive plan from the state, recomputed on every call."""

    def __init__(self):
        super().__init__("naive")

    def estimate(self, state: State) -> float:
        value = naive_solver(state).exact_cost()
        if value is None:
            raise HeuristicContractError(f"Naive solver returned an unresolved plan for {state}")
        return value


class CachedHeuristic(BaseHeuristic):
    """Heuristic backed by a HeuristicCache."""

    def __init__(self, cache: HeuristicCache):
        super().__init__(f"cached_{cache.name}")
        self.cache = cache

    def estimate(self, state: State) -> float:
        return self.cache.calculate(state)

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats['cache'] = self.cache.get_stats()
        return stats


HEURISTIC_NAMES = ('zero', 'naive', 'cached_naive')


def create_heuristic(name: str = "zero", cache: Optional[HeuristicCache] = None) -> BaseHeuristic:
    """Factory function to create a heuristic by name.

    Args:
        name: One of ``zero``, ``naive``, ``cached_naive``
        cache: Cache to use for ``cached_naive`` (a fresh in-memory one if None)

    Returns:
        Configured heuristic
    """
    if name == "zero":
        return ZeroHeuristic()
    if name == "naive":
        return NaiveSolverHeuristic()
    if name == "cached_naive":
        return CachedHeuristic(cache if cache is not None else HeuristicCache(naive_solver))

    raise ValueError(f"Unknown heuristic '{name}', expected one of {', '.join(HEURISTIC_NAMES)}")
