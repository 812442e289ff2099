"""Branch-and-bound search for minimum expected-cost plans.

The search starts from a plan holding a single pending state and expands it
breadth-first, one move at a time. Every extension is priced with the cost
evaluator (pending states priced by a heuristic); extensions costing more
than the best fully resolved plan found so far are not expanded further.
The best plan is seeded with the naive solver so that a finite bound exists
before any search work happens.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Optional, Set, Tuple

from dice_planner.core.data_models import State, Move
from dice_planner.planning.divisors import DivisorTable
from dice_planner.planning.plan_graph import PlanGraph
from dice_planner.caching.cache_keys import CacheKeyGenerator
from dice_planner.caching.heuristic_cache import HeuristicContractError
from .heuristics import BaseHeuristic, create_heuristic, naive_solver
from .diagnostics import (
    UpdateCallback, emit, dump_visited_plans, PROGRESS_UPDATE, BEST_IMPROVED, SEARCH_FINISHED
)

logger = logging.getLogger(__name__)


@dataclass
class SearchConfig:
    """Configuration for plan search."""
    max_iterations: int = 0  # 0 disables the cutoff
    max_computation_time: float = 0.0  # seconds, 0 disables the timeout
    report_interval: int = 10000  # iterations between progress events
    dump_path: Optional[str] = None  # visited plans are written here on each report
    heuristic: str = "zero"

    def __post_init__(self):
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.max_computation_time < 0:
            raise ValueError(f"max_computation_time must be non-negative, got {self.max_computation_time}")
        if self.report_interval < 1:
            raise ValueError(f"report_interval must be a positive integer, got {self.report_interval}")


@dataclass
class SearchStatistics:
    """Counters collected during a search."""
    iterations: int = 0
    plans_generated: int = 0
    plans_pruned: int = 0
    duplicate_plans: int = 0
    non_finite_costs: int = 0
    improvements: int = 0
    max_queue_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'iterations': self.iterations,
            'plans_generated': self.plans_generated,
            'plans_pruned': self.plans_pruned,
            'duplicate_plans': self.duplicate_plans,
            'non_finite_costs': self.non_finite_costs,
            'improvements': self.improvements,
            'max_queue_size': self.max_queue_size
        }


@dataclass
class SearchResult:
    """Result from plan search."""
    best_plan: PlanGraph
    best_cost: float
    initial_cost: float
    termination_reason: str
    statistics: SearchStatistics
    computation_time: float = 0.0

    @property
    def exhaustive(self) -> bool:
        """True when the whole pruned search space was explored."""
        return self.termination_reason == "search_exhausted"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'best_cost': self.best_cost,
            'initial_cost': self.initial_cost,
            'termination_reason': self.termination_reason,
            'exhaustive': self.exhaustive,
            'computation_time': self.computation_time,
            'statistics': self.statistics.to_dict(),
            'plan': self.best_plan.to_dict(),
            'plan_text': self.best_plan.render()
        }


QueueEntry = Tuple[PlanGraph, State, Move]


@dataclass
class SearchSession:
    """Mutable state of one search run."""
    start: State
    divisor_table: DivisorTable
    best_plan: PlanGraph
    best_cost: float
    queue: Deque[QueueEntry] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    statistics: SearchStatistics = field(default_factory=SearchStatistics)

    def enqueue_actions(self, plan: PlanGraph) -> None:
        # Entries share ``plan``; it is copied only when a move is applied
        for state, move in plan.possible_actions(self.divisor_table):
            self.queue.append((plan, state, move))
            self.statistics.plans_generated += 1
        self.statistics.max_queue_size = max(self.statistics.max_queue_size, len(self.queue))


class PlanSearch:
    """Breadth-first branch-and-bound over plan extensions."""

    def __init__(self,
                 config: Optional[SearchConfig] = None,
                 heuristic: Optional[BaseHeuristic] = None,
                 initial_solver: Callable[[State], PlanGraph] = naive_solver):
        """Initialize plan search.

        Args:
            config: Search configuration parameters
            heuristic: Pricing of pending states (built from ``config.heuristic`` if None)
            initial_solver: Solver producing the fully resolved seed plan
        """
        self.config = config if config is not None else SearchConfig()
        self.heuristic = heuristic if heuristic is not None else create_heuristic(self.config.heuristic)
        self.initial_solver = initial_solver
        self.session: Optional[SearchSession] = None

    def start_session(self, start: State) -> SearchSession:
        """Seed queue and best plan for ``start``."""
        divisor_table = DivisorTable.build(start.target)

        best_plan = self.initial_solver(start)
        best_cost = best_plan.exact_cost()
        if best_cost is None:
            raise HeuristicContractError(f"Initial solver returned an unresolved plan for {start}")

        session = SearchSession(
            start=start,
            divisor_table=divisor_table,
            best_plan=best_plan,
            best_cost=best_cost
        )
        session.enqueue_actions(PlanGraph(start))

        logger.info(f"Initial cost for {start} is {best_cost}")
        return session

    def step(self, session: SearchSession, update_callback: Optional[UpdateCallback] = None) -> None:
        """Apply the move at the head of the queue and price the result."""
        graph, state, move = session.queue.popleft()
        stats = session.statistics

        plan = graph.copy()
        plan.apply(state, move)
        cost = plan.cost(self.heuristic)
        stats.iterations += 1
        logger.debug(f"Applied {move} to {state}: cost {cost.value} (estimated={cost.estimated})")

        if not cost.is_finite:
            stats.non_finite_costs += 1

        rendered = plan.render()
        if rendered in session.visited:
            stats.duplicate_plans += 1
        else:
            session.visited.add(rendered)
            if cost.is_finite and cost.value <= session.best_cost:
                session.enqueue_actions(plan)
            else:
                stats.plans_pruned += 1

        if not cost.estimated and cost.is_finite and cost.value < session.best_cost:
            session.best_plan = plan
            session.best_cost = cost.value
            stats.improvements += 1
            logger.info(f"Found better plan {CacheKeyGenerator.plan_hash(rendered)} with cost {cost.value}")
            emit(update_callback, BEST_IMPROVED, {
                'iteration': stats.iterations,
                'best_cost': cost.value
            })

    def search(self,
               start: State,
               update_callback: Optional[UpdateCallback] = None,
               should_stop: Optional[Callable[[], bool]] = None) -> SearchResult:
        """Search for the minimum expected-cost plan from ``start``.

        Args:
            start: Initial state
            update_callback: Optional receiver of progress events
            should_stop: Optional external stop condition, polled every iteration

        Returns:
            SearchResult with the best exactly priced plan found
        """
        start_time = time.perf_counter()
        session = self.start_session(start)
        self.session = session
        initial_cost = session.best_cost
        stats = session.statistics

        deadline = None
        if self.config.max_computation_time > 0:
            deadline = start_time + self.config.max_computation_time

        termination_reason = "search_exhausted"
        while session.queue:
            if self.config.max_iterations and stats.iterations >= self.config.max_iterations:
                termination_reason = "max_iterations_reached"
                break
            if deadline is not None and time.perf_counter() > deadline:
                termination_reason = "timeout"
                break
            if should_stop is not None and should_stop():
                termination_reason = "stopped"
                break

            self.step(session, update_callback)

            if stats.iterations % self.config.report_interval == 0:
                self._report_progress(session, update_callback)

        computation_time = time.perf_counter() - start_time
        logger.info(f"Search finished ({termination_reason}) after {stats.iterations} iterations: "
                    f"best cost {session.best_cost}")

        result = SearchResult(
            best_plan=session.best_plan,
            best_cost=session.best_cost,
            initial_cost=initial_cost,
            termination_reason=termination_reason,
            statistics=stats,
            computation_time=computation_time
        )
        emit(update_callback, SEARCH_FINISHED, {
            'best_cost': result.best_cost,
            'termination_reason': termination_reason,
            'stats': stats.to_dict()
        })
        return result

    def _report_progress(self, session: SearchSession, update_callback: Optional[UpdateCallback]) -> None:
        stats = session.statistics
        logger.info(f"Iteration {stats.iterations}: queue size is {len(session.queue)}, "
                    f"visited {len(session.visited)} plans")

        emit(update_callback, PROGRESS_UPDATE, {
            'iteration': stats.iterations,
            'queue_size': len(session.queue),
            'visited': len(session.visited),
            'best_cost': session.best_cost
        })

        if self.config.dump_path:
            dump_visited_plans(self.config.dump_path, session.visited)

    def get_search_stats(self) -> Dict[str, Any]:
        """Get detailed search statistics."""
        return {
            'statistics': self.session.statistics.to_dict() if self.session else None,
            'heuristic_stats': self.heuristic.get_stats(),
            'config': {
                'max_iterations': self.config.max_iterations,
                'max_computation_time': self.config.max_computation_time,
                'report_interval': self.config.report_interval,
                'heuristic': self.config.heuristic
            }
        }


def create_plan_search(max_iterations: int = 0,
                       max_computation_time: float = 0.0,
                       report_interval: int = 10000,
                       heuristic: str = "zero",
                       dump_path: Optional[str] = None,
                       heuristic_cache=None) -> PlanSearch:
    """Factory function to create a plan search with custom configuration.

    Args:
        max_iterations: Iteration cutoff (0 for none)
        max_computation_time: Timeout in seconds (0 for none)
        report_interval: Iterations between progress events
        heuristic: Heuristic name (``zero``, ``naive``, ``cached_naive``)
        dump_path: Where to dump visited plans on each report
        heuristic_cache: Cache used by ``cached_naive``

    Returns:
        Configured PlanSearch instance
    """
    config = SearchConfig(
        max_iterations=max_iterations,
        max_computation_time=max_computation_time,
        report_interval=report_interval,
        dump_path=dump_path,
        heuristic=heuristic
    )
    return PlanSearch(config, heuristic=create_heuristic(heuristic, cache=heuristic_cache))


def solve(source: int, target: int, **kwargs) -> SearchResult:
    """Search the best plan for simulating a ``target``-sided die with a ``source``-sided one."""
    return create_plan_search(**kwargs).search(State.initial(source, target))
