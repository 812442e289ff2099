"""Expected cost of a plan graph.

Costs compose by branch: a throw adds one move to the cost of the next state,
a map mixes the sub problem and the leftover state in proportion to the
outcomes committed to each. When the recursion comes back to a state it is
still resolving, the cost of that state is unknown; it is carried upwards as
the linear form ``a * x + b`` (``x`` being the unknown cost) and the equation
``x = a * x + b`` is solved once the recursion unwinds to that state.
"""

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Set, Union

from dice_planner.core.data_models import State, Solved, Pending, ThrowBranch, MapBranch

if TYPE_CHECKING:
    from .plan_graph import PlanGraph

Heuristic = Callable[[State], float]


@dataclass(frozen=True)
class PlanCost:
    """Cost of a plan and whether a heuristic contributed to it."""

    value: float
    estimated: bool

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.value)


@dataclass(frozen=True)
class CycleCost:
    """Cost expressed as ``a * x + b`` where ``x`` is the cost of ``base``."""

    base: State
    a: float = 1.0
    b: float = 0.0


CostValue = Union[float, CycleCost]


def solve_linear_equation(value: CostValue, state: State, p: float, q: float) -> CostValue:
    """Fold ``cost(state) = p * value + q``.

    If ``value`` depends on the cost of ``state`` itself the equation is solved
    for it, otherwise the linear form is carried further up.
    """
    if not isinstance(value, CycleCost):
        return p * value + q

    if value.base != state:
        return CycleCost(value.base, value.a * p, value.b * p + q)

    numerator = value.b * p + q
    denominator = 1.0 - value.a * p
    if denominator == 0.0:
        # Unconditional loop: the plan never terminates
        return math.inf if numerator > 0 else (-math.inf if numerator < 0 else math.nan)
    return numerator / denominator


def zero_heuristic(state: State) -> float:
    return 0.0


class CostEvaluator:
    """Computes expected plan costs; never mutates the graph."""

    def __init__(self, heuristic: Optional[Heuristic] = None):
        """Initialize evaluator.

        Args:
            heuristic: Provisional cost for pending states (defaults to zero)
        """
        self.heuristic = heuristic if heuristic is not None else zero_heuristic

    def cost(self, graph: 'PlanGraph') -> PlanCost:
        """Cost of the graph's start state."""
        return self.cost_for(graph, graph.start)

    def cost_for(self, graph: 'PlanGraph', state: State) -> PlanCost:
        value, estimated = self._inner_cost(graph, state, set())
        if isinstance(value, CycleCost):
            raise RuntimeError(f"Unresolved cycle through {value.base} while pricing {state}")
        return PlanCost(value=value, estimated=estimated)

    def _inner_cost(self, graph: 'PlanGraph', state: State, resolving: Set[State]):
        branch = graph.branch(state)

        if isinstance(branch, Solved):
            return 0.0, False
        if isinstance(branch, Pending):
            return float(self.heuristic(state)), True

        if state in resolving:
            return CycleCost(state), False

        resolving.add(state)
        try:
            if isinstance(branch, ThrowBranch):
                next_value, estimated = self._inner_cost(graph, branch.next, resolving)
                return solve_linear_equation(next_value, state, 1.0, 1.0), estimated
            return self._map_cost(graph, state, branch, resolving)
        finally:
            resolving.discard(state)

    def _map_cost(self, graph: 'PlanGraph', state: State, branch: MapBranch, resolving: Set[State]):
        # Sub problems have a strictly smaller target and cannot reach back here
        sub_cost = self.cost_for(graph, branch.sub_problem)

        if branch.remaining is None:
            return sub_cost.value, sub_cost.estimated

        ratio = branch.units / state.units
        remaining_value, remaining_estimated = self._inner_cost(graph, branch.remaining, resolving)
        value = solve_linear_equation(remaining_value, state, 1.0 - ratio, ratio * sub_cost.value)

        return value, sub_cost.estimated or remaining_estimated


def evaluate_plan_cost(graph: 'PlanGraph', heuristic: Optional[Heuristic] = None) -> PlanCost:
    """Convenience wrapper around ``CostEvaluator``."""
    return CostEvaluator(heuristic).cost(graph)


def exact_cost(graph: 'PlanGraph') -> Optional[float]:
    """Cost of a fully resolved plan, ``None`` if a heuristic was needed."""
    cost = CostEvaluator(zero_heuristic).cost(graph)
    return None if cost.estimated else cost.value
