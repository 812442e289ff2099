"""Tests for plan cost evaluation."""

import math

import pytest

from dice_planner.core.data_models import State, Throw, Map
from dice_planner.planning.cost import (
    CostEvaluator, CycleCost, PlanCost, solve_linear_equation, evaluate_plan_cost, exact_cost
)
from dice_planner.planning.plan_graph import PlanGraph
from dice_planner.caching.heuristic_cache import HeuristicCache
from dice_planner.search.heuristics import naive_solver


def failing_heuristic(state):
    raise AssertionError(f"heuristic must not be called for {state}")


class RecordingHeuristic:
    """Returns fixed values per state and remembers the call order."""

    def __init__(self, values):
        self.values = values
        self.calls = []

    def __call__(self, state):
        self.calls.append(state)
        return self.values[state]


class TestSolveLinearEquation:
    """Test folding of costs through a branch."""

    def test_plain_value(self):
        """Test a known cost is scaled and shifted."""
        assert solve_linear_equation(3.0, State(2, 3, 1), 4.0, 5.0) == 17.0

    def test_cycle_through_other_state(self):
        """Test a cycle rooted elsewhere is carried upwards."""
        value = CycleCost(State(2, 3, 2), 3.0, 4.0)
        assert solve_linear_equation(value, State(2, 3, 1), 5.0, 6.0) == CycleCost(State(2, 3, 2), 15.0, 26.0)

    def test_cycle_through_same_state(self):
        """Test the equation is solved at the cycle base."""
        state = State(2, 3, 1)
        value = CycleCost(state, 3.0, 4.0)
        assert solve_linear_equation(value, state, 5.0, 6.0) == pytest.approx(26.0 / -14.0)

    def test_degenerate_cycle(self):
        """Test a loop that always repeats has infinite cost."""
        state = State(2, 3, 1)
        assert solve_linear_equation(CycleCost(state), state, 1.0, 1.0) == math.inf
        assert math.isnan(solve_linear_equation(CycleCost(state), state, 1.0, 0.0))


class TestCostEvaluator:
    """Test CostEvaluator on small hand-built plans."""

    def test_solved_start(self):
        """Test a solved plan costs nothing and never asks the heuristic."""
        plan = PlanGraph(State.initial(5, 1))
        assert plan.cost(failing_heuristic) == PlanCost(0.0, False)

    def test_pending_start(self):
        """Test a pending state is priced by the heuristic."""
        start = State.initial(5, 2)
        plan = PlanGraph(start)
        assert plan.cost(lambda state: 7.0) == PlanCost(7.0, True)

    def test_throw(self):
        """Test a throw costs one plus the next state."""
        start = State.initial(5, 2)
        plan = PlanGraph(start)
        plan.apply(start, Throw())

        heuristic = RecordingHeuristic({State(5, 2, 5): 7.0})
        assert plan.cost(heuristic) == PlanCost(8.0, True)
        assert heuristic.calls == [State(5, 2, 5)]

        plan.mark_solved(State(5, 2, 5))
        assert plan.cost(failing_heuristic) == PlanCost(1.0, False)

    def test_map_without_remaining(self):
        """Test mapping every outcome costs the sub problem."""
        state = State(5, 6, 2)
        plan = PlanGraph(state)
        plan.apply(state, Map(2))

        assert plan.cost(lambda s: 10.0) == PlanCost(10.0, True)
        plan.mark_solved(State(5, 3, 1))
        assert plan.cost(failing_heuristic) == PlanCost(0.0, False)

    def test_map_with_remaining(self):
        """Test the sub problem and the leftover are mixed by outcome share."""
        state = State(5, 6, 17)
        plan = PlanGraph(state)
        plan.apply(state, Map(2))
        sub, remaining = State(5, 3, 1), State(5, 6, 15)

        heuristic = RecordingHeuristic({sub: 10.0, remaining: 20.0})
        cost = plan.cost(heuristic)
        assert cost.value == pytest.approx(2 / 17 * 10.0 + 15 / 17 * 20.0)
        assert cost.estimated
        assert heuristic.calls == [sub, remaining]

        plan.mark_solved(remaining)
        cost = plan.cost(RecordingHeuristic({sub: 10.0}))
        assert cost.value == pytest.approx(2 / 17 * 10.0)
        assert cost.estimated

        plan.mark_solved(sub)
        assert plan.cost(failing_heuristic) == PlanCost(0.0, False)

    def test_cycle(self):
        """Test a coin simulating a d3 costs 8/3 throws."""
        start = State.initial(2, 3)
        plan = PlanGraph(start)
        plan.apply(start, Throw())
        plan.apply(State(2, 3, 2), Throw())
        plan.apply(State(2, 3, 4), Map(3))

        cost = plan.cost(failing_heuristic)
        assert cost.value == pytest.approx(8 / 3)
        assert not cost.estimated

    def test_throw_throw_map_adds_sub_cost(self):
        """Test two throws feeding an exact map cost two plus the sub problem."""
        start = State.initial(2, 8)
        plan = PlanGraph(start)
        plan.apply(start, Throw())
        plan.apply(State(2, 8, 2), Throw())
        plan.apply(State(2, 8, 4), Map(4))

        cost = plan.cost(lambda state: 1.25)
        assert cost.value == pytest.approx(3.25)
        assert cost.estimated

    def test_unconditional_loop_is_infinite(self):
        """Test a one-sided die thrown forever never finishes."""
        start = State.initial(1, 2)
        plan = PlanGraph(start)
        plan.apply(start, Throw())

        cost = plan.cost()
        assert cost.value == math.inf
        assert not cost.is_finite

    def test_evaluation_is_pure(self):
        """Test repeated evaluation gives the same result and leaves the plan alone."""
        state = State(5, 6, 17)
        plan = PlanGraph(state)
        plan.apply(state, Map(3))
        before = plan.render()

        evaluator = CostEvaluator(lambda s: float(s.units))
        first = evaluator.cost(plan)
        second = evaluator.cost(plan)

        assert first == second
        assert plan.render() == before

    def test_empty_cache_is_used_as_heuristic(self):
        """Test a fresh heuristic cache prices pending states instead of zero."""
        start = State.initial(2, 3)
        plan = PlanGraph(start)
        plan.apply(start, Throw())

        cache = HeuristicCache(naive_solver)
        assert len(cache) == 0

        cost = CostEvaluator(cache).cost(plan)
        # One throw, then the naive plan from 2/3: x = 1 + (1 + x) / 4, so x = 5/3
        assert cost.value == pytest.approx(1 + 5 / 3)
        assert cost.estimated
        assert State(2, 3, 2) in cache

    def test_cost_for_inner_state(self):
        """Test pricing from a state other than the start."""
        start = State.initial(2, 3)
        plan = PlanGraph(start)
        plan.apply(start, Throw())
        plan.apply(State(2, 3, 2), Throw())
        plan.apply(State(2, 3, 4), Map(3))

        # 4 outcomes: 3 finish, 1 restarts and needs 1 + 1 + x more throws
        cost = CostEvaluator().cost_for(plan, State(2, 3, 4))
        assert cost.value == pytest.approx(2 / 3)


class TestCostHelpers:
    """Test convenience wrappers."""

    def test_exact_cost(self):
        """Test exact cost is only reported for resolved plans."""
        start = State.initial(2, 2)
        plan = PlanGraph(start)
        plan.apply(start, Throw())
        assert exact_cost(plan) is None
        assert plan.exact_cost() is None

        plan.apply(State(2, 2, 2), Map(2))
        assert exact_cost(plan) == 1.0
        assert plan.exact_cost() == 1.0

    def test_evaluate_plan_cost(self):
        """Test default heuristic is zero."""
        start = State.initial(2, 2)
        plan = PlanGraph(start)
        plan.apply(start, Throw())
        assert evaluate_plan_cost(plan) == PlanCost(1.0, True)
        assert evaluate_plan_cost(plan, lambda s: 2.0) == PlanCost(3.0, True)
