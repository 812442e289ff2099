"""Tests for the branch-and-bound plan search."""

import math
from types import SimpleNamespace

import pytest

from dice_planner.core.data_models import State, Throw, Map, Pending
from dice_planner.planning.divisors import DivisorTable
from dice_planner.planning.plan_graph import PlanGraph
from dice_planner.caching.heuristic_cache import HeuristicCache, HeuristicContractError
from dice_planner.search import branch_and_bound
from dice_planner.search.branch_and_bound import (
    PlanSearch, SearchConfig, SearchResult, create_plan_search, solve
)
from dice_planner.search.diagnostics import (
    emit, dump_visited_plans, PROGRESS_UPDATE, BEST_IMPROVED, SEARCH_FINISHED
)
from dice_planner.search.heuristics import naive_solver


def wasteful_solver(state):
    """Throws until there are twice as many outcomes as needed, then maps."""
    plan = PlanGraph(state)
    while True:
        pending = plan.pending_states()
        if not pending:
            return plan
        current = pending[0]
        if current.units < 2 * current.target:
            plan.apply(current, Throw())
        else:
            plan.apply(current, Map(current.target))


def brute_force_min_cost(source, target, max_units):
    """Cheapest complete plan never holding more than ``max_units`` outcomes."""
    table = DivisorTable(target)
    best = math.inf

    def explore(plan):
        nonlocal best
        pending = plan.pending_states()
        if not pending:
            cost = plan.exact_cost()
            if cost is not None and math.isfinite(cost):
                best = min(best, cost)
            return

        state = pending[0]
        for candidate, move in plan.possible_actions(table):
            if candidate != state:
                continue
            if isinstance(move, Throw) and state.units * state.source > max_units:
                continue
            child = plan.copy()
            child.apply(state, move)
            explore(child)

    explore(PlanGraph(State.initial(source, target)))
    return best


class TestPlanSearch:
    """Test search results on small problems."""

    def test_coin_to_d2(self):
        """Test one throw of a coin is a d2."""
        result = solve(2, 2)

        assert isinstance(result, SearchResult)
        assert result.best_cost == 1.0
        assert result.initial_cost == 1.0
        assert result.termination_reason == "search_exhausted"
        assert result.exhaustive
        assert result.statistics.iterations == 3
        assert result.statistics.improvements == 0

    def test_d3_to_d2(self):
        """Test a d3 simulating a coin rethrows one outcome in three."""
        result = solve(3, 2)

        assert result.best_cost == pytest.approx(1.5)
        assert result.exhaustive
        assert result.best_plan.render() == (
            "Plan for 3: 1/2\n"
            "1/2 -> throw to 3/2\n"
            "3/2 -> map 2 to 1/1 and 1/2\n"
            "1/1 -> solved\n"
        )

    def test_coin_to_d3(self):
        """Test the classic 8/3 throws for a d3 from a coin."""
        result = solve(2, 3)
        assert result.best_cost == pytest.approx(8 / 3)
        assert result.exhaustive

    def test_coin_to_d6(self):
        """Test the naive plan for a d6 from a coin is already optimal."""
        result = solve(2, 6)

        assert result.exhaustive
        assert result.best_cost == pytest.approx(11 / 3)
        assert result.best_plan.exact_cost() == pytest.approx(11 / 3)

    def test_cached_heuristic_fills_caller_cache(self):
        """Test the search prices pending states through the cache it was given."""
        cache = HeuristicCache(naive_solver)
        result = create_plan_search(heuristic="cached_naive", heuristic_cache=cache).search(
            State.initial(2, 3)
        )

        assert result.best_cost == pytest.approx(8 / 3)
        assert len(cache) >= 1
        assert cache.get_stats()['misses'] == len(cache)

    def test_solved_start(self):
        """Test a target of 1 needs no search."""
        result = solve(6, 1)

        assert result.best_cost == 0.0
        assert result.exhaustive
        assert result.statistics.iterations == 0

    def test_improves_on_bad_seed(self, recorder):
        """Test the search finds a cheaper plan than the seed."""
        search = PlanSearch(SearchConfig(), initial_solver=wasteful_solver)
        result = search.search(State.initial(2, 2), update_callback=recorder)

        assert result.initial_cost == pytest.approx(3.0)
        assert result.best_cost == 1.0
        assert result.best_plan.exact_cost() == 1.0
        assert result.statistics.improvements == 1
        assert result.statistics.iterations == 5
        assert result.exhaustive

        improved = recorder.of_type(BEST_IMPROVED)
        assert improved == [{'iteration': 3, 'best_cost': 1.0}]

        finished = recorder.of_type(SEARCH_FINISHED)
        assert len(finished) == 1
        assert finished[0]['termination_reason'] == "search_exhausted"

    def test_best_cost_never_increases(self, recorder):
        """Test every improvement is strictly cheaper than the last."""
        search = PlanSearch(SearchConfig(max_iterations=2000), initial_solver=wasteful_solver)
        result = search.search(State.initial(2, 6), update_callback=recorder)

        costs = [result.initial_cost] + [p['best_cost'] for p in recorder.of_type(BEST_IMPROVED)]
        assert all(later < earlier for earlier, later in zip(costs, costs[1:]))
        assert result.best_cost == costs[-1]

    @pytest.mark.parametrize("source,target,max_units", [
        (2, 2, 4),
        (3, 2, 9),
        (2, 3, 8),
        (2, 4, 4),
        (2, 6, 8),
    ])
    def test_matches_exhaustive_enumeration(self, source, target, max_units):
        """Test the search optimum equals brute force over small plans."""
        result = solve(source, target)

        assert result.exhaustive
        assert result.best_cost == pytest.approx(brute_force_min_cost(source, target, max_units))

    def test_naive_heuristic_gives_same_optimum(self):
        """Test a naive-priced search agrees on a small problem."""
        cache = HeuristicCache(naive_solver)
        search = create_plan_search(heuristic="cached_naive", heuristic_cache=cache)
        result = search.search(State.initial(3, 2))

        assert result.best_cost == pytest.approx(1.5)
        assert result.exhaustive
        assert search.heuristic.cache is cache
        assert len(cache) >= 1


class TestSearchTermination:
    """Test cutoffs and stop conditions."""

    def test_max_iterations(self):
        """Test the iteration cutoff keeps the best plan so far."""
        result = solve(2, 6, max_iterations=1)

        assert result.termination_reason == "max_iterations_reached"
        assert not result.exhaustive
        assert result.statistics.iterations == 1
        assert result.best_cost == pytest.approx(11 / 3)
        assert result.best_plan.is_complete()

    def test_bounded_search_returns_exact_plan(self):
        """Test a capped search on a harder problem only reports exact costs."""
        result = solve(2, 6, max_iterations=300)

        assert result.statistics.iterations <= 300
        assert result.best_cost <= 11 / 3 + 1e-12
        assert result.best_plan.is_complete()
        assert result.best_plan.exact_cost() == pytest.approx(result.best_cost)

    def test_should_stop(self):
        """Test the external stop condition is polled before each step."""
        search = PlanSearch()
        result = search.search(State.initial(2, 6), should_stop=lambda: True)

        assert result.termination_reason == "stopped"
        assert result.statistics.iterations == 0
        assert result.best_cost == pytest.approx(11 / 3)

    def test_timeout(self, monkeypatch):
        """Test the deadline is checked before each step."""
        clock = iter(range(0, 1000, 10))
        fake_time = SimpleNamespace(perf_counter=lambda: float(next(clock)))
        monkeypatch.setattr(branch_and_bound, "time", fake_time)
        search = PlanSearch(SearchConfig(max_computation_time=5.0))
        result = search.search(State.initial(2, 6))

        assert result.termination_reason == "timeout"
        assert result.statistics.iterations == 0

    def test_unresolved_seed(self):
        """Test a seed solver leaving pending states is rejected."""
        search = PlanSearch(initial_solver=PlanGraph)
        with pytest.raises(HeuristicContractError):
            search.search(State.initial(2, 3))

class TestSearchConfig:
    """Test search configuration checks."""

    @pytest.mark.parametrize("field,value", [
        ("report_interval", 0),
        ("report_interval", -5),
        ("max_iterations", -1),
        ("max_computation_time", -0.1),
    ])
    def test_invalid_values(self, field, value):
        """Test out-of-range limits are rejected on construction."""
        with pytest.raises(ValueError, match=field):
            SearchConfig(**{field: value})

    def test_factory_rejects_zero_report_interval(self):
        """Test the factory goes through the same checks."""
        with pytest.raises(ValueError):
            create_plan_search(report_interval=0)

    def test_defaults(self):
        """Test zero limits mean unlimited."""
        config = SearchConfig()
        assert config.max_iterations == 0
        assert config.max_computation_time == 0.0
        assert config.report_interval >= 1



class TestSearchSession:
    """Test single search steps."""

    def test_start_session(self):
        """Test the queue is seeded with the moves of a fresh plan."""
        session = PlanSearch().start_session(State.initial(2, 6))

        assert session.best_cost == pytest.approx(11 / 3)
        assert [(state, move) for _, state, move in session.queue] == [(State(2, 6, 1), Throw())]

    def test_step_does_not_touch_parent_plan(self):
        """Test each queue entry keeps its own history."""
        search = PlanSearch()
        session = search.start_session(State.initial(2, 6))
        parent = session.queue[0][0]

        search.step(session)

        assert parent.branch(State(2, 6, 1)) == Pending(2)
        assert len(parent) == 1
        assert session.statistics.iterations == 1
        assert len(session.queue) == 2
        assert all(graph is not parent for graph, _, _ in session.queue)

    def test_duplicate_plans_are_skipped(self):
        """Test a rendered plan is only expanded once."""
        search = PlanSearch()
        session = search.start_session(State.initial(2, 2))
        seed_entry = session.queue[0]
        session.queue.append(seed_entry)

        search.step(session)
        queued = len(session.queue)
        search.step(session)

        assert session.statistics.duplicate_plans == 1
        assert len(session.queue) == queued - 1

    def test_non_finite_costs_are_pruned(self):
        """Test a never-ending loop is never expanded."""
        # A one-sided die repeats the same state forever
        search = PlanSearch()
        session = search.start_session(State.initial(1, 2))
        assert session.best_cost == math.inf

        search.step(session)

        assert session.statistics.non_finite_costs == 1
        assert session.statistics.plans_pruned == 1
        assert session.statistics.improvements == 0
        assert len(session.queue) == 0


class TestDiagnostics:
    """Test progress events and plan dumps."""

    def test_progress_events(self, recorder):
        """Test progress is reported every interval."""
        result = PlanSearch(SearchConfig(report_interval=1)).search(
            State.initial(2, 2), update_callback=recorder
        )

        progress = recorder.of_type(PROGRESS_UPDATE)
        assert len(progress) == result.statistics.iterations
        assert [p['iteration'] for p in progress] == [1, 2, 3]
        assert progress[-1]['queue_size'] == 0
        assert progress[-1]['visited'] == 3

    def test_failing_callback_does_not_stop_search(self):
        """Test callback errors are logged and ignored."""
        def broken_callback(event, payload):
            raise RuntimeError("display went away")

        result = PlanSearch(SearchConfig(report_interval=1)).search(
            State.initial(2, 2), update_callback=broken_callback
        )
        assert result.best_cost == 1.0

        emit(broken_callback, PROGRESS_UPDATE, {})
        emit(None, PROGRESS_UPDATE, {})

    def test_dump_on_report(self, tmp_path):
        """Test visited plans are written on each report."""
        dump_path = tmp_path / "dumps" / "plans.txt"
        search = PlanSearch(SearchConfig(report_interval=1, dump_path=str(dump_path)))
        search.search(State.initial(2, 2))

        content = dump_path.read_text()
        blocks = content.split("\n\n")
        assert len(blocks) == 3
        assert all(block.startswith("Plan for 2: 1/2\n") for block in blocks)
        assert "2/2 -> map 2 to 1/1\n" in content

    def test_dump_visited_plans(self, tmp_path):
        """Test plans are separated by a blank line."""
        path = tmp_path / "plans.txt"
        written = dump_visited_plans(path, ["Plan for 2: 1/2\n1/2 -> pending (min_map_units = 2)\n",
                                            "Plan for 2: 1/1\n1/1 -> solved"])

        assert written == 2
        assert path.read_text() == (
            "Plan for 2: 1/2\n1/2 -> pending (min_map_units = 2)\n"
            "\n"
            "Plan for 2: 1/1\n1/1 -> solved\n"
        )

    def test_search_stats(self):
        """Test statistics export."""
        search = create_plan_search(report_interval=50)
        result = search.search(State.initial(2, 2))

        stats = search.get_search_stats()
        assert stats['statistics']['iterations'] == result.statistics.iterations
        assert stats['heuristic_stats']['name'] == "zero"
        assert stats['config']['report_interval'] == 50

        data = result.to_dict()
        assert data['best_cost'] == 1.0
        assert data['exhaustive'] is True
        assert data['plan_text'] == result.best_plan.render()
