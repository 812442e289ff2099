"""Plan graph: the chosen (or pending) move for every reachable state.

A plan is built one move at a time. Each ``apply`` resolves exactly one
pending state and inserts the states the move leads to. Because a map can
send leftover outcomes back to a state that is already in the graph, the
graph may contain cycles; see :mod:`dice_planner.planning.cost` for how they
are priced.
"""

import logging
from collections import deque
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from dice_planner.core.data_models import (
    State, Move, Throw, Map, PlanBranch, Solved, Pending, ThrowBranch, MapBranch
)
from .divisors import DivisorTable
from .cost import PlanCost, evaluate_plan_cost, exact_cost

logger = logging.getLogger(__name__)


class PlanApplyError(Exception):
    """Base class for moves that cannot be applied to a plan."""

    def __init__(self, state: State, move: Move, message: str):
        self.state = state
        self.move = move
        super().__init__(f"Cannot apply {move} to {state}: {message}")


class StateDoesNotExist(PlanApplyError):
    """The state is not part of the plan."""

    def __init__(self, state: State, move: Move):
        super().__init__(state, move, "state does not exist")


class StateNotPending(PlanApplyError):
    """The state has already been resolved."""

    def __init__(self, state: State, move: Move):
        super().__init__(state, move, "state is not pending")


class MapDoesNotDivide(PlanApplyError):
    """The map size does not divide the state's target."""

    def __init__(self, state: State, move: Move):
        super().__init__(state, move, f"{move.units} does not divide {state.target}")


class MapTooFewUnits(PlanApplyError):
    """The map size is below the state's ``min_map_units`` floor."""

    def __init__(self, state: State, move: Move, min_map_units: int):
        self.min_map_units = min_map_units
        super().__init__(state, move, f"map size must be at least {min_map_units}")


MapToFewUnits = MapTooFewUnits


class PlanGraph:
    """Mapping from states to plan branches, rooted at ``start``."""

    def __init__(self, start: State, branches: Optional[Dict[State, PlanBranch]] = None):
        """Create a plan containing only ``start``.

        Args:
            start: Initial state
            branches: Existing branch mapping (used by ``copy``)
        """
        self.start = start
        if branches is None:
            self._branches: Dict[State, PlanBranch] = {}
            self._ensure_state(start, 2)
        else:
            self._branches = branches

    def copy(self) -> 'PlanGraph':
        """Independent copy. Branches are immutable, so a shallow copy suffices."""
        return PlanGraph(self.start, dict(self._branches))

    def branch(self, state: State) -> PlanBranch:
        return self._branches[state]

    @property
    def states(self) -> List[State]:
        return list(self._branches)

    def items(self) -> Iterator[Tuple[State, PlanBranch]]:
        return iter(self._branches.items())

    def pending_states(self) -> List[State]:
        """Pending states in insertion order."""
        return [state for state, branch in self._branches.items() if isinstance(branch, Pending)]

    def is_complete(self) -> bool:
        return not any(isinstance(branch, Pending) for branch in self._branches.values())

    def __len__(self) -> int:
        return len(self._branches)

    def __contains__(self, state: State) -> bool:
        return state in self._branches

    def possible_actions(self, divisor_table: DivisorTable) -> List[Tuple[State, Move]]:
        """Enumerate every move that can be applied to a pending state."""
        actions: List[Tuple[State, Move]] = []

        for state, branch in self._branches.items():
            if not isinstance(branch, Pending):
                continue

            actions.append((state, Throw()))

            for units in divisor_table.divisors(state.target):
                if units > state.units:
                    break
                if units >= branch.min_map_units:
                    actions.append((state, Map(units)))

        return actions

    def apply(self, state: State, move: Move) -> None:
        """Resolve the pending ``state`` with ``move``.

        Raises:
            StateDoesNotExist: ``state`` is not in the plan
            StateNotPending: ``state`` was already resolved
            MapDoesNotDivide: map size does not divide ``state.target``
            MapTooFewUnits: map size is below the state's floor
        """
        current = self._branches.get(state)
        if current is None:
            raise StateDoesNotExist(state, move)
        if not isinstance(current, Pending):
            raise StateNotPending(state, move)

        if isinstance(move, Throw):
            branch: PlanBranch = ThrowBranch(next=self._ensure_state(state.thrown(), 2))
        elif isinstance(move, Map):
            units = move.units
            if state.target % units != 0:
                raise MapDoesNotDivide(state, move)
            if units < current.min_map_units:
                raise MapTooFewUnits(state, move, current.min_map_units)

            sub_problem = self._ensure_state(
                State(state.source, state.target // units, 1), 2
            )

            remaining = None
            remaining_units = state.units - units
            if remaining_units > 0:
                remaining = self._ensure_state(
                    State(state.source, state.target, remaining_units), units
                )

            branch = MapBranch(units=units, sub_problem=sub_problem, remaining=remaining)
        else:
            raise TypeError(f"Unknown move: {move!r}")

        self._branches[state] = branch

    def mark_solved(self, state: State) -> None:
        """Resolve a pending state as solved by some external means."""
        current = self._branches.get(state)
        if current is None:
            raise StateDoesNotExist(state, Throw())
        if not isinstance(current, Pending):
            raise StateNotPending(state, Throw())
        self._branches[state] = Solved()

    def _ensure_state(self, state: State, min_map_units: int) -> State:
        if state not in self._branches:
            self._branches[state] = Solved() if state.solved else Pending(min_map_units)
        return state

    def reachable_states(self) -> List[State]:
        """States reachable from ``start``, breadth-first, each listed once."""
        seen: Set[State] = {self.start}
        order = [self.start]
        queue = deque([self.start])

        while queue:
            for child in _children(self._branches[queue.popleft()]):
                if child not in seen:
                    seen.add(child)
                    order.append(child)
                    queue.append(child)

        return order

    def cost(self, heuristic: Optional[Callable[[State], float]] = None) -> PlanCost:
        """Expected number of throws from ``start``; see ``evaluate_plan_cost``."""
        return evaluate_plan_cost(self, heuristic)

    def exact_cost(self) -> Optional[float]:
        """Cost of a fully resolved plan, ``None`` while anything is pending."""
        return exact_cost(self)

    def render(self) -> str:
        """Human-readable breadth-first dump of the plan."""
        lines = [f"Plan for {self.start.source}: {self.start}"]

        for state in self.reachable_states():
            branch = self._branches[state]
            if isinstance(branch, Solved):
                lines.append(f"{state} -> solved")
            elif isinstance(branch, Pending):
                lines.append(f"{state} -> pending (min_map_units = {branch.min_map_units})")
            elif isinstance(branch, ThrowBranch):
                lines.append(f"{state} -> throw to {branch.next}")
            else:
                line = f"{state} -> map {branch.units} to {branch.sub_problem}"
                if branch.remaining is not None:
                    line += f" and {branch.remaining}"
                lines.append(line)

        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"PlanGraph(start={self.start!r}, states={len(self._branches)})"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation, states in breadth-first order."""
        states = []
        for state in self.reachable_states():
            branch = self._branches[state]
            entry: Dict[str, Any] = {'state': state.to_dict()}
            if isinstance(branch, Solved):
                entry['branch'] = 'solved'
            elif isinstance(branch, Pending):
                entry['branch'] = 'pending'
                entry['min_map_units'] = branch.min_map_units
            elif isinstance(branch, ThrowBranch):
                entry['branch'] = 'throw'
                entry['next'] = branch.next.to_dict()
            else:
                entry['branch'] = 'map'
                entry['units'] = branch.units
                entry['sub_problem'] = branch.sub_problem.to_dict()
                entry['remaining'] = branch.remaining.to_dict() if branch.remaining else None
            states.append(entry)

        return {'start': self.start.to_dict(), 'states': states}


def _children(branch: PlanBranch) -> List[State]:
    if isinstance(branch, ThrowBranch):
        return [branch.next]
    if isinstance(branch, MapBranch):
        if branch.remaining is None:
            return [branch.sub_problem]
        return [branch.sub_problem, branch.remaining]
    return []
