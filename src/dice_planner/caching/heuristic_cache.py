"""Memoized heuristic values derived from a full solver."""

import logging
from typing import Any, Callable, Dict, Optional

from dice_planner.core.data_models import State
from dice_planner.planning.plan_graph import PlanGraph
from .cache_keys import CacheKeyGenerator
from .file_cache import FileCache

logger = logging.getLogger(__name__)

Solver = Callable[[State], PlanGraph]


class HeuristicContractError(RuntimeError):
    """A solver returned a plan that is not fully resolved."""


class HeuristicCache:
    """Runs ``solver`` at most once per distinct state and remembers the cost."""

    def __init__(self, solver: Solver, store: Optional[FileCache] = None, name: str = "naive"):
        """Initialize heuristic cache.

        Args:
            solver: Function returning a fully resolved plan for a state
            store: Optional persistent backing store
            name: Heuristic name used in persistent keys
        """
        self.solver = solver
        self.store = store
        self.name = name
        self._values: Dict[State, float] = {}
        self.hits = 0
        self.misses = 0

    def calculate(self, state: State) -> float:
        """Exact cost of the solver's plan for ``state``.

        Raises:
            HeuristicContractError: If the solver's plan still has pending states
        """
        value = self._values.get(state)
        if value is not None:
            self.hits += 1
            return value

        self.misses += 1
        key = CacheKeyGenerator.heuristic_key(state, self.name)
        if self.store is not None:
            value = self.store.get(key)

        if value is None:
            value = self.solver(state).exact_cost()
            if value is None:
                raise HeuristicContractError(f"Solver returned an unresolved plan for {state}")
            if self.store is not None:
                self.store.set(key, value)

        self._values[state] = value
        return value

    __call__ = calculate

    def clear(self) -> None:
        self._values.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, state: State) -> bool:
        return state in self._values

    def get_stats(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'entries': len(self._values),
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hits / max(self.hits + self.misses, 1),
            'store': self.store.get_stats() if self.store is not None else None
        }


def create_heuristic_cache(solver: Solver, config: Optional[Any] = None, name: str = "naive") -> HeuristicCache:
    """Build a heuristic cache from the ``caching`` configuration section.

    Args:
        solver: Function returning a fully resolved plan for a state
        config: ``caching`` section (``file_cache.enabled``, ``cache_dir``, ...)
        name: Heuristic name used in persistent keys
    """
    store = None
    file_config = (config or {}).get('file_cache', {}) or {}

    if file_config.get('enabled', False):
        store = FileCache(
            cache_dir=file_config.get('cache_dir', '.cache/dice_planner'),
            default_ttl=file_config.get('ttl', 0),
            compression=file_config.get('compression', True)
        )

    return HeuristicCache(solver, store=store, name=name)
