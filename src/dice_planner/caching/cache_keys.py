"""Cache key generation utilities."""

import hashlib

from dice_planner.core.data_models import State


class CacheKeyGenerator:
    """Generates consistent cache keys for planner values."""

    @staticmethod
    def state_hash(state: State) -> str:
        """SHA-1 of the state's components, stable across processes."""
        state_str = f"{state.source}:{state.target}:{state.units}"
        return hashlib.sha1(state_str.encode()).hexdigest()

    @staticmethod
    def heuristic_key(state: State, heuristic_type: str) -> str:
        """Cache key for a heuristic value.

        Args:
            state: State the value was computed for
            heuristic_type: Name of the heuristic (e.g., 'naive')
        """
        return f"heuristic:{heuristic_type}:{CacheKeyGenerator.state_hash(state)}"

    @staticmethod
    def plan_hash(rendered_plan: str) -> str:
        """Short digest of a rendered plan, used in dumps and logs."""
        return hashlib.sha1(rendered_plan.encode()).hexdigest()[:16]
