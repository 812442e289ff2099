"""Caching system for the dice planner.

This module memoizes solver-derived heuristic values per state, optionally
backed by a file store so they survive across runs.
"""

from .heuristic_cache import HeuristicCache, HeuristicContractError, create_heuristic_cache
from .file_cache import FileCache
from .cache_keys import CacheKeyGenerator

__all__ = [
    'HeuristicCache',
    'HeuristicContractError',
    'create_heuristic_cache',
    'FileCache',
    'CacheKeyGenerator'
]
