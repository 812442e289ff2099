"""Divisor lookup table for a fixed target size."""

import logging
from typing import Dict, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class DivisorTable:
    """Precomputed divisors of every divisor of ``target``.

    For each ``d >= 2`` dividing ``target`` the table holds the ascending
    divisors of ``d`` that are themselves divisors of ``target``. Only values
    dividing ``target`` may be queried.
    """

    def __init__(self, target: int):
        """Build the table.

        Args:
            target: Size of the die being simulated (``>= 1``)
        """
        if target < 1:
            raise ValueError(f"target must be a positive integer, got {target}")

        self.target = target
        self._divisors: Dict[int, Tuple[int, ...]] = {}

        candidates = np.arange(2, target + 1, dtype=np.int64)
        main_divisors = candidates[target % candidates == 0]

        for n in main_divisors:
            own = main_divisors[int(n) % main_divisors == 0]
            self._divisors[int(n)] = tuple(int(d) for d in own)

        logger.debug(f"Divisor table for {target}: {len(self._divisors)} entries")

    @classmethod
    def build(cls, target: int) -> 'DivisorTable':
        """Factory alias used by the search."""
        return cls(target)

    def divisors(self, n: int) -> Tuple[int, ...]:
        """Ascending divisors (``>= 2``) of ``n`` drawn from ``target``'s divisors.

        Raises:
            KeyError: If ``n`` does not divide ``target``
        """
        if n == 1:
            return ()
        return self._divisors[n]

    def __contains__(self, n: int) -> bool:
        return n == 1 or n in self._divisors

    def __len__(self) -> int:
        return len(self._divisors)
