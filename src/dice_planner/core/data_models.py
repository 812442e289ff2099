"""Core data models for the dice planner."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, order=True)
class State:
    """One configuration of the problem.

    ``source`` and ``target`` are fixed for a problem instance, ``units`` is the
    number of equally likely outcomes accumulated so far.
    """

    source: int
    target: int
    units: int

    @classmethod
    def initial(cls, source: int, target: int) -> 'State':
        """State before any throw (a single outcome)."""
        return cls(source=source, target=target, units=1)

    @property
    def solved(self) -> bool:
        return self.target == 1

    def thrown(self) -> 'State':
        """State after throwing the source die once more."""
        return State(self.source, self.target, self.units * self.source)

    def to_dict(self) -> dict:
        return {'source': self.source, 'target': self.target, 'units': self.units}

    def __str__(self) -> str:
        return f"{self.units}/{self.target}"


@dataclass(frozen=True)
class Throw:
    """Throw the source die once more."""

    def __str__(self) -> str:
        return "throw"


@dataclass(frozen=True)
class Map:
    """Commit ``units`` outcomes to a sub problem of size ``target / units``."""

    units: int

    def __str__(self) -> str:
        return f"map {self.units}"


Move = Union[Throw, Map]


@dataclass(frozen=True)
class Solved:
    """Terminal branch: the target die has been simulated."""


@dataclass(frozen=True)
class Pending:
    """Undecided branch.

    ``min_map_units`` is the smallest map size still admissible here. States
    left over after a map of ``n`` units carry ``n`` as their floor.
    """

    min_map_units: int = 2


@dataclass(frozen=True)
class ThrowBranch:
    """Decided branch: throw and continue at ``next``."""

    next: State


@dataclass(frozen=True)
class MapBranch:
    """Decided branch: map ``units`` outcomes to ``sub_problem``.

    ``remaining`` carries the leftover outcomes, if any, at the same target.
    """

    units: int
    sub_problem: State
    remaining: Optional[State] = None


PlanBranch = Union[Solved, Pending, ThrowBranch, MapBranch]
