"""Plan graphs for the dice planner.

This module holds the plan graph model, its cost evaluation (including the
algebraic resolution of cycles) and the divisor table used to enumerate maps.
"""

from .divisors import DivisorTable
from .cost import CostEvaluator, CycleCost, PlanCost, evaluate_plan_cost, exact_cost
from .plan_graph import (
    PlanGraph, PlanApplyError, StateDoesNotExist, StateNotPending,
    MapDoesNotDivide, MapTooFewUnits, MapToFewUnits
)

__all__ = [
    'DivisorTable',
    'CostEvaluator',
    'CycleCost',
    'PlanCost',
    'evaluate_plan_cost',
    'exact_cost',
    'PlanGraph',
    'PlanApplyError',
    'StateDoesNotExist',
    'StateNotPending',
    'MapDoesNotDivide',
    'MapTooFewUnits',
    'MapToFewUnits'
]
