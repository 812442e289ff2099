"""CLI command implementations."""

import logging
from typing import Any, Dict, List, Optional

from omegaconf import DictConfig, OmegaConf

from dice_planner.config import load_config, validate_config, ConfigValidationError
from dice_planner.caching import HeuristicCache, create_heuristic_cache
from dice_planner.core.data_models import State
from dice_planner.search.branch_and_bound import PlanSearch, SearchConfig, SearchResult
from dice_planner.search.heuristics import create_heuristic, naive_solver

from .utils import save_results, format_duration, ProgressReporter

logger = logging.getLogger(__name__)


class DicePlanner:
    """Wires configuration, heuristic cache and plan search together."""

    def __init__(self, config_overrides: Optional[List[str]] = None, config_dir: Optional[str] = None):
        """Initialize planner.

        Args:
            config_overrides: List of Hydra configuration overrides
            config_dir: Configuration directory (packaged ``conf/`` if None)
        """
        self.config: DictConfig = load_config(overrides=config_overrides or [], config_dir=config_dir)

        self.heuristic_cache: HeuristicCache = create_heuristic_cache(
            naive_solver, self.config.get('caching', {})
        )

        search_cfg = self.config.get('search', {})
        self.search_config = SearchConfig(
            max_iterations=int(search_cfg.get('max_iterations', 0)),
            max_computation_time=float(search_cfg.get('max_computation_time', 0.0)),
            report_interval=int(search_cfg.get('report_interval', 10000)),
            dump_path=search_cfg.get('dump_path'),
            heuristic=str(search_cfg.get('heuristic', 'zero'))
        )

        logger.info("Dice planner initialized")

    @property
    def start(self) -> State:
        problem = self.config.get('problem', {})
        return State.initial(int(problem.get('source', 6)), int(problem.get('target', 8)))

    def create_search(self) -> PlanSearch:
        heuristic = create_heuristic(self.search_config.heuristic, cache=self.heuristic_cache)
        return PlanSearch(self.search_config, heuristic=heuristic)

    def solve(self, update_callback=None) -> SearchResult:
        return self.create_search().search(self.start, update_callback=update_callback)

    def naive_cost(self, state: Optional[State] = None) -> float:
        return self.heuristic_cache.calculate(state or self.start)


def _apply_configured_log_level(planner: DicePlanner, args) -> None:
    # Command line verbosity wins over the configured level
    if args.quiet or getattr(args, 'verbose', 0):
        return
    level = str(planner.config.get('logging', {}).get('level', 'WARNING')).upper()
    logging.getLogger('dice_planner').setLevel(level)


def _config_overrides(args) -> List[str]:
    overrides = list(getattr(args, 'config', None) or [])

    for option, key in (('source', 'problem.source'),
                        ('target', 'problem.target'),
                        ('heuristic', 'search.heuristic'),
                        ('max_iterations', 'search.max_iterations'),
                        ('timeout', 'search.max_computation_time'),
                        ('report_interval', 'search.report_interval'),
                        ('dump_plans', 'search.dump_path')):
        value = getattr(args, option, None)
        if value is not None:
            overrides.append(f"{key}={value}")

    return overrides


def solve_command(args) -> int:
    """Handle solve command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    planner = DicePlanner(_config_overrides(args), getattr(args, 'config_dir', None))
    _apply_configured_log_level(planner, args)
    reporter = ProgressReporter(quiet=args.quiet)

    result = planner.solve(update_callback=reporter)
    heuristic_cost = planner.naive_cost()

    print(result.best_plan.render(), end="")
    print(f"Heuristic cost = {heuristic_cost}")
    print(f"Cost = {result.best_cost}")

    if not args.quiet:
        print(f"Termination: {result.termination_reason} after "
              f"{result.statistics.iterations} iterations ({format_duration(result.computation_time)})")

    if args.output:
        payload: Dict[str, Any] = result.to_dict()
        payload['start'] = planner.start.to_dict()
        payload['heuristic_cost'] = heuristic_cost
        save_results(payload, args.output)
        logger.info(f"Results written to {args.output}")

    return 0


def naive_command(args) -> int:
    """Handle naive command: print the naive plan and its cost."""
    planner = DicePlanner(_config_overrides(args), getattr(args, 'config_dir', None))
    _apply_configured_log_level(planner, args)
    plan = naive_solver(planner.start)
    cost = plan.exact_cost()

    print(plan.render(), end="")
    print(f"Cost = {cost}")

    if args.output:
        save_results({'start': planner.start.to_dict(), 'cost': cost, 'plan': plan.to_dict(),
                      'plan_text': plan.render()}, args.output)

    return 0


def config_command(args) -> int:
    """Handle config command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    overrides = list(getattr(args, 'config', None) or [])
    config_dir = getattr(args, 'config_dir', None)

    if args.config_action == 'show':
        config = load_config(overrides=overrides, config_dir=config_dir)
        print("Current Configuration:")
        print("=" * 50)
        print(OmegaConf.to_yaml(config, resolve=True))
        return 0

    if args.config_action == 'validate':
        try:
            config = load_config(overrides=overrides, config_dir=config_dir, validate=False)
            validate_config(config)
        except ConfigValidationError as e:
            print(f"Configuration validation failed: {e}")
            return 1
        print("Configuration is valid")
        return 0

    print("Unknown config action")
    return 1
