"""Main CLI entry point for the dice planner."""

import sys
import argparse
import logging
from typing import List, Optional

from . import commands
from .utils import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='dice-planner',
        description='Dice planner - minimum expected-throw strategies for simulating one die with another',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dice-planner solve                              # Solve the configured problem (d6 -> d8)
  dice-planner solve --source 2 --target 6        # Simulate a d6 with a coin
  dice-planner solve --max-iterations 100000 --dump-plans plans.txt
  dice-planner naive --source 6 --target 8        # Show the naive plan
  dice-planner config show                        # Show current configuration
        """
    )

    # Global options
    parser.add_argument(
        '--config', '-c',
        action='append',
        help='Configuration override (e.g., search.max_iterations=50000); may be repeated'
    )

    parser.add_argument(
        '--config-dir',
        type=str,
        help='Configuration directory (default: the conf/ shipped with the package)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='count',
        default=0,
        help='Increase verbosity (use -v or -vv)'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress all output except results'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Output file for results (JSON format)'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands',
        metavar='COMMAND'
    )

    # Solve command
    solve_parser = subparsers.add_parser(
        'solve',
        help='Search the best plan',
        description='Branch-and-bound search for the minimum expected-cost plan'
    )
    _add_problem_arguments(solve_parser)

    solve_parser.add_argument(
        '--heuristic',
        choices=['zero', 'naive', 'cached_naive'],
        help='Pricing of pending states (default from config: zero)'
    )

    solve_parser.add_argument(
        '--max-iterations',
        type=int,
        help='Stop after this many iterations (0 for no limit)'
    )

    solve_parser.add_argument(
        '--timeout', '-t',
        type=float,
        help='Timeout in seconds (0 for no limit)'
    )

    solve_parser.add_argument(
        '--report-interval',
        type=int,
        help='Iterations between progress reports'
    )

    solve_parser.add_argument(
        '--dump-plans',
        type=str,
        help='Write visited plans to this file on each progress report'
    )

    # Naive command
    naive_parser = subparsers.add_parser(
        'naive',
        help='Show the naive plan',
        description='Throw until there are enough outcomes, then map them all'
    )
    _add_problem_arguments(naive_parser)

    # Config command
    config_parser = subparsers.add_parser(
        'config',
        help='Configuration management',
        description='Manage planner configuration'
    )

    config_subparsers = config_parser.add_subparsers(
        dest='config_action',
        help='Configuration actions'
    )
    config_subparsers.add_parser('show', help='Show current configuration')
    config_subparsers.add_parser('validate', help='Validate configuration')

    return parser


def _add_problem_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--source', '-s',
        type=int,
        help='Faces of the die available (default from config: 6)'
    )
    parser.add_argument(
        '--target', '-T',
        type=int,
        help='Faces of the die to simulate (default from config: 8)'
    )


def main_cli(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.quiet:
        log_level = logging.ERROR
    elif parsed_args.verbose == 0:
        log_level = logging.WARNING
    elif parsed_args.verbose == 1:
        log_level = logging.INFO
    else:
        log_level = logging.DEBUG

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    try:
        if not parsed_args.command:
            parser.print_help()
            return 1

        if parsed_args.command == 'solve':
            return commands.solve_command(parsed_args)
        if parsed_args.command == 'naive':
            return commands.naive_command(parsed_args)
        if parsed_args.command == 'config':
            return commands.config_command(parsed_args)

        logger.error(f"Unknown command: {parsed_args.command}")
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return 1


def main() -> None:
    """Entry point for console script."""
    sys.exit(main_cli())


if __name__ == '__main__':
    main()
