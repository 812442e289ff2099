"""Configuration validation for the dice planner."""

import logging
from typing import Any

from omegaconf import DictConfig

from dice_planner.search.heuristics import HEURISTIC_NAMES

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigValidationError(Exception):
    """Exception raised when configuration validation fails."""


def validate_config(config: DictConfig) -> None:
    """Validate the complete configuration.

    Args:
        config: Configuration to validate

    Raises:
        ConfigValidationError: If validation fails
    """
    validate_problem_config(config.get('problem', {}))
    validate_search_config(config.get('search', {}))
    validate_caching_config(config.get('caching', {}))
    validate_logging_config(config.get('logging', {}))

    logger.debug("Configuration validation passed")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_problem_config(problem_config: DictConfig) -> None:
    """Validate problem configuration section."""
    if not problem_config:
        return

    source = problem_config.get('source', 6)
    if not _is_int(source) or source < 2:
        raise ConfigValidationError(f"problem.source must be an integer >= 2, got {source}")

    target = problem_config.get('target', 8)
    if not _is_int(target) or target < 1:
        raise ConfigValidationError(f"problem.target must be a positive integer, got {target}")


def validate_search_config(search_config: DictConfig) -> None:
    """Validate search configuration section."""
    if not search_config:
        return

    max_iterations = search_config.get('max_iterations', 0)
    if not _is_int(max_iterations) or max_iterations < 0:
        raise ConfigValidationError(
            f"search.max_iterations must be a non-negative integer, got {max_iterations}"
        )

    timeout = search_config.get('max_computation_time', 0.0)
    if not _is_number(timeout) or timeout < 0:
        raise ConfigValidationError(
            f"search.max_computation_time must be a non-negative number, got {timeout}"
        )

    interval = search_config.get('report_interval', 10000)
    if not _is_int(interval) or interval < 1:
        raise ConfigValidationError(f"search.report_interval must be a positive integer, got {interval}")

    heuristic = search_config.get('heuristic', 'zero')
    if heuristic not in HEURISTIC_NAMES:
        raise ConfigValidationError(
            f"search.heuristic must be one of {', '.join(HEURISTIC_NAMES)}, got {heuristic}"
        )


def validate_caching_config(caching_config: DictConfig) -> None:
    """Validate caching configuration section."""
    if not caching_config:
        return

    file_config = caching_config.get('file_cache', {})
    if file_config:
        ttl = file_config.get('ttl', 0)
        if not _is_int(ttl) or ttl < 0:
            raise ConfigValidationError(f"caching.file_cache.ttl must be a non-negative integer, got {ttl}")

        if file_config.get('enabled', False) and not file_config.get('cache_dir'):
            raise ConfigValidationError("caching.file_cache.cache_dir is required when the file cache is enabled")


def validate_logging_config(logging_config: DictConfig) -> None:
    """Validate logging configuration section."""
    if not logging_config:
        return

    level = str(logging_config.get('level', 'WARNING')).upper()
    if level not in LOG_LEVELS:
        raise ConfigValidationError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {level}")
