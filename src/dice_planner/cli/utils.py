"""CLI utility functions."""

import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union


def setup_logging(level: int = logging.INFO,
                  format_string: Optional[str] = None) -> None:
    """Setup logging configuration.

    Args:
        level: Logging level
        format_string: Custom format string
    """
    if format_string is None:
        if level <= logging.DEBUG:
            format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_string = "%(levelname)s: %(message)s"

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Hydra logs its own setup at INFO
    logging.getLogger('hydra').setLevel(logging.WARNING)


def save_results(results: Dict[str, Any],
                 output_path: Union[str, Path],
                 pretty: bool = True) -> None:
    """Save results to JSON file.

    Non-finite floats are written as strings (``"inf"``, ``"nan"``) so the
    output stays valid JSON.

    Args:
        results: Results dictionary
        output_path: Output file path
        pretty: Whether to pretty-print JSON
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    def convert(obj):
        if isinstance(obj, float) and not math.isfinite(obj):
            return str(obj)
        if isinstance(obj, dict):
            return {k: convert(v) for k, v in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [convert(item) for item in obj]
        return obj

    with open(output_path, 'w') as f:
        if pretty:
            json.dump(convert(results), f, indent=2, sort_keys=True)
        else:
            json.dump(convert(results), f)


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 0.001:
        return f"{seconds*1000000:.1f}µs"
    elif seconds < 1:
        return f"{seconds*1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.1f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs:.1f}s"


class ProgressReporter:
    """Search event callback printing progress lines."""

    def __init__(self, quiet: bool = False):
        """Initialize progress reporter.

        Args:
            quiet: Suppress all output
        """
        self.quiet = quiet
        self.start_time = time.time()
        self.improvements = 0

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        if event == 'best_improved':
            self.improvements += 1

        if self.quiet:
            return

        elapsed = format_duration(time.time() - self.start_time)
        if event == 'progress_update':
            print(f"Progress: iteration {payload['iteration']} | "
                  f"Queue: {payload['queue_size']} | "
                  f"Visited: {payload['visited']} | "
                  f"Best: {payload['best_cost']:.6f} | "
                  f"Elapsed: {elapsed}")
        elif event == 'best_improved':
            print(f"Improved: cost {payload['best_cost']:.6f} at iteration {payload['iteration']}")
