"""Progress events and visited-plan dumps emitted by the plan search."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[str, Dict[str, Any]], None]

PROGRESS_UPDATE = 'progress_update'
BEST_IMPROVED = 'best_improved'
SEARCH_FINISHED = 'search_finished'


def emit(update_callback: Optional[UpdateCallback], event: str, payload: Dict[str, Any]) -> None:
    """Send an event to the callback; a failing callback never stops the search."""
    if update_callback is None:
        return
    try:
        update_callback(event, payload)
    except Exception as e:
        logger.warning(f"Failed to execute update_callback for '{event}': {e}")


def dump_visited_plans(path: Union[str, Path], plans: Iterable[str]) -> int:
    """Write rendered plans to ``path``, one block per plan separated by a blank line.

    Args:
        path: Output file
        plans: Rendered plans (each ending with a newline)

    Returns:
        Number of plans written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    blocks = [plan if plan.endswith("\n") else plan + "\n" for plan in plans]
    path.write_text("\n".join(blocks))

    logger.debug(f"Dumped {len(blocks)} visited plans to {path}")
    return len(blocks)
