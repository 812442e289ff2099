"""Shared test fixtures."""

from typing import Any, Dict

import pytest


class EventRecorder:
    """Search callback that keeps every event it receives, in order."""

    def __init__(self):
        self.events = []

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, dict(payload)))

    def of_type(self, event: str):
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def recorder():
    """Fresh event recorder for one search."""
    return EventRecorder()
