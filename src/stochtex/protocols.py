"""
Protocol definitions for stochtex pipeline interfaces.

Defines the progress sink the precomputation pipeline reports to.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressSink(Protocol):
    """
    Receiver for pipeline progress notifications.

    Purely observational: implementations must not influence the results.
    """

    def on_step(self, current: int, total: int, label: str) -> None:
        """
        Report that step ``current`` of ``total`` has completed.

        Args:
            current: Number of completed steps (1..total)
            total: Total number of steps for this map
            label: Human-readable description of the step
        """
        ...


class LoggingProgress:
    """Progress sink that forwards every step to the module logger."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_step(self, current: int, total: int, label: str) -> None:
        logger.log(self.level, "[Progress] %d/%d %s", current, total, label)
