"""Compensating actions for a partially completed intake."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class CompensationLog:
    """Stack of undo actions registered as creation steps succeed.

    ``unwind`` runs them newest first. Each action is best-effort: a failing
    action is logged and recorded, and the remaining actions still run.
    """

    def __init__(self) -> None:
        self._actions: list[tuple[str, Callable[[], object]]] = []

    def register(self, name: str, action: Callable[[], object]) -> None:
        self._actions.append((name, action))

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def pending(self) -> list[str]:
        """Names of registered actions, oldest first."""
        return [name for name, _ in self._actions]

    def unwind(self) -> list[str]:
        """Run all registered actions in reverse order.

        Returns:
            Names of the actions that raised.
        """
        failures: list[str] = []
        while self._actions:
            name, action = self._actions.pop()
            try:
                action()
            except Exception:
                failures.append(name)
                logger.warning("intake_compensation_failed", extra={"action": name}, exc_info=True)
            else:
                logger.info("intake_compensation_applied", extra={"action": name})
        return failures

    def discard(self) -> None:
        """Forget every registered action without running it."""
        self._actions.clear()
