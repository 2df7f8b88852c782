"""
Operator confirmation before any write.

The engine reports the number of affected documents through a
ConfirmationGate and proceeds only on an explicit yes. The gate is injected,
so automated runs and tests supply an answer without a terminal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_YES = frozenset({"y", "yes"})


@runtime_checkable
class ConfirmationGate(Protocol):
    """
    Protocol for yes/no operator confirmation.

    ``confirm`` is synchronous and may block until the operator answers.
    """

    def confirm(self, message: str) -> bool:
        """
        Ask the operator to approve an action.

        Args:
            message: Question shown to the operator.

        Returns:
            True to proceed, False to decline.
        """
        ...


class ConsoleConfirmation:
    """
    Prompt on the terminal.

    ``y`` or ``yes`` (any case) confirms; any other answer, including an
    empty line or end of input, declines.

    Example:
        >>> gate = ConsoleConfirmation()
        >>> gate.confirm("Operation type: Delete. Found: 3 documents. Proceed?")
        Operation type: Delete. Found: 3 documents. Proceed? [y/n]: y
        True
    """

    def __init__(self, input_func: Callable[[str], str] = input) -> None:
        self._input = input_func

    def confirm(self, message: str) -> bool:
        try:
            answer = self._input(f"{message} [y/n]: ")
        except EOFError:
            logger.warning("No operator input available, declining")
            return False
        return answer.strip().lower() in _YES


class AutoConfirmation:
    """
    Non-interactive gate that always gives the same answer.

    Used for unattended runs (``--yes``).
    """

    def __init__(self, answer: bool = True) -> None:
        self._answer = answer

    def confirm(self, message: str) -> bool:
        logger.info(
            "Auto-%s: %s",
            "confirmed" if self._answer else "declined",
            message,
        )
        return self._answer


__all__ = [
    "ConfirmationGate",
    "ConsoleConfirmation",
    "AutoConfirmation",
]
