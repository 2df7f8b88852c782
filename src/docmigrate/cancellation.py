"""
Cooperative cancellation for migration runs.

A run never aborts a store call mid-flight. The token is checked between
batches, and backoff waits and the confirmation prompt end early once it is
cancelled, so an operator abort leaves every submitted request resolved.
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Flag shared between the operator-facing layer and the bulk writer.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel("SIGINT")
        >>> token.is_cancelled
        True
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._event = asyncio.Event()

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Subsequent calls keep the first reason."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        self._event.set()
        logger.info("Cancellation requested", extra={"reason": reason})

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason


__all__ = ["CancellationToken"]
