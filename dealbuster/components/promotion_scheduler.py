"""
One-shot deferred promotion checks.

Each deal gets at most one check over its lifetime. A check that already
fired, or was cancelled, is never rescheduled.
"""

import asyncio
from typing import Callable, Dict, Set

from ..utils.error_handling import ErrorCategory, ErrorSeverity, with_error_handling
from ..utils.logging import get_logger

logger = get_logger("promotion_scheduler")


class PromotionScheduler:
    """Runs ``callback(deal_id)`` once, ``delay_seconds`` after scheduling."""

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback
        self._tasks: Dict[str, asyncio.Task] = {}
        self._seen: Set[str] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def is_scheduled(self, deal_id: str) -> bool:
        return deal_id in self._tasks

    def schedule(self, deal_id: str, delay_seconds: float) -> None:
        """
        Schedule the promotion check for ``deal_id``.

        Must be called from within a running event loop.
        """
        if deal_id in self._seen:
            logger.debug("Promotion check already scheduled", extra={"deal_id": deal_id})
            return

        loop = asyncio.get_running_loop()
        self._seen.add(deal_id)
        self._tasks[deal_id] = loop.create_task(
            self._run(deal_id, delay_seconds), name=f"promotion-check-{deal_id}"
        )
        logger.debug(
            "Promotion check scheduled",
            extra={"deal_id": deal_id, "delay_seconds": delay_seconds},
        )

    def cancel(self, deal_id: str) -> bool:
        task = self._tasks.pop(deal_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        cancelled = 0
        for deal_id in list(self._tasks):
            if self.cancel(deal_id):
                cancelled += 1

        if cancelled:
            logger.info("Cancelled pending promotion checks", extra={"count": cancelled})
        return cancelled

    async def _run(self, deal_id: str, delay_seconds: float) -> None:
        try:
            await asyncio.sleep(delay_seconds)
        except asyncio.CancelledError:
            logger.debug("Promotion check cancelled", extra={"deal_id": deal_id})
            raise

        self._tasks.pop(deal_id, None)
        self._fire(deal_id)

    @with_error_handling(
        component="promotion_scheduler",
        category=ErrorCategory.SCHEDULING,
        severity=ErrorSeverity.HIGH,
        suppress_exceptions=True,
    )
    def _fire(self, deal_id: str) -> None:
        self.callback(deal_id)
