"""Periodic removal of expired remember tokens."""

import asyncio

from loguru import logger

from src.app.core.errors import StorageFailure
from src.app.core.services.remember.token_ledger import TokenLedger


class ExpiredTokenSweeper:
    """Background task that calls ``TokenLedger.purge_expired`` on an interval.

    A failed pass is logged and the loop carries on; the next pass retries.
    An interval of zero or less disables the task.
    """

    def __init__(self, ledger: TokenLedger, interval_seconds: float):
        self._ledger = ledger
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._interval <= 0:
            logger.info("Periodic remember token sweep disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="remember-token-sweep")
        logger.info("Remember token sweep scheduled every {}s", self._interval)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._ledger.purge_expired()
            except StorageFailure as e:
                logger.warning(
                    "Remember token sweep failed, retrying next interval",
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
            except Exception as e:
                logger.exception(
                    "Unexpected error in remember token sweep",
                    error_type=type(e).__name__,
                )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        # Collect the task whether it was cancelled or had already failed
        (outcome,) = await asyncio.gather(self._task, return_exceptions=True)
        if isinstance(outcome, Exception):
            logger.error(
                "Remember token sweep had stopped with an error",
                error_type=type(outcome).__name__,
                error_message=str(outcome),
            )
        self._task = None
        logger.info("Remember token sweep stopped")
