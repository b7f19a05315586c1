"""Periodic purging of spent passcodes and reset tokens."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .otp import OTPManager
from .password_reset import PasswordResetManager

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Runs the OTP sweep and the reset-token sweep on independent timers.

    The sweeps only delete records in a terminal state, so they can overlap
    with request handling and with each other.
    """

    def __init__(
        self,
        otp: OTPManager,
        resets: PasswordResetManager,
        *,
        otp_interval_seconds: float = 600,
        reset_interval_seconds: float = 3600,
    ):
        self._otp = otp
        self._resets = resets
        self._otp_interval = otp_interval_seconds
        self._reset_interval = reset_interval_seconds
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(
                self._loop("otp", self._otp.purge, self._otp_interval),
                name="otp-cleanup",
            ),
            asyncio.create_task(
                self._loop("password-reset", self._resets.purge, self._reset_interval),
                name="password-reset-cleanup",
            ),
        ]
        logger.info(
            f"Cleanup scheduled: OTPs every {self._otp_interval}s, "
            f"reset tokens every {self._reset_interval}s"
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def run_once(self) -> dict[str, Optional[int]]:
        """Run both sweeps immediately. A failed sweep reports None."""
        return {
            "otp": await self._sweep("otp", self._otp.purge),
            "password_reset": await self._sweep("password-reset", self._resets.purge),
        }

    async def _loop(
        self, name: str, sweep: Callable[[], Awaitable[int]], interval: float
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._sweep(name, sweep)

    async def _sweep(self, name: str, sweep: Callable[[], Awaitable[int]]) -> Optional[int]:
        try:
            return await sweep()
        except Exception as e:
            # Keep the timer alive; the next tick retries
            logger.error(f"Error cleaning up {name} records: {e}")
            return None
