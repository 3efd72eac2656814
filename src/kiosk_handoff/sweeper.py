"""Periodic eviction of lapsed transfer tokens.

The shared store normally expires ``qr:*`` entries by itself.  The sweeper
covers stores where passive expiry is not guaranteed and leaves a log
trail of cleanup activity: every interval it scans the token namespace
and deletes any key whose remaining TTL is not positive, which includes
keys that were stored without an expiry.

Classes
-------
- ExpirySweeper  — background task around ``sweep_once``
"""
from __future__ import annotations

import asyncio
import contextlib
import logging

from kiosk_handoff.errors import StoreUnavailableError
from kiosk_handoff.kv.base import TTL_MISSING, AsyncKeyValueStore
from kiosk_handoff.tokens.service import TOKEN_KEY_PREFIX

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class ExpirySweeper:
    """Background sweeper for expired token keys.

    Lifecycle:
    - start() creates an asyncio task that sweeps every ``interval`` seconds.
    - stop() cancels the task and waits for it to finish.
    - sweep_once() runs a single pass.

    Parameters
    ----------
    store:
        Shared key-value store.
    interval:
        Seconds between passes.
    pattern:
        Glob pattern of the keys to inspect.
    """

    def __init__(
        self,
        store: AsyncKeyValueStore,
        interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        pattern: str = f"{TOKEN_KEY_PREFIX}*",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._store = store
        self._interval = interval
        self._pattern = pattern
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Delete lapsed keys matching the pattern and return how many were removed.

        A store outage is logged and the pass is skipped (returns 0).
        """
        try:
            keys = await self._store.keys(self._pattern)
            removed = 0
            for key in keys:
                ttl = await self._store.ttl(key)
                if ttl == TTL_MISSING:
                    continue
                if ttl <= 0 and await self._store.delete(key):
                    removed += 1
        except StoreUnavailableError as exc:
            logger.warning("Skipping token sweep: %s", exc.message)
            return 0

        if removed:
            logger.info("Cleaned up %d expired transfer tokens", removed)
        return removed

    def start(self) -> None:
        """Start the background loop.  No-op if already running."""
        if self.is_running:
            logger.warning("Expiry sweeper already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Expiry sweeper started (interval=%.0fs)", self._interval)

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def _run_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self._interval)
                try:
                    await self.sweep_once()
                except Exception:  # noqa: BLE001
                    logger.exception("Error in token sweep")
        except asyncio.CancelledError:
            logger.debug("Sweep loop cancelled")
            raise


__all__ = ["DEFAULT_SWEEP_INTERVAL_SECONDS", "ExpirySweeper"]
