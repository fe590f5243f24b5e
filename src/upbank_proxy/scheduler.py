"""
Self-ping scheduler.

Runs on the app's event loop as two background tasks:
- keep-alive: GET <base><KEEP_ALIVE_PATH> every KEEP_ALIVE_INTERVAL_MINUTES so
  the host does not idle the service;
- pre-warm: GET <base><PREWARM_PATH> once a day at PREWARM_HOUR (UTC) so the
  transaction cache is filled before anyone asks for it.

A failed ping is logged and otherwise ignored; the next tick tries again.
"""

import asyncio
from datetime import datetime, timedelta
from typing import List, Optional

import httpx

from upbank_proxy.cache import Clock, utc_now
from upbank_proxy.config import Settings
from upbank_proxy.logging_config import get_logger

logger = get_logger("upbank_proxy.scheduler")


def seconds_until(hour: int, now: datetime) -> float:
    """
    Seconds from `now` until the next occurrence of `hour`:00. If that time
    is exactly now, the next one is tomorrow.
    """
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class SelfPingScheduler:
    def __init__(
        self,
        base_url: str,
        keep_alive_interval: timedelta = timedelta(minutes=10),
        keep_alive_path: str = "/health",
        prewarm_hour: int = 6,
        prewarm_path: str = "/api/transactions/csv",
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = utc_now,
    ):
        self.base_url = base_url.rstrip("/")
        if keep_alive_interval.total_seconds() <= 0:
            raise ValueError("keep_alive_interval must be positive")
        self.keep_alive_interval = keep_alive_interval
        self.keep_alive_path = keep_alive_path
        self.prewarm_hour = prewarm_hour
        self.prewarm_path = prewarm_path
        self.clock = clock
        self._owns_client = http_client is None
        # pre-warm may wait for a full upstream refresh
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._tasks: List[asyncio.Task] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "SelfPingScheduler":
        return cls(
            base_url=settings.self_ping_base_url,
            keep_alive_interval=timedelta(minutes=settings.keep_alive_interval_minutes),
            keep_alive_path=settings.keep_alive_path,
            prewarm_hour=settings.prewarm_hour,
            prewarm_path=settings.prewarm_path,
        )

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def ping(self, path: str) -> bool:
        """
        GET one of our own endpoints. Returns True on a 2xx; never raises.
        """
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Self-ping %s failed: %s", url, e)
            return False
        if resp.is_success:
            logger.info("Self-ping %s -> %s", url, resp.status_code)
            return True
        logger.warning("Self-ping %s -> %s", url, resp.status_code)
        return False

    async def _keep_alive_loop(self) -> None:
        while True:
            await asyncio.sleep(self.keep_alive_interval.total_seconds())
            await self.ping(self.keep_alive_path)

    async def _prewarm_loop(self) -> None:
        while True:
            delay = seconds_until(self.prewarm_hour, self.clock())
            logger.info("Next cache pre-warm in %.0fs", delay)
            await asyncio.sleep(delay)
            await self.ping(self.prewarm_path)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._keep_alive_loop(), name="self-ping-keep-alive"),
            asyncio.create_task(self._prewarm_loop(), name="self-ping-prewarm"),
        ]
        logger.info(
            "Self-ping scheduler started base=%s keep_alive=%s prewarm_hour=%02d",
            self.base_url,
            self.keep_alive_interval,
            self.prewarm_hour,
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if self._owns_client:
            await self._client.aclose()
        logger.info("Self-ping scheduler stopped")
