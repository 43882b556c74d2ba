"""
Elapsed connected time for one practice session
"""

import asyncio
import time
from typing import Callable, List, Optional

import structlog

logger = structlog.get_logger(__name__)

TickListener = Callable[[int], None]


class SessionTimer:
    """Counts whole seconds from the first CONNECTED observation.

    Advances only while running, never decreases and keeps its last value
    after stop(). A new timer is built for every session.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, tick_interval: float = 1.0):
        self._clock = clock
        self._tick_interval = tick_interval
        self._started_at: Optional[float] = None
        self._elapsed = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[TickListener] = []

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def running(self) -> bool:
        return self._running

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def add_tick_listener(self, listener: TickListener):
        self._listeners.append(listener)

    def start(self):
        """Start counting; only the first call has any effect"""
        if self._started_at is not None:
            return
        self._started_at = self._clock()
        self._running = True
        logger.info("Session timer started")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._run())

    async def _run(self):
        while self._running:
            await asyncio.sleep(self._tick_interval)
            self.tick()

    def tick(self) -> int:
        """Bring the elapsed value up to date with the clock"""
        if not self._running:
            return self._elapsed
        current = int(self._clock() - self._started_at)
        if current > self._elapsed:
            self._elapsed = current
            for listener in list(self._listeners):
                try:
                    listener(self._elapsed)
                except Exception as e:
                    logger.error("Tick listener failed", error=str(e))
        return self._elapsed

    def stop(self):
        """Freeze the elapsed value"""
        if not self._running:
            return
        self.tick()
        self._running = False
        if self._task and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()
        self._task = None
        logger.info("Session timer stopped", elapsed_seconds=self._elapsed)
