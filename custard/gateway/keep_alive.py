import time
import random
import asyncio
import logging
import typing as t

if t.TYPE_CHECKING:
    from .core import DiscordWebSocket

_log = logging.getLogger(__name__)


class KeepAlive:
    __slots__ = (
        "ws",
        "interval",

        "missed",
        "latency",
        "_task",
        "_last_ack",
        "_last_send",
    )

    def __init__(self, ws: "DiscordWebSocket", interval: float) -> None:
        self.ws       = ws
        self.interval = interval

        self.missed = 0
        self.latency: t.Optional[float] = None
        self._task: t.Optional[asyncio.Task] = None
        self._last_ack = time.perf_counter()
        self._last_send = time.perf_counter()

    def start(self) -> None:
        self._task = asyncio.ensure_future(self.run())

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._task = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        # First beat lands at a random point within the interval.
        await asyncio.sleep(self.interval * random.random())

        while True:
            self.missed += 1

            if self.missed > 1:
                _log.warning(
                    "Shard %d missed a heartbeat ACK, closing the zombie connection",
                    self.ws.shard_id,
                )
                await self.ws.zombie()
                return

            try:
                await self.beat()
            except Exception:
                _log.warning("Shard %d failed to send a heartbeat", self.ws.shard_id, exc_info=True)
                return

            await asyncio.sleep(self.interval)

    async def beat(self) -> None:
        await self.ws.heartbeat()
        self._last_send = time.perf_counter()

    def ack(self) -> None:
        now = time.perf_counter()

        self.missed = 0
        self.latency = now - self._last_send
        self._last_ack = now
