import time
import asyncio
import logging
import typing as t

_log = logging.getLogger(__name__)


class IdentifyLimiter:
    """Lets one shard of the process identify at a time.

    A shard holds the limiter from before it opens its transport until its
    ``READY`` arrives or the attempt fails. Two identifies never start less
    than `delay` seconds apart.
    """

    __slots__ = ("delay", "_lock", "_last")

    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay

        self._lock = asyncio.Lock()
        self._last: t.Optional[float] = None

    def locked(self) -> bool:
        return self._lock.locked()

    async def acquire(self) -> None:
        await self._lock.acquire()

        try:
            if self._last is not None:
                wait = self._last + self.delay - time.monotonic()

                if wait > 0:
                    _log.debug("Waiting %.2fs before the next identify", wait)
                    await asyncio.sleep(wait)
        except BaseException:
            self._lock.release()
            raise

        self._last = time.monotonic()

    def release(self) -> None:
        self._lock.release()

    async def __aenter__(self) -> "IdentifyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, *_: t.Any) -> None:
        self.release()
