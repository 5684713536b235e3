import sys
import random
import logging
import datetime
import typing as t

DISCORD_EPOCH = 1420070400000


class suppress_all:
    __slots__ = "exc"

    def __init__(self, exc: t.Type[BaseException] = Exception) -> None:
        self.exc = exc

    def __enter__(self) -> None:
        return

    def __exit__(self, t: t.Type[BaseException], *_: t.Any) -> bool:
        if not t:
            return False

        return issubclass(t, self.exc)


def snowflake(value: t.Any) -> int:
    return int(value)


def optional_snowflake(value: t.Any) -> t.Optional[int]:
    if value is None:
        return None

    return int(value)


def snowflake_time(id: int) -> datetime.datetime:
    """Returns the creation time encoded in a snowflake."""
    timestamp = ((id >> 22) + DISCORD_EPOCH) / 1000
    return datetime.datetime.fromtimestamp(timestamp, tz=datetime.timezone.utc)


def parse_time(value: t.Optional[str]) -> t.Optional[datetime.datetime]:
    if not value:
        return None

    return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))


def shard_id_for(guild_id: int, shard_count: int) -> int:
    return (guild_id >> 22) % shard_count


class ExponentialBackoff:
    """Delays for retrying a dropped connection.

    The n-th call to `delay` returns `base * 2**n` seconds capped at `maximum`,
    multiplied by a random factor in [0.5, 1) when `jitter` is set.
    """

    __slots__ = ("base", "maximum", "jitter", "_exp")

    def __init__(self, base: float = 1.0, maximum: float = 60.0, *, jitter: bool = True) -> None:
        self.base = base
        self.maximum = maximum
        self.jitter = jitter

        self._exp = 0

    def delay(self) -> float:
        value = min(self.base * 2 ** self._exp, self.maximum)

        if value < self.maximum and self._exp < 32:
            self._exp += 1

        if self.jitter:
            value *= random.uniform(0.5, 1.0)

        return value

    def reset(self) -> None:
        self._exp = 0


def setup_logging(level: t.Union[int, str] = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        "[{asctime}] [{levelname:<8}] {name}: {message}",
        "%Y-%m-%d %H:%M:%S",
        style="{",
    ))

    library = logging.getLogger("custard")
    library.setLevel(level)
    library.addHandler(handler)
