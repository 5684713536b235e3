import os
import logging
import typing as t

import dotenv

from .flags import Intents

_log = logging.getLogger(__name__)

PREFIX = "CUSTARD_"


def _get(environ: t.Mapping[str, str], name: str) -> t.Optional[str]:
    value = environ.get(PREFIX + name)

    if value is None or not value.strip():
        return None

    return value.strip()


class Config:
    """Settings a bot reads from the environment.

    ``from_env`` loads a ``.env`` file first, so the usual setup is a
    ``.env`` beside the bot containing at least ``CUSTARD_TOKEN``.
    """

    __slots__ = (
        "token",
        "intents",
        "shard_count",
        "message_cache",
        "message_ttl",
        "log_level",
    )

    def __init__(
        self,
        token: t.Optional[str] = None,
        *,
        intents: t.Optional[Intents] = None,
        shard_count: t.Optional[int] = None,
        message_cache: int = 1000,
        message_ttl: float = 3600.0,
        log_level: t.Union[int, str] = logging.INFO,
    ) -> None:
        self.token = token
        self.intents = intents if intents is not None else Intents.default()
        self.shard_count = shard_count
        self.message_cache = message_cache
        self.message_ttl = message_ttl
        self.log_level = log_level

    def __repr__(self) -> str:
        # Never show the token.
        return (
            f"<Config intents={int(self.intents)} shard_count={self.shard_count} "
            f"message_cache={self.message_cache} log_level={self.log_level!r}>"
        )

    @classmethod
    def from_env(
        cls,
        environ: t.Optional[t.Mapping[str, str]] = None,
        *,
        dotenv_path: t.Optional[str] = None,
    ) -> "Config":
        """Builds a config from ``CUSTARD_*`` variables.

        When `environ` is omitted, ``os.environ`` is used after loading
        `dotenv_path` (or the nearest ``.env``) into it.
        """
        if environ is None:
            dotenv.load_dotenv(dotenv_path, override=False)
            environ = os.environ

        config = cls(_get(environ, "TOKEN"))

        try:
            intents = _get(environ, "INTENTS")
            if intents is not None:
                config.intents = Intents(int(intents))

            shard_count = _get(environ, "SHARD_COUNT")
            if shard_count is not None:
                config.shard_count = int(shard_count)

            message_cache = _get(environ, "MESSAGE_CACHE")
            if message_cache is not None:
                config.message_cache = int(message_cache)

            message_ttl = _get(environ, "MESSAGE_TTL")
            if message_ttl is not None:
                config.message_ttl = float(message_ttl)
        except ValueError as exc:
            raise ValueError(f"invalid {PREFIX}* setting: {exc}") from None

        log_level = _get(environ, "LOG_LEVEL")
        if log_level is not None:
            config.log_level = log_level.upper()

        if config.shard_count is not None and config.shard_count < 1:
            raise ValueError(f"{PREFIX}SHARD_COUNT must be at least 1")

        _log.debug("Loaded %r", config)
        return config
