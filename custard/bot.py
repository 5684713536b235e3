import asyncio
import logging
import typing as t

from . import errors, utils
from .cache import Cache, CacheConfig
from .config import Config
from .dispatcher import Dispatcher, Handler
from .events import Event
from .flags import Intents
from .gateway import DiscordWebSocket, IdentifyLimiter, ShardConfig
from .gateway.core import Connector
from .http import DiscordHTTPClient
from .models import Channel, Guild, Member, Message, User

_log = logging.getLogger(__name__)


class Bot:
    """Owns the REST client, the cache and every shard of one bot.

    Without a `config`, settings come from ``CUSTARD_*`` variables, with a
    ``.env`` file loaded first.
    """

    __slots__ = (
        "intents",
        "config",

        "http",
        "cache",
        "dispatcher",
        "identify_limiter",
        "shards",
        "shard_count",
        "shard_ids",
        "token",

        "_connector",
        "_backoff",
        "_presence",
        "_ready",
        "_ready_shards",
        "_closed",
    )

    def __init__(
        self,
        intents: t.Optional[Intents] = None,
        *,
        config: t.Optional[Config] = None,
        shard_count: t.Optional[int] = None,
        shard_ids: t.Optional[t.Sequence[int]] = None,
        cache_config: t.Optional[CacheConfig] = None,
        connector: t.Optional[Connector] = None,
        backoff: t.Optional[t.Callable[[], utils.ExponentialBackoff]] = None,
        identify_delay: float = 5.0,
    ) -> None:
        self.config = config if config is not None else Config.from_env()
        self.intents = intents if intents is not None else self.config.intents

        if cache_config is None:
            cache_config = CacheConfig(
                messages=self.config.message_cache,
                message_ttl=self.config.message_ttl,
            )

        self.token = self.config.token
        self.http = DiscordHTTPClient(self.token)
        self.cache = Cache(cache_config)
        self.dispatcher = Dispatcher(self.cache)
        self.identify_limiter = IdentifyLimiter(identify_delay)
        self.shards: t.Dict[int, DiscordWebSocket] = {}
        self.shard_count = shard_count or self.config.shard_count
        self.shard_ids = shard_ids

        self._connector = connector
        self._backoff = backoff or utils.ExponentialBackoff
        self._presence: t.Optional[t.Dict[str, t.Any]] = None
        self._ready = asyncio.Event()
        self._ready_shards: t.Set[int] = set()
        self._closed = False

        self.dispatcher.add_listener("SHARD_READY", self._on_shard_ready)

    def is_closed(self) -> bool:
        return self._closed

    @property
    def user(self) -> t.Optional[User]:
        return self.dispatcher.user

    @property
    def latency(self) -> t.Optional[float]:
        """Average heartbeat latency of the connected shards, in seconds."""
        latencies = [ws.latency for ws in self.shards.values() if ws.latency is not None]

        if not latencies:
            return None

        return sum(latencies) / len(latencies)

    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    # Listeners

    def on(self, name: str) -> t.Callable[[Handler], Handler]:
        return self.dispatcher.listen(name)

    def add_listener(self, name: str, handler: Handler) -> None:
        self.dispatcher.add_listener(name, handler)

    def remove_listener(self, name: str, handler: Handler) -> None:
        self.dispatcher.remove_listener(name, handler)

    async def _on_shard_ready(self, event: Event) -> None:
        self._ready_shards.add(event.shard_id)

        if self.shards and self._ready_shards >= set(self.shards):
            _log.info("All %d shards are ready", len(self.shards))
            self._ready.set()

    # Lifecycle

    def run(self, token: t.Optional[str] = None) -> None:
        """Connects and blocks until the bot is closed."""
        utils.setup_logging(self.config.log_level)

        async def runner() -> None:
            try:
                await self.start(token)
                await self.connect()
            finally:
                if not self.is_closed():
                    await self.close()

        with utils.suppress_all(KeyboardInterrupt):
            asyncio.run(runner())

    async def start(self, token: t.Optional[str] = None) -> None:
        """Creates a `DiscordHTTPClient` for `token`."""
        if token is not None:
            self.token = token

        if not self.token:
            raise errors.CustardError("no token given and CUSTARD_TOKEN is not set")

        self.http = DiscordHTTPClient(self.token)
        self._closed = False

    async def connect(self) -> None:
        """Runs every shard until `close` is called or one of them fails for good."""
        gateway = await self.http.get_bot_gateway()

        shard_count = self.shard_count or gateway.get("shards", 1)
        shard_ids = self.shard_ids if self.shard_ids is not None else range(shard_count)

        for shard_id in shard_ids:
            config = ShardConfig(shard_id, shard_count, int(self.intents), self._presence)

            self.shards[shard_id] = DiscordWebSocket(
                config,
                token=self.token,  # type: ignore
                gateway_url=gateway["url"],
                dispatcher=self.dispatcher,
                identify_limiter=self.identify_limiter,
                connector=self._connector or self.http.ws_connect,
                backoff=self._backoff(),
            )

        _log.info("Starting %d of %d shards", len(self.shards), shard_count)
        tasks = [asyncio.ensure_future(ws.run()) for ws in self.shards.values()]

        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for ws in self.shards.values():
                with utils.suppress_all():
                    await ws.close()

            for task in tasks:
                task.cancel()

            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def close(self) -> None:
        if self._closed:
            return

        self._closed = True

        for ws in self.shards.values():
            await ws.close()

        with utils.suppress_all():
            await self.http.close()

    async def change_presence(
        self,
        *,
        status: str = "online",
        activities: t.Optional[t.List[t.Dict[str, t.Any]]] = None,
        afk: bool = False,
    ) -> None:
        for ws in self.shards.values():
            await ws.change_presence(status=status, activities=activities, afk=afk)

            self._presence = ws.presence

    # Cache

    def get_guild(self, guild_id: int) -> t.Optional[Guild]:
        return self.cache.get("guild", guild_id)

    def get_channel(self, channel_id: int) -> t.Optional[Channel]:
        return self.cache.get("channel", channel_id)

    def get_user(self, user_id: int) -> t.Optional[User]:
        return self.cache.get("user", user_id)

    def get_member(self, guild_id: int, user_id: int) -> t.Optional[Member]:
        return self.cache.get("member", (guild_id, user_id))

    def get_message(self, message_id: int) -> t.Optional[Message]:
        return self.cache.get("message", message_id)

    # REST

    async def fetch_user(self, user_id: int) -> User:
        data = await self.http.get_user(user_id)
        return self.dispatcher.store_user(data)

    async def fetch_guild(self, guild_id: int) -> Guild:
        data = await self.http.get_guild(guild_id)
        return self.dispatcher.update_guild(data)

    async def fetch_channel(self, channel_id: int) -> Channel:
        data = await self.http.get_channel(channel_id)
        return self.dispatcher.store_channel(data)

    async def fetch_message(self, channel_id: int, message_id: int) -> Message:
        data = await self.http.get_message(channel_id, message_id)
        return self.dispatcher.store_message(data)
