import os
import json
import asyncio
import typing as t

import aiohttp
import pytest
import dotenv
from aiohttp import WSMsgType

import custard
from custard.gateway import DiscordWebSocket, IdentifyLimiter, ShardConfig

dotenv.load_dotenv(override=True)  # type: ignore

USER_ID = 80351110224678912
GUILD_ID = 41771983423143937
OTHER_GUILD_ID = 81384788765712384
CHANNEL_ID = 41771983423143937
ROLE_ID = 41771983423143937

USER = {
    "id": str(USER_ID),
    "username": "custard",
    "discriminator": "0",
    "global_name": None,
    "avatar": None,
    "bot": True,
}


def guild_payload(guild_id: int = GUILD_ID, **fields: t.Any) -> t.Dict[str, t.Any]:
    data: t.Dict[str, t.Any] = {
        "id": str(guild_id),
        "name": "Bakery",
        "icon": "a_1269e74af4df7417b13759eae50c83dc",
        "owner_id": str(USER_ID),
        "features": ["COMMUNITY"],
        "member_count": 1,
        "roles": [
            {"id": str(guild_id), "name": "@everyone", "position": 0, "permissions": "1024"},
            {"id": str(guild_id + 1), "name": "Bakers", "position": 1, "permissions": "8"},
        ],
        "emojis": [{"id": "41771983429993937", "name": "custard", "roles": []}],
        "channels": [
            {"id": str(guild_id + 2), "type": 4, "name": "Kitchen", "position": 0},
            {"id": str(guild_id + 3), "type": 0, "name": "general", "position": 1,
             "parent_id": str(guild_id + 2)},
            {"id": str(guild_id + 4), "type": 2, "name": "Oven", "position": 2, "bitrate": 64000},
        ],
        "threads": [],
        "members": [{"user": USER, "roles": [str(guild_id + 1)], "nick": None}],
    }
    data.update(fields)
    return data


def ready_payload(
    session_id: str = "abc",
    guild_ids: t.Iterable[int] = (GUILD_ID,),
) -> t.Dict[str, t.Any]:
    return {
        "v": 10,
        "user": USER,
        "session_id": session_id,
        "resume_gateway_url": "wss://resume.gateway.test",
        "guilds": [{"id": str(id), "unavailable": True} for id in guild_ids],
    }


class FakeSocket:
    """In-memory stand-in for `aiohttp.ClientWebSocketResponse`.

    The test plays the server: `feed` queues frames for the shard to receive
    and `next_sent` pops what the shard sent.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.close_code: t.Optional[int] = None

        self._incoming: "asyncio.Queue[aiohttp.WSMessage]" = asyncio.Queue()
        self._sent: "asyncio.Queue[t.Dict[str, t.Any]]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self, timeout: t.Optional[float] = None) -> aiohttp.WSMessage:
        return await asyncio.wait_for(self._incoming.get(), timeout)

    async def send_json(self, data: t.Any) -> None:
        if self._closed:
            raise ConnectionResetError("socket is closed")

        self._sent.put_nowait(json.loads(json.dumps(data)))

    async def send_str(self, data: str) -> None:
        await self.send_json(json.loads(data))

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        if self._closed:
            return False

        self._closed = True
        self.close_code = code
        self._incoming.put_nowait(aiohttp.WSMessage(WSMsgType.CLOSED, None, None))
        return True

    # Server side

    def feed(self, op: int, d: t.Any = None, s: t.Optional[int] = None, name: t.Optional[str] = None) -> None:
        frame = json.dumps({"op": op, "d": d, "s": s, "t": name})
        self._incoming.put_nowait(aiohttp.WSMessage(WSMsgType.TEXT, frame, None))

    def feed_raw(self, data: t.Union[str, bytes]) -> None:
        kind = WSMsgType.BINARY if isinstance(data, bytes) else WSMsgType.TEXT
        self._incoming.put_nowait(aiohttp.WSMessage(kind, data, None))

    def hello(self, interval: int = 41250) -> None:
        self.feed(10, {"heartbeat_interval": interval})

    def dispatch(self, event: str, data: t.Any, seq: int) -> None:
        self.feed(0, data, seq, event)

    def server_close(self, code: int, reason: str = "") -> None:
        self._closed = True
        self.close_code = code
        self._incoming.put_nowait(aiohttp.WSMessage(WSMsgType.CLOSE, code, reason))

    async def next_sent(self, timeout: float = 1.0, *, heartbeats: bool = False) -> t.Dict[str, t.Any]:
        """Pops the next frame the shard sent, skipping heartbeats unless asked for."""
        async def next_frame() -> t.Dict[str, t.Any]:
            while True:
                frame = await self._sent.get()

                if heartbeats or frame["op"] != 1:
                    return frame

        return await asyncio.wait_for(next_frame(), timeout)

    def sent_nowait(self) -> t.List[t.Dict[str, t.Any]]:
        frames = []
        while not self._sent.empty():
            frames.append(self._sent.get_nowait())

        return frames


class FakeGateway:
    """Connector handing out a new `FakeSocket` per connection attempt."""

    def __init__(self) -> None:
        self.urls: t.List[str] = []
        self._sockets: "asyncio.Queue[FakeSocket]" = asyncio.Queue()

    async def __call__(self, url: str) -> FakeSocket:
        socket = FakeSocket(url)
        self.urls.append(url)
        self._sockets.put_nowait(socket)
        return socket

    async def next_socket(self, timeout: float = 1.0) -> FakeSocket:
        return await asyncio.wait_for(self._sockets.get(), timeout)

    def pending(self) -> int:
        return self._sockets.qsize()


async def wait_until(predicate: t.Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition was not met in time")

        await asyncio.sleep(0.001)


@pytest.fixture
def cache() -> custard.Cache:
    return custard.Cache()


@pytest.fixture
def dispatcher(cache: custard.Cache) -> custard.Dispatcher:
    return custard.Dispatcher(cache)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def limiter() -> IdentifyLimiter:
    return IdentifyLimiter(delay=0)


@pytest.fixture
async def start_shard(
    gateway: FakeGateway,
    dispatcher: custard.Dispatcher,
    limiter: IdentifyLimiter,
):
    shards: t.List[DiscordWebSocket] = []
    tasks: t.List[asyncio.Future] = []

    def start(shard_id: int = 0, shard_count: int = 1) -> t.Tuple[DiscordWebSocket, asyncio.Future]:
        ws = DiscordWebSocket(
            ShardConfig(shard_id, shard_count, int(custard.Intents.default())),
            token="token",
            dispatcher=dispatcher,
            identify_limiter=limiter,
            connector=gateway,
            backoff=custard.ExponentialBackoff(0, 0, jitter=False),
        )
        task = asyncio.ensure_future(ws.run())

        shards.append(ws)
        tasks.append(task)
        return ws, task

    yield start

    for ws in shards:
        await ws.close()

    for task in tasks:
        if not task.done():
            task.cancel()

    await asyncio.gather(*tasks, return_exceptions=True)


@pytest.fixture
async def live_http():
    token: t.Optional[str] = os.getenv("CUSTARD_TOKEN")
    if not token:
        pytest.skip("the 'CUSTARD_TOKEN' env var is not defined")

    client = custard.DiscordHTTPClient(token)
    yield client

    await client.close()
