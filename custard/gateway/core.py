import sys
import zlib
import json
import asyncio
import logging
import typing as t
from urllib.parse import urlencode

import aiohttp
from aiohttp import WSMsgType as MType

from .. import types
from ..errors import (
    AuthenticationError,
    ProtocolError,
    RateLimitedIdentify,
    ReconnectWebSocket,
    SessionInvalidated,
    TransportError,
)
from ..events import Event
from ..utils import ExponentialBackoff, suppress_all
from .identify import IdentifyLimiter
from .keep_alive import KeepAlive
from .state import Session, ShardConfig, ShardState

if t.TYPE_CHECKING:
    from ..dispatcher import Dispatcher

_log = logging.getLogger(__name__)

_DEFAULT_INTERVAL = 41.25
_ZLIB_SUFFIX = b'\x00\x00\xff\xff'

Connector = t.Callable[[str], t.Awaitable[t.Any]]


class DiscordWebSocket:
    """One shard's gateway connection and the session that outlives it.

    `run` keeps the shard connected until `close` is called: it identifies
    or resumes, heartbeats, forwards dispatches to the dispatcher and
    reconnects after the transport drops. Only an `AuthenticationError`
    escapes it.
    """

    # https://discord.com/developers/docs/topics/opcodes-and-status-codes
    DISPATCH                = 0
    HEARTBEAT               = 1
    IDENTIFY                = 2
    PRESENCE_UPDATE         = 3
    VOICE_STATE_UPDATE      = 4
    RESUME                  = 6
    RECONNECT               = 7
    REQUEST_GUILD_MEMBERS   = 8
    INVALID_SESSION         = 9
    HELLO                   = 10
    HEARTBEAT_ACK           = 11

    FATAL_CLOSE_CODES: t.ClassVar[t.Dict[int, str]] = {
        4004: "Authentication failed",
        4010: "Invalid shard",
        4011: "Sharding required",
        4012: "Invalid API version",
        4013: "Invalid intents",
        4014: "Disallowed intents",
    }
    REIDENTIFY_CLOSE_CODES: t.ClassVar[t.FrozenSet[int]] = frozenset({4007, 4009})
    RATE_LIMITED_CLOSE_CODE = 4008

    __slots__ = (
        "config",
        "token",
        "gateway_url",
        "version",
        "compress",
        "dispatcher",
        "identify_limiter",
        "backoff",
        "presence",

        "state",
        "session",
        "socket",
        "keep_alive",
        "heartbeat_interval",
        "reconnects",
        "_connector",
        "_http_session",
        "_closed",
        "_closing",
        "_holds_identify",
        "_buffer",
        "_inflator",
    )

    def __init__(
        self,
        config: ShardConfig,
        *,
        token: str,
        gateway_url: str = "wss://gateway.discord.gg/",
        dispatcher: t.Optional["Dispatcher"] = None,
        identify_limiter: t.Optional[IdentifyLimiter] = None,
        connector: t.Optional[Connector] = None,
        backoff: t.Optional[ExponentialBackoff] = None,
        compress: bool = False,
        version: int = 10,
    ) -> None:
        if not token:
            raise ValueError("token expected")

        self.config = config
        self.token = token
        self.gateway_url = gateway_url
        self.version = version
        self.compress = compress
        self.dispatcher = dispatcher
        self.identify_limiter = identify_limiter or IdentifyLimiter()
        self.backoff = backoff or ExponentialBackoff()
        self.presence = config.presence

        self.state = ShardState.DISCONNECTED
        self.session = Session()
        self.socket: t.Any = None
        self.keep_alive: t.Optional[KeepAlive] = None
        self.heartbeat_interval = _DEFAULT_INTERVAL
        self.reconnects = 0
        self._connector = connector or self._ws_connect
        self._http_session: t.Optional[aiohttp.ClientSession] = None
        self._closed = False
        self._closing = asyncio.Event()
        self._holds_identify = False
        self._buffer = bytearray()
        self._inflator = zlib.decompressobj()

    def __repr__(self) -> str:
        return (
            f"<DiscordWebSocket shard={self.shard_id}/{self.config.shard_count} "
            f"state={self.state.name}>"
        )

    @property
    def shard_id(self) -> int:
        return self.config.shard_id

    @property
    def latency(self) -> t.Optional[float]:
        if self.keep_alive:
            return self.keep_alive.latency

        return None

    def is_closed(self) -> bool:
        return self._closed

    def _set_state(self, state: ShardState) -> None:
        previous = self.state
        if previous is state:
            return

        if state is ShardState.RECONNECTING:
            self.reconnects += 1

        self.state = state
        _log.debug("Shard %d: %s -> %s", self.shard_id, previous.name, state.name)

        if previous is ShardState.READY and self.dispatcher:
            self.dispatcher.dispatch_event(Event("DISCONNECT", None, self.shard_id))

    # Lifecycle

    async def run(self) -> None:
        self._closed = False
        self._closing.clear()

        try:
            while not self._closed:
                delay = await self._run_once()

                if self._closed:
                    break

                if delay > 0:
                    _log.info("Shard %d reconnecting in %.2fs", self.shard_id, delay)

                    # `close` cuts the wait short.
                    with suppress_all(asyncio.TimeoutError):
                        await asyncio.wait_for(self._closing.wait(), delay)
        finally:
            await self._teardown()
            self._set_state(ShardState.DISCONNECTED)

            if self._http_session is not None and not self._http_session.closed:
                await self._http_session.close()

    async def _run_once(self) -> float:
        """Runs one connection until it drops and returns how long to wait before the next."""
        try:
            await self.connect()

            while True:
                await self.poll_event()
        except ReconnectWebSocket as exc:
            if self._closed:
                return 0.0

            self._set_state(ShardState.RECONNECTING)

            if not exc.resume:
                self._invalidate_session()

            if not exc.backoff:
                _log.info("Shard %d asked to reconnect", self.shard_id)
                return 0.0

            _log.warning("Shard %d lost its connection (close code %s)", self.shard_id, exc.code)
            return self.backoff.delay()
        except SessionInvalidated as exc:
            self._set_state(ShardState.RECONNECTING)
            _log.info("Shard %d session invalidated (resumable=%s)", self.shard_id, exc.resumable)

            if not exc.resumable:
                self._invalidate_session()

            return self.backoff.delay()
        except RateLimitedIdentify as exc:
            self._set_state(ShardState.RECONNECTING)
            _log.warning("Shard %d was rate limited while identifying", self.shard_id)
            return exc.retry_after
        except AuthenticationError:
            self._closed = True
            raise
        except (TransportError, aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            if self._closed:
                return 0.0

            self._set_state(ShardState.RECONNECTING)
            _log.warning("Shard %d transport failed: %r", self.shard_id, exc)
            return self.backoff.delay()
        finally:
            await self._teardown()

    async def connect(self) -> None:
        resume = self.session.is_resumable()
        self._set_state(ShardState.CONNECTING)

        if not resume:
            await self.identify_limiter.acquire()
            self._holds_identify = True

            if self._closed:
                raise ReconnectWebSocket(resume=False)

        base = self.gateway_url
        if resume and self.session.resume_gateway_url:
            base = self.session.resume_gateway_url

        socket = await self._connector(self._build_url(base))

        if self._closed:
            await socket.close()
            raise ReconnectWebSocket(resume=False)

        self.socket = socket
        self._buffer = bytearray()
        self._inflator = zlib.decompressobj()
        self._set_state(ShardState.AWAITING_HELLO)

        while self.keep_alive is None:
            if self._closed:
                raise ReconnectWebSocket(resume=False)

            await self.poll_event()

        if resume:
            self._set_state(ShardState.RESUMING)
            await self.resume()
        else:
            self._set_state(ShardState.IDENTIFYING)
            await self.identify()

    async def close(self, code: int = 1000) -> None:
        """Shuts the shard down for good. `run` returns once the socket is closed."""
        self._closed = True
        self._closing.set()

        if self.keep_alive:
            self.keep_alive.stop()
            self.keep_alive = None

        if self.socket is not None and not self.socket.closed:
            await self.socket.close(code=code)

        self.session.clear()
        self._set_state(ShardState.DISCONNECTED)

    async def zombie(self) -> None:
        """Drops a connection whose heartbeats went unanswered, keeping the session resumable."""
        if self.state is ShardState.RECONNECTING:
            return

        self._set_state(ShardState.RECONNECTING)

        if self.socket is not None and not self.socket.closed:
            await self.socket.close(code=4000)

    async def _teardown(self) -> None:
        if self.keep_alive:
            self.keep_alive.stop()
            self.keep_alive = None

        self._release_identify()

        socket, self.socket = self.socket, None
        if socket is not None and not socket.closed:
            code = 4000 if self.session.is_resumable() else 1000
            await socket.close(code=code)

    def _release_identify(self) -> None:
        if self._holds_identify:
            self._holds_identify = False
            self.identify_limiter.release()

    def _invalidate_session(self) -> None:
        self.session.clear()

        if self.dispatcher:
            self.dispatcher.reset_shard(self.shard_id, self.config.shard_count)

    def _build_url(self, base: str) -> str:
        params: t.Dict[str, t.Any] = {"v": self.version, "encoding": "json"}
        if self.compress:
            params["compress"] = "zlib-stream"

        return f"{base.split('?')[0].rstrip('/')}/?{urlencode(params)}"

    async def _ws_connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()

        return await self._http_session.ws_connect(url, max_msg_size=0)

    # Receiving

    async def poll_event(self) -> None:
        try:
            timeout = self.heartbeat_interval * 2 + 20
            message = await self.socket.receive(timeout=timeout)
        except asyncio.TimeoutError:
            raise ReconnectWebSocket() from None

        if message.type is MType.ERROR:
            raise ReconnectWebSocket() from message.data

        if message.type in (MType.TEXT, MType.BINARY):
            try:
                payload = self._decode(message.data)

                if payload is not None:
                    await self.handle_payload(payload)
            except ProtocolError as exc:
                _log.warning("Shard %d dropped a frame: %s", self.shard_id, exc)

            return

        if message.type is MType.CLOSE:
            self._handle_close(message.data, message.extra)

        if message.type in (MType.CLOSING, MType.CLOSED):
            self._handle_close(getattr(self.socket, "close_code", None), None)

        _log.debug("Shard %d ignored a %s message", self.shard_id, message.type)

    def _decode(self, data: t.Union[str, bytes]) -> t.Optional[types.Payload]:
        if isinstance(data, bytes):
            self._buffer.extend(data)

            if len(data) < 4 or data[-4:] != _ZLIB_SUFFIX:
                return None

            try:
                data = self._inflator.decompress(self._buffer)
            except zlib.error:
                raise ReconnectWebSocket() from None
            finally:
                self._buffer = bytearray()

        try:
            payload = json.loads(data)
        except ValueError:
            raise ProtocolError("frame is not valid JSON") from None

        if not isinstance(payload, dict):
            raise ProtocolError(f"expected a JSON object, got {type(payload).__name__}")

        return payload  # type: ignore

    def _handle_close(self, code: t.Optional[int], reason: t.Optional[str]) -> t.NoReturn:
        if self._closed:
            raise ReconnectWebSocket(resume=False, code=code)

        if code in self.FATAL_CLOSE_CODES:
            raise AuthenticationError(code, reason or self.FATAL_CLOSE_CODES[code])  # type: ignore

        if code == self.RATE_LIMITED_CLOSE_CODE and self.state is ShardState.IDENTIFYING:
            raise RateLimitedIdentify(self.identify_limiter.delay)

        if code in self.REIDENTIFY_CLOSE_CODES:
            raise ReconnectWebSocket(resume=False, code=code)

        raise ReconnectWebSocket(resume=True, code=code)

    async def handle_payload(self, payload: types.Payload) -> None:
        try:
            op = int(payload["op"])
        except (KeyError, TypeError, ValueError):
            raise ProtocolError("frame has no valid opcode") from None

        d = payload.get("d")

        if op == self.DISPATCH:
            return self._handle_dispatch(payload.get("t"), payload.get("s"), d)

        if op == self.HEARTBEAT:
            if self.keep_alive:
                return await self.keep_alive.beat()

            return await self.heartbeat()

        if op == self.HEARTBEAT_ACK:
            if self.keep_alive:
                self.keep_alive.ack()

            return

        if op == self.HELLO:
            try:
                interval = d["heartbeat_interval"] / 1000
            except (KeyError, TypeError):
                raise ProtocolError("HELLO without a heartbeat interval") from None

            if self.keep_alive:
                self.keep_alive.stop()

            self.heartbeat_interval = interval
            self.keep_alive = KeepAlive(self, interval)
            return self.keep_alive.start()

        if op == self.RECONNECT:
            raise ReconnectWebSocket(resume=True, backoff=False)

        if op == self.INVALID_SESSION:
            raise SessionInvalidated(bool(d))

        raise ProtocolError(f"unknown opcode {op}")

    def _handle_dispatch(self, event: t.Optional[str], seq: t.Optional[int], d: t.Any) -> None:
        if event is None:
            raise ProtocolError("dispatch frame without an event name")

        if seq is not None:
            self.session.sequence = seq

        if event == "READY":
            try:
                self.session.session_id = d["session_id"]
            except (KeyError, TypeError):
                raise ProtocolError("READY without a session id") from None

            self.session.resume_gateway_url = d.get("resume_gateway_url")
            self._release_identify()
            self.backoff.reset()
            self._set_state(ShardState.READY)
            _log.info("Shard %d is ready (session %s)", self.shard_id, self.session.session_id)

        elif event == "RESUMED":
            self.backoff.reset()
            self._set_state(ShardState.READY)
            _log.info("Shard %d resumed at sequence %s", self.shard_id, self.session.sequence)

        if self.dispatcher is None:
            return

        self.dispatcher.dispatch(event, d, self.shard_id)

        if event == "READY":
            self.dispatcher.dispatch_event(Event("CONNECT", None, self.shard_id))

    # Sending

    def send(self, data: t.Union[t.AnyStr, t.Dict[str, t.Any]]) -> t.Coroutine[t.Any, t.Any, None]:
        if self.socket is None or self.socket.closed:
            raise TransportError(f"shard {self.shard_id} is not connected")

        if type(data) is bytes:
            return self.socket.send_bytes(data)

        if type(data) is str:
            return self.socket.send_str(data)

        return self.socket.send_json(data)

    async def change_presence(
        self,
        *,
        status: str = "online",
        activities: t.Optional[t.List[t.Dict[str, t.Any]]] = None,
        since: t.Optional[int] = None,
        afk: bool = False,
    ) -> None:
        self.presence = {
            "since": since,
            "activities": activities or [],
            "status": str(getattr(status, "value", status)),
            "afk": afk,
        }
        await self.send({"op": self.PRESENCE_UPDATE, 'd': self.presence})

    async def request_guild_members(
        self,
        guild_id: int,
        *,
        query: t.Optional[str] = "",
        limit: int = 0,
        user_ids: t.Optional[t.List[int]] = None,
        presences: bool = False,
        nonce: t.Optional[str] = None,
    ) -> None:
        d: t.Dict[str, t.Any] = {
            "guild_id": str(guild_id),
            "limit": limit,
            "presences": presences,
        }

        if user_ids is not None:
            d["user_ids"] = [str(id) for id in user_ids]
        else:
            d["query"] = query

        if nonce is not None:
            d["nonce"] = nonce

        await self.send({"op": self.REQUEST_GUILD_MEMBERS, 'd': d})

    # Packets

    def identify(self) -> t.Coroutine[t.Any, t.Any, None]:
        d: types.Identify = {
            "token": self.token,
            "intents": int(self.config.intents),
            "properties": {
                "os": sys.platform,
                "browser": "custard",
                "device": "custard",
            },
            "shard": (self.shard_id, self.config.shard_count),
            "large_threshold": 250,
        }

        if self.presence is not None:
            d["presence"] = self.presence

        _log.debug("Shard %d identifying", self.shard_id)
        return self.send({"op": self.IDENTIFY, 'd': d})

    def resume(self) -> t.Coroutine[t.Any, t.Any, None]:
        d: types.Resume = {
            "token": self.token,
            "session_id": self.session.session_id,  # type: ignore
            "seq": self.session.sequence,
        }

        _log.debug("Shard %d resuming session %s", self.shard_id, self.session.session_id)
        return self.send({"op": self.RESUME, 'd': d})

    def heartbeat(self) -> t.Coroutine[t.Any, t.Any, None]:
        return self.send({"op": self.HEARTBEAT, 'd': self.session.sequence})
