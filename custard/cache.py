"""In-memory entity store shared by every shard and REST caller of a bot.

Entities are stored per kind and keyed by snowflake, except members, which
are keyed ``(guild_id, user_id)``. A single re-entrant lock guards all stores,
so the dispatcher and REST callers never observe a half-patched entity.

Messages are the only kind that expires: each one lives ``message_ttl``
seconds from its creation or last lookup.
"""

import time
import asyncio
import logging
import threading
import typing as t
from collections import OrderedDict

from .utils import shard_id_for

_log = logging.getLogger(__name__)

KINDS = ("guild", "channel", "member", "user", "message", "role", "emoji")

_GUILD_CHILDREN = ("channel", "role", "emoji", "member", "message")


class CacheConfig:
    __slots__ = ("messages", "message_ttl", "users", "members")

    def __init__(
        self,
        messages: int = 1000,
        message_ttl: float = 3600.0,
        users: bool = True,
        members: bool = True,
    ) -> None:
        self.messages = messages
        self.message_ttl = message_ttl
        self.users = users
        self.members = members

    def __repr__(self) -> str:
        return (
            f"<CacheConfig messages={self.messages} message_ttl={self.message_ttl} "
            f"users={self.users} members={self.members}>"
        )


class Cache:
    __slots__ = (
        "config",
        "self_id",

        "_lock",
        "_stores",
        "_expires",
        "_timers",
    )

    def __init__(self, config: t.Optional[CacheConfig] = None) -> None:
        self.config = config or CacheConfig()
        self.self_id: t.Optional[int] = None

        self._lock = threading.RLock()
        self._stores: t.Dict[str, t.Dict[t.Any, t.Any]] = {kind: {} for kind in KINDS}
        self._stores["message"] = OrderedDict()
        self._expires: t.Dict[int, float] = {}
        self._timers: t.Dict[int, asyncio.TimerHandle] = {}

    def __repr__(self) -> str:
        sizes = " ".join(f"{kind}s={len(store)}" for kind, store in self._stores.items())
        return f"<Cache {sizes}>"

    @property
    def lock(self) -> threading.RLock:
        """Held while applying a multi-step change that must look atomic to readers."""
        return self._lock

    def _store(self, kind: str) -> t.Dict[t.Any, t.Any]:
        try:
            return self._stores[kind]
        except KeyError:
            raise ValueError(f"unknown cache kind {kind!r}") from None

    @staticmethod
    def key_of(kind: str, entity: t.Any) -> t.Any:
        if kind == "member":
            return entity.key

        return entity.id

    def get(self, kind: str, id: t.Any) -> t.Any:
        with self._lock:
            entity = self._store(kind).get(id)

            if entity is None or kind != "message":
                return entity

            if self._expires.get(id, 0.0) <= time.monotonic():
                self._evict_message(id)
                return None

            self._touch(id)
            return entity

    def upsert(self, kind: str, entity: t.Any) -> t.Any:
        """Stores `entity`, replacing any entity with the same key, and returns it."""
        with self._lock:
            store = self._store(kind)
            key = self.key_of(kind, entity)

            if kind == "user" and not self.config.users and key != self.self_id:
                return entity

            if kind == "member" and not self.config.members and key[1] != self.self_id:
                return entity

            if kind != "message":
                store[key] = entity
                return entity

            if self.config.messages <= 0:
                return entity

            store[key] = entity
            self._touch(key)

            while len(store) > self.config.messages:
                oldest = next(iter(store))
                self._evict_message(oldest)

            return entity

    def remove(self, kind: str, id: t.Any) -> t.Any:
        with self._lock:
            if kind == "message":
                return self._evict_message(id)

            return self._store(kind).pop(id, None)

    def patch(self, kind: str, id: t.Any, data: t.Mapping[str, t.Any]) -> t.Any:
        """Applies a partial payload to a cached entity in place.

        Returns the patched entity, or None when nothing is cached under `id`.
        """
        with self._lock:
            entity = self.get(kind, id)

            if entity is not None:
                entity._update(data)

            return entity

    def values(self, kind: str) -> t.List[t.Any]:
        with self._lock:
            if kind != "message":
                return list(self._store(kind).values())

            now = time.monotonic()
            return [
                message for id, message in self._stores["message"].items()
                if self._expires.get(id, 0.0) > now
            ]

    def count(self, kind: str) -> int:
        with self._lock:
            return len(self._store(kind))

    def clear(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()

            for store in self._stores.values():
                store.clear()

            self._timers.clear()
            self._expires.clear()

    def clear_shard(self, shard_id: int, shard_count: int) -> None:
        """Forgets every guild routed to `shard_id`, along with its channels, roles and members."""
        if shard_count <= 1:
            self.clear()
            return

        with self._lock:
            guild_ids = {
                id for id in self._stores["guild"]
                if shard_id_for(id, shard_count) == shard_id
            }

            for id in guild_ids:
                del self._stores["guild"][id]

            for kind in _GUILD_CHILDREN:
                store = self._stores[kind]
                stale = [key for key, entity in store.items() if entity.guild_id in guild_ids]

                for key in stale:
                    self.remove(kind, key)

        _log.debug("Dropped %d cached guilds of shard %d", len(guild_ids), shard_id)

    # Message expiry

    def _touch(self, id: int) -> None:
        ttl = self.config.message_ttl
        self._expires[id] = time.monotonic() + ttl
        self._stores["message"].move_to_end(id)  # type: ignore

        timer = self._timers.pop(id, None)
        if timer is not None:
            timer.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        self._timers[id] = loop.call_later(ttl, self._expire, id)

    def _expire(self, id: int) -> None:
        with self._lock:
            self._timers.pop(id, None)
            if self._evict_message(id) is not None:
                _log.debug("Message %d expired from the cache", id)

    def _evict_message(self, id: int) -> t.Any:
        timer = self._timers.pop(id, None)
        if timer is not None:
            timer.cancel()

        self._expires.pop(id, None)
        return self._stores["message"].pop(id, None)
