import asyncio
import inspect
import logging
import datetime
import typing as t

from . import events
from .cache import Cache
from .events import Event
from .models import (
    ClientUser,
    DMChannel,
    Guild,
    Interaction,
    Member,
    Message,
    Role,
    Emoji,
    User,
    channel_factory,
    create_channel,
)
from .utils import optional_snowflake, snowflake, suppress_all

_log = logging.getLogger(__name__)

Handler = t.Callable[[t.Any], t.Coroutine[t.Any, t.Any, None]]
Check = t.Callable[[t.Any], bool]


class Dispatcher:
    """Applies gateway events to the cache, then fans them out to listeners.

    `dispatch` never awaits a listener: every listener runs in its own task,
    so a slow or failing listener cannot hold up the shard that received the
    event. A listener that raises is logged and reported to ``ERROR``
    listeners as a `HandlerError`.
    """

    __slots__ = (
        "cache",

        "_handlers",
        "_waiters",
        "_tasks",
        "_parsers",
        "_pending_guilds",
        "_ready_due",
    )

    def __init__(self, cache: t.Optional[Cache] = None) -> None:
        self.cache = cache if cache is not None else Cache()

        self._handlers: t.Dict[str, t.List[Handler]] = {}
        self._waiters: t.Dict[str, t.List[t.Tuple[asyncio.Future, t.Optional[Check]]]] = {}
        self._tasks: t.Set[asyncio.Future] = set()
        self._pending_guilds: t.Dict[int, t.Set[int]] = {}
        self._ready_due: t.Set[int] = set()

        self._parsers: t.Dict[str, t.Callable[[t.Any, int], Event]] = {
            attr[6:].upper(): getattr(self, attr)
            for attr in dir(self)
            if attr.startswith("parse_")
        }

    @property
    def user(self) -> t.Optional[ClientUser]:
        if self.cache.self_id is None:
            return None

        return self.cache.get("user", self.cache.self_id)

    # Listeners

    def add_listener(self, name: str, handler: Handler) -> None:
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"listener for {name!r} must be a coroutine function")

        self._handlers.setdefault(name.upper(), []).append(handler)

    def remove_listener(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name.upper(), [])

        if handler in handlers:
            handlers.remove(handler)

    def listen(self, name: str) -> t.Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_listener(name, handler)
            return handler

        return decorator

    def wait_for(
        self,
        name: str,
        check: t.Optional[Check] = None,
        timeout: t.Optional[float] = None,
    ) -> t.Awaitable[t.Any]:
        future = asyncio.get_running_loop().create_future()
        waiters = self._waiters.setdefault(name.upper(), [])
        entry = (future, check)
        waiters.append(entry)

        def discard(_: asyncio.Future) -> None:
            with suppress_all(ValueError):
                waiters.remove(entry)

        future.add_done_callback(discard)
        return asyncio.wait_for(future, timeout)

    # Dispatching

    def dispatch(self, name: str, data: t.Any, shard_id: int = 0) -> Event:
        name = name.upper()
        parser = self._parsers.get(name)

        if parser is None:
            event = Event(name, data, shard_id)
        else:
            try:
                event = parser(data, shard_id)
            except Exception:
                _log.exception("Failed to parse %s on shard %d, dispatching it raw", name, shard_id)
                event = Event(name, data, shard_id)

        self.dispatch_event(event)

        if shard_id in self._ready_due:
            self._ready_due.discard(shard_id)
            self.dispatch_event(Event("SHARD_READY", None, shard_id))

        return event

    def dispatch_event(self, event: Event) -> None:
        _log.debug("Dispatching %s", event.name)

        waiters = self._waiters.get(event.name)
        if waiters:
            self._resolve_waiters(event, waiters)

        for handler in list(self._handlers.get(event.name, ())):
            task = asyncio.ensure_future(self._run_handler(handler, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _resolve_waiters(
        self,
        event: Event,
        waiters: t.List[t.Tuple[asyncio.Future, t.Optional[Check]]],
    ) -> None:
        remaining = []

        for future, check in waiters:
            if future.done():
                continue

            try:
                matched = check is None or check(event)
            except Exception as exc:
                future.set_exception(exc)
                continue

            if matched:
                future.set_result(event)
            else:
                remaining.append((future, check))

        waiters[:] = remaining

    async def _run_handler(self, handler: Handler, event: Event) -> None:
        try:
            await handler(event)
        except Exception as exc:
            _log.exception("Ignoring exception in listener %r for %s", handler, event.name)

            if event.name != "ERROR":
                self.dispatch_event(events.HandlerError(
                    "ERROR",
                    None,
                    event.shard_id,
                    event_name=event.name,
                    handler=handler,
                    exception=exc,
                    event=event,
                ))

    def reset_shard(self, shard_id: int, shard_count: int) -> None:
        """Forgets what a shard contributed after its session could not be resumed."""
        self._pending_guilds.pop(shard_id, None)
        self._ready_due.discard(shard_id)
        self.cache.clear_shard(shard_id, shard_count)

    # Cache helpers

    def store_user(self, data: t.Mapping[str, t.Any]) -> User:
        user_id = snowflake(data["id"])
        user = self.cache.patch("user", user_id, data)

        if user is None:
            user = self.cache.upsert("user", User(data, self.cache))

        return user

    def store_member(self, guild_id: int, data: t.Mapping[str, t.Any]) -> Member:
        self.store_user(data["user"])

        member = self.cache.patch("member", (guild_id, snowflake(data["user"]["id"])), data)
        if member is None:
            member = self.cache.upsert("member", Member(data, guild_id, self.cache))

        guild = self.cache.get("guild", guild_id)
        if guild is not None:
            guild._member_ids.add(member.user_id)

        return member

    def _store_roles(self, guild: Guild, roles: t.Iterable[t.Mapping[str, t.Any]]) -> None:
        for role_id in guild._role_ids:
            self.cache.remove("role", role_id)

        guild._role_ids = set()

        for data in roles:
            role = self.cache.upsert("role", Role(data, guild.id, self.cache))
            guild._role_ids.add(role.id)

    def _store_emojis(self, guild: Guild, emojis: t.Iterable[t.Mapping[str, t.Any]]) -> None:
        for emoji_id in guild._emoji_ids:
            self.cache.remove("emoji", emoji_id)

        guild._emoji_ids = set()

        for data in emojis:
            emoji = self.cache.upsert("emoji", Emoji(data, guild.id, self.cache))
            guild._emoji_ids.add(emoji.id)

    def store_guild(self, data: t.Mapping[str, t.Any]) -> Guild:
        guild_id = snowflake(data["id"])

        with self.cache.lock:
            old = self.cache.get("guild", guild_id)
            if old is not None:
                self._drop_guild_children(old)

            guild = Guild(data, self.cache)
            self.cache.upsert("guild", guild)

            self._store_roles(guild, data.get("roles", ()))
            self._store_emojis(guild, data.get("emojis", ()))

            for channel_data in [*data.get("channels", ()), *data.get("threads", ())]:
                channel = create_channel(channel_data, self.cache, guild_id=guild.id)
                self.cache.upsert("channel", channel)
                guild._channel_ids.add(channel.id)

            for member_data in data.get("members", ()):
                self.store_member(guild.id, member_data)

        return guild

    def update_guild(self, data: t.Mapping[str, t.Any]) -> Guild:
        """Patches a cached guild, keeping channels and members it does not mention."""
        guild_id = snowflake(data["id"])

        with self.cache.lock:
            guild = self.cache.patch("guild", guild_id, data)

            if guild is None:
                return self.store_guild(data)

            if "roles" in data:
                self._store_roles(guild, data["roles"])

            if "emojis" in data:
                self._store_emojis(guild, data["emojis"])

        return guild

    def _drop_guild_children(self, guild: Guild) -> None:
        for role_id in guild._role_ids:
            self.cache.remove("role", role_id)

        for emoji_id in guild._emoji_ids:
            self.cache.remove("emoji", emoji_id)

        for channel_id in guild._channel_ids:
            self.cache.remove("channel", channel_id)

        for user_id in guild._member_ids:
            self.cache.remove("member", (guild.id, user_id))

    def store_channel(self, data: t.Mapping[str, t.Any]) -> t.Any:
        channel_id = snowflake(data["id"])

        with self.cache.lock:
            channel = self.cache.get("channel", channel_id)

            if channel is not None and type(channel) is channel_factory(data["type"]):
                channel._update(data)
            else:
                channel = self.cache.upsert("channel", create_channel(data, self.cache))

            guild = self.cache.get("guild", channel.guild_id) if channel.guild_id else None
            if guild is not None:
                guild._channel_ids.add(channel.id)

        return channel

    def _remove_channel(self, data: t.Mapping[str, t.Any]) -> t.Any:
        channel = self.cache.remove("channel", snowflake(data["id"]))
        if channel is None:
            channel = create_channel(data, self.cache)

        guild = self.cache.get("guild", channel.guild_id) if channel.guild_id else None
        if guild is not None:
            guild._channel_ids.discard(channel.id)

        return channel

    # Parsers: one per gateway event name, called as parse_<lowercase name>.

    def parse_ready(self, data: t.Any, shard_id: int) -> Event:
        user = ClientUser(data["user"], self.cache)
        self.cache.self_id = user.id
        self.cache.upsert("user", user)

        guild_ids = []
        for guild_data in data.get("guilds", ()):
            guild_id = snowflake(guild_data["id"])
            guild_ids.append(guild_id)

            if self.cache.get("guild", guild_id) is None:
                self.cache.upsert("guild", Guild(guild_data, self.cache))

        pending = set(guild_ids)
        self._pending_guilds[shard_id] = pending

        if not pending:
            self._ready_due.add(shard_id)

        return events.ReadyEvent(
            "READY",
            data,
            shard_id,
            user=user,
            guild_ids=guild_ids,
            session_id=data["session_id"],
        )

    def parse_resumed(self, data: t.Any, shard_id: int) -> Event:
        return Event("RESUMED", data, shard_id)

    def parse_guild_create(self, data: t.Any, shard_id: int) -> Event:
        guild = self.store_guild(data)

        pending = self._pending_guilds.get(shard_id)
        if pending and guild.id in pending:
            pending.discard(guild.id)

            if not pending:
                self._ready_due.add(shard_id)

        return events.GuildEvent("GUILD_CREATE", data, shard_id, guild=guild)

    def parse_guild_update(self, data: t.Any, shard_id: int) -> Event:
        guild = self.update_guild(data)
        return events.GuildEvent("GUILD_UPDATE", data, shard_id, guild=guild)

    def parse_guild_delete(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["id"])
        unavailable = bool(data.get("unavailable", False))

        with self.cache.lock:
            if unavailable:
                guild = self.cache.patch("guild", guild_id, {"unavailable": True})
            else:
                guild = self.cache.remove("guild", guild_id)
                if guild is not None:
                    self._drop_guild_children(guild)

        return events.GuildDeleteEvent(
            "GUILD_DELETE",
            data,
            shard_id,
            guild_id=guild_id,
            guild=guild,
            unavailable=unavailable,
        )

    def parse_guild_role_create(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])
        role = self.cache.upsert("role", Role(data["role"], guild_id, self.cache))

        guild = self.cache.get("guild", guild_id)
        if guild is not None:
            guild._role_ids.add(role.id)

        return events.RoleEvent("GUILD_ROLE_CREATE", data, shard_id, role=role)

    def parse_guild_role_update(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])
        role_id = snowflake(data["role"]["id"])

        role = self.cache.patch("role", role_id, data["role"])
        if role is None:
            role = self.cache.upsert("role", Role(data["role"], guild_id, self.cache))

            guild = self.cache.get("guild", guild_id)
            if guild is not None:
                guild._role_ids.add(role.id)

        return events.RoleEvent("GUILD_ROLE_UPDATE", data, shard_id, role=role)

    def parse_guild_role_delete(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])
        role_id = snowflake(data["role_id"])
        role = self.cache.remove("role", role_id)

        guild = self.cache.get("guild", guild_id)
        if guild is not None:
            guild._role_ids.discard(role_id)

        return events.RoleDeleteEvent(
            "GUILD_ROLE_DELETE",
            data,
            shard_id,
            guild_id=guild_id,
            role_id=role_id,
            role=role,
        )

    def parse_guild_emojis_update(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])
        before: t.List[Emoji] = []
        after: t.List[Emoji] = []

        with self.cache.lock:
            guild = self.cache.get("guild", guild_id)

            if guild is not None:
                before = guild.emojis
                self._store_emojis(guild, data["emojis"])
                after = guild.emojis

        return events.GuildEmojisUpdateEvent(
            "GUILD_EMOJIS_UPDATE",
            data,
            shard_id,
            guild_id=guild_id,
            before=before,
            after=after,
        )

    def parse_guild_member_add(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])

        with self.cache.lock:
            member = self.store_member(guild_id, data)

            guild = self.cache.get("guild", guild_id)
            if guild is not None and guild.member_count is not None:
                guild.member_count += 1

        return events.MemberEvent("GUILD_MEMBER_ADD", data, shard_id, member=member)

    def parse_guild_member_update(self, data: t.Any, shard_id: int) -> Event:
        member = self.store_member(snowflake(data["guild_id"]), data)
        return events.MemberEvent("GUILD_MEMBER_UPDATE", data, shard_id, member=member)

    def parse_guild_member_remove(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])
        user = User(data["user"], self.cache)

        with self.cache.lock:
            member = self.cache.remove("member", (guild_id, user.id))

            guild = self.cache.get("guild", guild_id)
            if guild is not None:
                guild._member_ids.discard(user.id)

                if guild.member_count:
                    guild.member_count -= 1

        return events.MemberRemoveEvent(
            "GUILD_MEMBER_REMOVE",
            data,
            shard_id,
            guild_id=guild_id,
            user=user,
            member=member,
        )

    def parse_guild_members_chunk(self, data: t.Any, shard_id: int) -> Event:
        guild_id = snowflake(data["guild_id"])
        members = [self.store_member(guild_id, m) for m in data.get("members", ())]

        return events.MembersChunkEvent(
            "GUILD_MEMBERS_CHUNK",
            data,
            shard_id,
            guild_id=guild_id,
            members=members,
            chunk_index=data.get("chunk_index", 0),
            chunk_count=data.get("chunk_count", 1),
            nonce=data.get("nonce"),
        )

    def parse_channel_create(self, data: t.Any, shard_id: int) -> Event:
        channel = self.store_channel(data)
        return events.ChannelEvent("CHANNEL_CREATE", data, shard_id, channel=channel)

    def parse_channel_update(self, data: t.Any, shard_id: int) -> Event:
        channel = self.store_channel(data)
        return events.ChannelEvent("CHANNEL_UPDATE", data, shard_id, channel=channel)

    def parse_channel_delete(self, data: t.Any, shard_id: int) -> Event:
        channel = self._remove_channel(data)
        return events.ChannelEvent("CHANNEL_DELETE", data, shard_id, channel=channel)

    def parse_thread_create(self, data: t.Any, shard_id: int) -> Event:
        channel = self.store_channel(data)
        return events.ChannelEvent("THREAD_CREATE", data, shard_id, channel=channel)

    def parse_thread_update(self, data: t.Any, shard_id: int) -> Event:
        channel = self.store_channel(data)
        return events.ChannelEvent("THREAD_UPDATE", data, shard_id, channel=channel)

    def parse_thread_delete(self, data: t.Any, shard_id: int) -> Event:
        channel = self._remove_channel(data)
        return events.ChannelEvent("THREAD_DELETE", data, shard_id, channel=channel)

    def store_message(self, data: t.Mapping[str, t.Any]) -> Message:
        message = Message(data, self.cache)

        with self.cache.lock:
            self.store_user(data["author"])

            if message.guild_id is not None and data.get("member"):
                self.store_member(message.guild_id, dict(data["member"], user=data["author"]))

            self.cache.upsert("message", message)

            channel = self.cache.get("channel", message.channel_id)
            if channel is None and message.guild_id is None:
                channel = DMChannel(
                    {"id": message.channel_id, "type": 1, "recipients": [data["author"]]},
                    self.cache,
                )
                self.cache.upsert("channel", channel)

            if channel is not None and channel.MESSAGEABLE:
                channel.last_message_id = message.id

        return message

    def parse_message_create(self, data: t.Any, shard_id: int) -> Event:
        message = self.store_message(data)
        return events.MessageEvent("MESSAGE_CREATE", data, shard_id, message=message)

    def parse_message_update(self, data: t.Any, shard_id: int) -> Event:
        message_id = snowflake(data["id"])
        message = self.cache.patch("message", message_id, data)

        return events.MessageUpdateEvent(
            "MESSAGE_UPDATE",
            data,
            shard_id,
            message_id=message_id,
            channel_id=snowflake(data["channel_id"]),
            guild_id=optional_snowflake(data.get("guild_id")),
            message=message,
        )

    def parse_message_delete(self, data: t.Any, shard_id: int) -> Event:
        message_id = snowflake(data["id"])
        message = self.cache.remove("message", message_id)

        return events.MessageDeleteEvent(
            "MESSAGE_DELETE",
            data,
            shard_id,
            message_id=message_id,
            channel_id=snowflake(data["channel_id"]),
            guild_id=optional_snowflake(data.get("guild_id")),
            message=message,
        )

    def parse_message_delete_bulk(self, data: t.Any, shard_id: int) -> Event:
        message_ids = [snowflake(id) for id in data["ids"]]
        removed = (self.cache.remove("message", id) for id in message_ids)

        return events.MessageDeleteBulkEvent(
            "MESSAGE_DELETE_BULK",
            data,
            shard_id,
            message_ids=message_ids,
            channel_id=snowflake(data["channel_id"]),
            guild_id=optional_snowflake(data.get("guild_id")),
            messages=[message for message in removed if message is not None],
        )

    def _reaction_event(self, name: str, data: t.Any, shard_id: int, add: bool) -> Event:
        user_id = snowflake(data["user_id"])
        message_id = snowflake(data["message_id"])
        guild_id = optional_snowflake(data.get("guild_id"))
        me = user_id == self.cache.self_id
        reaction = None

        with self.cache.lock:
            if guild_id is not None and data.get("member"):
                self.store_member(guild_id, data["member"])

            message = self.cache.get("message", message_id)
            if message is not None:
                if add:
                    reaction = message._add_reaction(data["emoji"], me)
                else:
                    reaction = message._remove_reaction(data["emoji"], me)

        return events.ReactionEvent(
            name,
            data,
            shard_id,
            user_id=user_id,
            message_id=message_id,
            channel_id=snowflake(data["channel_id"]),
            guild_id=guild_id,
            emoji=data["emoji"],
            message=message,
            reaction=reaction,
        )

    def parse_message_reaction_add(self, data: t.Any, shard_id: int) -> Event:
        return self._reaction_event("MESSAGE_REACTION_ADD", data, shard_id, add=True)

    def parse_message_reaction_remove(self, data: t.Any, shard_id: int) -> Event:
        return self._reaction_event("MESSAGE_REACTION_REMOVE", data, shard_id, add=False)

    def _reaction_clear_event(self, name: str, data: t.Any, shard_id: int) -> Event:
        message_id = snowflake(data["message_id"])
        reactions = []

        with self.cache.lock:
            message = self.cache.get("message", message_id)
            if message is not None:
                reactions = message._clear_reactions(data.get("emoji"))

        return events.ReactionClearEvent(
            name,
            data,
            shard_id,
            message_id=message_id,
            channel_id=snowflake(data["channel_id"]),
            guild_id=optional_snowflake(data.get("guild_id")),
            message=message,
            reactions=reactions,
        )

    def parse_message_reaction_remove_all(self, data: t.Any, shard_id: int) -> Event:
        return self._reaction_clear_event("MESSAGE_REACTION_REMOVE_ALL", data, shard_id)

    def parse_message_reaction_remove_emoji(self, data: t.Any, shard_id: int) -> Event:
        return self._reaction_clear_event("MESSAGE_REACTION_REMOVE_EMOJI", data, shard_id)

    def parse_user_update(self, data: t.Any, shard_id: int) -> Event:
        user = self.cache.patch("user", snowflake(data["id"]), data)
        if user is None:
            user = self.cache.upsert("user", ClientUser(data, self.cache))

        return events.UserEvent("USER_UPDATE", data, shard_id, user=user)

    def parse_presence_update(self, data: t.Any, shard_id: int) -> Event:
        user_id = snowflake(data["user"]["id"])

        # Presence payloads usually carry only the user id.
        if len(data["user"]) > 1:
            self.cache.patch("user", user_id, data["user"])

        return events.PresenceUpdateEvent(
            "PRESENCE_UPDATE",
            data,
            shard_id,
            user_id=user_id,
            guild_id=optional_snowflake(data.get("guild_id")),
            status=data.get("status", "offline"),
            activities=data.get("activities", []),
        )

    def parse_typing_start(self, data: t.Any, shard_id: int) -> Event:
        guild_id = optional_snowflake(data.get("guild_id"))

        if guild_id is not None and data.get("member"):
            self.store_member(guild_id, data["member"])

        return events.TypingStartEvent(
            "TYPING_START",
            data,
            shard_id,
            channel_id=snowflake(data["channel_id"]),
            guild_id=guild_id,
            user_id=snowflake(data["user_id"]),
            timestamp=datetime.datetime.fromtimestamp(data["timestamp"], tz=datetime.timezone.utc),
        )

    def parse_interaction_create(self, data: t.Any, shard_id: int) -> Event:
        guild_id = optional_snowflake(data.get("guild_id"))

        if guild_id is not None and data.get("member"):
            self.store_member(guild_id, data["member"])
        elif data.get("user"):
            self.store_user(data["user"])

        interaction = Interaction(data, self.cache)
        return events.InteractionEvent("INTERACTION_CREATE", data, shard_id, interaction=interaction)
