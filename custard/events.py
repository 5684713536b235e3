import datetime
import typing as t

from .models import (
    Channel,
    ClientUser,
    Emoji,
    Guild,
    Interaction,
    Member,
    Message,
    Reaction,
    Role,
    User,
)


class Event:
    """A gateway event as handed to listeners.

    ``data`` is always the raw payload; subclasses add the decoded objects.
    """

    __slots__ = ("name", "data", "shard_id")

    def __init__(self, name: str, data: t.Any, shard_id: int = 0, **fields: t.Any) -> None:
        self.name = name
        self.data = data
        self.shard_id = shard_id

        for key, value in fields.items():
            setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} shard_id={self.shard_id}>"


class ReadyEvent(Event):
    __slots__ = ("user", "guild_ids", "session_id")

    user: ClientUser
    guild_ids: t.List[int]
    session_id: str


class GuildEvent(Event):
    __slots__ = ("guild",)

    guild: Guild


class GuildDeleteEvent(Event):
    __slots__ = ("guild_id", "guild", "unavailable")

    guild_id: int
    guild: t.Optional[Guild]
    unavailable: bool


class RoleEvent(Event):
    __slots__ = ("role",)

    role: Role


class RoleDeleteEvent(Event):
    __slots__ = ("guild_id", "role_id", "role")

    guild_id: int
    role_id: int
    role: t.Optional[Role]


class GuildEmojisUpdateEvent(Event):
    __slots__ = ("guild_id", "before", "after")

    guild_id: int
    before: t.List[Emoji]
    after: t.List[Emoji]


class MemberEvent(Event):
    __slots__ = ("member",)

    member: Member


class MemberRemoveEvent(Event):
    __slots__ = ("guild_id", "user", "member")

    guild_id: int
    user: User
    member: t.Optional[Member]


class MembersChunkEvent(Event):
    __slots__ = ("guild_id", "members", "chunk_index", "chunk_count", "nonce")

    guild_id: int
    members: t.List[Member]
    chunk_index: int
    chunk_count: int
    nonce: t.Optional[str]


class ChannelEvent(Event):
    __slots__ = ("channel",)

    channel: Channel


class MessageEvent(Event):
    __slots__ = ("message",)

    message: Message


class MessageUpdateEvent(Event):
    __slots__ = ("message_id", "channel_id", "guild_id", "message")

    message_id: int
    channel_id: int
    guild_id: t.Optional[int]
    message: t.Optional[Message]


class MessageDeleteEvent(Event):
    __slots__ = ("message_id", "channel_id", "guild_id", "message")

    message_id: int
    channel_id: int
    guild_id: t.Optional[int]
    message: t.Optional[Message]


class MessageDeleteBulkEvent(Event):
    __slots__ = ("message_ids", "channel_id", "guild_id", "messages")

    message_ids: t.List[int]
    channel_id: int
    guild_id: t.Optional[int]
    messages: t.List[Message]


class ReactionEvent(Event):
    __slots__ = ("user_id", "message_id", "channel_id", "guild_id", "emoji", "message", "reaction")

    user_id: int
    message_id: int
    channel_id: int
    guild_id: t.Optional[int]
    emoji: t.Dict[str, t.Any]
    message: t.Optional[Message]
    reaction: t.Optional[Reaction]


class ReactionClearEvent(Event):
    __slots__ = ("message_id", "channel_id", "guild_id", "message", "reactions")

    message_id: int
    channel_id: int
    guild_id: t.Optional[int]
    message: t.Optional[Message]
    reactions: t.List[Reaction]


class UserEvent(Event):
    __slots__ = ("user",)

    user: User


class PresenceUpdateEvent(Event):
    __slots__ = ("user_id", "guild_id", "status", "activities")

    user_id: int
    guild_id: t.Optional[int]
    status: str
    activities: t.List[t.Dict[str, t.Any]]


class TypingStartEvent(Event):
    __slots__ = ("channel_id", "guild_id", "user_id", "timestamp")

    channel_id: int
    guild_id: t.Optional[int]
    user_id: int
    timestamp: datetime.datetime


class InteractionEvent(Event):
    __slots__ = ("interaction",)

    interaction: Interaction


class HandlerError(Event):
    """Delivered to ``ERROR`` listeners when another listener raised."""

    __slots__ = ("event_name", "handler", "exception", "event")

    event_name: str
    handler: t.Callable[..., t.Any]
    exception: BaseException
    event: Event
