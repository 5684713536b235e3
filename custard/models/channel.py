import datetime
import typing as t

from .. import types
from ..enums import ChannelType
from ..utils import snowflake, optional_snowflake, snowflake_time, parse_time
from .base import Hashable, copy_fields

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .guild import Guild
    from .user import User

__all__ = (
    "BaseChannel",
    "TextChannel",
    "VoiceChannel",
    "CategoryChannel",
    "ThreadChannel",
    "StageChannel",
    "ForumChannel",
    "DMChannel",
    "Channel",
    "channel_factory",
    "create_channel",
)


def _try_channel_type(value: int) -> t.Union[ChannelType, int]:
    try:
        return ChannelType(value)
    except ValueError:
        return value


class BaseChannel(Hashable):
    """Fields every channel kind shares."""

    MESSAGEABLE: t.ClassVar[bool] = False
    FIELDS: t.ClassVar[t.Tuple[str, ...]] = ("name", "position")

    __slots__ = (
        "id",
        "type",
        "guild_id",
        "name",
        "position",
        "parent_id",
        "overwrites",

        "_cache",
    )

    def __init__(
        self,
        data: types.Channel,
        cache: t.Optional["Cache"] = None,
        *,
        guild_id: t.Optional[int] = None,
    ) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.type: t.Union[ChannelType, int] = data["type"]
        self.guild_id = optional_snowflake(data.get("guild_id", guild_id))
        self.name: t.Optional[str] = None
        self.position = 0
        self.parent_id: t.Optional[int] = None
        self.overwrites: t.List[types.PermissionOverwrite] = []

        self._update(data)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id} name={self.name!r} type={getattr(self.type, 'name', self.type)}>"

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

        if "type" in data:
            self.type = _try_channel_type(data["type"])

        if "parent_id" in data:
            self.parent_id = optional_snowflake(data["parent_id"])

        if "permission_overwrites" in data:
            self.overwrites = list(data["permission_overwrites"])

    @property
    def mention(self) -> str:
        return f"<#{self.id}>"

    @property
    def created_at(self) -> datetime.datetime:
        return snowflake_time(self.id)

    @property
    def guild(self) -> t.Optional["Guild"]:
        if self.guild_id is None or self._cache is None:
            return None

        return self._cache.get("guild", self.guild_id)

    @property
    def parent(self) -> t.Optional["Channel"]:
        if self.parent_id is None or self._cache is None:
            return None

        return self._cache.get("channel", self.parent_id)


class _Messageable(BaseChannel):
    MESSAGEABLE = True

    __slots__ = ("last_message_id",)

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.last_message_id: t.Optional[int] = None
        super().__init__(data, cache, **kwargs)

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        super()._update(data)

        if "last_message_id" in data:
            self.last_message_id = optional_snowflake(data["last_message_id"])


class TextChannel(_Messageable):
    FIELDS = BaseChannel.FIELDS + ("topic", "nsfw", "rate_limit_per_user")

    __slots__ = ("topic", "nsfw", "rate_limit_per_user")

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.topic: t.Optional[str] = None
        self.nsfw = False
        self.rate_limit_per_user = 0
        super().__init__(data, cache, **kwargs)

    def is_news(self) -> bool:
        return self.type is ChannelType.GUILD_ANNOUNCEMENT


class VoiceChannel(_Messageable):
    FIELDS = BaseChannel.FIELDS + ("bitrate", "user_limit", "rtc_region", "nsfw")

    __slots__ = ("bitrate", "user_limit", "rtc_region", "nsfw")

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.bitrate = 64000
        self.user_limit = 0
        self.rtc_region: t.Optional[str] = None
        self.nsfw = False
        super().__init__(data, cache, **kwargs)


class StageChannel(_Messageable):
    FIELDS = BaseChannel.FIELDS + ("bitrate", "user_limit", "rtc_region", "topic")

    __slots__ = ("bitrate", "user_limit", "rtc_region", "topic")

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.bitrate = 64000
        self.user_limit = 0
        self.rtc_region: t.Optional[str] = None
        self.topic: t.Optional[str] = None
        super().__init__(data, cache, **kwargs)


class CategoryChannel(BaseChannel):
    __slots__ = ()

    @property
    def channels(self) -> t.List["Channel"]:
        guild = self.guild
        if guild is None:
            return []

        return [c for c in guild.channels if c.parent_id == self.id]


class ThreadChannel(_Messageable):
    FIELDS = BaseChannel.FIELDS + ("message_count", "member_count", "rate_limit_per_user")

    __slots__ = (
        "owner_id",
        "message_count",
        "member_count",
        "rate_limit_per_user",
        "archived",
        "locked",
        "auto_archive_duration",
        "archive_timestamp",
    )

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.owner_id: t.Optional[int] = None
        self.message_count = 0
        self.member_count = 0
        self.rate_limit_per_user = 0
        self.archived = False
        self.locked = False
        self.auto_archive_duration = 1440
        self.archive_timestamp: t.Optional[datetime.datetime] = None
        super().__init__(data, cache, **kwargs)

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        super()._update(data)

        if "owner_id" in data:
            self.owner_id = optional_snowflake(data["owner_id"])

        metadata = data.get("thread_metadata")
        if metadata:
            copy_fields(self, metadata, ("archived", "locked", "auto_archive_duration"))

            if "archive_timestamp" in metadata:
                self.archive_timestamp = parse_time(metadata["archive_timestamp"])

    def is_private(self) -> bool:
        return self.type is ChannelType.PRIVATE_THREAD


class ForumChannel(BaseChannel):
    FIELDS = BaseChannel.FIELDS + (
        "topic",
        "nsfw",
        "rate_limit_per_user",
        "available_tags",
        "default_reaction_emoji",
    )

    __slots__ = (
        "topic",
        "nsfw",
        "rate_limit_per_user",
        "available_tags",
        "default_reaction_emoji",
    )

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.topic: t.Optional[str] = None
        self.nsfw = False
        self.rate_limit_per_user = 0
        self.available_tags: t.List[t.Dict[str, t.Any]] = []
        self.default_reaction_emoji: t.Optional[t.Dict[str, t.Any]] = None
        super().__init__(data, cache, **kwargs)


class DMChannel(_Messageable):
    __slots__ = ("recipient_ids",)

    def __init__(self, data: types.Channel, cache: t.Optional["Cache"] = None, **kwargs: t.Any) -> None:
        self.recipient_ids: t.List[int] = []
        super().__init__(data, cache, **kwargs)

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        super()._update(data)

        if "recipients" in data:
            self.recipient_ids = [snowflake(user["id"]) for user in data["recipients"]]

    @property
    def recipients(self) -> t.List["User"]:
        if self._cache is None:
            return []

        found = (self._cache.get("user", id) for id in self.recipient_ids)
        return [user for user in found if user is not None]


Channel = t.Union[
    TextChannel,
    VoiceChannel,
    CategoryChannel,
    ThreadChannel,
    StageChannel,
    ForumChannel,
    DMChannel,
]

_CHANNEL_TYPES: t.Dict[int, t.Type[BaseChannel]] = {
    ChannelType.GUILD_TEXT: TextChannel,
    ChannelType.GUILD_ANNOUNCEMENT: TextChannel,
    ChannelType.DM: DMChannel,
    ChannelType.GROUP_DM: DMChannel,
    ChannelType.GUILD_VOICE: VoiceChannel,
    ChannelType.GUILD_CATEGORY: CategoryChannel,
    ChannelType.ANNOUNCEMENT_THREAD: ThreadChannel,
    ChannelType.PUBLIC_THREAD: ThreadChannel,
    ChannelType.PRIVATE_THREAD: ThreadChannel,
    ChannelType.GUILD_STAGE_VOICE: StageChannel,
    ChannelType.GUILD_FORUM: ForumChannel,
    ChannelType.GUILD_MEDIA: ForumChannel,
}


def channel_factory(type: int) -> t.Type[BaseChannel]:
    return _CHANNEL_TYPES.get(type, BaseChannel)


def create_channel(
    data: types.Channel,
    cache: t.Optional["Cache"] = None,
    *,
    guild_id: t.Optional[int] = None,
) -> "Channel":
    cls = channel_factory(data["type"])
    return cls(data, cache, guild_id=guild_id)  # type: ignore
