import typing as t
from .snowflake import Snowflake

ChannelType = t.Literal[0, 1, 2, 3, 4, 5, 10, 11, 12, 13, 14, 15, 16]


class PermissionOverwrite(t.TypedDict):
    id: Snowflake
    type: t.Literal[0, 1]
    allow: str
    deny: str


class ThreadMetadata(t.TypedDict, total=False):
    archived: bool
    auto_archive_duration: int
    archive_timestamp: str
    locked: bool
    invitable: bool


class PartialChannel(t.TypedDict):
    id: Snowflake
    type: ChannelType


class Channel(PartialChannel, total=False):
    guild_id: Snowflake
    name: t.Optional[str]
    position: int
    permission_overwrites: t.List[PermissionOverwrite]
    parent_id: t.Optional[Snowflake]
    nsfw: bool
    topic: t.Optional[str]
    last_message_id: t.Optional[Snowflake]
    rate_limit_per_user: int
    bitrate: int
    user_limit: int
    rtc_region: t.Optional[str]
    recipients: t.List[t.Any]
    owner_id: Snowflake
    message_count: int
    member_count: int
    thread_metadata: ThreadMetadata
    available_tags: t.List[t.Dict[str, t.Any]]
    default_reaction_emoji: t.Optional[t.Dict[str, t.Any]]
