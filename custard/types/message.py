import typing as t

from .user import User
from .emoji import PartialEmoji
from .member import Member
from .snowflake import Snowflake, SnowflakeList


class Attachment(t.TypedDict, total=False):
    id: Snowflake
    filename: str
    size: int
    url: str
    proxy_url: str
    content_type: str


class Reaction(t.TypedDict):
    count: int
    me: bool
    emoji: PartialEmoji


class MessageReference(t.TypedDict, total=False):
    message_id: Snowflake
    channel_id: Snowflake
    guild_id: Snowflake


class Message(t.TypedDict, total=False):
    id: Snowflake
    channel_id: Snowflake
    guild_id: Snowflake
    author: User
    member: Member
    content: str
    timestamp: str
    edited_timestamp: t.Optional[str]
    tts: bool
    mention_everyone: bool
    mentions: t.List[User]
    mention_roles: SnowflakeList
    attachments: t.List[Attachment]
    embeds: t.List[t.Dict[str, t.Any]]
    reactions: t.List[Reaction]
    pinned: bool
    webhook_id: Snowflake
    type: int
    flags: int
    message_reference: MessageReference
    components: t.List[t.Dict[str, t.Any]]
