import typing as t

from .user import User
from .snowflake import Snowflake, SnowflakeList


class Member(t.TypedDict, total=False):
    user: User
    nick: t.Optional[str]
    avatar: t.Optional[str]
    roles: SnowflakeList
    joined_at: str
    premium_since: t.Optional[str]
    deaf: bool
    mute: bool
    pending: bool
    communication_disabled_until: t.Optional[str]


class MemberWithGuild(Member, total=False):
    guild_id: Snowflake
