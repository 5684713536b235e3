import typing as t

from .role import Role
from .emoji import Emoji
from .member import Member
from .channel import Channel
from .snowflake import Snowflake


class UnavailableGuild(t.TypedDict):
    id: Snowflake
    unavailable: bool


class PartialGuild(t.TypedDict):
    id: Snowflake
    name: str
    icon: t.Optional[str]


class Guild(PartialGuild, total=False):
    owner_id: Snowflake
    description: t.Optional[str]
    features: t.List[str]
    roles: t.List[Role]
    emojis: t.List[Emoji]
    banner: t.Optional[str]
    splash: t.Optional[str]
    verification_level: int
    premium_tier: int
    preferred_locale: str
    unavailable: bool
    member_count: int
    large: bool
    joined_at: str
    members: t.List[Member]
    channels: t.List[Channel]
    threads: t.List[Channel]
