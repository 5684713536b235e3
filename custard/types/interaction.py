import typing as t

from .user import User
from .member import Member
from .message import Message
from .snowflake import Snowflake

InteractionType = t.Literal[1, 2, 3, 4, 5]


class Interaction(t.TypedDict, total=False):
    id: Snowflake
    application_id: Snowflake
    type: InteractionType
    data: t.Dict[str, t.Any]
    guild_id: Snowflake
    channel_id: Snowflake
    member: Member
    user: User
    token: str
    version: int
    message: Message
    locale: str
    guild_locale: str


class InteractionResponse(t.TypedDict, total=False):
    type: int
    data: t.Dict[str, t.Any]
