import typing as t
from .snowflake import Snowflake

PremiumType = t.Literal[0, 1, 2, 3]


class PartialUser(t.TypedDict):
    id: Snowflake
    username: str
    discriminator: str
    avatar: t.Optional[str]


class User(PartialUser, total=False):
    global_name: t.Optional[str]
    bot: bool
    system: bool
    mfa_enabled: bool
    locale: str
    verified: bool
    email: t.Optional[str]
    flags: int
    premium_type: PremiumType
    public_flags: int
