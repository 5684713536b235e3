import typing as t
from .user import User
from .snowflake import Snowflake


class PartialEmoji(t.TypedDict):
    id: t.Optional[Snowflake]
    name: t.Optional[str]


class Emoji(PartialEmoji, total=False):
    roles: t.List[Snowflake]
    user: User
    require_colons: bool
    managed: bool
    animated: bool
    available: bool
