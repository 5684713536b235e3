import typing as t
from .snowflake import Snowflake


class PartialApplication(t.TypedDict):
    id: Snowflake
    flags: int


class Application(t.TypedDict, total=False):
    id: Snowflake
    name: str
    icon: t.Optional[str]
    description: str
    bot_public: bool
    flags: int
