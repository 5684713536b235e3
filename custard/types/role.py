import typing as t
from .snowflake import Snowflake


class RoleTags(t.TypedDict, total=False):
    bot_id: Snowflake
    integration_id: Snowflake
    premium_subscriber: None


class Role(t.TypedDict, total=False):
    id: Snowflake
    name: str
    color: int
    hoist: bool
    icon: t.Optional[str]
    position: int
    permissions: str
    managed: bool
    mentionable: bool
    tags: RoleTags
