import typing as t

from .. import types
from ..utils import snowflake, optional_snowflake
from .base import Hashable, copy_fields

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .guild import Guild


def emoji_key(data: t.Mapping[str, t.Any]) -> str:
    """Identifies a reaction emoji: ``name:id`` for custom emojis, the character otherwise."""
    id = optional_snowflake(data.get("id"))

    if id is None:
        return data.get("name") or ""

    return f"{data.get('name')}:{id}"


class Emoji(Hashable):
    FIELDS: t.ClassVar[t.Tuple[str, ...]] = (
        "name",
        "animated",
        "managed",
        "available",
        "require_colons",
    )

    __slots__ = (
        "id",
        "guild_id",
        "name",
        "animated",
        "managed",
        "available",
        "require_colons",
        "role_ids",

        "_cache",
    )

    def __init__(self, data: types.Emoji, guild_id: int, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.guild_id = guild_id
        self.name: t.Optional[str] = None
        self.animated = False
        self.managed = False
        self.available = True
        self.require_colons = True
        self.role_ids: t.List[int] = []

        self._update(data)

    def __repr__(self) -> str:
        return f"<Emoji id={self.id} name={self.name!r} animated={self.animated}>"

    def __str__(self) -> str:
        prefix = "a" if self.animated else ""
        return f"<{prefix}:{self.name}:{self.id}>"

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

        if "roles" in data:
            self.role_ids = [snowflake(id) for id in data["roles"]]

    @property
    def guild(self) -> t.Optional["Guild"]:
        if self._cache is None:
            return None

        return self._cache.get("guild", self.guild_id)
