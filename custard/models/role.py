import typing as t

from .. import types
from ..utils import snowflake
from .base import Hashable, copy_fields

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .guild import Guild


class Role(Hashable):
    FIELDS: t.ClassVar[t.Tuple[str, ...]] = (
        "name",
        "color",
        "hoist",
        "icon",
        "position",
        "managed",
        "mentionable",
    )

    __slots__ = (
        "id",
        "guild_id",
        "name",
        "color",
        "hoist",
        "icon",
        "position",
        "permissions",
        "managed",
        "mentionable",

        "_cache",
    )

    def __init__(self, data: types.Role, guild_id: int, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.guild_id = guild_id
        self.name = ""
        self.color = 0
        self.hoist = False
        self.icon: t.Optional[str] = None
        self.position = 0
        self.permissions = 0
        self.managed = False
        self.mentionable = False

        self._update(data)

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name!r} guild_id={self.guild_id}>"

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

        if "permissions" in data:
            self.permissions = int(data["permissions"])

    def is_default(self) -> bool:
        return self.id == self.guild_id

    @property
    def mention(self) -> str:
        if self.is_default():
            return "@everyone"

        return f"<@&{self.id}>"

    @property
    def guild(self) -> t.Optional["Guild"]:
        if self._cache is None:
            return None

        return self._cache.get("guild", self.guild_id)
