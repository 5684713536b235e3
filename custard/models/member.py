import datetime
import typing as t

from .. import types
from ..utils import snowflake, parse_time
from .base import copy_fields

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .guild import Guild
    from .role import Role
    from .user import User


class Member:
    FIELDS: t.ClassVar[t.Tuple[str, ...]] = (
        "nick",
        "avatar",
        "deaf",
        "mute",
        "pending",
    )

    __slots__ = (
        "guild_id",
        "user_id",
        "nick",
        "avatar",
        "role_ids",
        "joined_at",
        "premium_since",
        "deaf",
        "mute",
        "pending",
        "communication_disabled_until",

        "_cache",
    )

    def __init__(self, data: types.Member, guild_id: int, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.guild_id = guild_id
        self.user_id = snowflake(data["user"]["id"])
        self.nick: t.Optional[str] = None
        self.avatar: t.Optional[str] = None
        self.role_ids: t.List[int] = []
        self.joined_at: t.Optional[datetime.datetime] = None
        self.premium_since: t.Optional[datetime.datetime] = None
        self.deaf = False
        self.mute = False
        self.pending = False
        self.communication_disabled_until: t.Optional[datetime.datetime] = None

        self._update(data)

    def __repr__(self) -> str:
        return f"<Member user_id={self.user_id} guild_id={self.guild_id} nick={self.nick!r}>"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Member)
            and other.user_id == self.user_id
            and other.guild_id == self.guild_id
        )

    def __hash__(self) -> int:
        return hash((self.guild_id, self.user_id))

    @property
    def key(self) -> t.Tuple[int, int]:
        return (self.guild_id, self.user_id)

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

        if "roles" in data:
            self.role_ids = [snowflake(id) for id in data["roles"]]

        for key in ("joined_at", "premium_since", "communication_disabled_until"):
            if key in data:
                setattr(self, key, parse_time(data[key]))

    @property
    def user(self) -> t.Optional["User"]:
        if self._cache is None:
            return None

        return self._cache.get("user", self.user_id)

    @property
    def guild(self) -> t.Optional["Guild"]:
        if self._cache is None:
            return None

        return self._cache.get("guild", self.guild_id)

    @property
    def roles(self) -> t.List["Role"]:
        if self._cache is None:
            return []

        found = (self._cache.get("role", id) for id in self.role_ids)
        return [role for role in found if role is not None]

    @property
    def display_name(self) -> str:
        if self.nick:
            return self.nick

        user = self.user
        return user.display_name if user else str(self.user_id)

    @property
    def mention(self) -> str:
        return f"<@{self.user_id}>"
