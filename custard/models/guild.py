import datetime
import typing as t

from .. import types
from ..utils import snowflake, optional_snowflake, snowflake_time, parse_time
from .base import Hashable, copy_fields

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .role import Role
    from .emoji import Emoji
    from .member import Member
    from .channel import Channel


class Guild(Hashable):
    """A guild as seen by the cache.

    Roles, emojis, channels and members are stored in the cache under their
    own kind; the guild only keeps their IDs and resolves them on access.
    """

    FIELDS: t.ClassVar[t.Tuple[str, ...]] = (
        "name",
        "icon",
        "description",
        "features",
        "banner",
        "splash",
        "verification_level",
        "premium_tier",
        "preferred_locale",
        "unavailable",
        "member_count",
        "large",
    )

    __slots__ = (
        "id",
        "name",
        "icon",
        "owner_id",
        "description",
        "features",
        "banner",
        "splash",
        "verification_level",
        "premium_tier",
        "preferred_locale",
        "unavailable",
        "member_count",
        "large",
        "joined_at",

        "_role_ids",
        "_emoji_ids",
        "_channel_ids",
        "_member_ids",
        "_cache",
    )

    def __init__(self, data: types.Guild, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.name = ""
        self.icon: t.Optional[str] = None
        self.owner_id: t.Optional[int] = None
        self.description: t.Optional[str] = None
        self.features: t.List[str] = []
        self.banner: t.Optional[str] = None
        self.splash: t.Optional[str] = None
        self.verification_level = 0
        self.premium_tier = 0
        self.preferred_locale = "en-US"
        self.unavailable = False
        self.member_count: t.Optional[int] = None
        self.large = False
        self.joined_at: t.Optional[datetime.datetime] = None

        self._role_ids: t.Set[int] = set()
        self._emoji_ids: t.Set[int] = set()
        self._channel_ids: t.Set[int] = set()
        self._member_ids: t.Set[int] = set()

        self._update(data)

    def __repr__(self) -> str:
        return f"<Guild id={self.id} name={self.name!r} unavailable={self.unavailable}>"

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

        if "owner_id" in data:
            self.owner_id = optional_snowflake(data["owner_id"])

        if "joined_at" in data:
            self.joined_at = parse_time(data["joined_at"])

    def _resolve(self, kind: str, ids: t.Iterable[t.Any]) -> t.List[t.Any]:
        if self._cache is None:
            return []

        found = (self._cache.get(kind, id) for id in ids)
        return [entity for entity in found if entity is not None]

    @property
    def created_at(self) -> datetime.datetime:
        return snowflake_time(self.id)

    @property
    def roles(self) -> t.List["Role"]:
        return sorted(self._resolve("role", self._role_ids), key=lambda r: (r.position, r.id))

    @property
    def emojis(self) -> t.List["Emoji"]:
        return self._resolve("emoji", self._emoji_ids)

    @property
    def channels(self) -> t.List["Channel"]:
        return self._resolve("channel", self._channel_ids)

    @property
    def members(self) -> t.List["Member"]:
        return self._resolve("member", ((self.id, id) for id in self._member_ids))

    @property
    def default_role(self) -> t.Optional["Role"]:
        return self.get_role(self.id)

    @property
    def owner(self) -> t.Optional["Member"]:
        if self.owner_id is None:
            return None

        return self.get_member(self.owner_id)

    def get_role(self, role_id: int) -> t.Optional["Role"]:
        if role_id not in self._role_ids or self._cache is None:
            return None

        return self._cache.get("role", role_id)

    def get_channel(self, channel_id: int) -> t.Optional["Channel"]:
        if channel_id not in self._channel_ids or self._cache is None:
            return None

        return self._cache.get("channel", channel_id)

    def get_member(self, user_id: int) -> t.Optional["Member"]:
        if self._cache is None:
            return None

        return self._cache.get("member", (self.id, user_id))
