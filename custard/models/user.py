import datetime
import typing as t

from .. import types
from ..utils import snowflake, snowflake_time
from .base import Hashable, copy_fields

if t.TYPE_CHECKING:
    from ..cache import Cache


class User(Hashable):
    FIELDS: t.ClassVar[t.Tuple[str, ...]] = (
        "username",
        "discriminator",
        "global_name",
        "avatar",
        "bot",
        "system",
        "public_flags",
    )

    __slots__ = (
        "id",
        "username",
        "discriminator",
        "global_name",
        "avatar",
        "bot",
        "system",
        "public_flags",

        "_cache",
    )

    def __init__(self, data: types.User, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.username = ""
        self.discriminator = "0"
        self.global_name: t.Optional[str] = None
        self.avatar: t.Optional[str] = None
        self.bot = False
        self.system = False
        self.public_flags = 0

        self._update(data)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id} username={self.username!r} bot={self.bot}>"

    def __str__(self) -> str:
        if self.discriminator in ("0", "0000"):
            return self.username

        return f"{self.username}#{self.discriminator}"

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

    @property
    def display_name(self) -> str:
        return self.global_name or self.username

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"

    @property
    def created_at(self) -> datetime.datetime:
        return snowflake_time(self.id)


class ClientUser(User):
    """The user the bot is logged in as."""

    FIELDS = User.FIELDS + ("verified", "mfa_enabled", "locale", "email", "flags")

    __slots__ = (
        "verified",
        "mfa_enabled",
        "locale",
        "email",
        "flags",
    )

    def __init__(self, data: types.User, cache: t.Optional["Cache"] = None) -> None:
        self.verified = False
        self.mfa_enabled = False
        self.locale: t.Optional[str] = None
        self.email: t.Optional[str] = None
        self.flags = 0

        super().__init__(data, cache)
