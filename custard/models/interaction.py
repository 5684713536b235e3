import typing as t

from .. import types
from ..enums import InteractionType
from ..utils import snowflake, optional_snowflake

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .user import User
    from .channel import Channel
    from .guild import Guild


class Interaction:
    """An interaction received over the gateway.

    Responding goes through `DiscordHTTPClient.create_interaction_response`
    with `id` and `token`.
    """

    __slots__ = (
        "id",
        "application_id",
        "type",
        "data",
        "guild_id",
        "channel_id",
        "user_id",
        "message_id",
        "token",
        "version",
        "locale",
        "guild_locale",

        "_cache",
    )

    def __init__(self, data: types.Interaction, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.application_id = snowflake(data["application_id"])
        self.type = InteractionType(data["type"])
        self.data = data.get("data") or {}
        self.guild_id = optional_snowflake(data.get("guild_id"))
        self.channel_id = optional_snowflake(data.get("channel_id"))
        self.token = data["token"]
        self.version = data.get("version", 1)
        self.locale = data.get("locale")
        self.guild_locale = data.get("guild_locale")

        user = (data.get("member") or {}).get("user") or data.get("user")
        self.user_id = optional_snowflake(user["id"]) if user else None

        message = data.get("message")
        self.message_id = optional_snowflake(message["id"]) if message else None

    def __repr__(self) -> str:
        return f"<Interaction id={self.id} type={self.type.name} user_id={self.user_id}>"

    @property
    def command_name(self) -> t.Optional[str]:
        return self.data.get("name")

    @property
    def custom_id(self) -> t.Optional[str]:
        return self.data.get("custom_id")

    @property
    def user(self) -> t.Optional["User"]:
        if self.user_id is None or self._cache is None:
            return None

        return self._cache.get("user", self.user_id)

    @property
    def channel(self) -> t.Optional["Channel"]:
        if self.channel_id is None or self._cache is None:
            return None

        return self._cache.get("channel", self.channel_id)

    @property
    def guild(self) -> t.Optional["Guild"]:
        if self.guild_id is None or self._cache is None:
            return None

        return self._cache.get("guild", self.guild_id)
