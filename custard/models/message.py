import datetime
import typing as t

from .. import types
from ..utils import snowflake, optional_snowflake, snowflake_time, parse_time
from .base import Hashable, copy_fields
from .emoji import emoji_key

if t.TYPE_CHECKING:
    from ..cache import Cache
    from .user import User
    from .guild import Guild
    from .channel import Channel


class Reaction:
    __slots__ = ("emoji", "count", "me")

    def __init__(self, emoji: types.PartialEmoji, count: int = 1, me: bool = False) -> None:
        self.emoji = emoji
        self.count = count
        self.me = me

    def __repr__(self) -> str:
        return f"<Reaction emoji={self.key!r} count={self.count} me={self.me}>"

    @property
    def key(self) -> str:
        return emoji_key(self.emoji)


class Message(Hashable):
    FIELDS: t.ClassVar[t.Tuple[str, ...]] = (
        "content",
        "tts",
        "mention_everyone",
        "attachments",
        "embeds",
        "components",
        "pinned",
        "type",
        "flags",
    )

    __slots__ = (
        "id",
        "channel_id",
        "guild_id",
        "author_id",
        "webhook_id",
        "content",
        "timestamp",
        "edited_timestamp",
        "tts",
        "mention_everyone",
        "mention_ids",
        "mention_role_ids",
        "attachments",
        "embeds",
        "components",
        "reactions",
        "pinned",
        "type",
        "flags",
        "reference",

        "_cache",
    )

    def __init__(self, data: types.Message, cache: t.Optional["Cache"] = None) -> None:
        self._cache = cache

        self.id = snowflake(data["id"])
        self.channel_id = snowflake(data["channel_id"])
        self.guild_id = optional_snowflake(data.get("guild_id"))
        self.author_id = snowflake(data["author"]["id"])
        self.webhook_id = optional_snowflake(data.get("webhook_id"))
        self.content = ""
        self.timestamp: t.Optional[datetime.datetime] = None
        self.edited_timestamp: t.Optional[datetime.datetime] = None
        self.tts = False
        self.mention_everyone = False
        self.mention_ids: t.List[int] = []
        self.mention_role_ids: t.List[int] = []
        self.attachments: t.List[types.Attachment] = []
        self.embeds: t.List[t.Dict[str, t.Any]] = []
        self.components: t.List[t.Dict[str, t.Any]] = []
        self.reactions: t.List[Reaction] = []
        self.pinned = False
        self.type = 0
        self.flags = 0
        self.reference: t.Optional[types.message.MessageReference] = None

        self._update(data)

    def __repr__(self) -> str:
        return f"<Message id={self.id} channel_id={self.channel_id} author_id={self.author_id}>"

    def _update(self, data: t.Mapping[str, t.Any]) -> None:
        copy_fields(self, data, self.FIELDS)

        if "timestamp" in data:
            self.timestamp = parse_time(data["timestamp"])

        if "edited_timestamp" in data:
            self.edited_timestamp = parse_time(data["edited_timestamp"])

        if "mentions" in data:
            self.mention_ids = [snowflake(user["id"]) for user in data["mentions"]]

        if "mention_roles" in data:
            self.mention_role_ids = [snowflake(id) for id in data["mention_roles"]]

        if "reactions" in data:
            self.reactions = [
                Reaction(r["emoji"], r.get("count", 1), r.get("me", False))
                for r in data["reactions"]
            ]

        if "message_reference" in data:
            self.reference = data["message_reference"]

    def get_reaction(self, key: str) -> t.Optional[Reaction]:
        for reaction in self.reactions:
            if reaction.key == key:
                return reaction

        return None

    def _add_reaction(self, emoji: types.PartialEmoji, me: bool) -> Reaction:
        reaction = self.get_reaction(emoji_key(emoji))

        if reaction is None:
            reaction = Reaction(emoji, 1, me)
            self.reactions.append(reaction)
        else:
            reaction.count += 1
            reaction.me = reaction.me or me

        return reaction

    def _remove_reaction(self, emoji: types.PartialEmoji, me: bool) -> t.Optional[Reaction]:
        reaction = self.get_reaction(emoji_key(emoji))

        if reaction is None:
            return None

        reaction.count -= 1
        if me:
            reaction.me = False

        if reaction.count <= 0:
            self.reactions.remove(reaction)

        return reaction

    def _clear_reactions(self, emoji: t.Optional[types.PartialEmoji] = None) -> t.List[Reaction]:
        if emoji is None:
            removed, self.reactions = self.reactions, []
            return removed

        key = emoji_key(emoji)
        removed = [r for r in self.reactions if r.key == key]
        self.reactions = [r for r in self.reactions if r.key != key]
        return removed

    @property
    def created_at(self) -> datetime.datetime:
        return snowflake_time(self.id)

    @property
    def author(self) -> t.Optional["User"]:
        if self._cache is None:
            return None

        return self._cache.get("user", self.author_id)

    @property
    def channel(self) -> t.Optional["Channel"]:
        if self._cache is None:
            return None

        return self._cache.get("channel", self.channel_id)

    @property
    def guild(self) -> t.Optional["Guild"]:
        if self.guild_id is None or self._cache is None:
            return None

        return self._cache.get("guild", self.guild_id)

    @property
    def jump_url(self) -> str:
        guild = self.guild_id or "@me"
        return f"https://discord.com/channels/{guild}/{self.channel_id}/{self.id}"
