import typing as t


class Intents:
    # https://discord.com/developers/docs/topics/gateway#gateway-intents
    VALUES: t.ClassVar[t.Dict[str, int]] = {
        "guilds":                           1 << 0,
        "guild_members":                    1 << 1,
        "guild_moderation":                 1 << 2,
        "guild_emojis_and_stickers":        1 << 3,
        "guild_integrations":               1 << 4,
        "guild_webhooks":                   1 << 5,
        "guild_invites":                    1 << 6,
        "guild_voice_states":               1 << 7,
        "guild_presences":                  1 << 8,
        "guild_messages":                   1 << 9,
        "guild_message_reactions":          1 << 10,
        "guild_message_typing":             1 << 11,
        "dm_messages":                      1 << 12,
        "dm_reactions":                     1 << 13,
        "dm_typing":                        1 << 14,
        "message_content":                  1 << 15,
        "guild_scheduled_events":           1 << 16,
        "auto_moderation_configuration":    1 << 20,
        "auto_moderation_execution":        1 << 21,
    }

    PRIVILEGED: t.ClassVar[t.Tuple[str, ...]] = (
        "guild_members",
        "guild_presences",
        "message_content",
    )

    __slots__ = ("value",)

    def __init__(self, value: int = 0, **flags: bool) -> None:
        self.value = value

        for name, enabled in flags.items():
            if name not in self.VALUES:
                raise TypeError(f"{name!r} is not a valid intent")

            if enabled:
                self.value |= self.VALUES[name]
            else:
                self.value &= ~self.VALUES[name]

    def __repr__(self) -> str:
        return f"<Intents value={self.value}>"

    def __int__(self) -> int:
        return self.value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Intents) and other.value == self.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __or__(self, other: "Intents") -> "Intents":
        return Intents(self.value | other.value)

    def __contains__(self, name: str) -> bool:
        return bool(self.value & self.VALUES[name])

    def __iter__(self) -> t.Iterator[str]:
        for name, bit in self.VALUES.items():
            if self.value & bit:
                yield name

    @classmethod
    def all(cls) -> "Intents":
        value = 0
        for bit in cls.VALUES.values():
            value |= bit

        return cls(value)

    @classmethod
    def none(cls) -> "Intents":
        return cls(0)

    @classmethod
    def default(cls) -> "Intents":
        """Everything except typing and the privileged intents."""
        disabled = dict.fromkeys(cls.PRIVILEGED, False)
        disabled.update(guild_message_typing=False, dm_typing=False)

        return cls(cls.all().value, **disabled)
