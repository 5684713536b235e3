import enum


class ChannelType(enum.IntEnum):
    GUILD_TEXT              = 0
    DM                      = 1
    GUILD_VOICE             = 2
    GROUP_DM                = 3
    GUILD_CATEGORY          = 4
    GUILD_ANNOUNCEMENT      = 5
    ANNOUNCEMENT_THREAD     = 10
    PUBLIC_THREAD           = 11
    PRIVATE_THREAD          = 12
    GUILD_STAGE_VOICE       = 13
    GUILD_DIRECTORY         = 14
    GUILD_FORUM             = 15
    GUILD_MEDIA             = 16


class Status(str, enum.Enum):
    ONLINE      = "online"
    IDLE        = "idle"
    DND         = "dnd"
    INVISIBLE   = "invisible"
    OFFLINE     = "offline"


class InteractionType(enum.IntEnum):
    PING                                = 1
    APPLICATION_COMMAND                 = 2
    MESSAGE_COMPONENT                   = 3
    APPLICATION_COMMAND_AUTOCOMPLETE    = 4
    MODAL_SUBMIT                        = 5


class InteractionResponseType(enum.IntEnum):
    PONG                                        = 1
    CHANNEL_MESSAGE_WITH_SOURCE                 = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE        = 5
    DEFERRED_UPDATE_MESSAGE                     = 6
    UPDATE_MESSAGE                              = 7
    APPLICATION_COMMAND_AUTOCOMPLETE_RESULT     = 8
    MODAL                                       = 9
