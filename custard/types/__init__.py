from .snowflake import Snowflake, SnowflakeList
from .user import User, PartialUser
from .emoji import Emoji, PartialEmoji
from .role import Role
from .member import Member, MemberWithGuild
from .channel import Channel, PartialChannel, PermissionOverwrite
from .guild import Guild, PartialGuild, UnavailableGuild
from .message import Message, Attachment, Reaction
from .interaction import Interaction, InteractionResponse
from .invite import Invite, InviteWithMetadata
from .application import Application, PartialApplication
from .gateway import (
    GatewayPayload,
    GatewayBotPayload,
    SessionStartLimit,
    Packet,
    Payload,
    Hello,
    Ready,
    Identify,
    Resume,
)
