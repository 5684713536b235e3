from .user import User, ClientUser
from .guild import Guild
from .role import Role
from .emoji import Emoji, emoji_key
from .member import Member
from .channel import (
    BaseChannel,
    TextChannel,
    VoiceChannel,
    CategoryChannel,
    ThreadChannel,
    StageChannel,
    ForumChannel,
    DMChannel,
    Channel,
    channel_factory,
    create_channel,
)
from .message import Message, Reaction
from .interaction import Interaction
