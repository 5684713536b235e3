from .bot import Bot
from . import types, errors, events, models
from .cache import Cache, CacheConfig
from .config import Config
from .dispatcher import Dispatcher
from .enums import ChannelType, Status, InteractionType, InteractionResponseType
from .file import File
from .flags import Intents
from .http import DiscordHTTPClient, Route
from .gateway import DiscordWebSocket, IdentifyLimiter, ShardConfig, ShardState
from .utils import ExponentialBackoff, setup_logging

__version__ = "1.0.0"

__all__ = (
    "Bot",
    "types",
    "errors",
    "events",
    "models",
    "Cache",
    "CacheConfig",
    "Config",
    "Dispatcher",
    "ChannelType",
    "Status",
    "InteractionType",
    "InteractionResponseType",
    "File",
    "Intents",
    "DiscordHTTPClient",
    "Route",
    "DiscordWebSocket",
    "IdentifyLimiter",
    "ShardConfig",
    "ShardState",
    "ExponentialBackoff",
    "setup_logging",
)
