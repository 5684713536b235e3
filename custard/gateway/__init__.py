from .core import DiscordWebSocket
from .identify import IdentifyLimiter
from .keep_alive import KeepAlive
from .state import Session, ShardConfig, ShardState

__all__ = (
    "DiscordWebSocket",
    "IdentifyLimiter",
    "KeepAlive",
    "Session",
    "ShardConfig",
    "ShardState",
)
