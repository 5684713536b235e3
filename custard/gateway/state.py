import enum
import typing as t


class ShardState(enum.Enum):
    DISCONNECTED    = "disconnected"
    CONNECTING      = "connecting"
    AWAITING_HELLO  = "awaiting_hello"
    IDENTIFYING     = "identifying"
    RESUMING        = "resuming"
    READY           = "ready"
    RECONNECTING    = "reconnecting"


class ShardConfig(t.NamedTuple):
    shard_id: int = 0
    shard_count: int = 1
    intents: int = 0
    presence: t.Optional[t.Dict[str, t.Any]] = None


class Session:
    """What a shard needs to resume after losing its connection."""

    __slots__ = ("session_id", "resume_gateway_url", "sequence")

    def __init__(
        self,
        session_id: t.Optional[str] = None,
        resume_gateway_url: t.Optional[str] = None,
        sequence: t.Optional[int] = None,
    ) -> None:
        self.session_id = session_id
        self.resume_gateway_url = resume_gateway_url
        self.sequence = sequence

    def __repr__(self) -> str:
        return f"<Session session_id={self.session_id!r} sequence={self.sequence}>"

    def is_resumable(self) -> bool:
        return self.session_id is not None

    def clear(self) -> None:
        self.session_id = None
        self.resume_gateway_url = None
        self.sequence = None
