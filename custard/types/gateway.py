import typing as t

from .user import User
from .guild import UnavailableGuild
from .application import PartialApplication


class SessionStartLimit(t.TypedDict):
    total: int
    remaining: int
    reset_after: int
    max_concurrency: int


class GatewayPayload(t.TypedDict):
    url: str


class GatewayBotPayload(GatewayPayload):
    shards: int
    session_start_limit: SessionStartLimit


class Packet(t.TypedDict):
    op: int
    d: t.Any


class Payload(t.TypedDict):
    op: int
    d: t.Any
    s: t.Optional[int]
    t: t.Optional[str]


class Hello(t.TypedDict):
    heartbeat_interval: int


class Ready(t.TypedDict, total=False):
    v: int
    user: User
    guilds: t.List[UnavailableGuild]
    session_id: str
    resume_gateway_url: str
    shard: t.Tuple[int, int]
    application: PartialApplication


class IdentifyProperties(t.TypedDict):
    os: str
    browser: str
    device: str


class Identify(t.TypedDict, total=False):
    token: str
    properties: IdentifyProperties
    intents: int
    shard: t.Tuple[int, int]
    presence: t.Dict[str, t.Any]
    compress: bool
    large_threshold: int


class Resume(t.TypedDict):
    token: str
    session_id: str
    seq: t.Optional[int]
