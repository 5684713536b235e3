import typing as t

from .user import User
from .guild import PartialGuild
from .channel import PartialChannel
from .application import PartialApplication

# 1: stream, 2: embedded application
InviteTargetType = t.Literal[1, 2]


class _InviteCore(t.TypedDict):
    code: str
    channel: t.Optional[PartialChannel]


class Invite(_InviteCore, total=False):
    type: int
    guild: PartialGuild
    inviter: User
    target_type: InviteTargetType
    target_user: User
    target_application: PartialApplication
    approximate_presence_count: int
    approximate_member_count: int
    expires_at: t.Optional[str]


class InviteWithMetadata(Invite):
    """Returned when an invite is created, carrying its usage limits."""

    uses: int
    max_uses: int
    max_age: int
    temporary: bool
    created_at: str
