import json
import asyncio
import logging
import typing as t
from urllib.parse import quote

import aiohttp
from aiohttp import ClientSession

from . import errors, utils, types
from .file import File
from .types import GatewayPayload, GatewayBotPayload

_log = logging.getLogger(__name__)


class Route:
    __slots__ = ("_method", "_path", "template", "auth", "major")

    BASE: t.ClassVar[str] = "https://discord.com/api/v10"
    MAJOR_PARAMS: t.ClassVar[t.Tuple[str, ...]] = (
        "channel_id",
        "guild_id",
        "webhook_id",
        "webhook_token",
    )

    def __init__(self, method: str, path: str, *, auth: bool = True, **params: t.Any) -> None:
        self.template = path
        self.major = tuple(params.get(key) for key in self.MAJOR_PARAMS)

        self._method = method
        self._path = path.format_map(params)
        self.auth = auth

    def __repr__(self) -> str:
        return "Route({0.method!r}, {0.path!r}, auth={0.auth})".format(self)

    @property
    def method(self) -> str:
        return self._method.upper()

    @property
    def path(self) -> str:
        return '/' + self._path.lstrip('/')

    @property
    def url(self) -> str:
        return self.BASE + self.path

    @property
    def bucket(self) -> str:
        """Requests sharing a bucket share a rate limit and are sent one at a time."""
        major = ":".join(str(value) for value in self.major if value is not None)
        return f"{self.method} {self.template} {major}".rstrip()


_ERRORS: t.Dict[int, t.Type[errors.HTTPException]] = {
    400: errors.BadRequest,
    401: errors.Unauthorized,
    403: errors.Forbidden,
    404: errors.NotFound,
    405: errors.MethodNotAllowed,
}


def _error_for(status: int, data: t.Any) -> errors.HTTPException:
    message, code = "", 0

    if isinstance(data, dict):
        message = data.get("message", "")
        code = data.get("code", 0)
    elif data:
        message = str(data)

    if status >= 500:
        return errors.ServerError(status, message, code)

    cls = _ERRORS.get(status, errors.HTTPException)
    return cls(status, message, code)


class DiscordHTTPClient:
    MAX_TRIES: t.ClassVar[int] = 5

    __slots__ = (
        "token",
        "base_url",
        "retry_delay",

        "session",
        "_closed",
        "_user_agent",
        "_locks",
        "_global",
    )

    def __init__(
        self,
        token: t.Optional[str] = None,
        *,
        base_url: str = Route.BASE,
        retry_delay: float = 1.0,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.retry_delay = retry_delay

        self.session: t.Optional[ClientSession] = None
        self._closed = False
        self._user_agent = "DiscordBot (custard, 1.0.0)"
        self._locks: t.Dict[str, asyncio.Lock] = {}
        self._global: t.Optional[asyncio.Event] = None

    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return

        if self.session is not None:
            with utils.suppress_all():
                await self.session.close()

        self.session = None
        self._closed = True

    def _get_session(self) -> ClientSession:
        if self._closed:
            raise errors.CustardError("HTTP client is closed")

        if self.session is None or self.session.closed:
            self.session = ClientSession()

        return self.session

    async def ws_connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        """Opens a gateway transport on the client's session."""
        return await self._get_session().ws_connect(url, max_msg_size=0)

    async def request(
        self,
        route: Route,
        *,
        json: t.Any = None,
        files: t.Optional[t.Sequence[File]] = None,
        params: t.Optional[t.Dict[str, t.Any]] = None,
        reason: t.Optional[str] = None,
    ) -> t.Any:
        session = self._get_session()

        if self._global is None:
            self._global = asyncio.Event()
            self._global.set()

        headers: t.Dict[str, str] = {
            "User-Agent": self._user_agent,
        }

        if reason:
            headers["X-Audit-Log-Reason"] = quote(reason, safe="/ ")

        if route.auth and self.token:
            headers["Authorization"] = "Bot " + self.token

        url = self.base_url + route.path
        lock = self._locks.setdefault(route.bucket, asyncio.Lock())

        for tries in range(self.MAX_TRIES):
            last = tries == self.MAX_TRIES - 1
            await self._global.wait()

            kwargs: t.Dict[str, t.Any] = {"headers": headers}
            if params:
                kwargs["params"] = params

            if files:
                kwargs["data"] = self._multipart(json, files)
            elif json is not None:
                kwargs["json"] = json

            async with lock:
                async with session.request(route.method, url, **kwargs) as response:
                    data = await self._read(response)
                    _log.debug("%s %s returned %d", route.method, url, response.status)

                    if response.headers.get("X-RateLimit-Remaining") == "0" and response.status != 429:
                        reset_after = float(response.headers.get("X-RateLimit-Reset-After", 0))
                        _log.debug("Bucket %r exhausted, waiting %.2fs", route.bucket, reset_after)
                        await asyncio.sleep(reset_after)

                    if 300 > response.status >= 200:
                        return data

                    if response.status == 429:
                        retry_after = self._retry_after(response, data)

                        if last:
                            raise errors.RateLimited(
                                retry_after,
                                data.get("message", "") if isinstance(data, dict) else "",
                                data.get("code", 0) if isinstance(data, dict) else 0,
                            )

                        _log.warning(
                            "Rate limited on %s %s, retrying in %.2fs (attempt %d)",
                            route.method,
                            route.path,
                            retry_after,
                            tries + 1,
                        )

                        if isinstance(data, dict) and data.get("global"):
                            self._global.clear()
                            try:
                                await asyncio.sleep(retry_after)
                            finally:
                                self._global.set()
                        else:
                            await asyncio.sleep(retry_after)

                        continue

                    if response.status >= 500 and not last:
                        delay = self.retry_delay * 2 ** tries
                        _log.warning(
                            "Server error %d on %s %s, retrying in %.2fs",
                            response.status,
                            route.method,
                            route.path,
                            delay,
                        )
                        await asyncio.sleep(delay)
                        continue

                    raise _error_for(response.status, data)

        raise errors.HTTPException(0, "ran out of retries")

    @staticmethod
    async def _read(response: aiohttp.ClientResponse) -> t.Any:
        text = await response.text()

        if response.content_type == "application/json" and text:
            return json.loads(text)

        return text or None

    @staticmethod
    def _retry_after(response: aiohttp.ClientResponse, data: t.Any) -> float:
        if isinstance(data, dict) and "retry_after" in data:
            return float(data["retry_after"])

        return float(response.headers.get("Retry-After", 1.0))

    @staticmethod
    def _multipart(payload: t.Any, files: t.Sequence[File]) -> aiohttp.FormData:
        form = aiohttp.FormData()

        payload = dict(payload or {})
        payload["attachments"] = [
            {"id": index, "filename": file.filename, "description": file.description}
            for index, file in enumerate(files)
        ]
        form.add_field("payload_json", json.dumps(payload), content_type="application/json")

        for index, file in enumerate(files):
            file.reset()
            form.add_field(
                f"files[{index}]",
                file.fp.read(),
                filename=file.filename,
                content_type="application/octet-stream",
            )

        return form

    # Application commands

    async def get_global_commands(self, application_id: types.Snowflake) -> t.List[t.Dict[str, t.Any]]:
        r = Route("GET", "/applications/{application_id}/commands", application_id=application_id)
        return await self.request(r)

    async def upsert_global_command(
        self,
        application_id: types.Snowflake,
        payload: t.Dict[str, t.Any],
    ) -> t.Dict[str, t.Any]:
        r = Route("POST", "/applications/{application_id}/commands", application_id=application_id)
        return await self.request(r, json=payload)

    async def bulk_overwrite_global_commands(
        self,
        application_id: types.Snowflake,
        payload: t.List[t.Dict[str, t.Any]],
    ) -> t.List[t.Dict[str, t.Any]]:
        r = Route("PUT", "/applications/{application_id}/commands", application_id=application_id)
        return await self.request(r, json=payload)

    async def delete_global_command(
        self,
        application_id: types.Snowflake,
        command_id: types.Snowflake,
    ) -> None:
        r = Route(
            "DELETE", "/applications/{application_id}/commands/{command_id}",

            application_id=application_id,
            command_id=command_id,
        )

        return await self.request(r)

    async def get_guild_commands(
        self,
        application_id: types.Snowflake,
        guild_id: types.Snowflake,
    ) -> t.List[t.Dict[str, t.Any]]:
        r = Route(
            "GET", "/applications/{application_id}/guilds/{guild_id}/commands",

            application_id=application_id,
            guild_id=guild_id,
        )

        return await self.request(r)

    async def bulk_overwrite_guild_commands(
        self,
        application_id: types.Snowflake,
        guild_id: types.Snowflake,
        payload: t.List[t.Dict[str, t.Any]],
    ) -> t.List[t.Dict[str, t.Any]]:
        r = Route(
            "PUT", "/applications/{application_id}/guilds/{guild_id}/commands",

            application_id=application_id,
            guild_id=guild_id,
        )

        return await self.request(r, json=payload)

    # Channel

    async def get_channel(self, channel_id: types.Snowflake) -> types.Channel:
        r = Route("GET", "/channels/{channel_id}", channel_id=channel_id)
        return await self.request(r)

    async def edit_channel(
        self,
        channel_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
        **fields: t.Any,
    ) -> types.Channel:
        r = Route("PATCH", "/channels/{channel_id}", channel_id=channel_id)
        return await self.request(r, json=fields, reason=reason)

    async def delete_channel(
        self,
        channel_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> types.Channel:
        r = Route("DELETE", "/channels/{channel_id}", channel_id=channel_id)
        return await self.request(r, reason=reason)

    async def trigger_typing(self, channel_id: types.Snowflake) -> None:
        r = Route("POST", "/channels/{channel_id}/typing", channel_id=channel_id)
        return await self.request(r)

    async def create_channel_invite(
        self,
        channel_id: types.Snowflake,
        *,
        max_age: int = 86400,
        max_uses: int = 0,
        temporary: bool = False,
        unique: bool = False,
        reason: t.Optional[str] = None,
    ) -> types.InviteWithMetadata:
        payload = {
            "max_age": max_age,
            "max_uses": max_uses,
            "temporary": temporary,
            "unique": unique,
        }

        r = Route("POST", "/channels/{channel_id}/invites", channel_id=channel_id)
        return await self.request(r, json=payload, reason=reason)

    # Message

    async def get_message(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
    ) -> types.Message:
        r = Route(
            "GET", "/channels/{channel_id}/messages/{message_id}",

            channel_id=channel_id,
            message_id=message_id,
        )

        return await self.request(r)

    async def get_messages(
        self,
        channel_id: types.Snowflake,
        *,
        limit: int = 50,
        before: t.Optional[types.Snowflake] = None,
        after: t.Optional[types.Snowflake] = None,
        around: t.Optional[types.Snowflake] = None,
    ) -> t.List[types.Message]:
        params: t.Dict[str, t.Any] = {"limit": limit}

        if before is not None:
            params["before"] = before

        if after is not None:
            params["after"] = after

        if around is not None:
            params["around"] = around

        r = Route("GET", "/channels/{channel_id}/messages", channel_id=channel_id)
        return await self.request(r, params=params)

    async def send_message(
        self,
        channel_id: types.Snowflake,
        content: t.Optional[str] = None,
        *,
        embeds: t.Optional[t.List[t.Dict[str, t.Any]]] = None,
        files: t.Optional[t.Sequence[File]] = None,
        reference: t.Optional[t.Dict[str, t.Any]] = None,
        allowed_mentions: t.Optional[t.Dict[str, t.Any]] = None,
        components: t.Optional[t.List[t.Dict[str, t.Any]]] = None,
        tts: bool = False,
    ) -> types.Message:
        payload: t.Dict[str, t.Any] = {"tts": tts}

        if content is not None:
            payload["content"] = content

        if embeds is not None:
            payload["embeds"] = embeds

        if reference is not None:
            payload["message_reference"] = reference

        if allowed_mentions is not None:
            payload["allowed_mentions"] = allowed_mentions

        if components is not None:
            payload["components"] = components

        r = Route("POST", "/channels/{channel_id}/messages", channel_id=channel_id)
        return await self.request(r, json=payload, files=files)

    async def edit_message(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        **fields: t.Any,
    ) -> types.Message:
        r = Route(
            "PATCH", "/channels/{channel_id}/messages/{message_id}",

            channel_id=channel_id,
            message_id=message_id,
        )

        return await self.request(r, json=fields)

    async def delete_message(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/channels/{channel_id}/messages/{message_id}",

            channel_id=channel_id,
            message_id=message_id,
        )

        return await self.request(r, reason=reason)

    async def bulk_delete_messages(
        self,
        channel_id: types.Snowflake,
        message_ids: t.List[types.Snowflake],
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        payload = {"messages": [str(id) for id in message_ids]}

        r = Route("POST", "/channels/{channel_id}/messages/bulk-delete", channel_id=channel_id)
        return await self.request(r, json=payload, reason=reason)

    async def pin_message(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "PUT", "/channels/{channel_id}/pins/{message_id}",

            channel_id=channel_id,
            message_id=message_id,
        )

        return await self.request(r, reason=reason)

    async def unpin_message(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/channels/{channel_id}/pins/{message_id}",

            channel_id=channel_id,
            message_id=message_id,
        )

        return await self.request(r, reason=reason)

    # Reaction

    async def add_reaction(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        emoji: str,
    ) -> None:
        r = Route(
            "PUT", "/channels/{channel_id}/messages/{message_id}/reactions/{emoji}/@me",

            channel_id=channel_id,
            message_id=message_id,
            emoji=quote(emoji),
        )

        return await self.request(r)

    async def remove_own_reaction(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        emoji: str,
    ) -> None:
        r = Route(
            "DELETE", "/channels/{channel_id}/messages/{message_id}/reactions/{emoji}/@me",

            channel_id=channel_id,
            message_id=message_id,
            emoji=quote(emoji),
        )

        return await self.request(r)

    async def remove_reaction(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
        emoji: str,
        user_id: types.Snowflake,
    ) -> None:
        r = Route(
            "DELETE", "/channels/{channel_id}/messages/{message_id}/reactions/{emoji}/{user_id}",

            channel_id=channel_id,
            message_id=message_id,
            emoji=quote(emoji),
            user_id=user_id,
        )

        return await self.request(r)

    async def clear_reactions(
        self,
        channel_id: types.Snowflake,
        message_id: types.Snowflake,
    ) -> None:
        r = Route(
            "DELETE", "/channels/{channel_id}/messages/{message_id}/reactions",

            channel_id=channel_id,
            message_id=message_id,
        )

        return await self.request(r)

    # Emoji

    async def get_guild_emojis(
        self,
        guild_id: types.Snowflake,
    ) -> t.List[types.Emoji]:
        r = Route("GET", "/guilds/{guild_id}/emojis", guild_id=guild_id)
        return await self.request(r)

    async def get_guild_emoji(
        self,
        guild_id: types.Snowflake,
        emoji_id: types.Snowflake,
    ) -> types.Emoji:
        r = Route(
            "GET", "/guilds/{guild_id}/emojis/{emoji_id}",

            guild_id=guild_id,
            emoji_id=emoji_id,
        )

        return await self.request(r)

    async def create_guild_emoji(
        self,
        guild_id: types.Snowflake,
        *,
        name: str,
        image: str,
        roles: t.Optional[t.List[types.Snowflake]] = None,
        reason: t.Optional[str] = None,
    ) -> types.Emoji:
        """Creates an emoji from `image`, a ``data:`` URI."""
        payload: t.Dict[str, t.Any] = {"name": name, "image": image}

        if roles is not None:
            payload["roles"] = [str(id) for id in roles]

        r = Route("POST", "/guilds/{guild_id}/emojis", guild_id=guild_id)
        return await self.request(r, json=payload, reason=reason)

    async def delete_guild_emoji(
        self,
        guild_id: types.Snowflake,
        emoji_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/guilds/{guild_id}/emojis/{emoji_id}",

            guild_id=guild_id,
            emoji_id=emoji_id,
        )

        return await self.request(r, reason=reason)

    # Guild

    async def get_guild(
        self,
        guild_id: types.Snowflake,
        *,
        with_counts: bool = False,
    ) -> types.Guild:
        r = Route("GET", "/guilds/{guild_id}", guild_id=guild_id)
        return await self.request(r, params={"with_counts": str(with_counts).lower()})

    async def get_guild_channels(self, guild_id: types.Snowflake) -> t.List[types.Channel]:
        r = Route("GET", "/guilds/{guild_id}/channels", guild_id=guild_id)
        return await self.request(r)

    async def create_guild_channel(
        self,
        guild_id: types.Snowflake,
        *,
        name: str,
        type: int = 0,
        reason: t.Optional[str] = None,
        **fields: t.Any,
    ) -> types.Channel:
        payload = dict(fields, name=name, type=type)

        r = Route("POST", "/guilds/{guild_id}/channels", guild_id=guild_id)
        return await self.request(r, json=payload, reason=reason)

    # Member

    async def get_member(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
    ) -> types.Member:
        r = Route(
            "GET", "/guilds/{guild_id}/members/{user_id}",

            guild_id=guild_id,
            user_id=user_id,
        )

        return await self.request(r)

    async def get_members(
        self,
        guild_id: types.Snowflake,
        *,
        limit: int = 1000,
        after: t.Optional[types.Snowflake] = None,
    ) -> t.List[types.Member]:
        params: t.Dict[str, t.Any] = {"limit": limit}

        if after is not None:
            params["after"] = after

        r = Route("GET", "/guilds/{guild_id}/members", guild_id=guild_id)
        return await self.request(r, params=params)

    async def edit_member(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
        **fields: t.Any,
    ) -> types.Member:
        r = Route(
            "PATCH", "/guilds/{guild_id}/members/{user_id}",

            guild_id=guild_id,
            user_id=user_id,
        )

        return await self.request(r, json=fields, reason=reason)

    async def kick_member(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/guilds/{guild_id}/members/{user_id}",

            guild_id=guild_id,
            user_id=user_id,
        )

        return await self.request(r, reason=reason)

    async def ban_member(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
        *,
        delete_message_seconds: int = 0,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "PUT", "/guilds/{guild_id}/bans/{user_id}",

            guild_id=guild_id,
            user_id=user_id,
        )

        payload = {"delete_message_seconds": delete_message_seconds}
        return await self.request(r, json=payload, reason=reason)

    async def unban_member(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/guilds/{guild_id}/bans/{user_id}",

            guild_id=guild_id,
            user_id=user_id,
        )

        return await self.request(r, reason=reason)

    async def add_member_role(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
        role_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "PUT", "/guilds/{guild_id}/members/{user_id}/roles/{role_id}",

            guild_id=guild_id,
            user_id=user_id,
            role_id=role_id,
        )

        return await self.request(r, reason=reason)

    async def remove_member_role(
        self,
        guild_id: types.Snowflake,
        user_id: types.Snowflake,
        role_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/guilds/{guild_id}/members/{user_id}/roles/{role_id}",

            guild_id=guild_id,
            user_id=user_id,
            role_id=role_id,
        )

        return await self.request(r, reason=reason)

    # Role

    async def get_roles(self, guild_id: types.Snowflake) -> t.List[types.Role]:
        r = Route("GET", "/guilds/{guild_id}/roles", guild_id=guild_id)
        return await self.request(r)

    async def create_role(
        self,
        guild_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
        **fields: t.Any,
    ) -> types.Role:
        r = Route("POST", "/guilds/{guild_id}/roles", guild_id=guild_id)
        return await self.request(r, json=fields, reason=reason)

    async def edit_role(
        self,
        guild_id: types.Snowflake,
        role_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
        **fields: t.Any,
    ) -> types.Role:
        r = Route(
            "PATCH", "/guilds/{guild_id}/roles/{role_id}",

            guild_id=guild_id,
            role_id=role_id,
        )

        return await self.request(r, json=fields, reason=reason)

    async def delete_role(
        self,
        guild_id: types.Snowflake,
        role_id: types.Snowflake,
        *,
        reason: t.Optional[str] = None,
    ) -> None:
        r = Route(
            "DELETE", "/guilds/{guild_id}/roles/{role_id}",

            guild_id=guild_id,
            role_id=role_id,
        )

        return await self.request(r, reason=reason)

    # Interaction

    async def create_interaction_response(
        self,
        interaction_id: types.Snowflake,
        token: str,
        type: int,
        data: t.Optional[t.Dict[str, t.Any]] = None,
    ) -> None:
        payload: t.Dict[str, t.Any] = {"type": type}

        if data is not None:
            payload["data"] = data

        r = Route(
            "POST", "/interactions/{interaction_id}/{webhook_token}/callback",

            auth=False,
            interaction_id=interaction_id,
            webhook_token=token,
        )

        return await self.request(r, json=payload)

    async def edit_original_response(
        self,
        application_id: types.Snowflake,
        token: str,
        **fields: t.Any,
    ) -> types.Message:
        r = Route(
            "PATCH", "/webhooks/{webhook_id}/{webhook_token}/messages/@original",

            auth=False,
            webhook_id=application_id,
            webhook_token=token,
        )

        return await self.request(r, json=fields)

    async def create_followup(
        self,
        application_id: types.Snowflake,
        token: str,
        **fields: t.Any,
    ) -> types.Message:
        r = Route(
            "POST", "/webhooks/{webhook_id}/{webhook_token}",

            auth=False,
            webhook_id=application_id,
            webhook_token=token,
        )

        return await self.request(r, json=fields)

    # Invite

    async def get_invite(
        self,
        invite_code: str,
        *,
        with_counts: t.Optional[bool] = None,
        with_expiration: t.Optional[bool] = None,
    ) -> types.Invite:
        params = {}

        if with_counts is not None:
            params["with_counts"] = str(with_counts).lower()

        if with_expiration is not None:
            params["with_expiration"] = str(with_expiration).lower()

        r = Route("GET", "/invites/{invite_code}", invite_code=invite_code)
        return await self.request(r, params=params)

    async def delete_invite(
        self,
        invite_code: str,
        *,
        reason: t.Optional[str] = None,
    ) -> types.Invite:
        r = Route("DELETE", "/invites/{invite_code}", invite_code=invite_code)
        return await self.request(r, reason=reason)

    # User

    async def get_user(self, id: types.Snowflake) -> types.User:
        r = Route("GET", "/users/{id}", id=id)
        return await self.request(r)

    async def get_current_user(self) -> types.User:
        return await self.get_user("@me")

    async def edit_current_user(
        self,
        *,
        username: t.Optional[str] = None,
        avatar: t.Optional[str] = None,
    ) -> types.User:
        payload = {}

        if username is not None:
            payload["username"] = username

        if avatar is not None:
            payload["avatar"] = avatar

        r = Route("PATCH", "/users/@me")
        return await self.request(r, json=payload)

    async def create_dm(self, recipient_id: types.Snowflake) -> types.Channel:
        r = Route("POST", "/users/@me/channels")
        return await self.request(r, json={"recipient_id": str(recipient_id)})

    # Gateway

    async def get_gateway(self) -> GatewayPayload:
        r = Route("GET", "/gateway", auth=False)
        return await self.request(r)

    async def get_bot_gateway(self) -> GatewayBotPayload:
        r = Route("GET", "/gateway/bot")
        return await self.request(r)
