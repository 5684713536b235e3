import io
import json
import asyncio
import typing as t

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

import custard
from custard.errors import CustardError, Forbidden, NotFound, RateLimited, ServerError
from custard.http import Route

pytestmark = pytest.mark.asyncio

DEFAULT_USER_ID = 256444020413300736
DEFAULT_USER_NAME = "Nium"


class Recorder:
    """Answers with the queued responses in order, repeating the last one."""

    def __init__(self, *responses: t.Callable[[], web.Response]) -> None:
        self.requests: t.List[web.Request] = []
        self.bodies: t.List[t.Any] = []
        self._responses = list(responses)

    async def __call__(self, request: web.Request) -> web.Response:
        self.requests.append(request)

        if request.content_type == "multipart/form-data":
            form = await request.post()
            # aiohttp closes uploaded files once the request is done; keep a readable copy
            self.bodies.append({
                key: web.FileField(value.name, value.filename, io.BytesIO(value.file.read()), value.content_type, value.headers)
                if isinstance(value, web.FileField) else value
                for key, value in form.items()
            })
        elif request.can_read_body:
            self.bodies.append(await request.json())

        index = min(len(self.requests), len(self._responses)) - 1
        return self._responses[index]()

    @property
    def calls(self) -> int:
        return len(self.requests)


def reply(data: t.Any = None, status: int = 200, **headers: str) -> t.Callable[[], web.Response]:
    def make() -> web.Response:
        if data is None:
            return web.Response(status=status, headers=headers)

        return web.json_response(data, status=status, headers=headers)

    return make


def rate_limited(retry_after: float = 0, *, is_global: bool = False) -> t.Callable[[], web.Response]:
    return reply(
        {"message": "You are being rate limited.", "retry_after": retry_after, "global": is_global},
        429,
    )


@pytest.fixture
async def serve():
    servers: t.List[TestServer] = []
    clients: t.List[custard.DiscordHTTPClient] = []

    async def start(method: str, path: str, handler: Recorder) -> custard.DiscordHTTPClient:
        app = web.Application()
        app.router.add_route(method, "/api/v10" + path, handler)

        server = TestServer(app)
        await server.start_server()
        servers.append(server)

        client = custard.DiscordHTTPClient(
            "token",
            base_url=str(server.make_url("/api/v10")),
            retry_delay=0,
        )
        clients.append(client)
        return client

    yield start

    for client in clients:
        await client.close()

    for server in servers:
        await server.close()


async def test_request_sends_auth_and_user_agent(serve):
    handler = Recorder(reply({"id": "1", "username": "custard"}))
    http = await serve("GET", "/users/{id}", handler)

    user = await http.get_user(1)

    assert user["username"] == "custard"
    assert handler.requests[0].headers["Authorization"] == "Bot token"
    assert handler.requests[0].headers["User-Agent"].startswith("DiscordBot (custard")


async def test_unauthenticated_routes_skip_the_token(serve):
    handler = Recorder(reply({"url": "wss://gateway.discord.gg"}))
    http = await serve("GET", "/gateway", handler)

    data = await http.get_gateway()

    assert data["url"] == "wss://gateway.discord.gg"
    assert "Authorization" not in handler.requests[0].headers


async def test_not_found(serve):
    handler = Recorder(reply({"message": "Unknown User", "code": 10013}, 404))
    http = await serve("GET", "/users/{id}", handler)

    with pytest.raises(NotFound) as info:
        await http.get_user(0)

    assert info.value.status == 404
    assert info.value.code == 10013
    assert info.value.message == "Unknown User"
    assert handler.calls == 1


async def test_forbidden(serve):
    handler = Recorder(reply({"message": "Missing Permissions", "code": 50013}, 403))
    http = await serve("DELETE", "/channels/{channel_id}", handler)

    with pytest.raises(Forbidden):
        await http.delete_channel(1)


async def test_rate_limit_is_waited_out(serve):
    handler = Recorder(rate_limited(), reply({"id": "1", "username": "custard"}))
    http = await serve("GET", "/users/{id}", handler)

    user = await http.get_user(1)

    assert user["id"] == "1"
    assert handler.calls == 2


async def test_global_rate_limit_is_released(serve):
    handler = Recorder(rate_limited(is_global=True), reply({"id": "1"}))
    http = await serve("GET", "/users/{id}", handler)

    await http.get_user(1)

    assert handler.calls == 2
    assert http._global.is_set()


async def test_rate_limit_gives_up_after_max_tries(serve):
    handler = Recorder(rate_limited(0.01))
    http = await serve("GET", "/users/{id}", handler)

    with pytest.raises(RateLimited) as info:
        await http.get_user(1)

    assert info.value.retry_after == 0.01
    assert handler.calls == custard.DiscordHTTPClient.MAX_TRIES


async def test_server_errors_are_retried(serve):
    handler = Recorder(reply({"message": "oops"}, 502), reply({"id": "1"}))
    http = await serve("GET", "/users/{id}", handler)

    assert (await http.get_user(1))["id"] == "1"
    assert handler.calls == 2


async def test_server_errors_give_up(serve):
    handler = Recorder(reply({"message": "oops"}, 502))
    http = await serve("GET", "/users/{id}", handler)

    with pytest.raises(ServerError) as info:
        await http.get_user(1)

    assert info.value.status == 502
    assert handler.calls == custard.DiscordHTTPClient.MAX_TRIES


async def test_exhausted_bucket_waits_for_reset(serve):
    handler = Recorder(reply({"id": "1"}, **{"X-RateLimit-Remaining": "0", "X-RateLimit-Reset-After": "0.05"}))
    http = await serve("GET", "/users/{id}", handler)
    loop = asyncio.get_running_loop()

    started = loop.time()
    await http.get_user(1)

    assert loop.time() - started >= 0.05


async def test_files_are_sent_as_multipart(serve):
    handler = Recorder(reply({"id": "10", "content": "fresh"}))
    http = await serve("POST", "/channels/{channel_id}/messages", handler)

    await http.send_message(
        1,
        "fresh",
        files=[custard.File(b"flour, eggs", "recipe.txt", description="the recipe")],
    )

    form = handler.bodies[0]
    payload = json.loads(form["payload_json"])

    assert payload["content"] == "fresh"
    assert payload["attachments"] == [{"id": 0, "filename": "recipe.txt", "description": "the recipe"}]
    assert form["files[0]"].filename == "recipe.txt"
    assert form["files[0]"].file.read() == b"flour, eggs"


async def test_retried_upload_resends_the_whole_file(serve):
    handler = Recorder(reply({"message": "oops"}, 502), rate_limited(), reply({"id": "10", "content": "fresh"}))
    http = await serve("POST", "/channels/{channel_id}/messages", handler)
    file = custard.File(b"flour, eggs", "recipe.txt")

    await http.send_message(1, "fresh", files=[file])

    assert handler.calls == 3
    assert [form["files[0]"].file.read() for form in handler.bodies] == [b"flour, eggs"] * 3
    assert not file.fp.closed


async def test_json_body_and_audit_log_reason(serve):
    handler = Recorder(reply({"id": "1", "name": "general"}))
    http = await serve("PATCH", "/channels/{channel_id}", handler)

    await http.edit_channel(1, name="general", reason="tidy & rename")

    assert handler.bodies[0] == {"name": "general"}
    assert handler.requests[0].headers["X-Audit-Log-Reason"] == "tidy %26 rename"


async def test_empty_response_is_none(serve):
    handler = Recorder(reply(status=204))
    http = await serve("DELETE", "/channels/{channel_id}/messages/{message_id}", handler)

    assert await http.delete_message(1, 2) is None


async def test_closed_client_refuses_requests():
    http = custard.DiscordHTTPClient("token")
    await http.close()

    with pytest.raises(CustardError):
        await http.get_user(1)


async def test_bucket_keys():
    first = Route("GET", "/channels/{channel_id}/messages/{message_id}", channel_id=1, message_id=2)
    second = Route("GET", "/channels/{channel_id}/messages/{message_id}", channel_id=1, message_id=3)
    other_channel = Route("GET", "/channels/{channel_id}/messages/{message_id}", channel_id=9, message_id=2)
    other_method = Route("DELETE", "/channels/{channel_id}/messages/{message_id}", channel_id=1, message_id=2)

    assert first.bucket == second.bucket
    assert first.bucket != other_channel.bucket
    assert first.bucket != other_method.bucket
    assert first.path == "/channels/1/messages/2"
    assert first.url == "https://discord.com/api/v10/channels/1/messages/2"


async def test_get_user(live_http: custard.DiscordHTTPClient):
    user = await live_http.get_user(DEFAULT_USER_ID)

    assert user["id"] == str(DEFAULT_USER_ID)
    assert user["username"] == DEFAULT_USER_NAME


async def test_user_not_found(live_http: custard.DiscordHTTPClient):
    with pytest.raises(NotFound):
        await live_http.get_user(0)
