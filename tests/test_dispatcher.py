import asyncio

import pytest

from custard import events
from custard.models import CategoryChannel, TextChannel, ThreadChannel, VoiceChannel

from conftest import GUILD_ID, OTHER_GUILD_ID, USER, USER_ID, guild_payload, ready_payload, wait_until

pytestmark = pytest.mark.asyncio

TEXT_ID = GUILD_ID + 3


def message_payload(id: int = 1000, **fields):
    data = {
        "id": str(id),
        "channel_id": str(TEXT_ID),
        "guild_id": str(GUILD_ID),
        "author": USER,
        "member": {"roles": [], "nick": "Baker"},
        "content": "hello",
        "timestamp": "2024-01-01T12:00:00.000000+00:00",
        "edited_timestamp": None,
        "mentions": [],
        "mention_roles": [],
        "attachments": [],
        "embeds": [],
        "pinned": False,
        "type": 0,
    }
    data.update(fields)
    return data


@pytest.fixture
def loaded(dispatcher):
    dispatcher.dispatch("READY", ready_payload())
    dispatcher.dispatch("GUILD_CREATE", guild_payload())
    return dispatcher


async def test_guild_create_fills_the_cache(loaded, cache):
    guild = cache.get("guild", GUILD_ID)

    assert guild.name == "Bakery"
    assert [role.name for role in guild.roles] == ["@everyone", "Bakers"]
    assert guild.default_role.id == GUILD_ID
    assert len(guild.emojis) == 1

    category = cache.get("channel", GUILD_ID + 2)
    text = cache.get("channel", TEXT_ID)
    voice = cache.get("channel", GUILD_ID + 4)

    assert isinstance(category, CategoryChannel)
    assert isinstance(text, TextChannel)
    assert isinstance(voice, VoiceChannel)
    assert text.parent == category
    assert text.guild == guild
    assert category.channels == [text]
    assert voice.bitrate == 64000

    member = guild.get_member(USER_ID)
    assert member.user.username == "custard"
    assert [role.name for role in member.roles] == ["Bakers"]
    assert guild.owner == member


async def test_guild_update_only_touches_present_keys(loaded, cache):
    event = loaded.dispatch("GUILD_UPDATE", {"id": str(GUILD_ID), "name": "NewName"})
    guild = cache.get("guild", GUILD_ID)

    assert event.guild is guild
    assert guild.name == "NewName"
    assert guild.icon == "a_1269e74af4df7417b13759eae50c83dc"
    assert guild.features == ["COMMUNITY"]
    assert len(guild.roles) == 2
    assert len(guild.channels) == 3


async def test_guild_update_ignores_unknown_keys(loaded, cache):
    loaded.dispatch("GUILD_UPDATE", {"id": str(GUILD_ID), "brand_new_field": 1})

    assert cache.get("guild", GUILD_ID).name == "Bakery"


async def test_guild_update_with_roles_replaces_them(loaded, cache):
    roles = [{"id": str(GUILD_ID), "name": "@everyone", "position": 0, "permissions": "0"}]
    loaded.dispatch("GUILD_UPDATE", {"id": str(GUILD_ID), "roles": roles})

    assert [role.name for role in cache.get("guild", GUILD_ID).roles] == ["@everyone"]
    assert cache.get("role", GUILD_ID + 1) is None


async def test_guild_delete(loaded, cache):
    event = loaded.dispatch("GUILD_DELETE", {"id": str(GUILD_ID), "unavailable": True})

    assert event.unavailable
    assert cache.get("guild", GUILD_ID).unavailable

    event = loaded.dispatch("GUILD_DELETE", {"id": str(GUILD_ID)})

    assert event.guild.name == "Bakery"
    assert cache.get("guild", GUILD_ID) is None
    assert cache.get("channel", TEXT_ID) is None
    assert cache.get("member", (GUILD_ID, USER_ID)) is None


async def test_roles_and_members(loaded, cache):
    loaded.dispatch("GUILD_ROLE_CREATE", {
        "guild_id": str(GUILD_ID),
        "role": {"id": "7", "name": "Tasters", "position": 2, "permissions": "0"},
    })
    loaded.dispatch("GUILD_ROLE_UPDATE", {
        "guild_id": str(GUILD_ID),
        "role": {"id": "7", "name": "Critics"},
    })

    assert cache.get("role", 7).name == "Critics"
    assert cache.get("role", 7).position == 2

    member = {"user": {"id": "5", "username": "guest"}, "roles": ["7"]}
    loaded.dispatch("GUILD_MEMBER_ADD", dict(member, guild_id=str(GUILD_ID)))

    guild = cache.get("guild", GUILD_ID)
    assert guild.member_count == 2
    assert [role.name for role in guild.get_member(5).roles] == ["Critics"]

    loaded.dispatch("GUILD_ROLE_DELETE", {"guild_id": str(GUILD_ID), "role_id": "7"})
    assert guild.get_member(5).roles == []

    event = loaded.dispatch("GUILD_MEMBER_REMOVE", {"guild_id": str(GUILD_ID), "user": member["user"]})
    assert event.member.user_id == 5
    assert guild.get_member(5) is None
    assert guild.member_count == 1


async def test_members_chunk(loaded, cache):
    members = [{"user": {"id": str(id), "username": f"user{id}"}, "roles": []} for id in (11, 12)]
    event = loaded.dispatch("GUILD_MEMBERS_CHUNK", {
        "guild_id": str(GUILD_ID),
        "members": members,
        "chunk_index": 0,
        "chunk_count": 1,
    })

    assert [member.user_id for member in event.members] == [11, 12]
    assert cache.get("user", 12).username == "user12"


async def test_channel_lifecycle(loaded, cache):
    data = {"id": "900", "type": 0, "guild_id": str(GUILD_ID), "name": "orders"}
    loaded.dispatch("CHANNEL_CREATE", data)

    loaded.dispatch("CHANNEL_UPDATE", {"id": "900", "type": 0, "guild_id": str(GUILD_ID), "topic": "cakes"})
    channel = cache.get("channel", 900)
    assert channel.name == "orders"
    assert channel.topic == "cakes"

    loaded.dispatch("CHANNEL_UPDATE", {"id": "900", "type": 2, "guild_id": str(GUILD_ID), "name": "orders"})
    assert isinstance(cache.get("channel", 900), VoiceChannel)

    loaded.dispatch("CHANNEL_DELETE", data)
    assert cache.get("channel", 900) is None
    assert all(channel.id != 900 for channel in cache.get("guild", GUILD_ID).channels)


async def test_thread_create(loaded, cache):
    loaded.dispatch("THREAD_CREATE", {
        "id": "901",
        "type": 11,
        "guild_id": str(GUILD_ID),
        "parent_id": str(TEXT_ID),
        "name": "recipes",
        "thread_metadata": {"archived": False, "auto_archive_duration": 60, "locked": False},
    })

    thread = cache.get("channel", 901)
    assert isinstance(thread, ThreadChannel)
    assert thread.parent.id == TEXT_ID


async def test_message_create_update_delete(loaded, cache):
    event = loaded.dispatch("MESSAGE_CREATE", message_payload())

    message = cache.get("message", 1000)
    assert event.message is message
    assert message.author.id == USER_ID
    assert message.channel.id == TEXT_ID
    assert message.guild.id == GUILD_ID
    assert cache.get("channel", TEXT_ID).last_message_id == 1000
    assert cache.get("member", (GUILD_ID, USER_ID)).nick == "Baker"

    loaded.dispatch("MESSAGE_UPDATE", {"id": "1000", "channel_id": str(TEXT_ID), "content": "edited"})
    assert message.content == "edited"
    assert message.pinned is False

    event = loaded.dispatch("MESSAGE_DELETE", {"id": "1000", "channel_id": str(TEXT_ID)})
    assert event.message is message
    assert cache.get("message", 1000) is None


async def test_message_delete_bulk(loaded, cache):
    for id in (1, 2, 3):
        loaded.dispatch("MESSAGE_CREATE", message_payload(id))

    event = loaded.dispatch("MESSAGE_DELETE_BULK", {"ids": ["1", "2", "99"], "channel_id": str(TEXT_ID)})

    assert [message.id for message in event.messages] == [1, 2]
    assert cache.get("message", 3) is not None


async def test_dm_message_creates_channel(loaded, cache):
    loaded.dispatch("MESSAGE_CREATE", message_payload(
        2000,
        channel_id="555",
        guild_id=None,
        author={"id": "6", "username": "customer"},
    ))

    channel = cache.get("channel", 555)
    assert channel.recipients[0].username == "customer"
    assert channel.last_message_id == 2000


async def test_reactions(loaded, cache):
    loaded.dispatch("MESSAGE_CREATE", message_payload())
    reaction = {
        "user_id": str(USER_ID),
        "message_id": "1000",
        "channel_id": str(TEXT_ID),
        "emoji": {"id": None, "name": "🍮"},
    }

    loaded.dispatch("MESSAGE_REACTION_ADD", reaction)
    event = loaded.dispatch("MESSAGE_REACTION_ADD", dict(reaction, user_id="5"))

    message = cache.get("message", 1000)
    assert event.reaction.count == 2
    assert message.get_reaction("🍮").me

    loaded.dispatch("MESSAGE_REACTION_REMOVE", reaction)
    assert message.get_reaction("🍮").count == 1
    assert not message.get_reaction("🍮").me

    event = loaded.dispatch("MESSAGE_REACTION_REMOVE_ALL", {"message_id": "1000", "channel_id": str(TEXT_ID)})
    assert len(event.reactions) == 1
    assert message.reactions == []


async def test_user_update_and_presence(loaded, cache):
    loaded.dispatch("USER_UPDATE", dict(USER, username="flan"))
    assert cache.get("user", USER_ID).username == "flan"

    event = loaded.dispatch("PRESENCE_UPDATE", {
        "user": {"id": str(USER_ID)},
        "guild_id": str(GUILD_ID),
        "status": "dnd",
        "activities": [],
    })

    assert event.status == "dnd"
    assert cache.get("user", USER_ID).username == "flan"


async def test_interaction_create(loaded, cache):
    event = loaded.dispatch("INTERACTION_CREATE", {
        "id": "3000",
        "application_id": "1",
        "type": 2,
        "token": "tok",
        "guild_id": str(GUILD_ID),
        "channel_id": str(TEXT_ID),
        "member": {"user": {"id": "8", "username": "hungry"}, "roles": []},
        "data": {"id": "4", "name": "order"},
        "version": 1,
    })

    assert event.interaction.user.username == "hungry"
    assert event.interaction.command_name == "order"
    assert cache.get("member", (GUILD_ID, 8)) is not None


async def test_interaction_create_with_null_member(loaded, cache):
    event = loaded.dispatch("INTERACTION_CREATE", {
        "id": "3001",
        "application_id": "1",
        "type": 2,
        "token": "tok",
        "guild_id": str(GUILD_ID),
        "channel_id": str(TEXT_ID),
        "member": None,
        "user": {"id": "9", "username": "peckish"},
        "data": {"id": "4", "name": "order"},
        "version": 1,
    })

    assert type(event) is events.InteractionEvent
    assert event.interaction.user_id == 9
    assert cache.get("user", 9).username == "peckish"
    assert cache.get("member", (GUILD_ID, 9)) is None


async def test_unknown_event_is_passed_through(dispatcher):
    event = dispatcher.dispatch("SOMETHING_NEW", {"x": 1})

    assert type(event) is events.Event
    assert event.data == {"x": 1}


async def test_parse_failure_still_dispatches_raw_event(dispatcher):
    received = []

    @dispatcher.listen("GUILD_CREATE")
    async def on_guild(event):
        received.append(event)

    event = dispatcher.dispatch("GUILD_CREATE", {"name": "no id"})
    await wait_until(lambda: received)

    assert type(event) is events.Event
    assert received[0].data == {"name": "no id"}


async def test_any_parser_error_dispatches_raw_event(dispatcher):
    received = []

    def broken(data, shard_id):
        raise RuntimeError("boom")

    dispatcher._parsers["GUILD_CREATE"] = broken

    @dispatcher.listen("GUILD_CREATE")
    async def on_guild(event):
        received.append(event)

    event = dispatcher.dispatch("GUILD_CREATE", guild_payload())
    await wait_until(lambda: received)

    assert type(event) is events.Event
    assert received[0] is event


async def test_handler_errors_are_isolated(dispatcher):
    calls = []
    errors = []

    @dispatcher.listen("TYPING_START")
    async def broken(event):
        raise RuntimeError("boom")

    @dispatcher.listen("TYPING_START")
    async def working(event):
        calls.append(event.user_id)

    @dispatcher.listen("ERROR")
    async def on_error(event):
        errors.append(event)

    dispatcher.dispatch("TYPING_START", {"channel_id": "1", "user_id": "2", "timestamp": 1700000000})
    await wait_until(lambda: calls and errors)

    assert calls == [2]
    assert errors[0].event_name == "TYPING_START"
    assert errors[0].handler is broken
    assert isinstance(errors[0].exception, RuntimeError)


async def test_errors_in_error_listeners_are_only_logged(dispatcher, caplog):
    seen = []

    @dispatcher.listen("ERROR")
    async def on_error(event):
        seen.append(event)
        raise RuntimeError("again")

    @dispatcher.listen("PING")
    async def on_ping(event):
        raise ValueError("boom")

    dispatcher.dispatch("PING", None)
    await wait_until(lambda: seen)
    await asyncio.sleep(0.01)

    assert len(seen) == 1
    assert "Ignoring exception" in caplog.text


async def test_handlers_do_not_block_dispatch(dispatcher):
    release = asyncio.Event()
    finished = []

    @dispatcher.listen("PING")
    async def slow(event):
        await release.wait()
        finished.append(event.data)

    dispatcher.dispatch("PING", 1)
    dispatcher.dispatch("PING", 2)

    await asyncio.sleep(0.01)
    assert finished == []

    release.set()
    await wait_until(lambda: len(finished) == 2)


async def test_listener_names_are_case_insensitive(dispatcher):
    seen = []

    async def on_ping(event):
        seen.append(event)

    dispatcher.add_listener("ping", on_ping)
    dispatcher.dispatch("PING", None)
    await wait_until(lambda: seen)

    dispatcher.remove_listener("Ping", on_ping)
    dispatcher.dispatch("PING", None)
    await asyncio.sleep(0.01)

    assert len(seen) == 1


async def test_plain_functions_are_rejected(dispatcher):
    with pytest.raises(TypeError):
        dispatcher.add_listener("PING", lambda event: None)


async def test_wait_for(dispatcher):
    waiter = asyncio.ensure_future(dispatcher.wait_for("PING", check=lambda event: event.data == 2))
    await asyncio.sleep(0)

    dispatcher.dispatch("PING", 1)
    dispatcher.dispatch("PING", 2)

    event = await asyncio.wait_for(waiter, 1.0)
    assert event.data == 2


async def test_timed_out_waiters_are_forgotten(dispatcher):
    with pytest.raises(asyncio.TimeoutError):
        await dispatcher.wait_for("RARE", timeout=0.01)

    await wait_until(lambda: not dispatcher._waiters["RARE"])

    waiter = asyncio.ensure_future(dispatcher.wait_for("RARE"))
    await asyncio.sleep(0)
    dispatcher.dispatch("RARE", 1)

    assert (await asyncio.wait_for(waiter, 1.0)).data == 1
    await wait_until(lambda: not dispatcher._waiters["RARE"])


async def test_shard_ready_waits_for_every_guild(dispatcher):
    seen = []

    @dispatcher.listen("SHARD_READY")
    async def on_shard_ready(event):
        seen.append(event.shard_id)

    dispatcher.dispatch("READY", ready_payload(guild_ids=(GUILD_ID, OTHER_GUILD_ID)), shard_id=0)
    dispatcher.dispatch("GUILD_CREATE", guild_payload(GUILD_ID), shard_id=0)
    await asyncio.sleep(0.01)
    assert seen == []

    dispatcher.dispatch("GUILD_CREATE", guild_payload(OTHER_GUILD_ID), shard_id=0)
    await wait_until(lambda: seen == [0])


async def test_reset_shard_keeps_other_shards(dispatcher, cache):
    mine, theirs = 10 << 22, 11 << 22
    dispatcher.dispatch("GUILD_CREATE", guild_payload(mine))
    dispatcher.dispatch("GUILD_CREATE", guild_payload(theirs))

    dispatcher.reset_shard(0, 2)

    assert cache.get("guild", mine) is None
    assert cache.get("channel", mine + 3) is None
    assert cache.get("guild", theirs).name == "Bakery"
    assert cache.get("channel", theirs + 3) is not None
