import datetime

import pytest

import custard
from custard.enums import ChannelType
from custard.models import BaseChannel, DMChannel, ForumChannel, TextChannel, create_channel, channel_factory
from custard.models.emoji import emoji_key
from custard.utils import parse_time, shard_id_for, snowflake_time

from conftest import USER, USER_ID


def test_channel_factory():
    assert channel_factory(ChannelType.GUILD_TEXT) is TextChannel
    assert channel_factory(ChannelType.GUILD_ANNOUNCEMENT) is TextChannel
    assert channel_factory(ChannelType.GUILD_FORUM) is ForumChannel
    assert channel_factory(ChannelType.DM) is DMChannel
    assert channel_factory(99) is BaseChannel


def test_unknown_channel_type_keeps_its_number():
    channel = create_channel({"id": "1", "type": 99, "name": "future"})

    assert type(channel) is BaseChannel
    assert channel.type == 99
    assert channel.name == "future"


def test_known_channel_type_is_an_enum():
    channel = create_channel({"id": "1", "type": 5, "name": "news"})

    assert channel.type is ChannelType.GUILD_ANNOUNCEMENT
    assert channel.is_news()
    assert channel.mention == "<#1>"


def test_snowflake_time():
    created = snowflake_time(175928847299117063)

    assert created == datetime.datetime(2016, 4, 30, 11, 18, 25, 796000, tzinfo=datetime.timezone.utc)
    assert custard.models.User({"id": "175928847299117063"}).created_at == created


def test_shard_id_for():
    assert shard_id_for(USER_ID, 1) == 0
    assert shard_id_for(10 << 22, 4) == 2


def test_parse_time():
    assert parse_time(None) is None
    assert parse_time("2024-01-01T12:00:00Z") == datetime.datetime(2024, 1, 1, 12, tzinfo=datetime.timezone.utc)


def test_user_str():
    assert str(custard.models.User(USER)) == "custard"
    assert str(custard.models.User({"id": "1", "username": "old", "discriminator": "1234"})) == "old#1234"


def test_emoji_key():
    assert emoji_key({"id": None, "name": "🍮"}) == "🍮"
    assert emoji_key({"id": "41771983429993937", "name": "custard"}) == "custard:41771983429993937"


def test_default_intents_exclude_privileged():
    intents = custard.Intents.default()

    assert "guilds" in intents
    assert "guild_messages" in intents
    assert "message_content" not in intents
    assert "guild_members" not in intents
    assert "guild_presences" not in intents


def test_intents_flags():
    intents = custard.Intents(guilds=True, guild_messages=True)

    assert int(intents) == 513
    assert list(intents) == ["guilds", "guild_messages"]
    assert int(intents | custard.Intents(message_content=True)) == 513 | 1 << 15
    assert int(custard.Intents(513, guilds=False)) == 512


def test_invalid_intent():
    with pytest.raises(TypeError):
        custard.Intents(not_an_intent=True)


def test_backoff_grows_until_the_cap():
    backoff = custard.ExponentialBackoff(1, 8, jitter=False)

    assert [backoff.delay() for _ in range(6)] == [1, 2, 4, 8, 8, 8]

    backoff.reset()
    assert backoff.delay() == 1


def test_backoff_jitter_stays_in_range():
    backoff = custard.ExponentialBackoff(4, 4)

    for _ in range(20):
        assert 2 <= backoff.delay() <= 4


def test_file_from_bytes():
    file = custard.File(b"flour", "recipe.txt", spoiler=True)

    assert file.filename == "SPOILER_recipe.txt"
    assert file.fp.read() == b"flour"

    file.reset()
    assert file.fp.read() == b"flour"


def test_file_from_path(tmp_path):
    path = tmp_path / "recipe.txt"
    path.write_bytes(b"eggs")

    file = custard.File(str(path))

    assert file.filename == "recipe.txt"
    assert file.fp.read() == b"eggs"

    file.close()
    assert file.fp.closed
