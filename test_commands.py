import asyncio
import json

import pytest

from conftest import FakeMessage, FakeVoiceChannel, make_info, make_member, wait_until
from rhythmo.messages import msg
from rhythmo.router import CommandRouter
from rhythmo.track import Track


@pytest.fixture
def bot(make_service, guild, text_channel):
    """A router plus a helper that sends a command as a member sitting in voice."""
    class Bot:
        def __init__(self, **overrides):
            self.service = make_service(**overrides)
            self.router = CommandRouter(self.service)
            self.voice_channel = FakeVoiceChannel()
            self.member = make_member(voice_channel=self.voice_channel)

        async def send(self, content, member=None):
            message = FakeMessage(content, member or self.member, guild, text_channel)
            await self.router.dispatch(message)
            return message

        @property
        def state(self):
            return self.service.registry.get_or_create(guild.id)

    return Bot


def src(key):
    return ("source", f"https://cdn.example/{key}.webm")


@pytest.mark.asyncio
async def test_play_without_query_shows_usage(bot):
    b = bot()
    message = await b.send("!play")
    assert message.replies == [msg("PLAY_USAGE", prefix="!")]
    assert b.service.resolver.fetched == []


@pytest.mark.asyncio
async def test_play_requires_voice_channel(bot):
    b = bot()
    message = await b.send("!play A", member=make_member())
    assert message.replies == [msg("JOIN_REQUIRED")]
    assert b.service.resolver.fetched == []


@pytest.mark.asyncio
async def test_play_joins_queues_and_starts(bot, text_channel):
    b = bot()
    await b.send("!play A")

    assert text_channel.sent[:2] == [msg("SEARCHING", query="A"), msg("TRACK_ADDED", title="Song A")]
    assert b.voice_channel.connects == 1
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))
    assert b.state.current.requested_by == "Alice"
    assert b.service.metrics.get("queue_add") == 1

    await b.send("!p B")
    assert b.voice_channel.connects == 1
    assert [t.title for t in b.state.queue.snapshot()] == ["Song B"]
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_play_unresolvable_query(bot):
    b = bot()
    b.service.resolver.unknown.add("nope")
    message = await b.send("!play nope")

    assert message.replies == [msg("RESOLVE_ERROR", error="Video unavailable")]
    assert b.voice_channel.connects == 0
    assert b.state.queue.empty()


@pytest.mark.asyncio
async def test_play_voice_connect_failure(bot):
    b = bot()
    b.voice_channel.fail = 5
    message = await b.send("!play A")

    assert message.replies == [msg("VOICE_CONNECT_FAIL")]
    assert b.state.voice is None
    assert b.state.queue.empty()
    assert b.service.metrics.get("voice_connect_failures") == 1


@pytest.mark.asyncio
async def test_play_rejects_when_queue_full(bot):
    b = bot(max_queue_size=1)
    b.service.resolver.gate = asyncio.Event()
    await b.send("!play A")
    await wait_until(lambda: b.service.resolver.resolved)
    await b.send("!play B")
    message = await b.send("!play C")

    assert message.replies == [msg("QUEUE_FULL", limit=1)]
    assert [t.title for t in b.state.queue.snapshot()] == ["Song B"]
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_stop_clears_queue_and_stream(bot, text_channel):
    b = bot()
    for key in "ABC":
        await b.send(f"!play {key}")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))

    await b.send("!stop")

    assert msg("STOPPED") in text_channel.sent
    assert b.state.queue.empty()
    assert not vc.is_playing()
    await wait_until(lambda: not b.state.playing)
    assert b.service.metrics.get("queue_clear") == 1
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_stop_after_play_in_flight_wins(bot):
    b = bot()
    await b.send("!play A")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))

    await asyncio.gather(b.send("!play B"), b.send("!stop"))

    assert b.state.queue.empty()
    await wait_until(lambda: not b.state.playing)
    assert vc.played == [src("A")]
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_skip(bot, text_channel):
    b = bot()
    message = await b.send("!skip")
    assert message.replies == [msg("NOTHING_PLAYING")]

    await b.send("!play A")
    await b.send("!play B")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))
    await b.send("!skip")

    assert msg("SKIPPED") in text_channel.sent
    assert b.service.metrics.get("skips") == 1
    await wait_until(lambda: vc.source == src("B"))
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_pause_and_resume(bot, text_channel):
    b = bot()
    message = await b.send("!pause")
    assert message.replies == [msg("NOTHING_PLAYING")]
    message = await b.send("!resume")
    assert message.replies == [msg("NOT_PAUSED")]

    await b.send("!play A")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))
    await b.send("!pause")
    assert vc.is_paused()
    assert msg("PAUSED") in text_channel.sent
    await b.send("!resume")
    assert vc.is_playing()
    assert msg("RESUMED") in text_channel.sent
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_queue_listing(bot, text_channel):
    b = bot()
    message = await b.send("!queue")
    assert message.replies == [msg("QUEUE_EMPTY")]

    # filled directly so no player takes the head
    for key in "AB":
        b.state.queue.put(Track.from_info(make_info(key), key, requested_by="Alice"))
    await b.send("!q")

    assert text_channel.sent[-1] == "\n".join([msg("QUEUE_HEADER"), "`1.` Song A (3:00)", "`2.` Song B (3:00)"])


@pytest.mark.asyncio
async def test_long_queue_is_split(bot, text_channel):
    b = bot()
    for i in range(60):
        info = {"title": f"A rather long song title number {i:02d} " + "x" * 40}
        b.state.queue.put(Track.from_info(info, str(i), requested_by="Alice"))
    await b.send("!queue")

    assert len(text_channel.sent) > 1
    assert all(len(chunk) <= 2000 for chunk in text_channel.sent)
    assert text_channel.sent[0].startswith(msg("QUEUE_HEADER"))
    assert "`60.`" in text_channel.sent[-1]


@pytest.mark.asyncio
async def test_stats(bot, text_channel):
    b = bot()
    await b.send("!stats")
    text = text_channel.sent[-1]
    assert "Songs played: 0" in text
    assert "Commands run: 1" in text
    assert "Uptime: " in text


@pytest.mark.asyncio
async def test_stats_in_german(bot, text_channel):
    from rhythmo.messages import set_language
    set_language("de")
    b = bot()
    await b.send("!stats")
    assert "Gespielte Songs: 0" in text_channel.sent[-1]


@pytest.mark.asyncio
async def test_prefix_show_and_change(bot, text_channel, tmp_path):
    b = bot()
    message = await b.send("!prefix")
    assert message.replies == [msg("PREFIX_CURRENT", prefix="!")]

    await b.send("!prefix ?")
    assert text_channel.sent[-1] == msg("PREFIX_SET", prefix="?")
    assert b.service.prefix == "?"
    with open(tmp_path / "config.json", encoding="utf-8") as f:
        assert json.load(f)["prefix"] == "?"

    message = await b.send("!stats")
    assert message.replies == []
    await b.send("?stats")
    assert "Commands run: " in text_channel.sent[-1]


@pytest.mark.asyncio
async def test_prefix_rejects_long_value(bot, tmp_path):
    b = bot()
    message = await b.send("!prefix abcd")
    assert message.replies == [msg("PREFIX_INVALID", limit=3)]
    assert b.service.prefix == "!"
    assert not (tmp_path / "config.json").exists()


@pytest.mark.asyncio
async def test_prefix_rolls_back_when_not_saved(bot, tmp_path):
    b = bot()
    b.service.config.path = str(tmp_path / "missing-dir" / "config.json")
    message = await b.send("!prefix $")

    assert message.replies == [msg("PREFIX_PERSIST_FAIL", prefix="!")]
    assert b.service.prefix == "!"


@pytest.mark.asyncio
async def test_help_lists_commands(bot, text_channel):
    b = bot()
    await b.send("!help")
    embed = text_channel.sent[-1]["embed"]
    assert embed.title == msg("HELP_TITLE")
    assert "`!play <url | text>`" in embed.description
    assert "`!prefix [new]`" in embed.description


@pytest.mark.asyncio
async def test_dashboard(bot, text_channel):
    b = bot()
    await b.send("!play A")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))
    await b.send("!dashboard")

    embed = text_channel.sent[-1]["embed"]
    fields = {f.name: f.value for f in embed.fields}
    assert embed.title == msg("DASHBOARD_TITLE")
    assert fields["🌐 Servers"] == "1"
    assert fields["🎵 Songs played"] == "1"
    assert fields["⌨️ Commands run"] == "2"
    assert fields["📻 Status"] == "▶️ playing"
    assert fields["🎧 Current"].startswith("Song A (3:00)")
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_stop_not_blocked_by_hanging_lookup(bot, text_channel):
    b = bot()
    await b.send("!play A")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))

    b.service.resolver.fetch_gate = asyncio.Event()
    pending = asyncio.ensure_future(b.send("!play B"))
    await wait_until(lambda: "B" in b.service.resolver.fetched)

    await asyncio.wait_for(b.send("!stop"), 0.5)
    assert not vc.is_playing()
    assert msg("STOPPED") in text_channel.sent

    # the lookup finishing late must not bring B back
    b.service.resolver.fetch_gate.set()
    await pending
    assert b.state.queue.empty()
    assert msg("TRACK_ADDED", title="Song B") not in text_channel.sent
    await wait_until(lambda: not b.state.playing)
    assert vc.played == [src("A")]
    await b.service.shutdown()


@pytest.mark.asyncio
async def test_play_queued_after_stop_still_plays(bot):
    b = bot()
    await b.send("!stop")
    await b.send("!play A")
    vc = b.state.voice
    await wait_until(lambda: vc.source == src("A"))
    await b.service.shutdown()
