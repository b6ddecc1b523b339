import asyncio
from types import SimpleNamespace

import pytest

from rhythmo.config import ConfigStore, DEFAULT_CONFIG
from rhythmo.exceptions import ResolveError
from rhythmo.messages import set_language
from rhythmo.metrics import Metrics
from rhythmo.service import MusicService


class FakeVoiceClient:
    """Stand-in for discord.VoiceClient; `finish()` simulates the stream ending."""

    def __init__(self, channel=None):
        self.channel = channel
        self.connected = True
        self.source = None
        self.played = []
        self._after = None
        self._playing = False
        self._paused = False
        self.stop_calls = 0

    def is_connected(self): return self.connected
    def is_playing(self): return self._playing
    def is_paused(self): return self._paused

    def play(self, src, after=None):
        self.source = src
        self.played.append(src)
        self._after = after
        self._playing = True
        self._paused = False

    def finish(self, err=None):
        self._playing = False
        self._paused = False
        after, self._after = self._after, None
        if after:
            after(err)

    def stop(self):
        self.stop_calls += 1
        if self._playing or self._paused:
            self.finish(None)

    def pause(self):
        self._playing = False
        self._paused = True

    def resume(self):
        self._playing = True
        self._paused = False

    async def move_to(self, channel):
        self.channel = channel

    async def disconnect(self, force=False):
        self.connected = False


class FakeVoiceChannel:
    def __init__(self, id=500, name="Lounge", fail=0):
        self.id = id
        self.name = name
        self.fail = fail
        self.connects = 0

    async def connect(self):
        self.connects += 1
        if self.connects <= self.fail:
            raise RuntimeError("voice gateway unavailable")
        return FakeVoiceClient(channel=self)


class FakeTextChannel:
    def __init__(self, id=2):
        self.id = id
        self.sent = []

    async def send(self, content=None, **kwargs):
        self.sent.append(content if content is not None else kwargs)
        return SimpleNamespace(content=content, **kwargs)


class FakeMessage:
    def __init__(self, content, author, guild, channel):
        self.content = content
        self.author = author
        self.guild = guild
        self.channel = channel
        self.replies = []

    async def reply(self, content=None, **kwargs):
        self.replies.append(content if content is not None else kwargs)
        return SimpleNamespace(content=content)


def make_member(voice_channel=None, bot=False, id=42, name="Alice"):
    voice = SimpleNamespace(channel=voice_channel) if voice_channel is not None else None
    return SimpleNamespace(id=id, bot=bot, display_name=name, voice=voice)


def make_info(key):
    return {
        "title": f"Song {key}",
        "webpage_url": f"https://www.youtube.com/watch?v={key}",
        "duration": 180,
        "uploader": "Band",
    }


class FakeResolver:
    """Resolves 'A' -> https://www.youtube.com/watch?v=A; keys in `broken` fail."""

    def __init__(self):
        self.broken = set()
        self.unknown = set()
        self.fetched = []
        self.resolved = []
        # single-shot gates: each set() releases one waiting call
        self.gate = None
        self.fetch_gate = None

    async def fetch_info(self, query):
        self.fetched.append(query)
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
            self.fetch_gate.clear()
        if query in self.unknown:
            raise ResolveError("Video unavailable")
        return make_info(query)

    async def resolve_stream(self, track):
        self.resolved.append(track.locator)
        if self.gate is not None:
            await self.gate.wait()
            self.gate.clear()
        key = track.locator.rsplit("=", 1)[-1]
        if key in self.broken:
            raise ResolveError("This video is private")
        return f"https://cdn.example/{key}.webm"


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while not predicate():
        if loop.time() > end:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture(autouse=True)
def english_messages():
    set_language("en")
    yield
    set_language("en")


@pytest.fixture
def make_service(tmp_path):
    def _make(**overrides):
        cfg = dict(DEFAULT_CONFIG)
        cfg.update({"token": "test-token", "advance_delay_ms": 0, "idle_disconnect_seconds": 0,
                    "voice_connect_retries": 1})
        cfg.update(overrides)
        store = ConfigStore(cfg, path=str(tmp_path / "config.json"))
        return MusicService(store, resolver=FakeResolver(), metrics=Metrics(),
                            source_factory=lambda url: ("source", url))
    return _make


@pytest.fixture
def guild():
    return SimpleNamespace(id=1)


@pytest.fixture
def text_channel():
    return FakeTextChannel()
