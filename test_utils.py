import pytest

from rhythmo import doctor
from rhythmo.audio import get_ffmpeg_options_for_profile, pick_best_audio_url, sanitize_stream_url
from rhythmo.exceptions import ResolveError
from rhythmo.messages import msg, set_language
from rhythmo.metrics import Metrics
from rhythmo.resolver import first_entry, normalize_query
from rhythmo.utils import chunk_lines, format_duration, format_uptime, truncate


def test_format_duration():
    assert format_duration(None) == "??:??"
    assert format_duration(0) == "LIVE"
    assert format_duration(65) == "1:05"
    assert format_duration(3725) == "1:02:05"


def test_format_uptime():
    assert format_uptime(5) == "5s"
    assert format_uptime(65) == "1m 5s"
    assert format_uptime(3600) == "1h 0m 0s"
    assert format_uptime(2 * 86400 + 3 * 3600 + 4 * 60 + 5) == "2d 3h 4m 5s"
    assert format_uptime(-3) == "0s"


def test_truncate():
    assert truncate("short") == "short"
    assert truncate(None) == ""
    assert truncate("abcdefghij", 5) == "abcd…"


def test_chunk_lines():
    assert chunk_lines(["a", "b"], limit=10) == ["a\nb"]
    assert chunk_lines(["aaaa", "bbbb", "cccc"], limit=9) == ["aaaa\nbbbb", "cccc"]
    assert chunk_lines([]) == []


def test_messages_switch_language():
    assert msg("QUEUE_EMPTY") == "The queue is empty."
    set_language("de")
    assert msg("QUEUE_EMPTY") == "Queue ist leer."
    assert msg("TRACK_ADDED", title="X") == "🎶 **X** wurde zur Queue hinzugefügt!"
    set_language("EN")
    assert msg("PREFIX_SET", prefix="?") == "✅ Prefix set to `?`"
    assert msg("NO_SUCH_KEY") == "NO_SUCH_KEY"


def test_metrics():
    m = Metrics(started_at=100.0)
    m.inc("songs_played")
    m.inc("songs_played", 2)
    m.add_time("resolve_time", 1.0)
    m.add_time("resolve_time", 3.0)
    assert m.get("songs_played") == 3
    assert m.get("unknown") == 0
    assert m.average("resolve_time") == 2.0
    assert m.average("nothing") == 0.0
    assert m.uptime_seconds(now=160.0) == 60.0
    assert m.uptime_seconds(now=50.0) == 0.0
    snap = m.snapshot()
    snap["songs_played"] = 99
    assert m.get("songs_played") == 3


def test_normalize_query():
    assert normalize_query("https://youtu.be/x") == "https://youtu.be/x"
    assert normalize_query("  lofi beats ") == "ytsearch:lofi beats"
    assert normalize_query("scsearch:rain", "scsearch") == "scsearch:rain"


def test_first_entry():
    assert first_entry({"title": "x"}) == {"title": "x"}
    assert first_entry({"entries": [None, {"title": "y"}]}) == {"title": "y"}
    with pytest.raises(ResolveError):
        first_entry({"entries": []})
    with pytest.raises(ResolveError):
        first_entry(None)


def test_sanitize_stream_url_drops_offsets():
    url = "https://cdn.example/a.webm?range=0-100&id=7&t=30"
    assert sanitize_stream_url(url) == "https://cdn.example/a.webm?id=7"
    assert sanitize_stream_url(None) is None


def test_pick_best_audio_url_prefers_opus():
    info = {
        "url": "https://direct",
        "formats": [
            {"url": "https://hls", "acodec": "opus", "abr": 160, "protocol": "m3u8_native", "vcodec": "none"},
            {"url": "https://m4a", "acodec": "mp4a.40.2", "abr": 128, "ext": "m4a", "vcodec": "none"},
            {"url": "https://webm", "acodec": "opus", "abr": 160, "ext": "webm", "vcodec": "none"},
            {"url": "https://video", "acodec": "none", "vcodec": "avc1"},
        ],
    }
    assert pick_best_audio_url(info) == "https://webm"
    assert pick_best_audio_url({"url": "https://direct"}) == "https://direct"


def test_ffmpeg_profiles():
    before, opts = get_ffmpeg_options_for_profile("low-latency", "96k", 2)
    assert "-reconnect 1" in before
    assert "-b:a 96k" in opts and "-threads 2" in opts
    assert "-probesize 64k" in opts
    _, stable = get_ffmpeg_options_for_profile("stable", "128k", 1)
    assert "-fflags +genpts" in stable


def test_doctor_checks(tmp_path, monkeypatch):
    assert doctor.check_python_version((3, 11))
    assert not doctor.check_python_version((3, 7))

    monkeypatch.setattr(doctor.importlib.util, "find_spec", lambda name: None if name == "nacl" else object())
    assert doctor.check_dependencies() == ["PyNaCl"]

    path = str(tmp_path / "config.json")
    assert doctor.ensure_config(path)
    assert not doctor.ensure_config(path)


@pytest.mark.asyncio
async def test_send_best_effort_reports_failures():
    from conftest import FakeTextChannel
    from rhythmo.messaging import reply_best_effort, send_best_effort

    class Broken:
        async def send(self, *a, **k):
            raise RuntimeError("403")

    ok = await send_best_effort(FakeTextChannel(), "hi")
    assert ok.ok and ok.error is None
    failed = await send_best_effort(Broken(), "hi")
    assert not failed.ok
    assert str(failed.error) == "403"
    assert not (await send_best_effort(None, "hi")).ok

    channel = FakeTextChannel()

    class Message:
        channel = None

        async def reply(self, *a, **k):
            raise RuntimeError("deleted")

    message = Message()
    message.channel = channel
    assert (await reply_best_effort(message, "fallback")).ok
    assert channel.sent == ["fallback"]


@pytest.mark.asyncio
async def test_resolver_lookup_is_capped_by_config_timeout():
    import time
    from rhythmo.config import ConfigStore, DEFAULT_CONFIG
    from rhythmo.resolver import TrackResolver

    assert TrackResolver.from_config(ConfigStore(dict(DEFAULT_CONFIG))).timeout == 30
    assert TrackResolver.from_config(ConfigStore({"resolve_timeout_seconds": 0})).timeout is None

    metrics = Metrics()
    resolver = TrackResolver.from_config(ConfigStore({"resolve_timeout_seconds": 1}), metrics)
    resolver.timeout = 0.05

    class Stuck:
        def extract_info(self, query, download=False):
            time.sleep(0.5)
            return {"title": "late"}

    resolver._ytdl = Stuck()
    with pytest.raises(ResolveError):
        await resolver.fetch_info("never arrives")
    assert metrics.get("resolve_fail") == 1
    resolver.close()
