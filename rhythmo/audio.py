"""
Audio source creation and FFmpeg configuration.
Handles stream profiles, audio format picking, and URL sanitization.
"""

import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse
from functools import lru_cache
import discord

logger = logging.getLogger("Rhythmo.Audio")

HTTP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
)

PICKER_CONFIG = {
    "hls_penalty": 1200,
    "opus_bonus": 1200,
    "aac_bonus": 800,
    "container_bonus": {"webm": 600, "opus": 600, "ogg": 600, "m4a": 550, "mp3": 300},
}


@lru_cache(maxsize=256)
def sanitize_stream_url(url: Optional[str]) -> Optional[str]:
    """Strip query params (like range=) that make FFmpeg start mid-track."""
    if not url:
        return url
    pr = urlparse(url)
    q = parse_qsl(pr.query, keep_blank_values=True)
    bad_keys = {"range", "rn", "rbuf", "start", "st", "begin", "sq", "dur", "t", "offset"}
    filtered = [(k, v) for (k, v) in q if k.lower() not in bad_keys]
    new_q = urlencode(filtered)
    return urlunparse((pr.scheme, pr.netloc, pr.path, pr.params, new_q, pr.fragment))


def _format_score(f: Dict[str, Any]) -> int:
    score = 0
    # Primary: audio bitrate (abr)
    try:
        abr = f.get("abr")
        if abr:
            score += int(abr) * 12
    except (TypeError, ValueError):
        pass
    acodec = (f.get("acodec") or "").lower()
    if "opus" in acodec:
        score += PICKER_CONFIG["opus_bonus"]
    elif "aac" in acodec or "mp4a" in acodec:
        score += PICKER_CONFIG["aac_bonus"]
    elif acodec and acodec != "none":
        score += 200
    ext = (f.get("ext") or "").lower()
    score += PICKER_CONFIG["container_bonus"].get(ext, 0)
    proto = (f.get("protocol") or "").lower()
    if "m3u8" in proto or "hls" in proto:
        score -= PICKER_CONFIG["hls_penalty"]
    if f.get("vcodec") in (None, "none"):
        score += 150
    try:
        st = f.get("start_time")
        if st and float(st) > 0.25:
            score -= 1200
    except (TypeError, ValueError):
        pass
    return score


def pick_best_audio_url(info: Dict[str, Any]) -> Optional[str]:
    """Select the best audio URL from a yt-dlp info dict.

    Audio-capable formats are scored by bitrate, with bonuses for Opus (which
    Discord plays without transcoding) and AAC, container preference, and
    penalties for HLS and offset starts. Falls back to the direct 'url'.
    """
    direct = info.get("url")
    formats = [f for f in (info.get("formats") or []) if f.get("url")]
    if not formats:
        return sanitize_stream_url(direct)
    candidates = [f for f in formats if f.get("acodec") and f.get("acodec") != "none"] or formats
    best = max(candidates, key=_format_score)
    return sanitize_stream_url(best.get("url"))


def get_ffmpeg_options_for_profile(stream_profile: str, ffmpeg_bitrate: str, ffmpeg_threads: int,
                                   http_ua: str = HTTP_UA) -> Tuple[str, str]:
    """Generate FFmpeg (before_options, options) for a stream profile."""
    before = (
        "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5 "
        "-rw_timeout 15000000 -nostdin -thread_queue_size 1024 "
        f"-headers \"User-Agent: {http_ua}\\r\\n\""
    )
    if stream_profile == "low-latency":
        # Smaller probe/analyze window to start faster; reasonable buffers against stutter
        opts = (
            f'-vn -b:a {ffmpeg_bitrate} -ar 48000 -threads {ffmpeg_threads} '
            f'-nostats -loglevel error -probesize 64k -analyzeduration 100000 -bufsize 512k'
        )
    else:  # stable
        opts = (
            f'-vn -b:a {ffmpeg_bitrate} -ar 48000 -threads {ffmpeg_threads} '
            f'-fflags +genpts -avoid_negative_ts make_zero '
            f'-nostats -loglevel error -probesize 512k -analyzeduration 1500000 -bufsize 1M'
        )
    return before, opts


def create_audio_source(stream_url: str, stream_profile: str = "stable", ffmpeg_bitrate: str = "128k",
                        ffmpeg_threads: int = 1) -> discord.AudioSource:
    """Create a Discord audio source for a direct stream URL (Opus, PCM fallback)."""
    before, options = get_ffmpeg_options_for_profile(stream_profile, ffmpeg_bitrate, ffmpeg_threads)
    kwargs = {"before_options": before, "options": options}
    try:
        logger.debug("FFmpeg profile=%s options=%s", stream_profile, options)
        return discord.FFmpegOpusAudio(stream_url, **kwargs)
    except discord.ClientException as e:
        logger.warning("FFmpegOpusAudio failed (%s); fallback to PCM", e)
        return discord.FFmpegPCMAudio(stream_url, **kwargs)
