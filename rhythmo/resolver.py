"""Track resolution through yt-dlp.

Two steps, matching how tracks move through the bot:

* fetch_info(query) runs when `play` is issued and yields the metadata the
  Track is built from (title, page URL, duration, ...).
* resolve_stream(track) runs right before playback and yields a fresh direct
  audio URL, since the signed URLs handed out by most sites expire.
"""
import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from rhythmo.audio import pick_best_audio_url
from rhythmo.exceptions import ResolveError
from rhythmo.metrics import Metrics
from rhythmo.track import Track

logger = logging.getLogger("Rhythmo.Resolver")

YTDL_OPTS = {
    "format": "bestaudio/best",
    "quiet": True,
    "nocheckcertificate": True,
    "ignoreerrors": False,
    "no_warnings": True,
    "default_search": "ytsearch",
    "noplaylist": True,
    "geo_bypass": True,
    "socket_timeout": 15,
    "retries": 2,
    "extractor_retries": 2,
}


def normalize_query(query: str, default_search: str = "ytsearch") -> str:
    """URLs pass through; free text becomes a '<default_search>:<text>' search."""
    q = (query or "").strip()
    if q.startswith(("http://", "https://")):
        return q
    prefix = default_search.strip(":")
    if q.lower().startswith(prefix + ":"):
        return q
    return f"{prefix}:{q}"


def first_entry(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Unwrap search / playlist results to their first usable entry."""
    if not data:
        raise ResolveError("No results")
    if "entries" in data:
        entries = [e for e in data.get("entries") or [] if e]
        if not entries:
            raise ResolveError("No results")
        return entries[0]
    return data


class TrackResolver:
    """Turns URLs or search text into metadata and playable stream URLs."""

    def __init__(self, metrics: Optional[Metrics] = None, opts: Optional[Dict[str, Any]] = None,
                 max_workers: int = 2, timeout: Optional[float] = None) -> None:
        self.opts = dict(YTDL_OPTS if opts is None else opts)
        self.metrics = metrics or Metrics()
        self.timeout = timeout
        self._ytdl = YoutubeDL(self.opts)
        self._fallback_ytdl: Optional[YoutubeDL] = None
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rhythmo-ytdl")

    @classmethod
    def from_config(cls, config: Any, metrics: Optional[Metrics] = None) -> 'TrackResolver':
        timeout = config.get("resolve_timeout_seconds", 0)
        return cls(metrics=metrics, timeout=float(timeout) if timeout else None)

    def _fallback(self) -> YoutubeDL:
        # Without a format selector yt-dlp accepts sources that only offer muxed formats
        if self._fallback_ytdl is None:
            minimal = dict(self.opts)
            minimal.pop("format", None)
            self._fallback_ytdl = YoutubeDL(minimal)
        return self._fallback_ytdl

    async def _extract(self, query: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        q = normalize_query(query, self.opts.get("default_search") or "ytsearch")
        self.metrics.inc("resolve_attempts")
        start = time.perf_counter()
        try:
            try:
                fut = loop.run_in_executor(self._executor, lambda: self._ytdl.extract_info(q, download=False))
                data = await asyncio.wait_for(fut, timeout=self.timeout)
            except DownloadError as e:
                logger.debug("Primary yt-dlp attempt failed for %s: %s", q, e)
                fut = loop.run_in_executor(self._executor, lambda: self._fallback().extract_info(q, download=False))
                data = await asyncio.wait_for(fut, timeout=self.timeout)
            entry = first_entry(data)
        except asyncio.TimeoutError:
            self.metrics.inc("resolve_fail")
            logger.warning("yt-dlp timeout for query=%s", q)
            raise ResolveError("Lookup took too long")
        except DownloadError as e:
            self.metrics.inc("resolve_fail")
            raise ResolveError(str(e).replace("ERROR: ", "", 1)) from e
        except ResolveError:
            self.metrics.inc("resolve_fail")
            raise
        self.metrics.inc("resolve_success")
        self.metrics.add_time("resolve_time", time.perf_counter() - start)
        return entry

    async def fetch_info(self, query: str) -> Dict[str, Any]:
        """Metadata for a URL or free-text query. Raises ResolveError."""
        if not (query or "").strip():
            raise ResolveError("Empty query")
        return await self._extract(query)

    async def resolve_stream(self, track: Track) -> str:
        """Fresh direct audio URL for a queued track. Raises ResolveError."""
        info = await self._extract(track.locator)
        url = pick_best_audio_url(info)
        if not url:
            self.metrics.inc("resolve_fail")
            raise ResolveError("No audio stream available")
        return url

    def close(self) -> None:
        self._executor.shutdown(wait=False)
