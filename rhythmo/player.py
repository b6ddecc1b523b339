import asyncio
import logging
from typing import Any, Callable, Optional, Set

from rhythmo.exceptions import ResolveError
from rhythmo.messages import msg
from rhythmo.messaging import Delivery, send_best_effort
from rhythmo.metrics import Metrics
from rhythmo.state import GuildState
from rhythmo.track import Track
from rhythmo.utils import format_duration, truncate

logger = logging.getLogger("Rhythmo.Player")


class GuildPlayer:
    """Playback driver for one server.

    A background task alternates between two states, mirrored in
    ``state.playing``:

    * Idle: the queue is empty; the task sleeps until something is enqueued
      (or the idle timeout disconnects the voice connection).
    * Playing: the head track is popped, a fresh stream URL is resolved and
      handed to the voice connection. When the stream ends, is skipped or
      errors, the task waits ``advance_delay`` seconds and takes the next head.

    A track whose resolution fails is dropped and the next one is tried right
    away; nothing is retried. A stream that cannot even be started is paced
    like a stream error. ``source_factory`` turns a direct stream URL into
    a discord AudioSource.
    """

    def __init__(self, state: GuildState, resolver: Any, metrics: Metrics,
                 source_factory: Callable[[str], Any], advance_delay: float = 0.2,
                 idle_disconnect_seconds: float = 0) -> None:
        self.state = state
        self.resolver = resolver
        self.metrics = metrics
        self.source_factory = source_factory
        self.advance_delay = max(0.0, float(advance_delay))
        self.idle_disconnect_seconds = idle_disconnect_seconds
        self.next_event: asyncio.Event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closing = False
        # strong refs so fire-and-forget notifications are not collected early
        self._pending: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_running(self) -> None:
        """Start the driver task if it is not alive (first enqueue, or after a crash)."""
        if self.running or self._closing:
            return
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._player_loop(), name=f"rhythmo-player-{self.state.guild_id}")

    async def _notify(self, content: str) -> Delivery:
        return await send_best_effort(self.state.text_channel, content)

    def _spawn(self, coro) -> asyncio.Task:
        """Create a task on the player's loop and hold it until it is done."""
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed guild=%s: %s", self.state.guild_id, task.exception())

    async def _wait_for_tracks(self) -> bool:
        """Sleep while Idle. False when the idle timeout fired instead."""
        timeout = self.idle_disconnect_seconds or None
        try:
            await self.state.queue.wait_for_item(timeout)
            return True
        except asyncio.TimeoutError:
            await self._idle_disconnect()
            return False

    async def _idle_disconnect(self) -> None:
        state = self.state
        if not state.connected or state.playing:
            return
        await self._notify(msg("IDLE_GOODBYE"))
        try:
            await state.voice.disconnect()
        except Exception:
            logger.warning("Idle disconnect failed guild=%s", state.guild_id, exc_info=True)
        state.voice = None
        logger.info("Idle queue timeout; disconnected voice (guild=%s)", state.guild_id)

    async def _player_loop(self) -> None:
        state = self.state
        logger.info("Player start guild=%s", state.guild_id)
        try:
            while not self._closing:
                if state.queue.empty():
                    state.playing = False
                    state.current = None
                    if not await self._wait_for_tracks():
                        continue
                if not state.connected:
                    dropped = state.queue.clear()
                    state.playing = False
                    state.current = None
                    logger.warning("No voice connection; dropped %s queued tracks (guild=%s)", dropped, state.guild_id)
                    await self._notify(msg("NOT_CONNECTED"))
                    continue
                track = state.queue.pop_front()
                if track is None:
                    continue
                state.playing = True
                state.current = track
                if not await self._start(track):
                    continue
                await self.next_event.wait()
                await asyncio.sleep(self.advance_delay)
        except asyncio.CancelledError:
            logger.info("Player loop cancelled guild=%s", state.guild_id)
        finally:
            state.playing = False
            state.current = None
            logger.info("Player stopped guild=%s", state.guild_id)

    async def _start(self, track: Track) -> bool:
        """Resolve and start one track. False means: go straight to the next one."""
        state = self.state
        generation = state.generation
        try:
            url = await self.resolver.resolve_stream(track)
        except ResolveError as e:
            logger.warning("Resolve failed guild=%s title=%s: %s", state.guild_id, truncate(track.title, 80), e)
            await self._notify(msg("TRACK_FAILED", title=truncate(track.title, 80), error=e))
            return False
        except Exception as e:
            logger.exception("Unexpected resolve failure guild=%s title=%s", state.guild_id, truncate(track.title, 80))
            await self._notify(msg("TRACK_FAILED", title=truncate(track.title, 80), error=e))
            return False
        if generation != state.generation or self._closing:
            # stop arrived while we were resolving
            logger.info("Discarding stale stream guild=%s title=%s", state.guild_id, truncate(track.title, 80))
            return False
        vc = state.voice
        if not state.connected:
            return False
        try:
            source = self.source_factory(url)
        except Exception as e:
            logger.exception("create_audio_source failed guild=%s", state.guild_id)
            await self._stream_start_failed(track, e)
            return False
        self.next_event.clear()
        try:
            vc.play(source, after=self._after)
        except Exception as e:
            logger.exception("vc.play failed guild=%s", state.guild_id)
            await self._stream_start_failed(track, e)
            return False
        self.metrics.inc("songs_played")
        logger.info("Start playback guild=%s title=%s dur=%s", state.guild_id, truncate(track.title, 80), format_duration(track.duration))
        await self._notify(msg("NOW_PLAYING", title=truncate(track.title, 80),
                               duration=format_duration(track.duration), requester=track.requested_by))
        return True

    async def _stream_start_failed(self, track: Track, err: Exception) -> None:
        # same pacing as a stream that errors mid-play
        self.metrics.inc("playback_error")
        await self._notify(msg("TRACK_FAILED", title=truncate(track.title, 80), error=err))
        await asyncio.sleep(self.advance_delay)

    def _after(self, err: Optional[Exception]) -> None:
        # Runs on discord.py's audio thread
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._on_track_end, err)

    def _on_track_end(self, err: Optional[Exception]) -> None:
        track = self.state.current
        title = truncate(track.title, 80) if track else "?"
        if err:
            logger.error("Playback error guild=%s title=%s: %s", self.state.guild_id, title, err)
            self.metrics.inc("playback_error")
            self._spawn(self._notify(msg("STREAM_FAILED", title=title)))
        else:
            logger.info("Finish playback guild=%s title=%s", self.state.guild_id, title)
            self.metrics.inc("playback_finish")
        self.next_event.set()

    async def close(self) -> None:
        """Cancel the driver task and stop the stream."""
        self._closing = True
        self.state.stop_voice()
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
