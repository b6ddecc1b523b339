"""Per-server playback state and the registry that owns it."""
import asyncio
import logging
from typing import Any, Callable, Dict, Iterator, Optional

from rhythmo.queue import TrackQueue
from rhythmo.track import Track

logger = logging.getLogger("Rhythmo.State")


class GuildState:
    """Everything the bot tracks for one server.

    Created lazily on the first command and kept for the process lifetime.
    """

    def __init__(self, guild_id: int, max_queue_size: Optional[int] = None) -> None:
        self.guild_id = guild_id
        self.queue = TrackQueue(max_size=max_queue_size)
        self.playing: bool = False
        self.current: Optional[Track] = None
        # discord.VoiceClient (or anything with play/stop/pause/resume/is_connected)
        self.voice: Optional[Any] = None
        self.text_channel: Optional[Any] = None
        # serialises command handlers for this server
        self.command_lock = asyncio.Lock()
        # bumped on every clear so in-flight resolutions can tell they are stale
        self.generation: int = 0
        self.player: Optional[Any] = None

    @property
    def connected(self) -> bool:
        try:
            return bool(self.voice and self.voice.is_connected())
        except Exception:
            logger.debug("is_connected check failed guild=%s", self.guild_id, exc_info=True)
            return False

    def stop_voice(self) -> bool:
        """Stop whatever the voice connection is streaming. True if something was stopped."""
        vc = self.voice
        if not vc:
            return False
        if vc.is_playing() or vc.is_paused():
            vc.stop()
            return True
        return False


class ServerRegistry:
    """Maps server ids to their GuildState; owned by the MusicService."""

    def __init__(self, max_queue_size: Optional[int] = None,
                 player_factory: Optional[Callable[[GuildState], Any]] = None) -> None:
        self._states: Dict[int, GuildState] = {}
        self.max_queue_size = max_queue_size
        self.player_factory = player_factory

    def get_or_create(self, guild_id: int) -> GuildState:
        state = self._states.get(guild_id)
        if state is None:
            state = GuildState(guild_id, self.max_queue_size)
            if self.player_factory is not None:
                state.player = self.player_factory(state)
            self._states[guild_id] = state
            logger.debug("Created state for guild=%s", guild_id)
        return state

    def get(self, guild_id: int) -> Optional[GuildState]:
        return self._states.get(guild_id)

    def enqueue(self, guild_id: int, track: Track) -> int:
        """Append to the server's queue and make sure its driver is running.

        Returns the queue length after the append. Raises QueueFullError.
        """
        state = self.get_or_create(guild_id)
        size = state.queue.put(track)
        if state.player is not None:
            state.player.ensure_running()
        return size

    def clear(self, guild_id: int) -> int:
        """Empty the queue and stop the active stream immediately."""
        state = self.get_or_create(guild_id)
        removed = state.queue.clear()
        state.generation += 1
        state.stop_voice()
        return removed

    def __iter__(self) -> Iterator[GuildState]:
        return iter(list(self._states.values()))

    def __len__(self) -> int:
        return len(self._states)
