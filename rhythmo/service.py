"""The coordinating service handed to every command handler."""
import functools
import logging
from typing import Any, Callable, Optional

from rhythmo import __version__
from rhythmo.audio import create_audio_source
from rhythmo.config import ConfigStore
from rhythmo.metrics import Metrics
from rhythmo.player import GuildPlayer
from rhythmo.state import GuildState, ServerRegistry

logger = logging.getLogger("Rhythmo.Service")


class MusicService:
    """Owns the configuration, statistics, resolver and server registry.

    Nothing here is module-global: handlers receive the service and reach the
    per-server state through ``registry``.
    """

    def __init__(self, config: ConfigStore, resolver: Any, metrics: Optional[Metrics] = None,
                 source_factory: Optional[Callable[[str], Any]] = None) -> None:
        self.config = config
        self.resolver = resolver
        self.metrics = metrics or Metrics()
        self.version = __version__
        self.source_factory = source_factory or functools.partial(
            create_audio_source,
            stream_profile=config.get("stream_profile", "stable"),
            ffmpeg_bitrate=config.get("ffmpeg_bitrate", "128k"),
            ffmpeg_threads=config.get("ffmpeg_threads", 1),
        )
        self.registry = ServerRegistry(
            max_queue_size=config.get("max_queue_size"),
            player_factory=self.build_player,
        )
        # set by the client once connected, used for the latency display
        self.client: Optional[Any] = None

    def build_player(self, state: GuildState) -> GuildPlayer:
        return GuildPlayer(
            state,
            resolver=self.resolver,
            metrics=self.metrics,
            source_factory=self.source_factory,
            advance_delay=self.config.get("advance_delay_ms", 200) / 1000.0,
            idle_disconnect_seconds=self.config.get("idle_disconnect_seconds", 0),
        )

    @property
    def prefix(self) -> str:
        return self.config.prefix

    async def shutdown(self) -> None:
        for state in self.registry:
            if state.player is not None:
                await state.player.close()
        close = getattr(self.resolver, "close", None)
        if close is not None:
            close()
        logger.info("Service shut down (%s servers)", len(self.registry))
