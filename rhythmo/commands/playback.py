import logging
from typing import Any

from rhythmo.exceptions import QueueFullError, ResolveError, VoiceConnectError
from rhythmo.messages import msg
from rhythmo.messaging import reply_best_effort, send_best_effort
from rhythmo.track import Track
from rhythmo.utils import truncate
from rhythmo.voice import ensure_connected, member_voice_channel

logger = logging.getLogger("Rhythmo.Commands.Playback")


async def handle_play(service: Any, message: Any, command: Any) -> None:
    """Resolve the query, join the author's voice channel and enqueue the track."""
    query = command.rest.strip()
    if not query:
        await reply_best_effort(message, msg("PLAY_USAGE", prefix=service.prefix))
        return
    channel = member_voice_channel(message.author)
    if channel is None:
        await reply_best_effort(message, msg("JOIN_REQUIRED"))
        return

    guild_id = message.guild.id
    state = service.registry.get_or_create(guild_id)
    state.text_channel = message.channel
    # a stop issued after this message bumps the generation
    generation = command.generation
    await send_best_effort(message.channel, msg("SEARCHING", query=truncate(query, 80)))

    try:
        info = await service.resolver.fetch_info(query)
    except ResolveError as e:
        logger.warning("Resolve failed guild=%s query=%s: %s", guild_id, truncate(query, 200), e)
        await reply_best_effort(message, msg("RESOLVE_ERROR", error=e))
        return
    author = message.author
    track = Track.from_info(
        info, query,
        requested_by=getattr(author, "display_name", None) or str(author),
        requested_by_id=getattr(author, "id", None),
    )

    try:
        await ensure_connected(state, channel, service.metrics, retries=service.config.get("voice_connect_retries", 3))
    except VoiceConnectError:
        await reply_best_effort(message, msg("VOICE_CONNECT_FAIL"))
        return
    if state.generation != generation:
        logger.info("Stopped during lookup, dropping guild=%s title=%s", guild_id, truncate(track.title, 80))
        return

    try:
        size = service.registry.enqueue(guild_id, track)
    except QueueFullError:
        await reply_best_effort(message, msg("QUEUE_FULL", limit=state.queue.max_size))
        return
    service.metrics.inc("queue_add")
    logger.info("Queued guild=%s title=%s size=%s", guild_id, truncate(track.title, 80), size)
    await send_best_effort(message.channel, msg("TRACK_ADDED", title=truncate(track.title, 80)))


async def handle_stop(service: Any, message: Any, command: Any) -> None:
    removed = service.registry.clear(message.guild.id)
    service.metrics.inc("queue_clear")
    logger.info("Stop guild=%s removed=%s", message.guild.id, removed)
    await send_best_effort(message.channel, msg("STOPPED"))


async def handle_skip(service: Any, message: Any, command: Any) -> None:
    state = service.registry.get(message.guild.id)
    if state is None or not state.stop_voice():
        await reply_best_effort(message, msg("NOTHING_PLAYING"))
        return
    service.metrics.inc("skips")
    await send_best_effort(message.channel, msg("SKIPPED"))


async def handle_pause(service: Any, message: Any, command: Any) -> None:
    state = service.registry.get(message.guild.id)
    if state is None or not state.connected or not state.voice.is_playing():
        await reply_best_effort(message, msg("NOTHING_PLAYING"))
        return
    state.voice.pause()
    await send_best_effort(message.channel, msg("PAUSED"))


async def handle_resume(service: Any, message: Any, command: Any) -> None:
    state = service.registry.get(message.guild.id)
    if state is None or not state.connected or not state.voice.is_paused():
        await reply_best_effort(message, msg("NOT_PAUSED"))
        return
    state.voice.resume()
    await send_best_effort(message.channel, msg("RESUMED"))
