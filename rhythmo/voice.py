"""
Voice connection handling.
Joins (or moves to) the requesting member's channel with a short retry/backoff.
"""

import asyncio
import logging
import random
from typing import Any, Optional

from rhythmo.exceptions import VoiceConnectError
from rhythmo.metrics import Metrics
from rhythmo.state import GuildState

logger = logging.getLogger("Rhythmo.Voice")

_VOICE_CONNECT_BASE_BACKOFF = 0.5
_VOICE_CONNECT_JITTER = 0.5


def member_voice_channel(member: Any) -> Optional[Any]:
    """The voice channel a member sits in, or None."""
    voice = getattr(member, "voice", None)
    return getattr(voice, "channel", None) if voice else None


async def ensure_connected(state: GuildState, channel: Any, metrics: Optional[Metrics] = None,
                           retries: int = 3) -> Any:
    """Make the server's voice handle point at `channel`; returns the voice client.

    Reuses a live connection (moving it if the member is elsewhere). Raises
    VoiceConnectError once all attempts failed.
    """
    vc = state.voice
    if vc is not None and vc.is_connected():
        if getattr(vc.channel, "id", None) != channel.id:
            try:
                await vc.move_to(channel)
            except Exception as e:
                logger.exception("Moving voice connection failed guild=%s", state.guild_id)
                raise VoiceConnectError(str(e)) from e
        return vc

    last_exc: Optional[BaseException] = None
    for attempt in range(1, max(1, retries) + 1):
        if metrics:
            metrics.inc("voice_connect_attempts")
        try:
            vc = await channel.connect()
            logger.info("Connected to voice channel: %s (guild: %s)", getattr(channel, "name", channel.id), state.guild_id)
            state.voice = vc
            return vc
        except Exception as e:
            last_exc = e
            if metrics:
                metrics.inc("voice_connect_failures")
            logger.warning("Voice connect attempt %s/%s failed guild=%s: %s", attempt, retries, state.guild_id, e)
            if attempt >= retries:
                break
            backoff = _VOICE_CONNECT_BASE_BACKOFF * (2 ** (attempt - 1))
            await asyncio.sleep(backoff + random.uniform(0, _VOICE_CONNECT_JITTER))
    raise VoiceConnectError(str(last_exc) if last_exc else "unknown error")
