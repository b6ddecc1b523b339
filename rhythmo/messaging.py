"""Best-effort message delivery.

Notifications must never break playback or command flow, so sending returns a
Delivery result instead of raising. Callers are free to ignore it.
"""
import logging
from typing import Any, NamedTuple, Optional

import discord

logger = logging.getLogger("Rhythmo.Messaging")


class Delivery(NamedTuple):
    message: Optional[Any] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.message is not None


async def send_best_effort(channel: Any, content: Optional[str] = None, **kwargs) -> Delivery:
    """Send to a text channel (or reply target); swallow and report failures."""
    if channel is None:
        return Delivery(error=RuntimeError("no channel"))
    try:
        sent = await channel.send(content, **kwargs)
        return Delivery(message=sent)
    except discord.HTTPException as e:
        logger.debug("Send failed status=%s: %s", getattr(e, "status", None), e)
        return Delivery(error=e)
    except Exception as e:
        logger.debug("Send failed: %s", e, exc_info=True)
        return Delivery(error=e)


async def reply_best_effort(message: Any, content: Optional[str] = None, **kwargs) -> Delivery:
    """Reply to a user message, falling back to a plain channel send."""
    reply = getattr(message, "reply", None)
    if reply is not None:
        try:
            sent = await reply(content, **kwargs)
            return Delivery(message=sent)
        except Exception as e:
            logger.debug("Reply failed, falling back to channel send: %s", e)
    return await send_best_effort(getattr(message, "channel", None), content, **kwargs)
