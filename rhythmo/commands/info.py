import logging
import math
from typing import Any

from rhythmo.config import MAX_PREFIX_LENGTH
from rhythmo.embeds import create_dashboard_embed, create_help_embed
from rhythmo.exceptions import PersistenceError, PrefixError
from rhythmo.messages import msg
from rhythmo.messaging import reply_best_effort, send_best_effort
from rhythmo.utils import format_uptime

logger = logging.getLogger("Rhythmo.Commands.Info")


def format_stats(service: Any) -> str:
    m = service.metrics
    return msg(
        "STATS",
        songs=m.get("songs_played"),
        commands=m.get("commands_run"),
        uptime=format_uptime(m.uptime_seconds()),
    )


async def handle_stats(service: Any, message: Any, command: Any) -> None:
    await send_best_effort(message.channel, format_stats(service))


async def handle_dashboard(service: Any, message: Any, command: Any) -> None:
    client = service.client
    latency = getattr(client, "latency", None) if client is not None else None
    if latency is not None and math.isnan(latency):  # no heartbeat yet
        latency = None
    embed = create_dashboard_embed(
        service.metrics,
        service.registry.get(message.guild.id),
        prefix=service.prefix,
        servers=len(getattr(client, "guilds", None) or []) if client is not None else len(service.registry),
        latency=latency,
        version=service.version,
    )
    await send_best_effort(message.channel, embed=embed)


async def handle_help(service: Any, message: Any, command: Any) -> None:
    await send_best_effort(message.channel, embed=create_help_embed(service.prefix, service.version))


async def handle_prefix(service: Any, message: Any, command: Any) -> None:
    """Without argument show the prefix, otherwise change and persist it."""
    if not command.args:
        await reply_best_effort(message, msg("PREFIX_CURRENT", prefix=service.prefix))
        return
    try:
        new_prefix = service.config.set_prefix(command.args[0])
    except PrefixError:
        await reply_best_effort(message, msg("PREFIX_INVALID", limit=MAX_PREFIX_LENGTH))
        return
    except PersistenceError:
        logger.error("Prefix change rolled back guild=%s", message.guild.id)
        await reply_best_effort(message, msg("PREFIX_PERSIST_FAIL", prefix=service.prefix))
        return
    await send_best_effort(message.channel, msg("PREFIX_SET", prefix=new_prefix))
