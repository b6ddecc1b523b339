"""Prefix command parsing and dispatch."""
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from rhythmo.commands import info, playback, queue
from rhythmo.messages import msg
from rhythmo.messaging import reply_best_effort

logger = logging.getLogger("Rhythmo.Router")

Handler = Callable[[Any, Any, 'ParsedCommand'], Awaitable[None]]


@dataclass(frozen=True)
class ParsedCommand:
    verb: str
    args: Tuple[str, ...] = ()
    # everything after the verb, whitespace preserved inside
    rest: str = ""
    # server clear generation when the message arrived
    generation: int = 0


def parse_command(content: Optional[str], prefix: str) -> Optional[ParsedCommand]:
    """Split '<prefix><verb> <args...>' into its parts; None if not a command."""
    if not content or not prefix or not content.startswith(prefix):
        return None
    body = content[len(prefix):].strip()
    if not body:
        return None
    parts = body.split(None, 1)
    rest = parts[1].strip() if len(parts) > 1 else ""
    return ParsedCommand(verb=parts[0].lower(), args=tuple(rest.split()), rest=rest)


DEFAULT_HANDLERS: Dict[str, Handler] = {
    "play": playback.handle_play,
    "p": playback.handle_play,
    "stop": playback.handle_stop,
    "skip": playback.handle_skip,
    "pause": playback.handle_pause,
    "resume": playback.handle_resume,
    "queue": queue.handle_queue,
    "q": queue.handle_queue,
    "stats": info.handle_stats,
    "dashboard": info.handle_dashboard,
    "prefix": info.handle_prefix,
    "help": info.handle_help,
}

# Verbs that wait for earlier ones in the same server. Everything else runs at
# once, so a stop or skip is never stuck behind a slow lookup.
SERIALIZED_VERBS = frozenset({"play", "p", "prefix"})


class CommandRouter:
    """Routes chat messages to handlers.

    Bot-authored, server-less and unprefixed messages are ignored, as are
    unknown verbs. `play` and `prefix` for one server run one at a time, in
    arrival order; the other verbs skip the queue. A `play` that was still
    looking up its track when a `stop` ran drops the track itself.
    """

    def __init__(self, service: Any, handlers: Optional[Dict[str, Handler]] = None) -> None:
        self.service = service
        self.handlers: Dict[str, Handler] = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self.serialized = SERIALIZED_VERBS

    async def dispatch(self, message: Any) -> bool:
        """Handle one message. True if a handler ran."""
        if getattr(message.author, "bot", False) or message.guild is None:
            return False
        command = parse_command(message.content, self.service.prefix)
        if command is None:
            return False
        handler = self.handlers.get(command.verb)
        if handler is None:
            logger.debug("Unknown command %r guild=%s", command.verb, message.guild.id)
            return False
        self.service.metrics.inc("commands_run")
        state = self.service.registry.get_or_create(message.guild.id)
        command = replace(command, generation=state.generation)
        if command.verb in self.serialized:
            async with state.command_lock:
                await self._run(handler, message, command)
        else:
            await self._run(handler, message, command)
        return True

    async def _run(self, handler: Handler, message: Any, command: ParsedCommand) -> None:
        try:
            await handler(self.service, message, command)
        except Exception as e:
            logger.exception("Command error verb=%s guild=%s: %s", command.verb, message.guild.id, e)
            await reply_best_effort(message, msg("COMMAND_ERROR"))
