from typing import Any, List, Sequence

from rhythmo.messages import msg
from rhythmo.messaging import reply_best_effort, send_best_effort
from rhythmo.track import Track
from rhythmo.utils import chunk_lines, format_duration, truncate


def format_queue_lines(tracks: Sequence[Track]) -> List[str]:
    """One numbered line per pending track, in queue order."""
    lines = []
    for i, track in enumerate(tracks, start=1):
        line = f"`{i}.` {truncate(track.title, 80)}"
        if track.duration:
            line += f" ({format_duration(track.duration)})"
        lines.append(line)
    return lines


async def handle_queue(service: Any, message: Any, command: Any) -> None:
    state = service.registry.get(message.guild.id)
    tracks = state.queue.snapshot() if state is not None else []
    if not tracks:
        await reply_best_effort(message, msg("QUEUE_EMPTY"))
        return
    for chunk in chunk_lines([msg("QUEUE_HEADER")] + format_queue_lines(tracks)):
        await send_best_effort(message.channel, chunk)
