"""
Embed builders for the help and dashboard commands.
"""

from typing import List, Optional, Tuple

import discord

from rhythmo.messages import msg
from rhythmo.metrics import Metrics
from rhythmo.state import GuildState
from rhythmo.utils import THEME_COLOR, format_duration, format_uptime, truncate

HELP_COMMANDS: List[Tuple[str, str]] = [
    ("play <url | text>", "Queue a song (YouTube, SoundCloud, search text)"),
    ("skip", "Skip the current song"),
    ("stop", "Stop playback and clear the queue"),
    ("pause", "Pause playback"),
    ("resume", "Resume playback"),
    ("queue", "Show the pending songs"),
    ("stats", "Songs played, commands run, uptime"),
    ("dashboard", "Bot and server overview"),
    ("prefix [new]", "Show or change the command prefix (max. 3 characters)"),
    ("help", "This message"),
]


def _fmt_cmd_list(prefix: str) -> str:
    return "\n".join(f"`{prefix}{usage}` — {desc}" for usage, desc in HELP_COMMANDS)


def create_help_embed(prefix: str, version: str) -> discord.Embed:
    embed = discord.Embed(title=msg("HELP_TITLE"), description=_fmt_cmd_list(prefix), color=THEME_COLOR)
    embed.set_footer(text=f"Rhythmo {version}")
    return embed


def create_dashboard_embed(metrics: Metrics, state: Optional[GuildState], *, prefix: str, servers: int,
                           latency: Optional[float] = None, version: str = "") -> discord.Embed:
    """Global counters plus the state of the server the command came from."""
    embed = discord.Embed(title=msg("DASHBOARD_TITLE"), color=THEME_COLOR, timestamp=discord.utils.utcnow())
    embed.add_field(name="⏱️ Uptime", value=format_uptime(metrics.uptime_seconds()), inline=True)
    embed.add_field(name="🎵 Songs played", value=str(metrics.get("songs_played")), inline=True)
    embed.add_field(name="⌨️ Commands run", value=str(metrics.get("commands_run")), inline=True)
    embed.add_field(name="🌐 Servers", value=str(servers), inline=True)
    if latency is not None:
        embed.add_field(name="📡 Latency", value=f"{latency * 1000:.0f} ms", inline=True)
    embed.add_field(name="🔣 Prefix", value=f"`{prefix}`", inline=True)
    if state is not None:
        vc = state.voice
        paused = bool(vc and state.connected and vc.is_paused())
        status = "⏸️ paused" if paused else ("▶️ playing" if state.playing else "⏹️ idle")
        embed.add_field(name="🔊 Voice", value="connected" if state.connected else "not connected", inline=True)
        embed.add_field(name="📻 Status", value=status, inline=True)
        embed.add_field(name="📜 Queue", value=str(state.queue.qsize()), inline=True)
        if state.current:
            cur = state.current
            embed.add_field(
                name="🎧 Current",
                value=f"{truncate(cur.title, 80)} ({format_duration(cur.duration)}) · {truncate(cur.requested_by, 30)}",
                inline=False,
            )
    errors = metrics.get("resolve_fail") + metrics.get("playback_error")
    embed.set_footer(text=f"Rhythmo {version} • resolve avg {metrics.average('resolve_time'):.2f}s • errors {errors}")
    return embed
