"""Command handlers for Rhythmo.

Each handler takes (service, message, command) where `service` is the
MusicService, `message` the discord.Message that triggered it and `command`
the ParsedCommand from rhythmo.router. The router owns dispatch, counting and
per-server serialisation; handlers only do the work and reply.
"""

__all__ = [
    "info",
    "playback",
    "queue",
]
