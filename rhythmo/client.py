import logging
from typing import Any

import discord

from rhythmo.router import CommandRouter
from rhythmo.service import MusicService

logger = logging.getLogger("Rhythmo.Client")


def default_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.message_content = True
    intents.voice_states = True
    return intents


class RhythmoClient(discord.Client):
    """Gateway client: forwards every message to the CommandRouter."""

    def __init__(self, service: MusicService, **kwargs: Any) -> None:
        kwargs.setdefault("intents", default_intents())
        super().__init__(**kwargs)
        self.service = service
        self.router = CommandRouter(service)
        service.client = self

    async def on_ready(self):
        logger.info("Logged in as %s (servers=%s)", self.user, len(self.guilds))
        try:
            await self.change_presence(activity=discord.Activity(type=discord.ActivityType.listening, name="music 🎶"))
        except discord.HTTPException:
            logger.debug("Setting presence failed", exc_info=True)

    async def on_message(self, message: discord.Message):
        await self.router.dispatch(message)

    async def on_voice_state_update(self, member: discord.Member, before, after):
        # Forget the voice handle when the bot itself gets disconnected
        if self.user is None or member.id != self.user.id or after.channel is not None:
            return
        state = self.service.registry.get(member.guild.id)
        if state is not None and state.voice is not None and not state.connected:
            logger.info("Voice disconnected externally guild=%s", member.guild.id)
            state.voice = None

    async def close(self):
        await self.service.shutdown()
        await super().close()
