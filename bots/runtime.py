"""Discord bot runtime wiring the registries to slash commands."""

from __future__ import annotations

import logging

import boto3
import discord
from discord import app_commands

from tetrio_api import TetrioClient
from uc_helper.checkin import CheckInLog
from uc_helper.players import PlayerRegistry
from uc_helper.storage import RegistryStorage
from uc_helper.tournaments import TournamentRegistry

from .commands import Services, handle_reaction, register_commands
from .config import EnvironmentConfig

log = logging.getLogger("uc-helper")


def build_services(
    config: EnvironmentConfig, *, dynamodb_resource=None, tetrio_client: TetrioClient | None = None
) -> tuple[Services, TetrioClient]:
    """Create the storage, data source and registries described by ``config``."""
    dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=config.aws_region)
    storage = RegistryStorage(dynamodb.Table(config.table_name))
    client = tetrio_client or TetrioClient(config.tetrio_session_id)
    players = PlayerRegistry(storage, client, cache_window=config.player_cache_window)
    services = Services(
        players=players,
        tournaments=TournamentRegistry(storage),
        checkins=CheckInLog(storage),
        staff_role_id=config.staff_role_id,
    )
    return services, client


class BotRuntime:
    def __init__(
        self,
        config: EnvironmentConfig,
        *,
        dynamodb_resource=None,
        tetrio_client: TetrioClient | None = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True

        self.config = config
        self.bot = discord.Client(intents=intents)
        self.tree = app_commands.CommandTree(self.bot)
        self.services, self.tetrio_client = build_services(
            config, dynamodb_resource=dynamodb_resource, tetrio_client=tetrio_client
        )
        self.guild = discord.Object(id=config.guild_id) if config.guild_id is not None else None

    def configure(self) -> None:
        register_commands(self.tree, self.services, guild=self.guild)
        self.bot.event(self.on_ready)
        self.bot.event(self.on_raw_reaction_add)
        self.bot.event(self.on_raw_reaction_remove)

    async def on_ready(self) -> None:  # pragma: no cover - Discord lifecycle hook
        if not self.config.sync_commands:
            log.info("Logged in as %s, command sync disabled", self.bot.user)
            return
        if self.guild is not None:
            await self.tree.sync(guild=self.guild)
            log.info("Commands synced to guild %s", self.config.guild_id)
        else:
            await self.tree.sync()
            log.info("Commands synced globally")

    async def _on_reaction(
        self, payload: discord.RawReactionActionEvent, action: str
    ) -> None:
        if self.bot.user is not None and payload.user_id == self.bot.user.id:
            return
        if await handle_reaction(self.services, payload, action):  # type: ignore[arg-type]
            log.info("Check-in %s recorded for %s", action, payload.user_id)

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        await self._on_reaction(payload, "add")

    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        await self._on_reaction(payload, "remove")

    def close(self) -> None:
        self.tetrio_client.close()

    async def run(self) -> None:  # pragma: no cover - network entry point
        self.configure()
        try:
            async with self.bot:
                await self.bot.start(self.config.discord_token)
        finally:
            self.close()

    @classmethod
    def create(cls) -> BotRuntime:
        return cls(EnvironmentConfig.load())


async def main() -> None:  # pragma: no cover - CLI entry point
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    runtime = BotRuntime.create()
    await runtime.run()


__all__ = ["BotRuntime", "build_services", "main"]
