"""Discord slash commands for players and tournament staff.

Handlers are plain coroutines taking the services and the interaction so they
can be driven without a gateway connection; ``register_commands`` binds them
to a command tree. Registry calls are blocking and run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

import discord
from discord import app_commands

from uc_helper.checkin import CheckInLog
from uc_helper.errors import (
    MissingArgumentError,
    NoTournamentActiveError,
    NotFoundError,
    NotRegisteredError,
    UcHelperError,
)
from uc_helper.eligibility import DATE_DISPLAY_FORMAT
from uc_helper.models import CheckInAction, PlayerRecord, TournamentRecord
from uc_helper.players import PlayerRegistry
from uc_helper.tournaments import TournamentRegistry
from uc_helper.validation import normalize_tetrio_lookup, parse_restrictions

from .messages import error_message

log = logging.getLogger("uc-helper.commands")

CHECK_IN_EMOJI: Final[str] = "\N{WHITE HEAVY CHECK MARK}"
PROFILE_URL: Final[str] = "https://ch.tetr.io/u/%s"
MAX_LIST_LINES: Final[int] = 40


@dataclass(slots=True)
class Services:
    players: PlayerRegistry
    tournaments: TournamentRegistry
    checkins: CheckInLog
    staff_role_id: int | None = None


# ---------- Permission Checks ----------


def is_staff(member: discord.abc.User, staff_role_id: int | None) -> bool:
    guild_perms = getattr(member, "guild_permissions", None)
    if getattr(guild_perms, "administrator", False):
        return True
    if staff_role_id is None:
        return False
    roles = getattr(member, "roles", [])
    return any(getattr(role, "id", None) == staff_role_id for role in roles or [])


def require_staff(staff_role_id: int | None):
    async def predicate(interaction: discord.Interaction) -> bool:
        if is_staff(interaction.user, staff_role_id):
            return True
        raise app_commands.CheckFailure(
            "You need administrator or the tournament staff role to run this command."
        )

    return app_commands.check(predicate)


# ---------- Response helpers ----------


async def send_ephemeral(
    interaction: discord.Interaction,
    message: str | None = None,
    *,
    embed: discord.Embed | None = None,
) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(message, embed=embed, ephemeral=True)
    else:
        await interaction.response.send_message(message, embed=embed, ephemeral=True)


async def defer(interaction: discord.Interaction) -> None:
    if not interaction.response.is_done():
        await interaction.response.defer(ephemeral=True, thinking=True)


def _lookup_or_none(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    return normalize_tetrio_lookup(raw)


# ---------- Embeds ----------


def build_stats_embed(record: PlayerRecord) -> discord.Embed:
    stats = record.latest_stats
    if stats is None:
        return discord.Embed(
            title=record.tetrio_id,
            description="No stats stored for this player yet.",
            color=discord.Color.light_grey(),
        )

    embed = discord.Embed(
        title=stats.username.upper(),
        url=PROFILE_URL % stats.username,
        color=discord.Color(stats.rank.color_value),
        timestamp=stats.captured_at,
    )
    embed.set_thumbnail(url=stats.rank.icon_url)
    embed.add_field(name="Rank", value=stats.rank.display_code, inline=True)
    embed.add_field(name="TR", value=f"{stats.rating:.2f}", inline=True)
    rd = "-" if stats.rating_deviation is None else f"{stats.rating_deviation:.2f}"
    embed.add_field(name="RD", value=rd, inline=True)
    embed.add_field(name="Games played", value=str(stats.games_played), inline=True)
    if stats.apm is not None and stats.pps is not None and stats.vs is not None:
        embed.add_field(
            name="APM / PPS / VS",
            value=f"{stats.apm:.2f} / {stats.pps:.2f} / {stats.vs:.2f}",
            inline=True,
        )
    if stats.country:
        embed.add_field(name="Country", value=stats.country.upper(), inline=True)
    if record.discord_id is not None:
        embed.add_field(name="Discord", value=f"<@{record.discord_id}>", inline=False)
    return embed


def build_tournament_embed(tournament: TournamentRecord) -> discord.Embed:
    restrictions = tournament.restrictions
    embed = discord.Embed(
        title=f"{tournament.name} ({tournament.shorthand})",
        color=discord.Color.green() if tournament.active else discord.Color.dark_grey(),
        timestamp=tournament.created_at,
    )
    embed.add_field(name="Max rank", value=restrictions.max_rank.display_code, inline=True)
    embed.add_field(
        name="Max RD", value=f"{restrictions.max_rating_deviation:.2f}", inline=True
    )
    embed.add_field(
        name="Min games", value=str(restrictions.min_games_played), inline=True
    )
    snapshot = (
        tournament.snapshot_at.strftime(DATE_DISPLAY_FORMAT)
        if tournament.snapshot_at is not None
        else "Not taken"
    )
    embed.add_field(name="Snapshot", value=snapshot, inline=True)
    embed.add_field(name="Registered", value=str(len(tournament.registered)), inline=True)
    embed.add_field(name="Active", value="Yes" if tournament.active else "No", inline=True)
    return embed


def build_registration_embed(
    tournament: TournamentRecord, record: PlayerRecord
) -> discord.Embed:
    embed = build_stats_embed(record)
    embed.description = f"Registered to **{tournament.name}**"
    embed.color = discord.Color.green()
    embed.timestamp = datetime.now(UTC)
    return embed


# ---------- Player commands ----------


async def handle_link(
    services: Services, interaction: discord.Interaction, username: str
) -> None:
    try:
        lookup = normalize_tetrio_lookup(username)
        await defer(interaction)
        record = await asyncio.to_thread(services.players.link, interaction.user.id, lookup)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(
        interaction,
        f"Linked to {record.username or record.tetrio_id}.",
        embed=build_stats_embed(record),
    )


async def handle_unlink(services: Services, interaction: discord.Interaction) -> None:
    try:
        await asyncio.to_thread(services.players.unlink_by_discord, interaction.user.id)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(interaction, "Your TETR.IO account was unlinked.")


async def handle_stats(
    services: Services,
    interaction: discord.Interaction,
    username: str | None = None,
    member: discord.abc.User | None = None,
) -> None:
    try:
        lookup = _lookup_or_none(username)
        await defer(interaction)
        if lookup is None:
            discord_id = (member or interaction.user).id
            linked = await asyncio.to_thread(services.players.get_by_discord_id, discord_id)
            if linked is None:
                raise NotFoundError(f"<@{discord_id}> has no linked TETR.IO account")
            lookup = linked.tetrio_id
        record = await asyncio.to_thread(services.players.refresh_one, lookup)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(interaction, embed=build_stats_embed(record))


async def handle_register(
    services: Services, interaction: discord.Interaction, username: str | None = None
) -> None:
    try:
        lookup = _lookup_or_none(username)
        await defer(interaction)
        record = await asyncio.to_thread(
            services.tournaments.register, services.players, lookup, interaction.user.id
        )
        tournament = await asyncio.to_thread(services.tournaments.get_active)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    if tournament is None:
        await send_ephemeral(interaction, "Registered.")
        return
    await send_ephemeral(interaction, embed=build_registration_embed(tournament, record))


async def handle_unregister(services: Services, interaction: discord.Interaction) -> None:
    try:
        await asyncio.to_thread(
            services.tournaments.unregister_by_discord, services.players, interaction.user.id
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(interaction, "You were unregistered from the current tournament.")


async def handle_whois(
    services: Services, interaction: discord.Interaction, username: str
) -> None:
    """Show the Discord user linked to a TETR.IO account."""
    try:
        lookup = normalize_tetrio_lookup(username)
        record = await asyncio.to_thread(services.players.resolve, lookup)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    if record is None:
        await send_ephemeral(interaction, f"TETR.IO user `{lookup}` was not found.")
        return
    name = record.username or record.tetrio_id
    if record.discord_id is None:
        await send_ephemeral(
            interaction, f"TETR.IO user `{name}` is not linked to any Discord user."
        )
        return

    text = f"TETR.IO user `{name}` is linked to <@{record.discord_id}>"
    guild = interaction.guild
    if guild is not None:
        present = guild.get_member(record.discord_id) is not None
        text += " and is present on the server" if present else " and is **not** on the server"
    await send_ephemeral(interaction, text + ".")


async def handle_eligible(
    services: Services, interaction: discord.Interaction, username: str | None = None
) -> None:
    """Tell whether a player could register to the active tournament right now."""
    try:
        lookup = _lookup_or_none(username)
        await defer(interaction)
        if lookup is None:
            linked = await asyncio.to_thread(
                services.players.get_by_discord_id, interaction.user.id
            )
            if linked is None:
                raise MissingArgumentError("username")
            lookup = linked.tetrio_id
        check = await asyncio.to_thread(
            services.tournaments.check_eligibility, services.players, lookup
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    name = check.player.username or check.player.tetrio_id
    if check.rejection is None:
        await send_ephemeral(
            interaction, f"\N{LARGE GREEN SQUARE} {name} can play in {check.tournament.name}!"
        )
        return
    await send_ephemeral(
        interaction,
        f"\N{LARGE RED SQUARE} {name} cannot play in {check.tournament.name}: "
        f"{check.rejection.describe()}.",
    )


def _check_in(services: Services, discord_id: int, action: CheckInAction) -> TournamentRecord:
    tournament = services.tournaments.get_active()
    if tournament is None:
        raise NoTournamentActiveError("There is no tournament ongoing")
    player = services.players.get_by_discord_id(discord_id)
    if player is None or not services.tournaments.player_is_registered(tournament, player):
        raise NotRegisteredError(f"{discord_id} is not registered to {tournament.shorthand}")
    services.checkins.record(tournament.shorthand, discord_id, action)
    return tournament


async def handle_checkin(
    services: Services, interaction: discord.Interaction, undo: bool = False
) -> None:
    action: CheckInAction = "remove" if undo else "add"
    try:
        tournament = await asyncio.to_thread(_check_in, services, interaction.user.id, action)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    verb = "Checked out of" if undo else "Checked in to"
    await send_ephemeral(interaction, f"{verb} {tournament.name}.")


async def handle_reaction(
    services: Services, payload: discord.RawReactionActionEvent, action: CheckInAction
) -> bool:
    """Record check-ins made by reacting to the active tournament's check-in message."""
    if str(payload.emoji) != CHECK_IN_EMOJI:
        return False
    tournament = await asyncio.to_thread(services.tournaments.get_active)
    if tournament is None or tournament.check_in_message_id != payload.message_id:
        return False
    try:
        await asyncio.to_thread(_check_in, services, payload.user_id, action)
    except UcHelperError as exc:
        log.info("Ignoring check-in reaction from %s: %s", payload.user_id, exc)
        return False
    return True


# ---------- Staff commands ----------


async def handle_create(
    services: Services,
    interaction: discord.Interaction,
    name: str,
    shorthand: str,
    max_rank: str | None = None,
    max_rd: float | None = None,
    min_games: int | None = None,
) -> None:
    try:
        restrictions = parse_restrictions(max_rank, max_rd, min_games)
        record = await asyncio.to_thread(
            services.tournaments.create, name, shorthand, restrictions
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(interaction, "Tournament created.", embed=build_tournament_embed(record))


async def handle_activate(
    services: Services, interaction: discord.Interaction, tournament: str | None = None
) -> None:
    try:
        record = await asyncio.to_thread(services.tournaments.set_active, tournament)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    if record is None:
        await send_ephemeral(interaction, "No tournament is active anymore.")
        return
    await send_ephemeral(
        interaction, f"{record.name} is now active.", embed=build_tournament_embed(record)
    )


async def handle_snapshot(
    services: Services, interaction: discord.Interaction, tournament: str
) -> None:
    await defer(interaction)
    try:
        snapshot = await asyncio.to_thread(
            services.tournaments.capture_snapshot, services.players, tournament
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(
        interaction,
        f"Snapshot of {len(snapshot)} ranked players taken at "
        f"{snapshot.taken_at.strftime(DATE_DISPLAY_FORMAT)}.",
    )


async def handle_update_all(services: Services, interaction: discord.Interaction) -> None:
    """Refresh every ranked player from the leaderboard without taking a snapshot."""
    await defer(interaction)
    try:
        fetched = await asyncio.to_thread(services.players.refresh_from_leaderboard)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    log.info("Staff %s refreshed %d players", interaction.user.id, len(fetched))
    await send_ephemeral(interaction, f"Updated {len(fetched)} players from the leaderboard.")


async def handle_staff_register(
    services: Services,
    interaction: discord.Interaction,
    member: discord.abc.User,
    username: str | None = None,
    override: bool = True,
) -> None:
    try:
        lookup = _lookup_or_none(username)
        await defer(interaction)
        record = await asyncio.to_thread(
            services.tournaments.register,
            services.players,
            lookup,
            member.id,
            override,
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    log.info(
        "Staff %s registered %s (override=%s)", interaction.user.id, record.tetrio_id, override
    )
    await send_ephemeral(
        interaction,
        f"Registered {record.username or record.tetrio_id} for <@{member.id}>.",
    )


async def handle_staff_unregister(
    services: Services, interaction: discord.Interaction, username: str
) -> None:
    try:
        lookup = normalize_tetrio_lookup(username)
        await asyncio.to_thread(
            services.tournaments.unregister_by_external, services.players, lookup
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(interaction, f"Unregistered {lookup}.")


async def handle_staff_unlink(
    services: Services, interaction: discord.Interaction, username: str
) -> None:
    try:
        lookup = normalize_tetrio_lookup(username)
        await asyncio.to_thread(services.players.unlink_by_external, lookup)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    await send_ephemeral(interaction, f"Unlinked {lookup}.")


async def handle_list(services: Services, interaction: discord.Interaction) -> None:
    try:
        tournaments = await asyncio.to_thread(services.tournaments.list)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    if not tournaments:
        await send_ephemeral(interaction, "No tournaments have been created yet.")
        return
    lines = [
        f"{'**' if t.active else ''}{t.name} ({t.shorthand}){'**' if t.active else ''}"
        f" - {len(t.registered)} registered"
        for t in tournaments
    ]
    await send_ephemeral(interaction, "\n".join(lines))


def _registration_lines(services: Services, tournament: str) -> list[str]:
    record = services.tournaments.get(tournament)
    if record is None:
        raise NotFoundError(f"Tournament {tournament} does not exist")
    lines: list[str] = []
    for position, entry in enumerate(record.registered, start=1):
        player = services.players.get_by_external_id(entry.tetrio_id)
        name = player.username if player is not None and player.username else entry.tetrio_id
        mention = f" <@{player.discord_id}>" if player and player.discord_id else ""
        lines.append(f"{position}. {name}{mention}")
    return lines


async def handle_registrations(
    services: Services, interaction: discord.Interaction, tournament: str
) -> None:
    try:
        lines = await asyncio.to_thread(_registration_lines, services, tournament)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    if not lines:
        await send_ephemeral(interaction, "Nobody has registered yet.")
        return
    extra = len(lines) - MAX_LIST_LINES
    text = "\n".join(lines[:MAX_LIST_LINES])
    if extra > 0:
        text += f"\n... and {extra} more"
    await send_ephemeral(interaction, text)


async def handle_checkins(
    services: Services, interaction: discord.Interaction, tournament: str
) -> None:
    try:
        checked_in = await asyncio.to_thread(services.checkins.checked_in, tournament)
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    if not checked_in:
        await send_ephemeral(interaction, "Nobody has checked in yet.")
        return
    mentions = [f"{position}. <@{discord_id}>" for position, discord_id in enumerate(checked_in, 1)]
    await send_ephemeral(
        interaction,
        f"{len(checked_in)} checked in:\n" + "\n".join(mentions[:MAX_LIST_LINES]),
    )


async def handle_post_check_in(
    services: Services, interaction: discord.Interaction, tournament: str
) -> None:
    """Post a check-in message in the current channel and remember it."""
    channel = interaction.channel
    if not isinstance(channel, discord.abc.Messageable):
        await send_ephemeral(interaction, "Run this command in a text channel.")
        return
    try:
        record = await asyncio.to_thread(services.tournaments.get, tournament)
        if record is None:
            raise NotFoundError(f"Tournament {tournament} does not exist")
        message = await channel.send(
            f"**{record.name}** check-in is open! React with {CHECK_IN_EMOJI} to check in."
        )
        await message.add_reaction(CHECK_IN_EMOJI)
        await asyncio.to_thread(
            services.tournaments.set_check_in_message, record.shorthand, message.id
        )
    except UcHelperError as exc:
        await send_ephemeral(interaction, error_message(exc))
        return
    except discord.DiscordException as exc:
        log.warning("Could not post check-in message: %s", exc)
        await send_ephemeral(interaction, "Could not post the check-in message here.")
        return
    await send_ephemeral(interaction, "Check-in message posted.")


# ---------- Wiring ----------


async def _check_failure_handler(  # pragma: no cover - Discord slash command wiring
    interaction: discord.Interaction, error: app_commands.AppCommandError
) -> None:
    if isinstance(error, app_commands.CheckFailure):
        await send_ephemeral(interaction, str(error))
        return
    log.exception("Unhandled command error", exc_info=error)
    await send_ephemeral(interaction, "Something went wrong, please contact staff.")


def register_commands(  # pragma: no cover - Discord slash command wiring
    tree: app_commands.CommandTree,
    services: Services,
    *,
    guild: discord.abc.Snowflake | None = None,
) -> None:
    """Attach the player commands and the ``/staff`` group to ``tree``."""
    scope = {"guild": guild} if guild is not None else {}

    @tree.command(name="link", description="Link your Discord account to TETR.IO", **scope)
    async def link_command(interaction: discord.Interaction, username: str) -> None:
        await handle_link(services, interaction, username)

    @tree.command(name="unlink", description="Unlink your TETR.IO account", **scope)
    async def unlink_command(interaction: discord.Interaction) -> None:
        await handle_unlink(services, interaction)

    @tree.command(name="stats", description="Show TETR.IO league stats", **scope)
    async def stats_command(
        interaction: discord.Interaction,
        username: str | None = None,
        member: discord.Member | None = None,
    ) -> None:
        await handle_stats(services, interaction, username, member)

    @tree.command(name="register", description="Register to the current tournament", **scope)
    async def register_command(
        interaction: discord.Interaction, username: str | None = None
    ) -> None:
        await handle_register(services, interaction, username)

    @tree.command(name="unregister", description="Leave the current tournament", **scope)
    async def unregister_command(interaction: discord.Interaction) -> None:
        await handle_unregister(services, interaction)

    @tree.command(name="checkin", description="Check in to the current tournament", **scope)
    async def checkin_command(interaction: discord.Interaction, undo: bool = False) -> None:
        await handle_checkin(services, interaction, undo)

    @tree.command(name="whois", description="Show who is linked to a TETR.IO account", **scope)
    async def whois_command(interaction: discord.Interaction, username: str) -> None:
        await handle_whois(services, interaction, username)

    @tree.command(
        name="eligible", description="Check if you can play in the current tournament", **scope
    )
    async def eligible_command(
        interaction: discord.Interaction, username: str | None = None
    ) -> None:
        await handle_eligible(services, interaction, username)

    staff = app_commands.Group(name="staff", description="Tournament staff commands")

    @staff.command(name="create", description="Create a tournament")
    @require_staff(services.staff_role_id)
    async def create_command(
        interaction: discord.Interaction,
        name: str,
        shorthand: str,
        max_rank: str | None = None,
        max_rd: float | None = None,
        min_games: int | None = None,
    ) -> None:
        await handle_create(services, interaction, name, shorthand, max_rank, max_rd, min_games)

    @staff.command(name="activate", description="Open a tournament for registration")
    @require_staff(services.staff_role_id)
    async def activate_command(interaction: discord.Interaction, tournament: str) -> None:
        await handle_activate(services, interaction, tournament)

    @staff.command(name="deactivate", description="Close registration for all tournaments")
    @require_staff(services.staff_role_id)
    async def deactivate_command(interaction: discord.Interaction) -> None:
        await handle_activate(services, interaction, None)

    @staff.command(name="snapshot", description="Take the announcement-day leaderboard snapshot")
    @require_staff(services.staff_role_id)
    async def snapshot_command(interaction: discord.Interaction, tournament: str) -> None:
        await handle_snapshot(services, interaction, tournament)

    @staff.command(name="update-all", description="Refresh all ranked players from the leaderboard")
    @require_staff(services.staff_role_id)
    async def update_all_command(interaction: discord.Interaction) -> None:
        await handle_update_all(services, interaction)

    @staff.command(name="register", description="Register a member to the current tournament")
    @require_staff(services.staff_role_id)
    async def staff_register_command(
        interaction: discord.Interaction,
        member: discord.Member,
        username: str | None = None,
        override: bool = True,
    ) -> None:
        await handle_staff_register(services, interaction, member, username, override)

    @staff.command(name="unregister", description="Remove a player from the current tournament")
    @require_staff(services.staff_role_id)
    async def staff_unregister_command(interaction: discord.Interaction, username: str) -> None:
        await handle_staff_unregister(services, interaction, username)

    @staff.command(name="unlink", description="Unlink a TETR.IO account from its Discord user")
    @require_staff(services.staff_role_id)
    async def staff_unlink_command(interaction: discord.Interaction, username: str) -> None:
        await handle_staff_unlink(services, interaction, username)

    @staff.command(name="list", description="List tournaments")
    @require_staff(services.staff_role_id)
    async def list_command(interaction: discord.Interaction) -> None:
        await handle_list(services, interaction)

    @staff.command(name="registrations", description="List players registered to a tournament")
    @require_staff(services.staff_role_id)
    async def registrations_command(interaction: discord.Interaction, tournament: str) -> None:
        await handle_registrations(services, interaction, tournament)

    @staff.command(name="checkins", description="List members checked in to a tournament")
    @require_staff(services.staff_role_id)
    async def checkins_command(interaction: discord.Interaction, tournament: str) -> None:
        await handle_checkins(services, interaction, tournament)

    @staff.command(name="checkin-message", description="Post the check-in message here")
    @require_staff(services.staff_role_id)
    async def checkin_message_command(interaction: discord.Interaction, tournament: str) -> None:
        await handle_post_check_in(services, interaction, tournament)

    staff.error(_check_failure_handler)
    tree.add_command(staff, **scope)


__all__ = [
    "CHECK_IN_EMOJI",
    "Services",
    "build_registration_embed",
    "build_stats_embed",
    "build_tournament_embed",
    "handle_activate",
    "handle_checkin",
    "handle_checkins",
    "handle_create",
    "handle_eligible",
    "handle_link",
    "handle_list",
    "handle_post_check_in",
    "handle_reaction",
    "handle_register",
    "handle_registrations",
    "handle_snapshot",
    "handle_staff_register",
    "handle_staff_unlink",
    "handle_staff_unregister",
    "handle_stats",
    "handle_unlink",
    "handle_unregister",
    "handle_update_all",
    "handle_whois",
    "is_staff",
    "register_commands",
    "require_staff",
    "send_ephemeral",
]
