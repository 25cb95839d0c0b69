#!/usr/bin/env python3
"""One-off tool for creating a tournament without going through Discord.

Typical usage:

    python scripts/create_tournament.py --table UcHelperTable \
        --name "Underdogs Cup 11" --shorthand UC11 --max-rank s+ --max-rd 100 --min-games 10

Add ``--activate`` to open it for registration straight away.
"""

from __future__ import annotations

import argparse
import logging
import sys

import boto3

from uc_helper.errors import UcHelperError
from uc_helper.models import TournamentRecord
from uc_helper.storage import RegistryStorage
from uc_helper.tournaments import TournamentRegistry
from uc_helper.validation import parse_restrictions

log = logging.getLogger(__name__)


def create_tournament(
    table,
    *,
    name: str,
    shorthand: str,
    max_rank: str,
    max_rd: float,
    min_games: int,
    activate: bool = False,
) -> TournamentRecord:
    registry = TournamentRegistry(RegistryStorage(table))
    record = registry.create(name, shorthand, parse_restrictions(max_rank, max_rd, min_games))
    log.info(
        "Created %s (%s): max rank %s, max RD %.2f, min games %d",
        record.name,
        record.shorthand,
        record.restrictions.max_rank,
        record.restrictions.max_rating_deviation,
        record.restrictions.min_games_played,
    )
    if activate:
        registry.set_active(record.shorthand)
        log.info("%s is now the active tournament", record.name)
    return record


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a tournament")
    parser.add_argument("--table", required=True, help="DynamoDB table name")
    parser.add_argument("--name", default="Underdogs Cup 11", help="Tournament name")
    parser.add_argument("--shorthand", default="UC11", help="Unique short name")
    parser.add_argument("--max-rank", default="s+", help="Highest allowed rank code")
    parser.add_argument(
        "--max-rd", type=float, default=100.0, help="Highest allowed rating deviation"
    )
    parser.add_argument(
        "--min-games", type=int, default=10, help="Ranked games needed on announcement day"
    )
    parser.add_argument("--region", default=None, help="AWS region for boto3")
    parser.add_argument(
        "--profile",
        default=None,
        help="Optional AWS profile name for boto3",
    )
    parser.add_argument(
        "--activate",
        action="store_true",
        help="Make the new tournament the active one.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    session_kwargs = {"profile_name": args.profile} if args.profile else {}
    session = boto3.Session(**session_kwargs)
    table = session.resource("dynamodb", region_name=args.region).Table(args.table)

    try:
        create_tournament(
            table,
            name=args.name,
            shorthand=args.shorthand,
            max_rank=args.max_rank,
            max_rd=args.max_rd,
            min_games=args.min_games,
            activate=args.activate,
        )
    except UcHelperError as exc:
        log.error("Could not create tournament: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
