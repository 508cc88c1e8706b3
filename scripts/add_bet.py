#!/usr/bin/env python3
"""Record a bet from the command line.

Usage:
    python scripts/add_bet.py --event "Spain vs Italy|1X2|1.8" --amount 100
    python scripts/add_bet.py --event "A vs B|Total>2.5|1.5" --event "C vs D|1|2.0" \
        --amount 50 --profile 1 --image receipt.jpg
    python scripts/add_bet.py --id 42 --status win      # settle an existing bet
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.logging_config import setup_logging  # noqa: E402


def parse_event(text: str):
    """'name|market|coef' -> Event."""
    from src.store.models import Event

    parts = [p.strip() for p in text.split("|")]
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"expected 'name|market|coef', got {text!r}")
    try:
        coef = float(parts[2])
    except ValueError:
        raise argparse.ArgumentTypeError(f"coef must be a number: {parts[2]!r}") from None
    return Event(name=parts[0], market=parts[1], coef=coef)


async def run(args, log) -> int:
    from src.connectors.remote import RemoteError
    from src.repository.base import NotFoundError
    from src.repository.normalize import ValidationError
    from src.repository.tracker import BetTracker
    from src.store.models import Bet

    async with BetTracker.from_settings(db_path=args.db) as tracker:
        if tracker.is_remote_configured():
            await tracker.check_connection()
        if args.profile is not None:
            tracker.set_active_profile(args.profile)

        if args.id is not None:
            bet = await tracker.get_bet(args.id)
            if bet is None:
                print(f"Bet #{args.id} not found")
                return 1
            if args.status:
                bet.status = args.status
            if args.amount is not None:
                bet.amount = args.amount
            if args.event:
                bet.events = args.event
        else:
            if not args.event or args.amount is None:
                print("--event and --amount are required for a new bet")
                return 2
            bet = Bet(events=args.event, amount=args.amount, status=args.status or "pending")

        try:
            saved = await tracker.save_bet(bet, image_path=args.image)
        except ValidationError as e:
            print(f"Invalid bet: {e}")
            return 2
        except (RemoteError, NotFoundError) as e:
            log.error("Save failed: %s", e)
            print(f"Save failed: {e}")
            return 1

    print(
        f"Saved bet #{saved.id}: {saved.type} x{saved.total_coef:.2f} "
        f"amount={saved.amount:.2f} status={saved.status}"
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Add or update a bet")
    parser.add_argument("--id", type=int, default=None, help="Update an existing bet")
    parser.add_argument(
        "--event", action="append", type=parse_event, default=[],
        help="'name|market|coef' (repeat for an express bet)",
    )
    parser.add_argument("--amount", type=float, default=None)
    parser.add_argument("--status", default=None, help="pending / win / lose / return")
    parser.add_argument("--profile", default=None, help="Profile id the bet is tagged with")
    parser.add_argument("--image", default=None, help="Receipt photo to attach")
    parser.add_argument("--db", default=None, help="Local DB path override")
    args = parser.parse_args()

    session_id = setup_logging()
    log = logging.LoggerAdapter(logging.getLogger(__name__), {"session_id": session_id})
    sys.exit(asyncio.run(run(args, log)))


if __name__ == "__main__":
    main()
