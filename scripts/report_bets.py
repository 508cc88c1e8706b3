#!/usr/bin/env python3
"""Bet history and dashboard statistics report.

Usage:
    python scripts/report_bets.py                      # All bets, stdout
    python scripts/report_bets.py --status win         # Only won bets
    python scripts/report_bets.py --profile 2 --save   # One profile, also save markdown
    python scripts/report_bets.py --receipt 17         # Write the receipt photo of bet #17
"""

import argparse
import asyncio
import logging
import mimetypes
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.logging_config import setup_logging  # noqa: E402

REPORT_DIR = Path(__file__).resolve().parent.parent / "data" / "reports"


def format_report(bets, stats, profiles) -> str:
    """Markdown report: summary table + bet list."""
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    names = {p.id: p.name for p in profiles}
    lines: list[str] = []

    lines.append("# Bet Tracker Report")
    lines.append(f"Generated: {now}\n")

    lines.append("## Summary\n")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Bets | {stats.total_bets} |")
    lines.append(f"| Settled | {stats.settled_count} |")
    lines.append(f"| Wins | {stats.wins} |")
    lines.append(f"| Win rate | {stats.win_rate_pct:.1f}% |")
    lines.append(f"| Total staked | {stats.total_staked:.2f} |")
    lines.append(f"| Total profit | {stats.total_profit:+.2f} |")
    lines.append(f"| ROI | {stats.roi_pct:+.1f}% |")
    lines.append(f"| Avg coef | {stats.avg_coef:.2f} |")
    lines.append("")

    lines.append("## Bets\n")
    if not bets:
        lines.append("No bets recorded yet.\n")
    else:
        lines.append("| # | Date | Profile | Type | Events | Coef | Amount | Status |")
        lines.append("|---|------|---------|------|--------|------|--------|--------|")
        for b in bets:
            events = "; ".join(f"{e.name} ({e.market} @{e.coef:g})" for e in b.events)
            profile = names.get(b.profile_id, "-")
            lines.append(
                f"| {b.id} | {b.date[:10]} | {profile} | {b.type} | {events:.60s} "
                f"| {b.total_coef:.2f} | {b.amount:.2f} | {b.status} |"
            )
        lines.append("")
    return "\n".join(lines)


def write_receipt(bet, out_dir: Path) -> Path:
    """Decode the bet's stored photo into a file next to the reports."""
    from src.attachments.images import decode_receipt

    mime, data = decode_receipt(bet.image)
    ext = mimetypes.guess_extension(mime) or ".bin"
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"receipt-{bet.id}{ext}"
    path.write_bytes(data)
    return path


async def run(args, log) -> int:
    from src.repository.tracker import BetTracker

    async with BetTracker.from_settings(db_path=args.db) as tracker:
        if tracker.is_remote_configured():
            online = await tracker.check_connection()
            log.info("Remote configured, online=%s", online)

        if args.receipt is not None:
            bet = await tracker.get_bet(args.receipt)
            if bet is None or not bet.image:
                print(f"Bet #{args.receipt} has no receipt photo")
                return 1
            print(f"Receipt saved: {write_receipt(bet, REPORT_DIR)}")
            return 0

        bets = await tracker.list_bets(status=args.status, profile=args.profile)
        profiles = await tracker.list_profiles()
        stats = tracker.stats(profile=args.profile)

    report = format_report(bets, stats, profiles)
    if args.save:
        REPORT_DIR.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        path = REPORT_DIR / f"bets-{today}.md"
        path.write_text(report)
        print(f"Report saved: {path}")
    print(report)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Bet history report")
    parser.add_argument("--status", default="all", help="pending / win / lose / return / all")
    parser.add_argument("--profile", default="all", help="Profile id or 'all'")
    parser.add_argument("--db", default=None, help="Local DB path override")
    parser.add_argument("--save", action="store_true", help="Save report as markdown file")
    parser.add_argument("--receipt", type=int, default=None, help="Export receipt photo of a bet id")
    args = parser.parse_args()

    session_id = setup_logging()
    log = logging.LoggerAdapter(logging.getLogger(__name__), {"session_id": session_id})
    sys.exit(asyncio.run(run(args, log)))


if __name__ == "__main__":
    main()
