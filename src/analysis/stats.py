"""Dashboard statistics over a list of bets.

Pure functions: callers pass the repository snapshot (or any filtered
subset of it); nothing here touches storage.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.store.models import BetStatus

if TYPE_CHECKING:
    from src.store.models import Bet


@dataclass(frozen=True)
class BetStats:
    total_bets: int
    settled_count: int
    wins: int
    total_profit: float
    total_staked: float
    roi_pct: float
    win_rate_pct: float
    avg_coef: float
    by_status: dict[str, int] = field(default_factory=dict)


def calculate_profit(bet: Bet) -> float:
    """Net result of a bet.

    win: amount * total_coef - amount
    lose: -amount
    return / pending: 0
    """
    if bet.status == BetStatus.WIN:
        return bet.amount * bet.total_coef - bet.amount
    if bet.status == BetStatus.LOSE:
        return -bet.amount
    return 0.0


def compute_stats(bets: list[Bet]) -> BetStats:
    """Total profit, ROI, win rate over settled bets and average coefficient."""
    total_profit = sum(calculate_profit(b) for b in bets)
    total_staked = sum(b.amount for b in bets)
    settled = [b for b in bets if b.status != BetStatus.PENDING]
    wins = sum(1 for b in bets if b.status == BetStatus.WIN)

    roi = (total_profit / total_staked) * 100 if total_staked > 0 else 0.0
    win_rate = (wins / len(settled)) * 100 if settled else 0.0
    avg_coef = sum(b.total_coef for b in bets) / len(bets) if bets else 0.0

    return BetStats(
        total_bets=len(bets),
        settled_count=len(settled),
        wins=wins,
        total_profit=total_profit,
        total_staked=total_staked,
        roi_pct=roi,
        win_rate_pct=win_rate,
        avg_coef=avg_coef,
        by_status=dict(Counter(str(b.status) for b in bets)),
    )
