"""Domain models for bets and profiles.

Dataclasses only, no DB or HTTP access. Wire/storage records are plain
dicts; see src/repository/normalize.py for the mapping.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum


class BetStatus(StrEnum):
    PENDING = "pending"
    WIN = "win"
    LOSE = "lose"
    RETURN = "return"


class BetType(StrEnum):
    SINGLE = "single"
    EXPRESS = "express"


ALL = "all"  # filter sentinel: no filter on that field


@dataclass
class Event:
    name: str
    market: str
    coef: float


@dataclass
class Bet:
    events: list[Event]
    amount: float
    status: str = BetStatus.PENDING
    profile_id: int | None = None
    id: int | None = None
    date: str = ""
    image: str | None = None
    # 保存時に再計算される派生フィールド
    total_coef: float = 1.0
    type: str = BetType.SINGLE

    def recompute(self) -> None:
        """Refresh total_coef and type from the current events."""
        self.total_coef = calc_total_coef(self.events)
        self.type = derive_bet_type(self.events)


@dataclass
class Profile:
    name: str
    description: str = ""
    color: str = "#3b82f6"
    icon: str = "fa-user"
    id: int | None = None
    created_at: str = ""


@dataclass
class BetFilter:
    status: str = ALL
    profile: int | str | None = ALL

    def matches(self, bet: Bet) -> bool:
        if self.status not in (None, ALL) and bet.status != self.status:
            return False
        if self.profile not in (None, ALL) and bet.profile_id != self.profile:
            return False
        return True

    def as_remote_filters(self) -> dict[str, object]:
        return {"status": self.status, "profile_id": self.profile}

    @property
    def is_unfiltered(self) -> bool:
        return self.status in (None, ALL) and self.profile in (None, ALL)


def calc_total_coef(events: list[Event]) -> float:
    """Product of all event coefficients (1.0 for no events)."""
    return math.prod(e.coef for e in events) if events else 1.0


def derive_bet_type(events: list[Event]) -> str:
    return BetType.EXPRESS if len(events) > 1 else BetType.SINGLE
