"""Bet repository."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from src.repository.base import Repository, now_iso
from src.repository.normalize import bet_from_wire, bet_to_wire, validate_bet
from src.store.local_store import StoreInitError
from src.store.models import ALL, Bet, BetFilter
from src.store.schema import BETS

logger = logging.getLogger(__name__)


class BetRepository(Repository[Bet]):
    table = BETS
    label = "bet"

    def from_wire(self, raw: dict[str, Any]) -> Bet:
        return bet_from_wire(raw)

    def to_wire(self, item: Bet, *, include_id: bool = True) -> dict[str, Any]:
        return bet_to_wire(item, include_id=include_id)

    def validate(self, item: Bet) -> None:
        validate_bet(item)

    def created_at(self, item: Bet) -> str:
        return item.date

    def stamp_new(self, item: Bet) -> None:
        item.date = now_iso()
        if item.profile_id is None:
            item.profile_id = self.session.active_profile_id
        item.recompute()

    def carry_over(self, item: Bet, existing: Bet) -> None:
        # date は作成時のみ。呼び出し側の値は無視する
        item.date = existing.date
        if not item.image:
            item.image = existing.image
        item.recompute()

    async def list(self, status: str = ALL, profile: int | str | None = ALL) -> list[Bet]:
        """Bets newest first, filtered by status and profile ("all" = no filter)."""
        if profile not in (None, ALL):
            profile = int(profile)
        flt = BetFilter(status=status, profile=profile)
        return await self._list(flt.matches, flt.as_remote_filters(), flt.is_unfiltered)

    async def save(self, bet: Bet) -> Bet:
        """Create when the bet has no id, otherwise full-record update."""
        if bet.id is None:
            return await self.create(bet)
        return await self.update(bet)

    async def delete_for_profile(self, profile_id: int) -> int:
        """Remove every bet of a profile from the authoritative store and the snapshot.

        Returns the number of bets pruned from the snapshot.
        """
        if self.session.configured:
            await self.remote.delete_where(self.table, {"profile_id": profile_id})
            try:
                self.store.delete_where(self.table, "profile_id", profile_id)
            except (sqlite3.Error, StoreInitError):
                logger.exception("Pruning bets of profile #%s from mirror failed", profile_id)
        else:
            deleted = self.store.delete_where(self.table, "profile_id", profile_id)
            logger.info("Deleted %d local bets of profile #%s", deleted, profile_id)
        return self._drop_from_snapshot(lambda b: b.profile_id == profile_id)
