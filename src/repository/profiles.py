"""Profile repository with cascade delete into bets."""

from __future__ import annotations

import logging
from typing import Any

from src.repository.base import Repository, now_iso
from src.repository.bets import BetRepository
from src.repository.normalize import profile_from_wire, profile_to_wire, validate_profile
from src.store.models import ALL, Profile
from src.store.schema import PROFILES

logger = logging.getLogger(__name__)


class ProfileRepository(Repository[Profile]):
    table = PROFILES
    label = "profile"

    def __init__(self, *args, bets: BetRepository, **kwargs):
        super().__init__(*args, **kwargs)
        self.bets = bets

    def from_wire(self, raw: dict[str, Any]) -> Profile:
        return profile_from_wire(raw)

    def to_wire(self, item: Profile, *, include_id: bool = True) -> dict[str, Any]:
        return profile_to_wire(item, include_id=include_id)

    def validate(self, item: Profile) -> None:
        validate_profile(item)

    def created_at(self, item: Profile) -> str:
        return item.created_at

    def stamp_new(self, item: Profile) -> None:
        item.created_at = now_iso()
        item.name = item.name.strip()

    def carry_over(self, item: Profile, existing: Profile) -> None:
        item.created_at = existing.created_at
        item.name = item.name.strip()

    async def list(self) -> list[Profile]:
        return await self._list(lambda p: True, {}, True)

    async def save(self, profile: Profile) -> Profile:
        if profile.id is None:
            return await self.create(profile)
        return await self.update(profile)

    async def delete(self, record_id: int) -> None:
        """Delete a profile and every bet tagged with it.

        Bets go first so a remote foreign key never blocks the profile delete.
        """
        self._require_writable()
        pruned = await self.bets.delete_for_profile(record_id)
        await super().delete(record_id)
        if self.session.active_profile == record_id:
            self.session.active_profile = ALL
        logger.info("Profile #%s deleted with %d cached bets", record_id, pruned)
