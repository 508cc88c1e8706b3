"""BetTracker: the single API the UI / scripts talk to.

Usage:
    async with BetTracker.from_settings() as tracker:
        bets = await tracker.list_bets(status="win")
        await tracker.save_bet(Bet(events=[Event("A vs B", "1X2", 1.8)], amount=100))
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from src.analysis.stats import BetStats, compute_stats
from src.attachments.images import encode_receipt
from src.config import settings
from src.connectors.remote import RemoteClient
from src.repository.bets import BetRepository
from src.repository.profiles import ProfileRepository
from src.repository.session import LocalIdGenerator, Notifier, TrackerSession, log_notifier
from src.store.db_path import resolve_db_path
from src.store.local_store import LocalStore
from src.store.models import ALL, Bet, Profile

logger = logging.getLogger(__name__)


class BetTracker:
    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient | None = None,
        *,
        notify: Notifier = log_notifier,
        ids: LocalIdGenerator | None = None,
    ):
        # モードは起動時に一度だけ決定 (remote の有無)
        self.session = TrackerSession(configured=remote is not None, notify=notify)
        self.store = store
        self.remote = remote
        ids = ids or LocalIdGenerator()
        self.bets = BetRepository(self.session, store, remote, ids)
        self.profiles = ProfileRepository(self.session, store, remote, ids, bets=self.bets)

    @classmethod
    def from_settings(
        cls,
        *,
        db_path: str | None = None,
        notify: Notifier = log_notifier,
    ) -> BetTracker:
        """Build from settings: remote mode only when URL and key are real values."""
        store = LocalStore(resolve_db_path(db_path))
        remote = RemoteClient() if settings.remote_configured else None
        if remote is None:
            logger.info("Remote not configured, running in local-only mode")
        return cls(store, remote, notify=notify)

    async def open(self) -> None:
        """Open the local store. StoreInitError propagates: the app is unusable."""
        self.store.open()
        logger.info(
            "BetTracker ready (mode=%s)", "remote" if self.session.configured else "local"
        )

    async def close(self) -> None:
        if self.remote is not None:
            await self.remote.aclose()

    async def __aenter__(self) -> BetTracker:
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -- status ----------------------------------------------------------

    def is_remote_configured(self) -> bool:
        return self.session.configured

    def is_online(self) -> bool:
        return self.session.online

    def set_online(self, online: bool) -> None:
        """Feed a network status signal (e.g. from the UI shell)."""
        self.session.set_online(online)

    async def check_connection(self) -> bool:
        """Probe the remote and update the online flag. Local mode is always online."""
        if self.remote is None:
            return True
        online = await self.remote.ping()
        self.session.set_online(online)
        return online

    def set_active_profile(self, profile: int | str | None) -> None:
        """Profile filter new bets are tagged with ("all" = untagged)."""
        self.session.active_profile = ALL if profile in (None, ALL) else int(profile)

    # -- bets --------------------------------------------------------------

    async def list_bets(self, status: str = ALL, profile: int | str | None = ALL) -> list[Bet]:
        return await self.bets.list(status=status, profile=profile)

    async def get_bet(self, bet_id: int) -> Bet | None:
        return await self.bets.get(bet_id)

    async def save_bet(self, bet: Bet, image_path: Path | str | None = None) -> Bet:
        """Create or update a bet, optionally attaching a receipt photo.

        The photo is fully encoded before any storage call starts.
        """
        if image_path is not None:
            bet.image = await asyncio.to_thread(encode_receipt, image_path)
        return await self.bets.save(bet)

    async def delete_bet(self, bet_id: int) -> None:
        await self.bets.delete(bet_id)

    # -- profiles ----------------------------------------------------------

    async def list_profiles(self) -> list[Profile]:
        return await self.profiles.list()

    async def get_profile(self, profile_id: int) -> Profile | None:
        return await self.profiles.get(profile_id)

    async def save_profile(self, profile: Profile) -> Profile:
        return await self.profiles.save(profile)

    async def delete_profile(self, profile_id: int) -> None:
        await self.profiles.delete(profile_id)

    # -- derived views -------------------------------------------------------

    def stats(self, profile: int | str | None = ALL) -> BetStats:
        """Statistics over the cached bets, optionally for one profile."""
        bets = self.bets.snapshot
        if profile not in (None, ALL):
            bets = [b for b in bets if b.profile_id == int(profile)]
        return compute_stats(bets)
