"""Tests for bet CRUD through the tracker in local and remote mode."""

from __future__ import annotations

import json

import pytest

from src.connectors.remote import OfflineError, RemoteError
from src.repository.base import NotFoundError
from src.repository.normalize import ValidationError
from src.repository.tracker import BetTracker
from src.store.local_store import LocalStore
from src.store.models import Bet
from tests.helpers import FakeRest, bet_row, make_bet, make_event


class TestLocalMode:
    @pytest.mark.asyncio
    async def test_create_single_bet(self, local_tracker: BetTracker, store: LocalStore):
        saved = await local_tracker.save_bet(make_bet())
        assert saved.id == 1_000_000
        assert saved.total_coef == pytest.approx(1.8)
        assert saved.type == "single"
        assert saved.status == "pending"
        assert saved.date
        assert store.get_by_id("bets", saved.id)["amount"] == 100.0

    @pytest.mark.asyncio
    async def test_settled_win_profit(self, local_tracker: BetTracker):
        saved = await local_tracker.save_bet(make_bet())
        saved.status = "win"
        await local_tracker.save_bet(saved)
        await local_tracker.list_bets()
        stats = local_tracker.stats()
        assert stats.total_profit == pytest.approx(80.0)
        assert stats.win_rate_pct == 100.0

    @pytest.mark.asyncio
    async def test_express_bet(self, local_tracker: BetTracker):
        bet = make_bet(events=[make_event("A vs B", "1", 1.5), make_event("C vs D", "2", 2.0)])
        saved = await local_tracker.save_bet(bet)
        assert saved.total_coef == pytest.approx(3.0)
        assert saved.type == "express"

    @pytest.mark.asyncio
    async def test_ids_unique_under_same_clock(self, local_tracker: BetTracker):
        first = await local_tracker.save_bet(make_bet())
        second = await local_tracker.save_bet(make_bet())
        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_ids_above_stored_max(self, store: LocalStore):
        store.put("bets", bet_row(5_000_000))
        tracker = BetTracker(store)
        saved = await tracker.save_bet(make_bet())
        assert saved.id > 5_000_000

    @pytest.mark.asyncio
    async def test_list_newest_first_with_filter(self, local_tracker: BetTracker, store: LocalStore):
        store.put("bets", bet_row(1, status="win", created_at="2026-01-01T00:00:00+00:00"))
        store.put("bets", bet_row(2, status="lose", created_at="2026-01-03T00:00:00+00:00"))
        store.put("bets", bet_row(3, status="win", created_at="2026-01-02T00:00:00+00:00"))

        assert [b.id for b in await local_tracker.list_bets()] == [2, 3, 1]
        assert [b.id for b in await local_tracker.list_bets(status="win")] == [3, 1]

    @pytest.mark.asyncio
    async def test_list_by_profile(self, local_tracker: BetTracker, store: LocalStore):
        store.put("bets", bet_row(1, profile_id=1))
        store.put("bets", bet_row(2, profile_id=2))
        assert [b.id for b in await local_tracker.list_bets(profile="2")] == [2]

    @pytest.mark.asyncio
    async def test_update_keeps_creation_date(self, local_tracker: BetTracker):
        saved = await local_tracker.save_bet(make_bet())
        original_date = saved.date
        saved.date = "1999-01-01T00:00:00+00:00"
        saved.amount = 250.0
        updated = await local_tracker.save_bet(saved)
        assert updated.date == original_date
        assert updated.amount == 250.0
        assert (await local_tracker.get_bet(saved.id)).date == original_date

    @pytest.mark.asyncio
    async def test_update_keeps_image_when_none_given(self, local_tracker: BetTracker):
        saved = await local_tracker.save_bet(make_bet(image="data:image/png;base64,AAAA"))
        saved.image = None
        saved.status = "lose"
        updated = await local_tracker.save_bet(saved)
        assert updated.image == "data:image/png;base64,AAAA"

    @pytest.mark.asyncio
    async def test_update_missing_bet(self, local_tracker: BetTracker):
        with pytest.raises(NotFoundError):
            await local_tracker.save_bet(make_bet(id=42))

    @pytest.mark.asyncio
    async def test_invalid_bet_not_persisted(self, local_tracker: BetTracker, store: LocalStore):
        with pytest.raises(ValidationError):
            await local_tracker.save_bet(make_bet(events=[]))
        with pytest.raises(ValidationError):
            await local_tracker.save_bet(make_bet(events=[make_event(coef=0.5)]))
        with pytest.raises(ValidationError):
            await local_tracker.save_bet(make_bet(events=[make_event(coef=float("nan"))]))
        assert store.get_all("bets") == []
        assert await local_tracker.list_bets() == []

    @pytest.mark.asyncio
    async def test_delete(self, local_tracker: BetTracker, store: LocalStore):
        saved = await local_tracker.save_bet(make_bet())
        await local_tracker.delete_bet(saved.id)
        assert store.get_all("bets") == []
        assert await local_tracker.get_bet(saved.id) is None

    @pytest.mark.asyncio
    async def test_new_bet_tagged_with_active_profile(self, local_tracker: BetTracker):
        local_tracker.set_active_profile(1)
        saved = await local_tracker.save_bet(make_bet())
        assert saved.profile_id == 1
        local_tracker.set_active_profile("all")
        untagged = await local_tracker.save_bet(make_bet())
        assert untagged.profile_id is None

    @pytest.mark.asyncio
    async def test_returned_objects_are_copies(self, local_tracker: BetTracker):
        await local_tracker.save_bet(make_bet())
        bets = await local_tracker.list_bets()
        bets[0].date = "tampered"
        bets[0].events.append(make_event())
        again = await local_tracker.get_bet(bets[0].id)
        assert again.date != "tampered"
        assert len(again.events) == 1

    @pytest.mark.asyncio
    async def test_persisted_across_trackers(self, local_tracker: BetTracker, store: LocalStore):
        saved = await local_tracker.save_bet(make_bet())
        other = BetTracker(LocalStore(store.db_path))
        assert [b.id for b in await other.list_bets()] == [saved.id]

    @pytest.mark.asyncio
    async def test_save_with_image_path(self, local_tracker: BetTracker, tmp_path):
        photo = tmp_path / "slip.png"
        photo.write_bytes(b"\x89PNG")
        saved = await local_tracker.save_bet(make_bet(), image_path=photo)
        assert saved.image.startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_missing_image_aborts_before_save(self, local_tracker: BetTracker, store, tmp_path):
        with pytest.raises(FileNotFoundError):
            await local_tracker.save_bet(make_bet(), image_path=tmp_path / "nope.jpg")
        assert store.get_all("bets") == []

    @pytest.mark.asyncio
    async def test_local_mode_never_warns(self, local_tracker: BetTracker, notices):
        await local_tracker.list_bets()
        assert local_tracker.is_online()
        assert await local_tracker.check_connection() is True
        assert notices == []


class TestRemoteMode:
    @pytest.mark.asyncio
    async def test_create_goes_to_server_and_mirror(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        saved = await remote_tracker.save_bet(make_bet())
        assert saved.id == 101
        assert len(fake_rest.tables["bets"]) == 1
        posted = json.loads(fake_rest.calls("POST")[0].content)
        assert "id" not in posted
        assert json.loads(posted["events"])[0]["coef"] == 1.8
        assert store.get_by_id("bets", 101) is not None

    @pytest.mark.asyncio
    async def test_list_replaces_mirror(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        store.put("bets", bet_row(1))
        fake_rest.seed("bets", bet_row(10), bet_row(11))
        bets = await remote_tracker.list_bets()
        assert sorted(b.id for b in bets) == [10, 11]
        assert sorted(r["id"] for r in store.get_all("bets")) == [10, 11]

    @pytest.mark.asyncio
    async def test_filtered_list_keeps_other_rows(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        fake_rest.seed("bets", bet_row(1, status="win"), bet_row(2, status="lose"))
        await remote_tracker.list_bets()
        wins = await remote_tracker.list_bets(status="win")
        assert [b.id for b in wins] == [1]
        assert sorted(r["id"] for r in store.get_all("bets")) == [1, 2]
        assert len(remote_tracker.bets.snapshot) == 2

    @pytest.mark.asyncio
    async def test_filtered_list_before_full_load_keeps_mirror(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        store.put("bets", bet_row(2, status="lose"))
        fake_rest.seed("bets", bet_row(1, status="win"), bet_row(2, status="lose"))
        await remote_tracker.list_bets(status="win")
        assert sorted(r["id"] for r in store.get_all("bets")) == [1, 2]

    @pytest.mark.asyncio
    async def test_remote_failure_serves_cache_with_one_notice(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, notices
    ):
        fake_rest.seed("bets", bet_row(1), bet_row(2))
        await remote_tracker.list_bets()
        fake_rest.down = True
        bets = await remote_tracker.list_bets()
        assert sorted(b.id for b in bets) == [1, 2]
        assert len(notices) == 1

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_to_mirror(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore, notices
    ):
        store.put("bets", bet_row(7, status="win"))
        store.put("bets", bet_row(8, status="lose"))
        fake_rest.error_status = 500
        bets = await remote_tracker.list_bets(status="win")
        assert [b.id for b in bets] == [7]
        assert len(notices) == 1
        assert "server exploded" in notices[0]

    @pytest.mark.asyncio
    async def test_offline_reads_cache_and_blocks_writes(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore, notices
    ):
        store.put("bets", bet_row(3))
        remote_tracker.set_online(False)
        bets = await remote_tracker.list_bets()
        assert [b.id for b in bets] == [3]
        assert len(notices) == 1

        with pytest.raises(OfflineError):
            await remote_tracker.save_bet(make_bet())
        with pytest.raises(OfflineError):
            await remote_tracker.delete_bet(3)
        assert fake_rest.requests == []
        assert len(store.get_all("bets")) == 1

    @pytest.mark.asyncio
    async def test_server_error_on_create(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        fake_rest.error_status = 500
        with pytest.raises(RemoteError) as exc:
            await remote_tracker.save_bet(make_bet())
        assert exc.value.status_code == 500
        assert store.get_all("bets") == []
        assert remote_tracker.bets.snapshot == []

    @pytest.mark.asyncio
    async def test_update_patch_omits_created_at(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        fake_rest.seed("bets", bet_row(5, status="pending"))
        bet = await remote_tracker.get_bet(5)
        bet.status = "win"
        bet.date = "1999-01-01T00:00:00+00:00"
        updated = await remote_tracker.save_bet(bet)

        patch = json.loads(fake_rest.calls("PATCH")[0].content)
        assert "created_at" not in patch
        assert patch["status"] == "win"
        assert updated.date == "2026-01-01T10:00:00+00:00"
        assert store.get_by_id("bets", 5)["status"] == "win"

    @pytest.mark.asyncio
    async def test_update_of_row_deleted_elsewhere(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        """PATCH matching no server row raises and leaves cache and mirror alone."""
        fake_rest.seed("bets", bet_row(5, status="pending"))
        await remote_tracker.list_bets()
        fake_rest.tables["bets"] = []

        bet = await remote_tracker.get_bet(5)
        bet.status = "win"
        with pytest.raises(NotFoundError):
            await remote_tracker.save_bet(bet)

        assert len(fake_rest.calls("PATCH")) == 1
        assert [b.status for b in remote_tracker.bets.snapshot] == ["pending"]
        assert store.get_by_id("bets", 5)["status"] == "pending"

    @pytest.mark.asyncio
    async def test_update_missing_on_server(self, remote_tracker: BetTracker):
        with pytest.raises(NotFoundError):
            await remote_tracker.save_bet(make_bet(id=404))

    @pytest.mark.asyncio
    async def test_delete(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        fake_rest.seed("bets", bet_row(5))
        await remote_tracker.list_bets()
        await remote_tracker.delete_bet(5)
        assert fake_rest.tables["bets"] == []
        assert store.get_all("bets") == []
        assert remote_tracker.bets.snapshot == []

    @pytest.mark.asyncio
    async def test_get_falls_back_to_mirror(
        self, remote_tracker: BetTracker, fake_rest: FakeRest, store: LocalStore
    ):
        store.put("bets", bet_row(9))
        fake_rest.down = True
        bet = await remote_tracker.get_bet(9)
        assert isinstance(bet, Bet)
        assert bet.id == 9

    @pytest.mark.asyncio
    async def test_check_connection_tracks_status(
        self, remote_tracker: BetTracker, fake_rest: FakeRest
    ):
        changes: list[bool] = []
        remote_tracker.session.status_callbacks.append(changes.append)

        fake_rest.down = True
        assert await remote_tracker.check_connection() is False
        assert remote_tracker.is_online() is False
        fake_rest.down = False
        assert await remote_tracker.check_connection() is True
        assert changes == [False, True]
