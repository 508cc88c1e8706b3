"""Shared fixtures for bet tracker tests.

Helper functions (make_bet, FakeRest, etc.) are in tests/helpers.py.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.repository.session import LocalIdGenerator
from src.repository.tracker import BetTracker
from src.store.local_store import LocalStore
from tests.helpers import FakeRest


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Temporary database path: each test gets an isolated SQLite file."""
    return tmp_path / "test.db"


@pytest.fixture()
def store(db_path: Path) -> LocalStore:
    s = LocalStore(db_path)
    s.open()
    return s


@pytest.fixture()
def notices() -> list[str]:
    """Messages the tracker surfaced to the user."""
    return []


@pytest.fixture()
def fake_rest() -> FakeRest:
    return FakeRest()


@pytest.fixture()
def local_tracker(store: LocalStore, notices: list[str]) -> BetTracker:
    """Unconfigured tracker: the local store is authoritative."""
    return BetTracker(store, notify=notices.append, ids=LocalIdGenerator(clock=lambda: 1000.0))


@pytest.fixture()
def remote_tracker(store: LocalStore, fake_rest: FakeRest, notices: list[str]) -> BetTracker:
    """Configured tracker talking to the in-memory REST fake."""
    return BetTracker(store, fake_rest.client(), notify=notices.append)
