"""Remote-or-local repository core shared by bets and profiles.

Mode rules:
- unconfigured: the local store is authoritative, every call goes there.
- configured + online: the remote is authoritative; successful reads are
  mirrored into the local store, successful writes update the mirror.
- configured + offline (or remote failure): reads are served from the
  snapshot / local mirror with a warning, writes raise.

The in-memory snapshot is only touched after the backing call succeeded.
"""

from __future__ import annotations

import copy
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from src.connectors.remote import OfflineError, RemoteClient, RemoteError
from src.repository.session import LocalIdGenerator, TrackerSession
from src.store.local_store import LocalStore, StoreInitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class NotFoundError(LookupError):
    """Update target does not exist in the authoritative store."""


def parse_ts(value: str) -> datetime:
    """ISO timestamp -> aware datetime (naive values are taken as UTC)."""
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Repository(Generic[T]):
    """Subclasses provide the table name and the wire mapping hooks."""

    table: str = ""
    label: str = ""

    def __init__(
        self,
        session: TrackerSession,
        store: LocalStore,
        remote: RemoteClient | None = None,
        ids: LocalIdGenerator | None = None,
    ):
        if session.configured and remote is None:
            raise ValueError("A configured session needs a RemoteClient")
        self.session = session
        self.store = store
        self.remote = remote
        self.ids = ids or LocalIdGenerator()
        self._snapshot: list[T] = []
        self._loaded = False

    # -- hooks ----------------------------------------------------------

    def from_wire(self, raw: dict[str, Any]) -> T:
        raise NotImplementedError

    def to_wire(self, item: T, *, include_id: bool = True) -> dict[str, Any]:
        raise NotImplementedError

    def validate(self, item: T) -> None:
        raise NotImplementedError

    def created_at(self, item: T) -> str:
        raise NotImplementedError

    def stamp_new(self, item: T) -> None:
        """Set creation fields on a new item."""
        raise NotImplementedError

    def carry_over(self, item: T, existing: T) -> None:
        """Copy fields an update must never change from the stored record."""
        raise NotImplementedError

    # -- snapshot -------------------------------------------------------

    @property
    def snapshot(self) -> list[T]:
        """Copy of the cached collection, newest first."""
        return copy.deepcopy(self._snapshot)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _sorted(self, items: list[T]) -> list[T]:
        return sorted(
            items,
            key=lambda i: (parse_ts(self.created_at(i)), getattr(i, "id", None) or 0),
            reverse=True,
        )

    def _normalize_rows(self, rows: list[dict[str, Any]]) -> list[T]:
        return self._sorted([self.from_wire(r) for r in rows])

    def _set_snapshot(self, items: list[T]) -> None:
        self._snapshot = self._sorted(items)
        self._loaded = True

    def _replace_in_snapshot(self, item: T) -> None:
        item_id = getattr(item, "id")
        for i, cur in enumerate(self._snapshot):
            if getattr(cur, "id") == item_id:
                self._snapshot[i] = item
                return
        self._snapshot.insert(0, item)

    def _drop_from_snapshot(self, predicate: Callable[[T], bool]) -> int:
        before = len(self._snapshot)
        self._snapshot = [i for i in self._snapshot if not predicate(i)]
        return before - len(self._snapshot)

    def _cached(self, matches: Callable[[T], bool]) -> list[T]:
        """Best available local copy: snapshot if loaded, else the local mirror."""
        if not self._loaded:
            self._set_snapshot(self._normalize_rows(self.store.get_all(self.table)))
        return [copy.deepcopy(i) for i in self._snapshot if matches(i)]

    # -- mirror (best effort, never raises) -------------------------------

    def _mirror(self) -> None:
        try:
            self.store.replace_all(self.table, [self.to_wire(i) for i in self._snapshot])
        except (sqlite3.Error, StoreInitError):
            logger.exception("Mirroring %s into local store failed", self.table)

    def _mirror_put(self, item: T) -> None:
        try:
            self.store.put(self.table, self.to_wire(item))
        except (sqlite3.Error, StoreInitError):
            logger.exception("Mirroring %s #%s failed", self.table, getattr(item, "id"))

    def _mirror_delete(self, record_id: int) -> None:
        try:
            self.store.delete(self.table, record_id)
        except (sqlite3.Error, StoreInitError):
            logger.exception("Removing %s #%s from mirror failed", self.table, record_id)

    def _require_writable(self) -> None:
        if self.session.configured and not self.session.online:
            raise OfflineError(f"Offline: cannot save {self.label} while the server is unreachable")

    # -- operations -----------------------------------------------------

    async def _list(
        self,
        matches: Callable[[T], bool],
        remote_filters: dict[str, Any],
        unfiltered: bool,
    ) -> list[T]:
        if not self.session.configured:
            self._set_snapshot(self._normalize_rows(self.store.get_all(self.table)))
            return [copy.deepcopy(i) for i in self._snapshot if matches(i)]

        if not self.session.online:
            self.session.warn(f"Offline: showing saved {self.label} list")
            return self._cached(matches)

        try:
            rows = await self.remote.list(self.table, remote_filters)
        except RemoteError as e:
            logger.warning("Remote list of %s failed, serving cache: %s", self.table, e)
            self.session.warn(f"Could not load {self.label} list from server ({e.message}); showing saved data")
            return self._cached(matches)

        fresh = self._normalize_rows(rows)
        if unfiltered:
            self._set_snapshot(fresh)
        else:
            # サーバー結果はフィルタ範囲内のみ権威。範囲外の行は保持
            base = self._snapshot if self._loaded else self._normalize_rows(self.store.get_all(self.table))
            self._set_snapshot([i for i in base if not matches(i)] + fresh)
        self._mirror()
        logger.debug("Loaded %d %s from remote", len(fresh), self.table)
        return copy.deepcopy(fresh)

    async def get(self, record_id: int) -> T | None:
        for item in self._snapshot:
            if getattr(item, "id") == record_id:
                return copy.deepcopy(item)

        if self.session.use_remote:
            try:
                row = await self.remote.get_by_id(self.table, record_id)
                return self.from_wire(row) if row else None
            except RemoteError as e:
                logger.warning("Remote read of %s #%s failed, trying mirror: %s", self.table, record_id, e)

        row = self.store.get_by_id(self.table, record_id)
        return self.from_wire(row) if row else None

    async def create(self, item: T) -> T:
        self.validate(item)
        self._require_writable()
        self.stamp_new(item)
        record = self.to_wire(item, include_id=False)

        if not self.session.configured:
            record["id"] = self.ids.next_id(floor=self.store.max_id(self.table))
            self.store.put(self.table, record)
            created = self.from_wire(record)
        else:
            row = await self.remote.create(self.table, record)
            if not row:
                raise RemoteError(f"Server did not return the created {self.label}")
            created = self.from_wire(row)
            self._mirror_put(created)

        self._snapshot.insert(0, created)
        logger.info("Created %s #%s", self.table, getattr(created, "id"))
        return copy.deepcopy(created)

    async def update(self, item: T) -> T:
        self.validate(item)
        self._require_writable()
        record_id = getattr(item, "id")
        existing = await self.get(record_id)
        if existing is None:
            raise NotFoundError(f"{self.label} #{record_id} not found")
        self.carry_over(item, existing)

        if not self.session.configured:
            record = self.to_wire(item)
            self.store.put(self.table, record)
            updated = self.from_wire(record)
        else:
            partial = self.to_wire(item, include_id=False)
            partial.pop("created_at", None)
            row = await self.remote.update(self.table, record_id, partial)
            if not row:
                # 0 行更新 = サーバー側で削除済み
                raise NotFoundError(f"{self.label} #{record_id} not found on server")
            updated = self.from_wire(row)
            self._mirror_put(updated)

        self._replace_in_snapshot(updated)
        logger.info("Updated %s #%s", self.table, record_id)
        return copy.deepcopy(updated)

    async def delete(self, record_id: int) -> None:
        self._require_writable()
        if self.session.configured:
            await self.remote.delete(self.table, record_id)
            self._mirror_delete(record_id)
        else:
            self.store.delete(self.table, record_id)
        self._drop_from_snapshot(lambda i: getattr(i, "id") == record_id)
        logger.info("Deleted %s #%s", self.table, record_id)
