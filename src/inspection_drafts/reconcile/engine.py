"""Reconciliation between local autosave, remote sync and deletions.

The local record store is the source of truth and the backend is an
eventually consistent mirror. The only coordination between the two is the
tombstone set: once an ID is tombstoned, neither a queued local write nor a
remote snapshot can bring it back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError

from inspection_drafts.domain.models import Draft
from inspection_drafts.store.records import RecordStore
from inspection_drafts.sync.client import MigrationResult, SyncClient
from inspection_drafts.utils.ids import new_inspection_id
from inspection_drafts.utils.time import utc_now

if TYPE_CHECKING:
    from inspection_drafts.session.context import SessionContext

logger = logging.getLogger(__name__)


@dataclass
class StartupReport:
    migrated_legacy: bool = False
    imported_draft_id: str | None = None
    ghosts_removed: list[str] = field(default_factory=list)
    media_stripped: int = 0


@dataclass
class PullReport:
    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    remote_ghosts: list[str] = field(default_factory=list)
    available: bool = True


class ReconciliationEngine:
    def __init__(self, store: RecordStore, sync: SyncClient) -> None:
        self._store = store
        self._sync = sync
        self._sync.set_tombstone_check(store.is_tombstoned)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def sync(self) -> SyncClient:
        return self._sync

    def save(self, draft: Draft) -> bool:
        """Write locally, then queue a remote push.

        A write for a tombstoned ID is dropped by the store and never pushed.
        """
        if not self._store.put(draft):
            return False
        self._sync.schedule_push(draft)
        return True

    def delete(self, draft_id: str, session: SessionContext | None = None) -> bool:
        """Delete ``draft_id`` everywhere.

        The tombstone is in place before the remote delete is even queued, so
        an autosave or push racing this call observes it.
        """
        removed = self._store.remove(draft_id)
        if session is not None:
            session.clear_if_current(draft_id)
        elif self._store.get_current_id() == draft_id:
            self._store.clear_current_id()
        self._sync.schedule_delete(draft_id)
        logger.info("Inspection deleted locally: %s", draft_id)
        return removed

    def switch_user(self, user_id: str | None) -> StartupReport:
        """Follow the authenticated user into their namespace.

        Anonymous data moves into an empty user namespace once, and records
        the user already deleted are swept.
        """
        self._store.switch_user(user_id)
        report = StartupReport()
        report.migrated_legacy = self._store.migrate_legacy()
        report.ghosts_removed = self.ghost_sweep()
        return report

    def ghost_sweep(self) -> list[str]:
        """Remove live records whose ID is tombstoned."""
        tombstones = set(self._store.tombstones())
        if not tombstones:
            return []
        removed: list[str] = []
        for draft_id in self._store.live_ids():
            if draft_id in tombstones and self._store.drop_live(draft_id):
                removed.append(draft_id)
        if removed:
            logger.warning(
                "Ghost sweep removed %d resurrected inspections: %s", len(removed), removed
            )
        current_id = self._store.get_current_id()
        if current_id and current_id in tombstones:
            self._store.clear_current_id()
        return removed

    def import_legacy_draft(self) -> Draft | None:
        """Turn the single draft of the old storage layout into a regular draft."""
        data = self._store.pop_legacy_single_draft()
        if data is None:
            return None
        saved_at = data.get("lastSaved")
        payload = {
            "id": new_inspection_id(),
            "currentStep": data.get("currentStep") or 1,
            "propertyData": data.get("propertyData") or {},
            "rooms": data.get("rooms") or [],
            "createdAt": saved_at or utc_now(),
            "updatedAt": saved_at or utc_now(),
        }
        try:
            draft = Draft.from_json(payload)
        except ValidationError as exc:
            logger.warning("Discarding unreadable legacy draft: %s", exc)
            return None
        if not self.save(draft):
            return None
        self._store.set_current_id(draft.id)
        logger.info("Old draft migrated to %s", draft.id)
        return draft

    def startup(self) -> StartupReport:
        report = StartupReport()
        report.migrated_legacy = self._store.migrate_legacy()
        imported = self.import_legacy_draft()
        report.imported_draft_id = imported.id if imported else None
        report.ghosts_removed = self.ghost_sweep()
        report.media_stripped = self._store.compact_media()
        return report

    async def pull_remote(self) -> PullReport:
        """Merge the remote collection into the local one.

        Newer remote snapshots replace local ones, unknown drafts are added,
        and remote copies of tombstoned drafts are deleted again.
        """
        remote = await self._sync.fetch_all()
        if remote is None:
            return PullReport(available=False)

        report = PullReport()
        local = {draft.id: draft for draft in self._store.list_all()}
        for draft in remote:
            if self._store.is_tombstoned(draft.id):
                report.remote_ghosts.append(draft.id)
                await self._sync.push_delete(draft.id)
                continue
            existing = local.get(draft.id)
            if existing is None:
                if self._store.put(draft):
                    report.inserted.append(draft.id)
            elif draft.updated_at > existing.updated_at:
                if self._store.put(draft):
                    report.updated.append(draft.id)
        return report

    async def migrate_to_remote(self) -> MigrationResult:
        """One-time bulk import of local drafts into the backend."""
        flag_key = self._store.namespace.migration_flag_key
        if self._store.get_flag(flag_key):
            return MigrationResult(success=True, count=0, message="Already migrated")
        drafts = self._store.list_all()
        result = await self._sync.migrate_local(drafts)
        if result.success and drafts:
            self._store.backup_live()
            self._store.set_flag(flag_key)
        return result
