"""Namespaced draft records with a monotonic tombstone set."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from inspection_drafts.domain.models import Draft, DraftStatus
from inspection_drafts.errors import StorageError
from inspection_drafts.store.db import SqliteKeyValueStore
from inspection_drafts.store.namespaces import (
    LEGACY_NAMESPACE,
    LEGACY_SINGLE_DRAFT_KEY,
    Namespace,
    namespace_for,
)
from inspection_drafts.utils.serialization import dumps, loads
from inspection_drafts.utils.time import max_iso

logger = logging.getLogger(__name__)


class RecordStore:
    """Durable CRUD over drafts for the active user's namespace.

    Every write path swallows storage failures: a failed save is logged and
    reported as ``False`` so that capture flows never crash on a full disk or
    exceeded quota.
    """

    def __init__(self, backend: SqliteKeyValueStore, user_id: str | None = None) -> None:
        self._backend = backend
        self._namespace = namespace_for(user_id)

    @property
    def namespace(self) -> Namespace:
        return self._namespace

    @property
    def user_id(self) -> str | None:
        return self._namespace.user_id

    def switch_user(self, user_id: str | None) -> None:
        """Point the store at another user's namespace (login / logout)."""
        self._namespace = namespace_for(user_id)
        logger.info("Record store namespace is now %s", self._namespace.drafts_key)

    # -- raw access --------------------------------------------------------

    def _read(self, key: str, default: Any) -> Any:
        try:
            return loads(self._backend.get(key), default)
        except StorageError as exc:
            logger.warning("Storage read failed for %s: %s", key, exc)
            return default

    def _write(self, key: str, value: Any) -> bool:
        try:
            self._backend.set(key, dumps(value))
        except StorageError as exc:
            logger.warning("Storage write failed for %s: %s", key, exc)
            return False
        return True

    def _delete(self, key: str) -> None:
        try:
            self._backend.delete(key)
        except StorageError as exc:
            logger.warning("Storage delete failed for %s: %s", key, exc)

    def _raw_drafts(self, namespace: Namespace | None = None) -> list[dict[str, Any]]:
        ns = namespace or self._namespace
        data = self._read(ns.drafts_key, [])
        if not isinstance(data, list):
            logger.warning("Discarding malformed draft collection under %s", ns.drafts_key)
            return []
        return [item for item in data if isinstance(item, dict) and item.get("id")]

    # -- tombstones --------------------------------------------------------

    def tombstones(self) -> list[str]:
        data = self._read(self._namespace.tombstones_key, [])
        if not isinstance(data, list):
            return []
        return [str(item) for item in data]

    def is_tombstoned(self, draft_id: str) -> bool:
        return draft_id in self.tombstones()

    def _add_tombstone(self, draft_id: str) -> bool:
        tombstones = self.tombstones()
        if draft_id in tombstones:
            return True
        tombstones.append(draft_id)
        return self._write(self._namespace.tombstones_key, tombstones)

    # -- draft CRUD --------------------------------------------------------

    def put(self, draft: Draft) -> bool:
        """Upsert ``draft`` unless its ID has been deleted.

        Returns True when the record was written. A stale snapshot never moves
        the stored ``updatedAt`` backwards.
        """
        if self.is_tombstoned(draft.id):
            logger.info("Dropping write for deleted inspection %s", draft.id)
            return False

        payload = draft.to_json()
        records = self._raw_drafts()
        for index, existing in enumerate(records):
            if existing.get("id") == draft.id:
                payload["updatedAt"] = max_iso(existing.get("updatedAt"), payload["updatedAt"])
                records[index] = payload
                break
        else:
            records.append(payload)

        if not self._write(self._namespace.drafts_key, records):
            return False
        logger.debug("Inspection saved locally: %s", draft.id)
        return True

    def get(self, draft_id: str) -> Draft | None:
        for item in self._raw_drafts():
            if item.get("id") == draft_id:
                return self._to_draft(item)
        return None

    def list_all(self) -> list[Draft]:
        drafts: list[Draft] = []
        for item in self._raw_drafts():
            draft = self._to_draft(item)
            if draft is not None:
                drafts.append(draft)
        return drafts

    def list_by_status(self, status: DraftStatus) -> list[Draft]:
        drafts = [draft for draft in self.list_all() if draft.status == status]
        drafts.sort(key=lambda draft: draft.updated_at, reverse=True)
        return drafts

    def count(self) -> int:
        return len(self._raw_drafts())

    def live_ids(self) -> list[str]:
        """IDs in the live collection, including records that fail to parse."""
        return [str(item["id"]) for item in self._raw_drafts()]

    def remove(self, draft_id: str) -> bool:
        """Delete ``draft_id`` from the live collection and tombstone it.

        Idempotent: removing an already removed ID leaves a single tombstone.
        Returns True if a live record was removed.
        """
        removed = self.drop_live(draft_id)
        self._add_tombstone(draft_id)
        return removed

    def drop_live(self, draft_id: str) -> bool:
        """Delete the live record only. Used by the ghost sweep."""
        records = self._raw_drafts()
        remaining = [item for item in records if item.get("id") != draft_id]
        if len(remaining) == len(records):
            return False
        return self._write(self._namespace.drafts_key, remaining)

    def replace_live(self, drafts: list[Draft]) -> bool:
        return self._write(self._namespace.drafts_key, [draft.to_json() for draft in drafts])

    def clear_all(self) -> None:
        """Drop every live draft and the current pointer. Tombstones are kept."""
        self._delete(self._namespace.drafts_key)
        self._delete(self._namespace.current_id_key)
        logger.info("All inspections cleared for %s", self._namespace.drafts_key)

    @staticmethod
    def _to_draft(item: dict[str, Any]) -> Draft | None:
        try:
            return Draft.from_json(item)
        except ValidationError as exc:
            logger.warning("Skipping unreadable inspection %s: %s", item.get("id"), exc)
            return None

    # -- current pointer ---------------------------------------------------

    def get_current_id(self) -> str | None:
        value = self._read(self._namespace.current_id_key, None)
        return str(value) if value else None

    def set_current_id(self, draft_id: str) -> bool:
        return self._write(self._namespace.current_id_key, draft_id)

    def clear_current_id(self) -> None:
        self._delete(self._namespace.current_id_key)

    # -- flags and backups -------------------------------------------------

    def get_flag(self, key: str) -> bool:
        return bool(self._read(key, False))

    def set_flag(self, key: str, value: bool = True) -> bool:
        return self._write(key, value)

    def backup_live(self) -> int:
        """Copy the live collection to the backup key."""
        records = self._raw_drafts()
        if records and not self._write(self._namespace.backup_key, records):
            return 0
        return len(records)

    def pop_legacy_single_draft(self) -> dict[str, Any] | None:
        """Return and delete the draft left by the single-draft storage layout."""
        data = self._read(LEGACY_SINGLE_DRAFT_KEY, None)
        if data is None:
            return None
        self._delete(LEGACY_SINGLE_DRAFT_KEY)
        if not isinstance(data, dict):
            logger.warning("Discarding malformed legacy draft")
            return None
        return data

    # -- maintenance -------------------------------------------------------

    def migrate_legacy(self) -> bool:
        """Move anonymous-namespace data into the user namespace once.

        Runs only for a logged-in user whose own namespace is still empty;
        existing user data is never overwritten. Returns True if data moved.
        """
        ns = self._namespace
        if ns.is_legacy:
            return False
        if self._raw_drafts(ns):
            return False

        legacy_records = self._raw_drafts(LEGACY_NAMESPACE)
        if not legacy_records:
            return False

        logger.info("Migrating %d legacy inspections to %s", len(legacy_records), ns.drafts_key)
        if not self._write(ns.drafts_key, legacy_records):
            return False

        legacy_tombstones = self._read(LEGACY_NAMESPACE.tombstones_key, [])
        if isinstance(legacy_tombstones, list) and legacy_tombstones:
            merged = self.tombstones()
            for draft_id in legacy_tombstones:
                if draft_id not in merged:
                    merged.append(str(draft_id))
            self._write(ns.tombstones_key, merged)

        self._delete(LEGACY_NAMESPACE.drafts_key)
        self._delete(LEGACY_NAMESPACE.tombstones_key)
        return True

    def compact_media(self) -> int:
        """Strip inline payloads from photos and audio that already have a URL."""
        drafts = self.list_all()
        if len(drafts) != self.count():
            logger.warning("Skipping media compaction: unreadable inspections present")
            return 0
        stripped = sum(draft.strip_inline_media() for draft in drafts)
        if stripped and self.replace_live(drafts):
            logger.info("Stripped %d inline media payloads", stripped)
            return stripped
        return 0
