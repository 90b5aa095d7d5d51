"""Deterministic storage keys derived from user identity."""

from __future__ import annotations

from dataclasses import dataclass

DRAFTS_BASE_KEY = "inspections"
TOMBSTONES_BASE_KEY = "deleted_inspections"
CURRENT_ID_BASE_KEY = "current_id"
MIGRATION_FLAG_BASE_KEY = "migration_done"
LEGACY_SINGLE_DRAFT_KEY = "draft"


def _suffixed(base: str, user_id: str | None) -> str:
    if user_id:
        return f"{base}_{user_id}"
    return base


@dataclass(frozen=True)
class Namespace:
    """Keys for one user's partition of the record store.

    ``user_id`` of None is the shared anonymous partition used before login,
    which is also where drafts written by older clients live.
    """

    user_id: str | None

    @property
    def is_legacy(self) -> bool:
        return not self.user_id

    @property
    def drafts_key(self) -> str:
        return _suffixed(DRAFTS_BASE_KEY, self.user_id)

    @property
    def tombstones_key(self) -> str:
        return _suffixed(TOMBSTONES_BASE_KEY, self.user_id)

    @property
    def current_id_key(self) -> str:
        return _suffixed(CURRENT_ID_BASE_KEY, self.user_id)

    @property
    def backup_key(self) -> str:
        return f"{self.drafts_key}_backup"

    @property
    def migration_flag_key(self) -> str:
        return _suffixed(MIGRATION_FLAG_BASE_KEY, self.user_id)


LEGACY_NAMESPACE = Namespace(user_id=None)


def namespace_for(user_id: str | None) -> Namespace:
    if user_id is not None:
        user_id = str(user_id).strip() or None
    return Namespace(user_id=user_id)
