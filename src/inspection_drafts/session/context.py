"""Explicit per-session state: the current draft pointer and captured data."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from inspection_drafts.domain.models import WIZARD_STEPS, Draft, Room, has_captured_content
from inspection_drafts.store.records import RecordStore


class SessionContext:
    """Owns the single "current draft" of a user session.

    The pointer itself is persisted in the record store so that it survives a
    restart. ``pending`` holds a draft created in memory that has not been
    written yet because it has no content.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self.property_data: dict[str, Any] = {}
        self.rooms: list[Room] = []
        self.current_step = 1
        self.pending: Draft | None = None

    @property
    def current_id(self) -> str | None:
        return self._store.get_current_id()

    @property
    def has_content(self) -> bool:
        return has_captured_content(self.property_data, self.rooms)

    def set_current(self, draft: Draft) -> None:
        self._store.set_current_id(draft.id)

    def clear_current(self) -> None:
        self._store.clear_current_id()
        self.pending = None

    def clear_if_current(self, draft_id: str) -> bool:
        cleared = False
        if self._store.get_current_id() == draft_id:
            self._store.clear_current_id()
            cleared = True
        if self.pending is not None and self.pending.id == draft_id:
            self.pending = None
            cleared = True
        return cleared

    def set_property_data(self, data: Mapping[str, Any]) -> None:
        self.property_data = dict(data)

    def set_rooms(self, rooms: Iterable[Room | Mapping[str, Any]]) -> None:
        self.rooms = [
            room.model_copy(deep=True) if isinstance(room, Room) else Room.model_validate(room)
            for room in rooms
        ]

    def set_step(self, step: int) -> None:
        if not 1 <= step <= WIZARD_STEPS:
            raise ValueError(f"Step must be between 1 and {WIZARD_STEPS}, got {step}")
        self.current_step = step

    def hydrate(self, draft: Draft) -> None:
        """Load a stored draft into the working state."""
        self.property_data = dict(draft.property_data)
        self.rooms = [room.model_copy(deep=True) for room in draft.rooms]
        self.current_step = draft.current_step

    def reset_working_state(self) -> None:
        self.property_data = {}
        self.rooms = []
        self.current_step = 1
        self.pending = None

    def apply_to(self, draft: Draft) -> Draft:
        """Merge captured state into ``draft`` and bump its ``updated_at``."""
        draft.property_data = dict(self.property_data)
        draft.rooms = [room.model_copy(deep=True) for room in self.rooms]
        draft.current_step = self.current_step
        draft.touch()
        return draft
