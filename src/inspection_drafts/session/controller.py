"""Draft session controller: current draft, autosave cadence and lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from inspection_drafts.domain.forms import FormDefinition
from inspection_drafts.domain.models import (
    REVIEW_STEP,
    WIZARD_STEPS,
    Draft,
    DraftStatus,
    HistoryAction,
    Room,
)
from inspection_drafts.errors import (
    DeletionNotConfirmedError,
    DraftNotFoundError,
    InvalidTransitionError,
)
from inspection_drafts.exports.artifacts import ExportRecord, ExportStore
from inspection_drafts.reconcile.engine import ReconciliationEngine
from inspection_drafts.session.context import SessionContext
from inspection_drafts.utils.ids import new_inspection_id
from inspection_drafts.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_INTERVAL_SECONDS = 30.0


class DraftSessionController:
    """Mediates between captured UI state and the reconciliation engine.

    State machine per session: no current draft, or exactly one current
    draft ID. Completion is a draft attribute, not a session state, so a
    completed draft may still be current for viewing.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        form: FormDefinition | None = None,
        exports: ExportStore | None = None,
        autosave_interval_seconds: float = DEFAULT_AUTOSAVE_INTERVAL_SECONDS,
    ) -> None:
        self._engine = engine
        self._store = engine.store
        self._form = form or FormDefinition()
        self._exports = exports
        self._interval = autosave_interval_seconds
        self._autosave_task: asyncio.Task[None] | None = None
        self.context = SessionContext(self._store)

    @property
    def form(self) -> FormDefinition:
        return self._form

    # -- capture inputs ----------------------------------------------------

    def set_property_data(self, data: Mapping[str, Any]) -> None:
        self.context.set_property_data(data)

    def set_rooms(self, rooms: Iterable[Room | Mapping[str, Any]]) -> None:
        self.context.set_rooms(rooms)

    def validate_property_data(self) -> None:
        """Raise ``ValidationRejectedError`` naming every missing required field."""
        self._form.validate_property_data(self.context.property_data)

    def go_to_step(self, step: int) -> None:
        """Move the wizard and save opportunistically.

        Leaving the property step forward requires the required fields.
        """
        if self.context.current_step == 1 and step > 1:
            self.validate_property_data()
        self.context.set_step(step)
        self.autosave_tick()

    # -- lifecycle ---------------------------------------------------------

    def create_draft(self) -> Draft:
        """Start a draft in memory and make it current.

        It is written to the record store by the first autosave that sees
        captured content.
        """
        draft = Draft(id=new_inspection_id())
        self.context.pending = draft
        self.context.set_current(draft)
        return draft

    def new_inspection(self) -> Draft:
        """Save whatever is being edited, then start over with an empty draft."""
        self.autosave_tick()
        self.context.clear_current()
        self.context.reset_working_state()
        return self.create_draft()

    def autosave_tick(self) -> Draft | None:
        """Persist captured state into the current draft.

        Returns the saved draft, or None when there was nothing to save or the
        save was dropped. Never raises.
        """
        try:
            return self._autosave()
        except Exception:
            logger.exception("Error saving inspection")
            return None

    def _autosave(self) -> Draft | None:
        ctx = self.context
        has_content = ctx.has_content
        current_id = ctx.current_id

        if current_id is None:
            if not has_content:
                return None
            draft = self.create_draft()
        else:
            draft = self._store.get(current_id)
            if draft is None:
                pending = ctx.pending
                if pending is not None and pending.id == current_id:
                    draft = pending
                elif has_content:
                    # Current ID no longer resolves, most likely deleted.
                    draft = self.create_draft()
                else:
                    return None
            if draft is ctx.pending and not has_content:
                return None

        ctx.apply_to(draft)
        if not self._engine.save(draft):
            return None
        if ctx.pending is not None and ctx.pending.id == draft.id:
            ctx.pending = None
        logger.debug("Inspection saved successfully: %s", draft.id)
        return draft

    def load(self, draft_id: str) -> int:
        """Make a stored draft current and return the wizard step to show.

        Completed drafts and drafts already on the report step open on review.
        """
        draft = self._require(draft_id)
        self.context.reset_working_state()
        self.context.hydrate(draft)
        self.context.set_current(draft)
        if draft.is_completed or draft.current_step == WIZARD_STEPS:
            self.context.current_step = REVIEW_STEP
        return self.context.current_step

    def finalize(self, draft_id: str, actor: str | None = None) -> Draft:
        """Complete a draft and end the editing session.

        Calling it twice appends a second ``finalized`` entry.
        """
        if draft_id == self.context.current_id:
            self.autosave_tick()
        draft = self._require(draft_id)
        draft.append_history(HistoryAction.FINALIZED, actor)
        draft.status = DraftStatus.COMPLETED
        draft.completed_at = utc_now()
        draft.pdf_generated = True
        draft.touch()
        self._engine.save(draft)
        if draft_id == self.context.current_id:
            self.context.clear_current()
            self.context.reset_working_state()
        logger.info("Inspection finalized: %s", draft_id)
        return draft

    def reopen(self, draft_id: str, actor: str | None = None) -> Draft:
        """Return a completed draft to editing, on the review step."""
        draft = self._require(draft_id)
        if not draft.is_completed:
            raise InvalidTransitionError(
                f"Only completed inspections can be reopened. Current status: {draft.status.value}"
            )
        draft.append_history(HistoryAction.REOPENED, actor)
        draft.status = DraftStatus.IN_PROGRESS
        draft.current_step = REVIEW_STEP
        draft.touch()
        self._engine.save(draft)
        self.context.reset_working_state()
        self.context.hydrate(draft)
        self.context.set_current(draft)
        logger.info("Inspection reopened for editing: %s", draft_id)
        return draft

    def delete(self, draft_id: str, confirmed: bool = False) -> bool:
        """Delete a draft after the user confirmed it."""
        if not confirmed:
            raise DeletionNotConfirmedError(f"Deleting {draft_id} requires confirmation")
        was_current = draft_id == self.context.current_id or (
            self.context.pending is not None and self.context.pending.id == draft_id
        )
        removed = self._engine.delete(draft_id, self.context)
        if was_current:
            self.context.reset_working_state()
        return removed

    def delete_current(self, confirmed: bool = False) -> bool:
        current_id = self.context.current_id
        if current_id is None:
            return False
        return self.delete(current_id, confirmed=confirmed)

    def end_session(self) -> None:
        """Save pending work and forget the working state. Used on login and logout."""
        self.autosave_tick()
        self.context.reset_working_state()

    # -- import / export ---------------------------------------------------

    def export_draft(self, draft_id: str) -> ExportRecord:
        if self._exports is None:
            raise RuntimeError("No export directory configured")
        return self._exports.write_draft(self._require(draft_id))

    def import_draft(self, payload: Mapping[str, Any]) -> Draft:
        """Store an exported draft under a fresh ID."""
        data = dict(payload)
        data["id"] = new_inspection_id()
        try:
            draft = Draft.from_json(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid inspection export: {exc}") from exc
        draft.touch()
        self._engine.save(draft)
        return draft

    # -- autosave loop -----------------------------------------------------

    def start_autosave(self) -> asyncio.Task[None]:
        if self._autosave_task is None or self._autosave_task.done():
            self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_loop())
        return self._autosave_task

    async def stop_autosave(self) -> None:
        task = self._autosave_task
        self._autosave_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.autosave_tick()

    def _require(self, draft_id: str) -> Draft:
        draft = self._store.get(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft
