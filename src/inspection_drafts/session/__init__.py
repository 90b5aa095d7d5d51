"""Per-user editing session over the draft store."""

from inspection_drafts.session.context import SessionContext
from inspection_drafts.session.controller import DraftSessionController

__all__ = ["DraftSessionController", "SessionContext"]
