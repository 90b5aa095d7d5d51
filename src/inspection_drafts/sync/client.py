"""Best-effort mirror of local draft writes to the remote backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from inspection_drafts.domain.models import Draft
from inspection_drafts.errors import RemoteAPIError
from inspection_drafts.sync.remote import InspectionAPI

logger = logging.getLogger(__name__)

_REMOTE_ONLY_FIELDS = frozenset({"_id", "__v", "userId", "localId"})


class PushOutcome(str, Enum):
    UPDATED = "updated"
    CREATED_AFTER_NOT_FOUND = "created_after_not_found"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PushResult:
    draft_id: str
    outcome: PushOutcome
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (PushOutcome.UPDATED, PushOutcome.CREATED_AFTER_NOT_FOUND)


@dataclass(frozen=True)
class MigrationResult:
    success: bool
    count: int
    message: str


class Credentials:
    """Holder for the bearer token handed over by the auth collaborator."""

    def __init__(self, token: str | None = None, user_id: str | None = None) -> None:
        self.token = token
        self.user_id = user_id

    def login(self, token: str, user_id: str) -> None:
        self.token = token
        self.user_id = user_id

    def logout(self) -> None:
        self.token = None
        self.user_id = None

    def __call__(self) -> str | None:
        return self.token


class SyncClient:
    """Pushes full draft snapshots to the backend without blocking callers.

    No call here raises: remote failures are logged and reported through the
    returned result. ``is_tombstoned`` lets the client skip pushes for drafts
    deleted while the push was queued, and chase a create that landed after
    the delete with a remote delete.
    """

    def __init__(
        self,
        api: InspectionAPI | None,
        credentials: Callable[[], str | None],
        is_tombstoned: Callable[[str], bool] | None = None,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._is_tombstoned = is_tombstoned or (lambda _draft_id: False)
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def enabled(self) -> bool:
        return self._api is not None and bool(self._credentials())

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def set_tombstone_check(self, is_tombstoned: Callable[[str], bool]) -> None:
        self._is_tombstoned = is_tombstoned

    async def push(self, draft: Draft | dict[str, Any]) -> PushResult:
        """Try ``update``; fall back to ``create`` when the backend lacks the draft."""
        payload = draft.to_json() if isinstance(draft, Draft) else draft
        draft_id = str(payload["id"])
        api = self._api
        if api is None or not self._credentials():
            return PushResult(draft_id, PushOutcome.SKIPPED)
        if self._is_tombstoned(draft_id):
            logger.info("Skipping sync of deleted inspection %s", draft_id)
            return PushResult(draft_id, PushOutcome.SKIPPED)

        try:
            await api.update_inspection(draft_id, payload)
            outcome = PushOutcome.UPDATED
            logger.info("Inspection synced with backend: %s", draft_id)
        except RemoteAPIError as exc:
            if not exc.is_not_found:
                logger.warning("Error syncing inspection %s: %s", draft_id, exc)
                return PushResult(draft_id, PushOutcome.FAILED, str(exc))
            logger.info("Inspection not found in backend, creating: %s", draft_id)
            try:
                await api.create_inspection(payload)
            except RemoteAPIError as create_exc:
                logger.warning("Error creating inspection %s: %s", draft_id, create_exc)
                return PushResult(draft_id, PushOutcome.FAILED, str(create_exc))
            outcome = PushOutcome.CREATED_AFTER_NOT_FOUND

        if self._is_tombstoned(draft_id):
            logger.info("Inspection %s was deleted during sync, removing remote copy", draft_id)
            await self.push_delete(draft_id)
        return PushResult(draft_id, outcome)

    async def push_delete(self, draft_id: str) -> bool:
        api = self._api
        if api is None or not self._credentials():
            return False
        try:
            await api.delete_inspection(draft_id)
        except RemoteAPIError as exc:
            logger.warning("Failed to delete inspection from backend %s: %s", draft_id, exc)
            return False
        logger.info("Inspection deleted from backend: %s", draft_id)
        return True

    async def fetch_all(self) -> list[Draft] | None:
        """Remote drafts for the authenticated user, or None if unavailable."""
        api = self._api
        if api is None or not self._credentials():
            return None
        try:
            items = await api.list_inspections()
        except RemoteAPIError as exc:
            logger.warning("Error fetching inspections: %s", exc)
            return None

        drafts: list[Draft] = []
        for item in items:
            data = {key: value for key, value in item.items() if key not in _REMOTE_ONLY_FIELDS}
            # The backend keeps our ID as ``localId`` next to its own ``_id``.
            if item.get("localId"):
                data["id"] = item["localId"]
            try:
                drafts.append(Draft.from_json(data))
            except ValidationError as exc:
                logger.warning("Skipping unreadable remote inspection %s: %s", data.get("id"), exc)
        return drafts

    async def migrate_local(self, drafts: list[Draft]) -> MigrationResult:
        """Lift local-only drafts into the remote store in one request."""
        if not drafts:
            return MigrationResult(success=True, count=0, message="Nothing to migrate")
        api = self._api
        if api is None or not self._credentials():
            return MigrationResult(success=False, count=0, message="Not authenticated")
        try:
            data = await api.migrate({draft.id: draft.to_json() for draft in drafts})
        except RemoteAPIError as exc:
            logger.warning("Migration error: %s", exc)
            return MigrationResult(success=False, count=0, message=str(exc))
        count = int(data.get("count") or 0)
        message = str(data.get("message") or f"{count} inspections migrated")
        return MigrationResult(success=True, count=count, message=message)

    # -- fire and forget ---------------------------------------------------

    def _spawn(self, coro: Any, label: str) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("No running event loop, %s deferred to next save", label)
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def schedule_push(self, draft: Draft) -> asyncio.Task[Any] | None:
        """Queue a push of the draft as it is right now."""
        if not self.enabled:
            return None
        return self._spawn(self.push(draft.to_json()), f"push of {draft.id}")

    def schedule_delete(self, draft_id: str) -> asyncio.Task[Any] | None:
        if not self.enabled:
            return None
        return self._spawn(self.push_delete(draft_id), f"delete of {draft_id}")

    async def drain(self) -> None:
        """Wait for every queued sync task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
