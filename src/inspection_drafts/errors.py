"""Exception types shared across the draft store, sync and session layers."""

from __future__ import annotations


class StorageError(Exception):
    """Local persistence failure. Absorbed inside the record store."""


class StorageQuotaExceededError(StorageError):
    """Raised by the key-value backend when a write would exceed its quota."""

    def __init__(self, key: str, size: int, quota: int) -> None:
        super().__init__(f"Writing {size} bytes to {key!r} exceeds quota of {quota} bytes")
        self.key = key
        self.size = size
        self.quota = quota


class RemoteAPIError(Exception):
    """Remote backend failure with HTTP status and error code."""

    def __init__(self, message: str, code: str, status: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.status == 404 or self.code == "not_found"


class ValidationRejectedError(Exception):
    """Required property fields are missing. Surfaced to the end user."""

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


class DraftNotFoundError(LookupError):
    def __init__(self, draft_id: str) -> None:
        super().__init__(f"Inspection not found: {draft_id}")
        self.draft_id = draft_id


class InvalidTransitionError(Exception):
    """Lifecycle transition not allowed from the draft's current status."""


class DeletionNotConfirmedError(Exception):
    """Deletion was requested without user confirmation."""
