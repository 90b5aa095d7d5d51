"""Remote synchronization of inspection drafts."""

from inspection_drafts.sync.client import (
    Credentials,
    MigrationResult,
    PushOutcome,
    PushResult,
    SyncClient,
)
from inspection_drafts.sync.remote import InspectionAPI

__all__ = [
    "Credentials",
    "InspectionAPI",
    "MigrationResult",
    "PushOutcome",
    "PushResult",
    "SyncClient",
]
