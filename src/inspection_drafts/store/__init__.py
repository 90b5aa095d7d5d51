"""Local draft persistence."""

from inspection_drafts.store.db import SqliteKeyValueStore
from inspection_drafts.store.namespaces import LEGACY_NAMESPACE, Namespace, namespace_for
from inspection_drafts.store.records import RecordStore

__all__ = [
    "LEGACY_NAMESPACE",
    "Namespace",
    "RecordStore",
    "SqliteKeyValueStore",
    "namespace_for",
]
