"""Inspection domain models."""

from inspection_drafts.domain.models import (
    AudioClip,
    Draft,
    DraftStatus,
    HistoryAction,
    HistoryEntry,
    Photo,
    Room,
    RoomCondition,
    RoomType,
    has_captured_content,
)

__all__ = [
    "AudioClip",
    "Draft",
    "DraftStatus",
    "HistoryAction",
    "HistoryEntry",
    "Photo",
    "Room",
    "RoomCondition",
    "RoomType",
    "has_captured_content",
]
