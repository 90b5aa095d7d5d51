"""Draft, room and media models.

Field names serialize as camelCase, which is the layout used both in the
local record store and on the wire to the inspections backend. Unknown keys
are kept so that data written by newer clients survives a round trip.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inspection_drafts.utils.ids import new_inspection_id, new_item_id
from inspection_drafts.utils.time import as_utc, utc_now

WIZARD_STEPS = 4
REVIEW_STEP = 3


class DraftStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class HistoryAction(str, Enum):
    FINALIZED = "finalized"
    REOPENED = "reopened"


class RoomType(str, Enum):
    QUARTO = "quarto"
    SUITE = "suite"
    SALA = "sala"
    COZINHA = "cozinha"
    BANHEIRO = "banheiro"
    LAVABO = "lavabo"
    VARANDA = "varanda"
    GARAGEM = "garagem"
    AREA_SERVICO = "area-servico"
    ESCRITORIO = "escritorio"
    DESPENSA = "despensa"
    OUTRO = "outro"


class RoomCondition(str, Enum):
    """Room condition, best first."""

    EXCELENTE = "excelente"
    BOM = "bom"
    REGULAR = "regular"
    RUIM = "ruim"
    PESSIMO = "pessimo"

    @classmethod
    def _missing_(cls, value: object) -> RoomCondition | None:
        if isinstance(value, str) and value.strip().lower() == "péssimo":
            return cls.PESSIMO
        return None

    @property
    def rank(self) -> int:
        """0 for the best condition, increasing as the condition gets worse."""
        return _CONDITION_ORDER.index(self)

    def is_worse_than(self, other: RoomCondition) -> bool:
        return self.rank > other.rank


_CONDITION_ORDER = tuple(RoomCondition)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class MediaItem(_CamelModel):
    """Common shape of photos and audio clips."""

    id: str = Field(default_factory=new_item_id)
    url: str | None = None
    public_id: str | None = Field(default=None, alias="publicId")
    data: str | None = Field(default=None, description="Inline encoded payload")
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def is_uploaded(self) -> bool:
        return bool(self.url)

    def strip_inline_payload(self) -> bool:
        """Drop ``data`` when the item already has a remote URL."""
        if self.is_uploaded and self.data is not None:
            self.data = None
            return True
        return False


class Photo(MediaItem):
    filename: str | None = None


class AudioClip(MediaItem):
    transcription: str | None = None


class Room(_CamelModel):
    id: str = Field(default_factory=new_item_id)
    type: RoomType = RoomType.OUTRO
    name: str | None = None
    condition: RoomCondition | None = None
    description: str = ""
    photos: list[Photo] = Field(default_factory=list)
    audios: list[AudioClip] = Field(default_factory=list)

    def media(self) -> list[MediaItem]:
        return [*self.photos, *self.audios]


class HistoryEntry(_CamelModel):
    action: HistoryAction
    timestamp: datetime = Field(default_factory=utc_now)
    actor: str | None = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class Draft(_CamelModel):
    """One inspection record, in progress or completed."""

    id: str = Field(default_factory=new_inspection_id)
    status: DraftStatus = DraftStatus.IN_PROGRESS
    current_step: int = Field(default=1, ge=1, le=WIZARD_STEPS, alias="currentStep")
    property_data: dict[str, Any] = Field(default_factory=dict, alias="propertyData")
    rooms: list[Room] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    edit_history: list[HistoryEntry] = Field(default_factory=list, alias="editHistory")
    pdf_generated: bool = Field(default=False, alias="pdfGenerated")

    @field_validator("created_at", "updated_at", "completed_at", mode="after")
    @classmethod
    def _utc_timestamps(cls, value: datetime | None) -> datetime | None:
        return None if value is None else as_utc(value)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Draft:
        return cls.model_validate(data)

    @property
    def is_completed(self) -> bool:
        return self.status == DraftStatus.COMPLETED

    @property
    def has_content(self) -> bool:
        return has_captured_content(self.property_data, self.rooms)

    def touch(self) -> None:
        """Bump ``updated_at`` without ever moving it backwards."""
        now = utc_now()
        if now > self.updated_at:
            self.updated_at = now

    def append_history(self, action: HistoryAction, actor: str | None = None) -> HistoryEntry:
        entry = HistoryEntry(action=action, actor=actor)
        self.edit_history.append(entry)
        return entry

    def history_count(self, action: HistoryAction) -> int:
        return sum(1 for entry in self.edit_history if entry.action == action)

    def strip_inline_media(self) -> int:
        stripped = 0
        for room in self.rooms:
            for item in room.media():
                if item.strip_inline_payload():
                    stripped += 1
        return stripped


def has_captured_content(property_data: dict[str, Any] | None, rooms: list[Any] | None) -> bool:
    """Return True when there is anything worth persisting.

    Property data counts only if at least one value is truthy, so a form
    submitted with blank fields does not create a record.
    """
    has_property_data = bool(property_data) and any(property_data.values())
    return has_property_data or bool(rooms)
