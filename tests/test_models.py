from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from inspection_drafts.domain.models import (
    Draft,
    HistoryAction,
    Photo,
    Room,
    RoomCondition,
    RoomType,
    has_captured_content,
)
from inspection_drafts.utils.ids import new_inspection_id
from inspection_drafts.utils.time import max_iso, parse_iso, utc_now


def test_inspection_id_format() -> None:
    draft_id = new_inspection_id()
    prefix, millis, suffix = draft_id.split("_")

    assert prefix == "inspection"
    assert millis.isdigit()
    assert len(suffix) == 9


def test_json_uses_camel_case_and_keeps_unknown_keys() -> None:
    draft = Draft.from_json(
        {
            "id": "inspection_1_abcdefghi",
            "currentStep": 2,
            "propertyData": {"code": "X1"},
            "pdfGenerated": True,
            "clientVersion": "2.1",
        }
    )

    data = draft.to_json()

    assert data["currentStep"] == 2
    assert data["pdfGenerated"] is True
    assert data["clientVersion"] == "2.1"
    assert "current_step" not in data
    assert data["completedAt"] is None


def test_current_step_bounds() -> None:
    with pytest.raises(ValidationError):
        Draft(current_step=0)
    with pytest.raises(ValidationError):
        Draft(current_step=5)


def test_condition_order_and_accented_alias() -> None:
    assert RoomCondition("péssimo") is RoomCondition.PESSIMO
    assert RoomCondition.RUIM.is_worse_than(RoomCondition.BOM)
    assert not RoomCondition.EXCELENTE.is_worse_than(RoomCondition.REGULAR)
    assert [c.rank for c in RoomCondition] == [0, 1, 2, 3, 4]


def test_room_accepts_wire_values() -> None:
    room = Room.model_validate(
        {"type": "area-servico", "condition": "bom", "photos": [{"url": "u", "publicId": "p1"}]}
    )

    assert room.type is RoomType.AREA_SERVICO
    assert room.photos[0].public_id == "p1"
    assert room.to_json()["photos"][0]["publicId"] == "p1"


def test_touch_never_moves_backwards() -> None:
    draft = Draft()
    future = utc_now() + timedelta(hours=1)
    draft.updated_at = future

    draft.touch()

    assert draft.updated_at == future


def test_timestamps_without_offset_are_read_as_utc() -> None:
    draft = Draft.from_json(
        {
            "createdAt": "2024-03-01T10:00:00",
            "updatedAt": "2024-03-01T10:00:00",
            "completedAt": "2024-03-01T11:00:00",
            "editHistory": [{"action": "finalized", "timestamp": "2024-03-01T11:00:00"}],
            "rooms": [{"photos": [{"timestamp": "2024-03-01T10:30:00"}]}],
        }
    )

    assert draft.updated_at == parse_iso("2024-03-01T10:00:00Z")
    assert draft.completed_at.tzinfo is not None
    assert draft.edit_history[0].timestamp.tzinfo is not None
    assert draft.rooms[0].photos[0].timestamp.tzinfo is not None

    draft.touch()
    assert draft.updated_at > parse_iso("2024-03-01T10:00:00Z")


def test_history_entries_are_appended() -> None:
    draft = Draft()
    draft.append_history(HistoryAction.FINALIZED, "ana")
    draft.append_history(HistoryAction.REOPENED)

    assert [e.action for e in draft.edit_history] == [
        HistoryAction.FINALIZED,
        HistoryAction.REOPENED,
    ]
    assert draft.edit_history[0].actor == "ana"
    assert draft.history_count(HistoryAction.FINALIZED) == 1


def test_strip_inline_media_only_for_uploaded_items() -> None:
    draft = Draft(
        rooms=[Room(photos=[Photo(url="https://cdn/x.jpg", data="AAA"), Photo(data="BBB")])]
    )

    assert draft.strip_inline_media() == 1
    assert draft.rooms[0].photos[0].data is None
    assert draft.rooms[0].photos[1].data == "BBB"


@pytest.mark.parametrize(
    ("property_data", "rooms", "expected"),
    [
        ({}, [], False),
        (None, None, False),
        ({"code": "", "city": None}, [], False),
        ({"code": "X1"}, [], True),
        ({}, [Room()], True),
    ],
)
def test_has_captured_content(property_data, rooms, expected) -> None:
    assert has_captured_content(property_data, rooms) is expected


def test_time_helpers() -> None:
    assert parse_iso("2024-03-01T10:00:00Z").tzinfo is not None
    assert parse_iso("garbage") is None
    assert max_iso("2024-03-01T10:00:00Z", "2024-03-01T09:00:00Z") == "2024-03-01T10:00:00Z"
    assert max_iso(None, "2024-03-01T09:00:00Z") == "2024-03-01T09:00:00Z"
