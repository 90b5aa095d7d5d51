from __future__ import annotations

from pathlib import Path

import pytest

from inspection_drafts.domain.forms import DEFAULT_REQUIRED_FIELDS, FormDefinition, load_form
from inspection_drafts.errors import ValidationRejectedError

FORM_PATH = Path(__file__).resolve().parents[1] / "form.yaml"


def test_bundled_form_loads() -> None:
    form = load_form(str(FORM_PATH))

    assert form.required_fields == list(DEFAULT_REQUIRED_FIELDS)
    assert form.label_for_room_type("area-servico") == "Área de Serviço"
    assert form.label_for_condition("pessimo") == "Péssimo"
    assert form.label_for_action("reopened") == "Reabertura para Edição"
    assert form.label_for_room_type("unknown") == "unknown"


def test_missing_fields_treats_blank_strings_as_missing() -> None:
    form = FormDefinition(required_fields=["code", "city", "zipCode"])

    missing = form.missing_fields({"code": "X1", "city": "   "})

    assert missing == ["city", "zipCode"]


def test_validate_raises_with_all_missing_fields() -> None:
    form = FormDefinition()

    with pytest.raises(ValidationRejectedError) as exc_info:
        form.validate_property_data({})

    assert exc_info.value.missing_fields == list(DEFAULT_REQUIRED_FIELDS)
    assert "inspectionType" in str(exc_info.value)


def test_null_sections_fall_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "form.yaml"
    path.write_text("required_fields:\nroom_type_labels:\n", encoding="utf-8")

    form = load_form(str(path))

    assert form.required_fields == []
    assert form.room_type_labels == {}


def test_missing_form_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_form(str(tmp_path / "nope.yaml"))
