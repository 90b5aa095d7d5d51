"""Property form definition loaded from form.yaml."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from inspection_drafts.errors import ValidationRejectedError

DEFAULT_REQUIRED_FIELDS = (
    "inspectionType",
    "code",
    "type",
    "address",
    "addressNumber",
    "neighborhood",
    "city",
    "zipCode",
)


def _ensure_list(v: Any) -> list:
    if v is None:
        return []
    return v


class FormDefinition(BaseModel):
    version: int = Field(default=1)
    required_fields: list[str] = Field(default_factory=lambda: list(DEFAULT_REQUIRED_FIELDS))
    room_type_labels: dict[str, str] = Field(default_factory=dict)
    condition_labels: dict[str, str] = Field(default_factory=dict)
    action_labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("required_fields", mode="before")
    @classmethod
    def _validate_required_fields(cls, v: Any) -> list:
        return _ensure_list(v)

    @field_validator("room_type_labels", "condition_labels", "action_labels", mode="before")
    @classmethod
    def _validate_labels(cls, v: Any) -> dict:
        if v is None:
            return {}
        return v

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "FormDefinition":
        return cls.model_validate(data)

    def missing_fields(self, property_data: dict[str, Any]) -> list[str]:
        missing: list[str] = []
        for field in self.required_fields:
            value = property_data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)
        return missing

    def validate_property_data(self, property_data: dict[str, Any]) -> None:
        missing = self.missing_fields(property_data)
        if missing:
            raise ValidationRejectedError(missing)

    def label_for_room_type(self, room_type: str) -> str:
        return self.room_type_labels.get(room_type, room_type)

    def label_for_condition(self, condition: str) -> str:
        return self.condition_labels.get(condition, condition)

    def label_for_action(self, action: str) -> str:
        return self.action_labels.get(action, action)


def load_form(path: str) -> FormDefinition:
    form_path = Path(path)
    if not form_path.exists():
        raise FileNotFoundError(f"Form definition not found: {form_path}")
    with form_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return FormDefinition.from_yaml(data)
