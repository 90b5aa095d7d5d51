"""JSON export files for inspection drafts."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from inspection_drafts.domain.models import Draft
from inspection_drafts.utils.hashing import sha256_bytes
from inspection_drafts.utils.serialization import json_default
from inspection_drafts.utils.time import utc_now, utc_now_iso

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class ExportRecord:
    draft_id: str
    location: str
    checksum: str
    created_at: str


def _safe_name(value: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", value).strip("-.")
    return cleaned[:80] or "inspection"


class ExportStore:
    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    def filename_for(self, draft: Draft) -> str:
        code = str(draft.property_data.get("code") or "").strip()
        stamp = utc_now().strftime("%Y%m%d-%H%M%S")
        return f"vistoria-{_safe_name(code or draft.id)}-{stamp}.json"

    def write_draft(self, draft: Draft) -> ExportRecord:
        data = json.dumps(
            draft.to_json(), ensure_ascii=False, indent=2, default=json_default
        ).encode("utf-8")
        path = self._base / self.filename_for(draft)
        path.write_bytes(data)
        return ExportRecord(
            draft_id=draft.id,
            location=str(path),
            checksum=sha256_bytes(data),
            created_at=utc_now_iso(),
        )

    def read_json(self, location: str) -> dict:
        path = Path(location).resolve()
        # Only files inside the export directory may be read back.
        if not path.is_relative_to(self._base.resolve()):
            raise ValueError(f"Path is outside base directory: {location}")
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
