"""Data models for tracked medicines and their reminders."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

# snake_case attribute -> camelCase key used in exported JSON
_JSON_KEYS = {
    "id": "id",
    "name": "name",
    "company": "company",
    "expiry_date": "expiryDate",
    "notes": "notes",
    "image_uri": "imageUri",
    "created_at": "createdAt",
}
_ATTR_NAMES = {v: k for k, v in _JSON_KEYS.items()}
_ATTR_NAMES["addedAt"] = "created_at"

EDITABLE_FIELDS = frozenset({"name", "company", "expiry_date", "notes", "image_uri"})
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def normalize_field(key: str) -> str:
    """Map a camelCase or snake_case field name to the attribute name."""
    return _ATTR_NAMES.get(key, key)


@dataclass
class Medicine:
    """One tracked medicine pack."""

    name: str
    company: str = ""
    expiry_date: str = ""  # MM/YYYY, empty when unknown
    notes: str = ""
    image_uri: str = ""
    id: str = ""
    created_at: str = ""  # ISO8601, set once by the store

    @classmethod
    def from_row(cls, row) -> Medicine:
        return cls(
            id=row["id"],
            name=row["name"],
            company=row["company"] or "",
            expiry_date=row["expiry_date"] or "",
            notes=row["notes"] or "",
            image_uri=row["image_uri"] or "",
            created_at=row["created_at"],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Medicine:
        """Build from a JSON object in either camelCase or snake_case."""
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            attr = normalize_field(key)
            if attr in _JSON_KEYS and value is not None:
                kwargs[attr] = str(value)
        kwargs.setdefault("name", "")
        return cls(**kwargs)

    def to_dict(self) -> dict[str, str]:
        """Serialize with the camelCase keys of the export format."""
        return {_JSON_KEYS[k]: v for k, v in asdict(self).items()}


@dataclass
class MedicineWithDays:
    """A medicine annotated with its current day count to expiry."""

    medicine: Medicine
    days_until_expiry: int | None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = self.medicine.to_dict()
        data["daysUntilExpiry"] = self.days_until_expiry
        return data


@dataclass
class ReminderBinding:
    """Link between a medicine and its scheduled reminder."""

    record_id: str
    reminder_id: str
    trigger_at: str = ""  # ISO8601
