"""SQLite storage for the medicine inventory and reminder bindings."""

from .bindings import ReminderBindingDB
from .medicines import DEFAULT_DB_PATH, MedicineDB
from .schema import ensure_schema

__all__ = [
    "DEFAULT_DB_PATH",
    "MedicineDB",
    "ReminderBindingDB",
    "ensure_schema",
]
