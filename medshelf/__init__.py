"""Medicine expiry tracking with scheduled local reminders."""

from .cabinet import MedicineCabinet
from .config import (
    DatabaseConfig,
    ExpiryConfig,
    MedshelfConfig,
    NotificationConfig,
    OCRConfig,
    load_config,
)
from .db import MedicineDB, ReminderBindingDB
from .errors import (
    InvalidFormat,
    InvalidRecord,
    LabelReadError,
    MedshelfError,
    StorageUnavailable,
)
from .expiry import ExpiryStatus, MonthYear, classify
from .models import Medicine, MedicineWithDays, ReminderBinding
from .notifications import (
    DisplayPolicy,
    NotificationService,
    PermissionStatus,
    ReminderPayload,
)
from .ocr import ExtractedLabel, LabelReader, create_reader
from .reconciler import ExpiryReminderReconciler

__all__ = [
    "MedicineCabinet",
    "MedicineDB",
    "ReminderBindingDB",
    "ExpiryReminderReconciler",
    "Medicine",
    "MedicineWithDays",
    "ReminderBinding",
    "MonthYear",
    "ExpiryStatus",
    "classify",
    "NotificationService",
    "DisplayPolicy",
    "PermissionStatus",
    "ReminderPayload",
    "LabelReader",
    "ExtractedLabel",
    "create_reader",
    "MedshelfError",
    "InvalidFormat",
    "InvalidRecord",
    "LabelReadError",
    "StorageUnavailable",
    "MedshelfConfig",
    "DatabaseConfig",
    "NotificationConfig",
    "ExpiryConfig",
    "OCRConfig",
    "load_config",
]
