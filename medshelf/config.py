"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

DEFAULT_CONFIG_PATH = "~/.config/medshelf/config.toml"


@dataclass
class DatabaseConfig:
    path: str = "~/.config/medshelf/medshelf.db"


@dataclass
class NotificationConfig:
    enabled: bool = True
    lead_days: int = 30
    physical_device: bool = True
    show_alert: bool = True
    play_sound: bool = True
    set_badge: bool = True
    resync_minutes: int = 5


@dataclass
class ExpiryConfig:
    expiring_soon_days: int = 60


@dataclass
class ClaudeOCRConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class TesseractOCRConfig:
    cmd: str = ""
    lang: str = "eng"


@dataclass
class OCRConfig:
    backend: str = "claude"
    claude: ClaudeOCRConfig = field(default_factory=ClaudeOCRConfig)
    tesseract: TesseractOCRConfig = field(default_factory=TesseractOCRConfig)


@dataclass
class MedshelfConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    expiry: ExpiryConfig = field(default_factory=ExpiryConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)


def load_config(path: str | Path | None = None) -> MedshelfConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The API key and database path can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path).expanduser()
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    ntf = raw.get("notifications", {})
    exp = raw.get("expiry", {})
    ocr = raw.get("ocr", {})

    claude_cfg = ocr.get("claude", {})
    tess_cfg = ocr.get("tesseract", {})

    # Resolve API key: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    # Database path: environment variable → config file
    db_path = os.environ.get("MEDSHELF_DB_PATH", "") or dbs.get(
        "path", "~/.config/medshelf/medshelf.db"
    )

    return MedshelfConfig(
        database=DatabaseConfig(path=db_path),
        notifications=NotificationConfig(
            enabled=ntf.get("enabled", True),
            lead_days=ntf.get("lead_days", 30),
            physical_device=ntf.get("physical_device", True),
            show_alert=ntf.get("show_alert", True),
            play_sound=ntf.get("play_sound", True),
            set_badge=ntf.get("set_badge", True),
            resync_minutes=ntf.get("resync_minutes", 5),
        ),
        expiry=ExpiryConfig(
            expiring_soon_days=exp.get("expiring_soon_days", 60),
        ),
        ocr=OCRConfig(
            backend=ocr.get("backend", "claude"),
            claude=ClaudeOCRConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            tesseract=TesseractOCRConfig(
                cmd=tess_cfg.get("cmd", ""),
                lang=tess_cfg.get("lang", "eng"),
            ),
        ),
    )
