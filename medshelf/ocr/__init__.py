"""Label reader base class, data types, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import MedshelfConfig


@dataclass
class ExtractedLabel:
    name: str = ""
    company: str = ""
    expiry_date: str = ""  # MM/YYYY when recognized

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "company": self.company,
            "expiryDate": self.expiry_date,
        }


class LabelReader(ABC):
    """Abstract base for reading medicine details from a package photo."""

    @abstractmethod
    async def extract(self, image_path: str) -> ExtractedLabel:
        """Extract name, company and expiry date from one image.

        Fields that cannot be read are left empty.
        """
        ...


def create_reader(config: MedshelfConfig) -> LabelReader:
    """Create a label reader based on configuration."""
    backend_name = config.ocr.backend

    match backend_name:
        case "claude":
            from .claude import ClaudeLabelReader

            return ClaudeLabelReader(
                api_key=config.ocr.claude.api_key,
                model=config.ocr.claude.model,
            )
        case "tesseract":
            from .tesseract import TesseractLabelReader

            return TesseractLabelReader(
                cmd=config.ocr.tesseract.cmd,
                lang=config.ocr.tesseract.lang,
            )
        case _:
            raise ValueError(
                f"Unknown OCR backend: {backend_name!r} "
                f"(choose claude or tesseract)"
            )
