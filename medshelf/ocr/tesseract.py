"""Local Tesseract OCR label reader."""

from __future__ import annotations

import asyncio

from ..errors import LabelReadError
from . import ExtractedLabel, LabelReader
from .text import parse_label_text


class TesseractLabelReader(LabelReader):
    """Read medicine labels offline with Tesseract."""

    def __init__(self, cmd: str = "", lang: str = "eng") -> None:
        self._cmd = cmd
        self._lang = lang

    async def extract(self, image_path: str) -> ExtractedLabel:
        text = await asyncio.to_thread(self._image_to_text, image_path)
        return parse_label_text(text)

    def _image_to_text(self, image_path: str) -> str:
        try:
            import pytesseract
            from PIL import Image
        except ImportError:
            raise ImportError(
                "pytesseract and Pillow are required: pip install 'medshelf[ocr]'"
            ) from None

        if self._cmd:
            pytesseract.pytesseract.tesseract_cmd = self._cmd
        try:
            with Image.open(image_path) as image:
                return pytesseract.image_to_string(image, lang=self._lang)
        except OSError as e:
            # TesseractNotFoundError is an OSError too
            raise LabelReadError(f"cannot read {image_path}: {e}") from e
