"""Claude API label reader."""

from __future__ import annotations

import base64
import json
import mimetypes
from pathlib import Path

from ..errors import LabelReadError
from . import ExtractedLabel, LabelReader
from .text import standardize_date

_PROMPT = """\
This image shows a medicine package.
Read the medicine's brand name, the manufacturer, and the expiry date.

Return only this JSON object (no other text):
{"name": "medicine name", "company": "manufacturer", "expiryDate": "MM/YYYY"}

Use an empty string for any field you cannot read.
"""


class ClaudeLabelReader(LabelReader):
    """Read medicine labels using Claude's vision capability."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    async def extract(self, image_path: str) -> ExtractedLabel:
        if not self._api_key:
            raise LabelReadError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        try:
            data = Path(image_path).read_bytes()
        except OSError as e:
            raise LabelReadError(f"cannot read image {image_path}: {e}") from e
        media_type = mimetypes.guess_type(image_path)[0] or "image/jpeg"
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.standard_b64encode(data).decode(),
                },
            },
            {"type": "text", "text": _PROMPT},
        ]

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=1024,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise LabelReadError(f"Claude request failed: {e}") from e

        text = response.content[0].text
        return _parse_response(text)


def _parse_response(text: str) -> ExtractedLabel:
    """Parse the JSON object from Claude's response."""
    # Strip markdown fences if present
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    try:
        item = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise LabelReadError(f"unexpected reply from Claude: {text[:200]!r}") from e
    if not isinstance(item, dict):
        raise LabelReadError(f"unexpected reply from Claude: {text[:200]!r}")
    expiry_date = item.get("expiryDate") or ""
    return ExtractedLabel(
        name=(item.get("name") or "").strip(),
        company=(item.get("company") or "").strip(),
        expiry_date=standardize_date(expiry_date) if expiry_date else "",
    )
