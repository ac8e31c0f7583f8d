"""Heuristics for turning raw label text into medicine fields."""

from __future__ import annotations

import re

from . import ExtractedLabel

_EXPIRY_RE = re.compile(
    r"(?:expiration date|expiry date|exp date|expiration|expiry|exp)\s*:?\s*"
    r"(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}|\d{1,2}[/\-.]\d{4})",
    re.IGNORECASE,
)
_FULL_DATE_RE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})")
_MONTH_YEAR_RE = re.compile(r"(\d{1,2})[/\-.](\d{4})")


def standardize_date(text: str) -> str:
    """Convert a printed date to ``MM/YYYY``.

    Full dates are read as DD/MM/YYYY, the usual order on medicine packs,
    and two-digit years as 20YY. Text that matches neither pattern is
    returned unchanged.
    """
    text = text.strip()

    m = _FULL_DATE_RE.search(text)
    if m:
        month, year = m.group(2), m.group(3)
        if len(year) == 2:
            year = "20" + year
        elif len(year) == 3:
            return text
    else:
        m = _MONTH_YEAR_RE.search(text)
        if not m:
            return text
        month, year = m.group(1), m.group(2)

    if not 1 <= int(month) <= 12:
        return text
    return f"{int(month):02d}/{year}"


def parse_label_text(text: str) -> ExtractedLabel:
    """Pick name, company and expiry date out of OCR text.

    The first line is taken as the name and the second as the company,
    unless either carries the expiry date.
    """
    label = ExtractedLabel()
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    for index, line in enumerate(lines):
        m = _EXPIRY_RE.search(line)
        if m:
            label.expiry_date = standardize_date(m.group(1))
            continue
        if index == 0:
            label.name = line
        elif index == 1 and label.name:
            label.company = line

    return label
