"""
modules/tool_usage/instruction_text.py
----------------------------------------
Plain-text rendering of provider turn instructions.

The Directions API returns ``html_instructions`` such as
``"Turn <b>left</b> onto <b>Park St</b>"``; the roadmap stores plain text.
"""

from __future__ import annotations

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text: str | None) -> str:
    """Remove markup tags, then decode entities (``&amp;`` → ``&``)."""
    if not text:
        return ""
    return html.unescape(_TAG_RE.sub("", text)).strip()
