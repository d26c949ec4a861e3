"""Best-effort conversion of markdown-ish completion output to HTML.

Only used when the model ignores the instruction to answer in HTML.  This is
deliberately a handful of line patterns, not a markdown parser: nested lists,
tables, emphasis and code blocks pass through untouched.
"""

from __future__ import annotations

import re

_HEADING_RE = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)
_BULLET_RE = re.compile(r"^\*\s+(.+)$", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE)
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


def looks_like_html(text: str) -> bool:
    return "<" in text and ">" in text


def markdown_to_html(text: str) -> str:
    """Convert headings, list lines and inline links, then wrap paragraphs.

    Paragraphs are the chunks between blank lines; each becomes one ``<p>``.
    """
    text = _HEADING_RE.sub(r"<h3>\1</h3>", text)
    text = _BULLET_RE.sub(r"<li>\1</li>", text)
    text = _NUMBERED_RE.sub(r"<li>\1</li>", text)
    text = _LINK_RE.sub(r'<a href="\2">\1</a>', text)
    return "".join(f"<p>{chunk}</p>" for chunk in text.split("\n\n"))
