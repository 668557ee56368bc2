"""
devflow_mcp.documents

Word document conversion and lightweight HTML text/metadata extraction.
"""

from __future__ import annotations

import html as html_lib
import re
from pathlib import Path
from typing import Any

import mammoth

from devflow_mcp.workitems import utc_timestamp

SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.I | re.S)
TAG_RE = re.compile(r"<[^>]*>")
WHITESPACE_RE = re.compile(r"\s+")
INLINE_SPACE_RE = re.compile(r"[^\S\n]+")
# closing tags of block elements (and <br>) end a line of text
BLOCK_BREAK_RE = re.compile(r"<br\s*/?>|</(?:p|h[1-6]|li|div|tr|title)\s*>", re.I)
CELL_BREAK_RE = re.compile(r"</t[dh]\s*>", re.I)
TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.I | re.S)
META_TAG_RE = re.compile(r"<meta\b[^>]*>", re.I)
ATTR_RE = re.compile(r"""([\w:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")


def extract_text_from_html(html: str) -> str:
    """
    function_purpose: Plain text from HTML, one line per block element.

    Scripts and styles are dropped. Source whitespace is collapsed first, then block
    closings and <br> become newlines; inline tags are removed without adding a space,
    so <b>Im</b>portant stays one word. Blank lines are dropped.
    """
    text = SCRIPT_STYLE_RE.sub(" ", html)
    text = WHITESPACE_RE.sub(" ", text)
    text = BLOCK_BREAK_RE.sub("\n", text)
    text = CELL_BREAK_RE.sub(" ", text)
    text = TAG_RE.sub("", text)
    text = html_lib.unescape(text)
    lines = (INLINE_SPACE_RE.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def extract_html_metadata(html: str) -> dict[str, str | None]:
    result: dict[str, str | None] = {"title": None, "description": None, "keywords": None}
    title = TITLE_RE.search(html)
    if title:
        result["title"] = html_lib.unescape(WHITESPACE_RE.sub(" ", title.group(1)).strip())

    for tag in META_TAG_RE.findall(html):
        attrs = {
            m.group(1).lower(): m.group(2) if m.group(2) is not None else m.group(3)
            for m in ATTR_RE.finditer(tag)
        }
        name = (attrs.get("name") or "").lower()
        if name in ("description", "keywords") and result[name] is None:
            result[name] = html_lib.unescape(attrs.get("content") or "")
    return result


def parse_document(document_path: str | Path) -> dict[str, Any]:
    """
    function_purpose: Convert a .docx file to HTML and raw text.

    Returns: {
      "html": str,
      "raw_text": str,                     # paragraphs separated by blank lines
      "messages": [{"type", "message"}],   # converter warnings
      "metadata": {"path", "parsed_at", "size_bytes"}
    }
    """
    path = Path(document_path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix.lower() != ".docx":
        raise ValueError(f"expected a .docx document, got '{path.suffix or path.name}'")

    with path.open("rb") as fh:
        result = mammoth.convert_to_html(fh)
    with path.open("rb") as fh:
        raw = mammoth.extract_raw_text(fh)

    parsed_at = utc_timestamp()
    return {
        "html": result.value,
        "raw_text": raw.value,
        "messages": [{"type": m.type, "message": m.message} for m in result.messages],
        "metadata": {
            "path": str(path),
            "parsed_at": parsed_at,
            "size_bytes": path.stat().st_size,
        },
    }


def read_html_file(html_path: str | Path, include_html: bool = False) -> dict[str, Any]:
    path = Path(html_path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    html = path.read_text(encoding="utf-8", errors="replace")
    payload: dict[str, Any] = {
        "path": str(path),
        "text": extract_text_from_html(html),
        "metadata": extract_html_metadata(html),
        "size": len(html),
    }
    if include_html:
        payload["html"] = html
    return payload
