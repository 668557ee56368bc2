from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from devflow_mcp.documents import (
    extract_html_metadata,
    extract_text_from_html,
    parse_document,
    read_html_file,
)

PAGE = """<!doctype html>
<html>
<head>
  <title>  Sales &amp; Revenue
  Requirements </title>
  <meta name="description" content="Quarterly revenue dashboard">
  <meta content='dashboard, revenue' name='Keywords'>
  <style>body { color: red; }</style>
  <script type="text/javascript">var x = "<p>not text</p>";</script>
</head>
<body>
  <h1>Revenue</h1>
  <p>Show   revenue&nbsp;per <b>quarter</b>.</p>
</body>
</html>
"""


def test_extract_text_from_html_keeps_words_and_block_lines() -> None:
    text = extract_text_from_html(PAGE)
    assert text == (
        "Sales & Revenue Requirements\n"
        "Revenue\n"
        "Show revenue per quarter."
    )


def test_extract_text_from_html_inline_tags_do_not_split_words() -> None:
    assert extract_text_from_html("<p><strong>Im</strong>portant</p>") == "Important"
    assert extract_text_from_html("one<br/>two<BR>three") == "one\ntwo\nthree"
    assert extract_text_from_html(
        "<ul><li>first</li><li>second</li></ul>"
        "<table><tr><td>a</td><td>b</td></tr></table>"
    ) == "first\nsecond\na b"


def test_extract_html_metadata() -> None:
    meta = extract_html_metadata(PAGE)
    assert meta == {
        "title": "Sales & Revenue Requirements",
        "description": "Quarterly revenue dashboard",
        "keywords": "dashboard, revenue",
    }


def test_extract_html_metadata_absent_fields() -> None:
    assert extract_html_metadata("<p>hi</p>") == {
        "title": None,
        "description": None,
        "keywords": None,
    }


def test_read_html_file(tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    page.write_text(PAGE, encoding="utf-8")

    result = read_html_file(page)
    assert result["metadata"]["title"] == "Sales & Revenue Requirements"
    assert "html" not in result
    assert read_html_file(page, include_html=True)["html"] == PAGE


def test_read_html_file_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_html_file(tmp_path / "missing.html")


def test_parse_document_rejects_missing_and_non_docx(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        parse_document(tmp_path / "missing.docx")

    txt = tmp_path / "notes.txt"
    txt.write_text("plain", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_document(txt)


CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>"""

PACKAGE_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>"""

DOCUMENT_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">
  <w:body>
    <w:p><w:r><w:rPr><w:b/></w:rPr><w:t>Im</w:t></w:r><w:r><w:t>portant requirement</w:t></w:r></w:p>
    <w:p><w:r><w:t>Second para</w:t></w:r></w:p>
    <w:p><w:pPr><w:pStyle w:val="MissingStyle"/></w:pPr><w:r><w:t>Styled</w:t></w:r></w:p>
  </w:body>
</w:document>"""


def _write_docx(path: Path) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("[Content_Types].xml", CONTENT_TYPES)
        zf.writestr("_rels/.rels", PACKAGE_RELS)
        zf.writestr("word/document.xml", DOCUMENT_XML)
    return path


def test_parse_document_converts_docx(tmp_path: Path) -> None:
    docx = _write_docx(tmp_path / "requirements.docx")

    result = parse_document(docx)

    assert "<p><strong>Im</strong>portant requirement</p>" in result["html"]
    assert "<p>Second para</p>" in result["html"]
    # raw text keeps words whole and paragraphs apart
    assert "Important requirement\n\nSecond para" in result["raw_text"]
    assert "Im portant" not in result["raw_text"]

    # the undefined paragraph style is reported, not fatal
    assert result["messages"]
    for message in result["messages"]:
        assert message["type"] == "warning"
        assert isinstance(message["message"], str) and message["message"]
    assert any("MissingStyle" in m["message"] for m in result["messages"])

    meta = result["metadata"]
    assert meta["path"] == str(docx)
    assert meta["size_bytes"] == docx.stat().st_size
    assert meta["parsed_at"].endswith("Z")
