"""
devflow_mcp.servers.documents_server

FastMCP stdio server that turns requirement documents into text an agent can read.

Exposed tools:
- server_info()
- parse_document(document_path): .docx -> HTML + raw text
- extract_html(html_path, include_html?): text and title/description/keywords from an HTML file

Run: python -m devflow_mcp documents
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from devflow_mcp import __version__
from devflow_mcp import documents
from devflow_mcp.envelope import failure, ok

SERVER_NAME = "document-parser"
DESCRIPTION = "Extracts HTML and plain text from Word documents and local HTML files."

mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "Document Parser MCP Server\n"
        "\n"
        "- parse_document converts a .docx file to HTML and raw text; converter warnings are\n"
        "  listed under 'messages'.\n"
        "- extract_html strips scripts, styles and tags from a saved HTML page and returns the\n"
        "  text plus title/description/keywords.\n"
        "Feed the raw text to the work-items workflow (workitems-manager.write_work_items).\n"
    ),
)


@mcp.tool
def server_info() -> dict[str, Any]:
    """Return server name, version, description and transport."""
    return ok(
        name=SERVER_NAME,
        version=__version__,
        description=DESCRIPTION,
        transport="stdio",
    )


@mcp.tool
def parse_document(document_path: str) -> dict[str, Any]:
    """Parse a Word (.docx) document and extract HTML and raw text."""
    try:
        result = documents.parse_document(document_path)
    except Exception as exc:
        return failure("Failed to parse document", exc, path=document_path)
    return ok(**result)


@mcp.tool
def extract_html(html_path: str, include_html: bool = False) -> dict[str, Any]:
    """Extract plain text and metadata from an HTML file."""
    try:
        result = documents.read_html_file(html_path, include_html=include_html)
    except Exception as exc:
        return failure("Failed to extract HTML", exc, path=html_path)
    return ok(**result)


def main() -> None:
    from devflow_mcp.server import run

    run("documents")


if __name__ == "__main__":
    main()
