"""
devflow_mcp.servers

One FastMCP server module per process. Each module defines a module-level `mcp`
instance and a `main()` console entry point.
"""

from __future__ import annotations

SERVERS: dict[str, dict[str, str]] = {
    "filesystem": {
        "module": "devflow_mcp.servers.filesystem_server",
        "description": "Read, list and regex-search files; built-in code pattern catalog.",
    },
    "workitems": {
        "module": "devflow_mcp.servers.workitems_server",
        "description": "Write, read, validate and plan the Agile work-items JSON.",
    },
    "controllers": {
        "module": "devflow_mcp.servers.controllers_server",
        "description": "Generate controller stubs from a template and check coverage.",
    },
    "documents": {
        "module": "devflow_mcp.servers.documents_server",
        "description": "Extract HTML and text from .docx documents and HTML files.",
    },
}

__all__: list[str] = ["SERVERS"]
