"""
devflow_mcp: FastMCP stdio tool servers for a document-to-code development workflow.

Each server in `devflow_mcp.servers` runs as its own process and exposes a small set
of tools (filesystem search, Agile work items, controller stubs, document parsing)
to MCP-aware agents.
"""

__version__: str = "0.1.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
