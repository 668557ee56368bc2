"""
devflow_mcp.server

Process entry points shared by every devflow_mcp server.

- run(name): configure logging and serve one server over stdio
- invoke_tool(mcp, tool, arguments): call a tool in-process and return its JSON payload
- cli_main(): inspect servers and tools, call a tool once, or serve

Usage:
  python -m devflow_mcp --list-servers
  python -m devflow_mcp filesystem                   -> stdio MCP server
  python -m devflow_mcp filesystem --list-tools
  python -m devflow_mcp filesystem --call read_file --args '{"file_path": "README.md"}'
"""

from __future__ import annotations

import asyncio
import importlib
import json
from types import ModuleType
from typing import Any

from fastmcp import Client, FastMCP
from fastmcp.exceptions import ToolError
from mcp.shared.exceptions import McpError

from devflow_mcp import __version__
from devflow_mcp.config import configure_logging
from devflow_mcp.envelope import failure
from devflow_mcp.servers import SERVERS


def load_server(name: str) -> ModuleType:
    """Import the module for a registered server name."""
    try:
        entry = SERVERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown server '{name}'. Available: {', '.join(sorted(SERVERS))}"
        ) from None
    return importlib.import_module(entry["module"])


# --- In-process tool calls ---
async def _list_tool_names(mcp: FastMCP) -> list[str]:
    async with Client(mcp) as client:
        tools = await client.list_tools()
    return sorted(t.name for t in tools)


def list_tool_names(mcp: FastMCP) -> list[str]:
    return asyncio.run(_list_tool_names(mcp))


async def _invoke_tool(
    mcp: FastMCP, tool: str, arguments: dict[str, Any]
) -> dict[str, Any]:
    async with Client(mcp) as client:
        tools = sorted(t.name for t in await client.list_tools())
        if tool not in tools:
            return {
                "error": f"Unknown tool: {tool}",
                "available_tools": tools,
                "success": False,
            }
        try:
            result = await client.call_tool(tool, arguments)
        except (ToolError, McpError) as exc:
            return failure("Tool call failed", exc, tool=tool)

    content = getattr(result, "content", result)
    if not content:
        return failure("Tool call failed", "tool returned no content", tool=tool)
    return json.loads(content[0].text)


def invoke_tool(
    mcp: FastMCP, tool: str, arguments: dict[str, Any] | None = None
) -> dict[str, Any]:
    """
    function_purpose: Call one tool through an in-memory FastMCP client.

    Unknown tool names yield {"error": "Unknown tool: <name>", "available_tools", "success": False}
    instead of raising; argument validation failures yield the standard error payload.
    """
    return asyncio.run(_invoke_tool(mcp, tool, arguments or {}))


# --- Entry points ---
def run(name: str) -> None:
    """
    function_purpose: Entry point to start one MCP stdio server.

    - Configures logging
    - Imports the server module (which builds its FastMCP instance)
    - Runs FastMCP stdio server
    """
    logger = configure_logging()
    module = load_server(name)
    logger.info(
        "Server '%s' (%s) v%s starting on stdio", name, module.SERVER_NAME, __version__
    )
    module.mcp.run()  # stdio transport by default


def cli_main(argv: list[str] | None = None) -> None:
    """
    function_purpose: CLI for inspecting servers and calling tools without an MCP client.
    """
    import argparse

    parser = argparse.ArgumentParser(
        prog="devflow_mcp",
        description="Development workflow MCP servers (stdio). Serves SERVER by default.",
    )
    parser.add_argument("server", nargs="?", choices=sorted(SERVERS), help="Server to run")
    parser.add_argument(
        "--list-servers", action="store_true", help="List available servers and exit"
    )
    parser.add_argument(
        "--list-tools", action="store_true", help="List tools of SERVER and exit"
    )
    parser.add_argument("--call", metavar="TOOL", help="Call TOOL once and print the result")
    parser.add_argument(
        "--args",
        metavar="JSON",
        default="{}",
        help="JSON object of arguments for --call",
    )

    args = parser.parse_args(argv)
    logger = configure_logging()

    if args.list_servers:
        catalog = [
            {"name": name, "description": entry["description"]}
            for name, entry in sorted(SERVERS.items())
        ]
        print(json.dumps(catalog, indent=2, ensure_ascii=False))
        return

    if not args.server:
        parser.error("a server name is required unless --list-servers is given")

    if args.list_tools:
        module = load_server(args.server)
        print(json.dumps(list_tool_names(module.mcp), indent=2))
        return

    if args.call:
        try:
            arguments = json.loads(args.args)
        except json.JSONDecodeError as exc:
            parser.error(f"--args is not valid JSON: {exc}")
        if not isinstance(arguments, dict):
            parser.error("--args must be a JSON object")
        logger.info("Calling %s.%s", args.server, args.call)
        module = load_server(args.server)
        payload = invoke_tool(module.mcp, args.call, arguments)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    # Default: start server
    run(args.server)


if __name__ == "__main__":
    cli_main()
