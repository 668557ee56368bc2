"""
devflow_mcp.servers.filesystem_server

FastMCP stdio server for reading, listing and searching files anywhere on disk.

Exposed tools:
- server_info(): name, version, description, transport
- read_file(file_path, encoding?, start_line?, end_line?)
- list_directory(directory_path, recursive?, filter?, max_depth?, include_hidden?)
- search_files(search_path, pattern, file_extensions?, recursive?, case_sensitive?, max_results?, include_content?)
- get_file_info(file_path)
- find_code_patterns(search_path, language?, pattern_type?, specific_patterns?)
- cache_stats()

Run: python -m devflow_mcp filesystem
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from devflow_mcp import __version__
from devflow_mcp.config import load_settings
from devflow_mcp.envelope import failure, ok
from devflow_mcp.filesystem import LANGUAGE_PATTERNS, FileSystemManager

SERVER_NAME = "filesystem-manager"
DESCRIPTION = (
    "Reads files with a small content cache, lists directories with depth limits, and "
    "runs regex searches across source trees."
)

settings = load_settings()
manager = FileSystemManager(cache_size=int(settings["cache_size"]))

mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "Filesystem Manager MCP Server\n"
        "\n"
        "- read_file reads any readable text file; use start_line/end_line (1-based, inclusive)\n"
        "  to fetch a window of a large file.\n"
        "- list_directory lists entries; recursive listings stop at max_depth and skip hidden\n"
        "  entries unless include_hidden is set. 'filter' is a glob such as '*.cs'.\n"
        "- search_files runs a regular expression over files and returns at most max_results\n"
        "  files with up to 10 matches each (line and column included).\n"
        "- find_code_patterns searches a built-in catalog of language patterns, e.g.\n"
        "  language='csharp', pattern_type='controller'.\n"
        "\n"
        "Every tool returns a JSON object with success=true, or {error, details, success:false}.\n"
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
        supported_languages={k: sorted(v) for k, v in LANGUAGE_PATTERNS.items()},
    )


@mcp.tool
def read_file(
    file_path: str,
    encoding: str = "utf-8",
    start_line: int | None = None,
    end_line: int | None = None,
) -> dict[str, Any]:
    """
    Read file contents from anywhere on the file system.

    Args:
    - file_path: absolute or relative path to the file
    - encoding: text encoding (default utf-8)
    - start_line: first line to return (1-based)
    - end_line: last line to return (inclusive)
    """
    try:
        result = manager.read_file(file_path, encoding, start_line, end_line)
    except Exception as exc:
        return failure("Failed to read file", exc, file_path=file_path)
    return ok(file_path=file_path, **result)


@mcp.tool
def list_directory(
    directory_path: str,
    recursive: bool = False,
    filter: str | None = None,
    max_depth: int = int(settings["list_max_depth"]),
    include_hidden: bool = False,
) -> dict[str, Any]:
    """
    List directory contents with filtering options.

    Returns: {directory_path, items: [{name, path, type, size, modified, extension, depth}], total_count}
    """
    try:
        items = manager.list_directory(
            directory_path,
            recursive=recursive,
            name_filter=filter,
            max_depth=max_depth,
            include_hidden=include_hidden,
        )
    except Exception as exc:
        return failure("Failed to list directory", exc, directory_path=directory_path)
    return ok(
        directory_path=directory_path,
        items=items,
        total_count=len(items),
        recursive=recursive,
    )


@mcp.tool
def search_files(
    search_path: str,
    pattern: str,
    file_extensions: list[str] | None = None,
    recursive: bool = True,
    case_sensitive: bool = False,
    max_results: int = int(settings["search_max_results"]),
    include_content: bool = False,
) -> dict[str, Any]:
    """
    Search for a regular expression across multiple files.

    Returns: {results: [{path, filename, match_count, matches: [{text, index, line, column}]}], total_matches}
    """
    try:
        results = manager.search_files(
            search_path,
            pattern,
            file_extensions=file_extensions,
            recursive=recursive,
            case_sensitive=case_sensitive,
            max_results=max_results,
            include_content=include_content,
            max_depth=int(settings["search_max_depth"]),
        )
    except Exception as exc:
        return failure(
            "Failed to search files", exc, search_path=search_path, pattern=pattern
        )
    return ok(
        search_path=search_path,
        pattern=pattern,
        results=results,
        total_matches=len(results),
        search_options={
            "recursive": recursive,
            "case_sensitive": case_sensitive,
            "file_extensions": file_extensions,
            "max_results": max_results,
        },
    )


@mcp.tool
def get_file_info(file_path: str) -> dict[str, Any]:
    """Get detailed information about a file or directory."""
    try:
        info = manager.get_file_info(file_path)
    except Exception as exc:
        return failure("Failed to get file info", exc, file_path=file_path)
    return ok(file_info=info)


@mcp.tool
def find_code_patterns(
    search_path: str,
    language: str = "csharp",
    pattern_type: str = "controller",
    specific_patterns: list[str] | None = None,
) -> dict[str, Any]:
    """
    Find specific code patterns for a programming language.

    Args:
    - language: csharp | typescript | javascript | python
    - pattern_type: e.g. controller, service, model, repository (csharp); component (typescript)
    - specific_patterns: custom regex patterns, used instead of the catalog
    """
    try:
        found = manager.find_code_patterns(
            search_path, language, pattern_type, specific_patterns
        )
    except Exception as exc:
        return failure("Failed to find code patterns", exc, search_path=search_path)
    return ok(
        search_path=search_path,
        language=language,
        pattern_type=pattern_type,
        **found,
    )


@mcp.tool
def cache_stats() -> dict[str, Any]:
    """Report file content cache size, capacity, hits, misses and evictions."""
    return ok(cache=manager.cache.stats())


def main() -> None:
    from devflow_mcp.server import run

    run("filesystem")


if __name__ == "__main__":
    main()
