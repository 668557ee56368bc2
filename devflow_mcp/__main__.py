"""
Package entry point for launching a devflow_mcp server.

This allows running:
  - python -m devflow_mcp filesystem      -> starts the filesystem server on stdio
  - python -m devflow_mcp --list-servers  -> prints the server catalog

The entry point delegates to devflow_mcp.server.cli_main().
"""

from devflow_mcp.server import cli_main


def main() -> None:
    cli_main()


if __name__ == "__main__":
    main()
