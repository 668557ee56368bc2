"""
devflow_mcp.servers.controllers_server

FastMCP stdio server that produces controller stubs from an existing template
controller (e.g. the scaffolded EchoController.cs) and checks a project's
controllers against its work items.

Exposed tools:
- server_info()
- generate_stub(template_path, target_name, output_dir?, source_name?, suffix?, overwrite?)
- generate_controller(controllers_dir, controller_name, template_name?, overwrite?)
- identify_required_controllers(work_items_path)
- generate_controllers_from_work_items(work_items_path, controllers_dir, template_name?)
- add_route_constant(constants_path, constant_name, route_value)
- list_endpoints(controllers_dir)
- validate_implementation(work_items_path, controllers_dir)

Run: python -m devflow_mcp controllers
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from devflow_mcp import __version__
from devflow_mcp import controllers, stubgen
from devflow_mcp.config import load_settings
from devflow_mcp.envelope import failure, ok
from devflow_mcp.workitems import read_work_items

SERVER_NAME = "controller-manager"
DESCRIPTION = (
    "Generates controller source stubs by renaming an existing template controller, "
    "maps work items to controllers, and inventories HTTP endpoints."
)

settings = load_settings()
DEFAULT_TEMPLATE = str(settings["controller_template"])

mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "Controller Manager MCP Server\n"
        "\n"
        "Stubs are made by plain text substitution: every occurrence of the template's base\n"
        "name (e.g. 'Echo' in EchoController.cs) and its lowercase form is replaced with the\n"
        "new name. Review generated files; nothing is parsed or compiled.\n"
        "\n"
        "Typical flow: identify_required_controllers -> generate_controllers_from_work_items\n"
        "-> implement business logic -> validate_implementation.\n"
    ),
)


@mcp.tool
def server_info() -> dict[str, Any]:
    """Return server name, version, description, transport and default template."""
    return ok(
        name=SERVER_NAME,
        version=__version__,
        description=DESCRIPTION,
        transport="stdio",
        controller_template=DEFAULT_TEMPLATE,
    )


@mcp.tool
def generate_stub(
    template_path: str,
    target_name: str,
    output_dir: str | None = None,
    source_name: str | None = None,
    suffix: str = "",
    overwrite: bool = False,
) -> dict[str, Any]:
    """
    Write a renamed copy of any template file.

    Args:
    - template_path: file to copy (e.g. Models/EchoRequest.cs)
    - target_name: replacement base name
    - source_name: token to replace (default: template stem minus suffix)
    - suffix: shared name suffix (e.g. "Request")
    """
    try:
        result = stubgen.generate_stub(
            template_path,
            target_name,
            output_dir=output_dir,
            source_name=source_name,
            suffix=suffix,
            overwrite=overwrite,
        )
    except Exception as exc:
        return failure("Failed to generate stub", exc, template_path=template_path)
    return ok(**result)


@mcp.tool
def generate_controller(
    controllers_dir: str,
    controller_name: str,
    template_name: str = DEFAULT_TEMPLATE,
    overwrite: bool = False,
) -> dict[str, Any]:
    """Create <Name>Controller.cs next to the template controller."""
    try:
        result = controllers.generate_controller(
            controllers_dir, controller_name, template_name, overwrite
        )
    except Exception as exc:
        return failure(
            "Failed to generate controller",
            exc,
            controller_name=controller_name,
            suggested_action="Ensure the template controller exists in controllers_dir",
        )
    return ok(
        message="Controller generated from template",
        controller_name=result["name"],
        file_path=result["file_path"],
        template_source=result["template_source"],
    )


@mcp.tool
def identify_required_controllers(work_items_path: str) -> dict[str, Any]:
    """Map user stories onto controller names (consolidated, with related stories)."""
    try:
        document = read_work_items(work_items_path)
        specs = controllers.analyze_work_items_for_controllers(document)
    except Exception as exc:
        return failure(
            "Failed to identify controllers", exc, work_items_path=work_items_path
        )
    return ok(
        controllers=[
            {
                "name": s["name"],
                "type": s["type"],
                "related_stories": s["related_stories"],
                "acceptance_criteria": s["acceptance_criteria"],
                "task_ids": [t.get("id") for t in s["tasks"] if isinstance(t, dict)],
            }
            for s in specs
        ],
        next_tool="generate_controllers_from_work_items",
    )


@mcp.tool
def generate_controllers_from_work_items(
    work_items_path: str,
    controllers_dir: str,
    template_name: str = DEFAULT_TEMPLATE,
) -> dict[str, Any]:
    """Generate one controller per controller identified from the work items."""
    try:
        document = read_work_items(work_items_path)
        result = controllers.generate_controllers_from_work_items(
            document, controllers_dir, template_name
        )
    except Exception as exc:
        return failure(
            "Failed to generate controllers from work items",
            exc,
            work_items_path=work_items_path,
        )
    return ok(message="Controllers generated from work items", **result)


@mcp.tool
def add_route_constant(
    constants_path: str, constant_name: str, route_value: str
) -> dict[str, Any]:
    """Insert a `public const string` route constant into a constants class file."""
    try:
        result = stubgen.add_route_constant(constants_path, constant_name, route_value)
    except Exception as exc:
        return failure("Failed to add route constant", exc, constants_path=constants_path)
    return ok(message="Route constant added", **result)


@mcp.tool
def list_endpoints(controllers_dir: str) -> dict[str, Any]:
    """List [HttpGet/Post/Put/Delete/Patch] actions found in *.cs files."""
    try:
        endpoints = stubgen.list_endpoints(controllers_dir)
    except Exception as exc:
        return failure("Failed to list endpoints", exc, controllers_dir=controllers_dir)
    return ok(controllers_dir=controllers_dir, api_endpoints=endpoints, total=len(endpoints))


@mcp.tool
def validate_implementation(work_items_path: str, controllers_dir: str) -> dict[str, Any]:
    """Report controllers the work items need but the project does not have yet."""
    try:
        document = read_work_items(work_items_path)
        result = controllers.validate_implementation(document, controllers_dir)
    except Exception as exc:
        return failure(
            "Failed to validate implementation", exc, work_items_path=work_items_path
        )
    return ok(controllers_path=controllers_dir, **result)


def main() -> None:
    from devflow_mcp.server import run

    run("controllers")


if __name__ == "__main__":
    main()
