"""
devflow_mcp.servers.workitems_server

FastMCP stdio server for the Agile work-items JSON (Epics > User Stories > Tasks).

Exposed tools:
- server_info()
- write_work_items(work_items_path, document, source_document?, parser_version?)
- read_work_items(work_items_path)
- validate_work_items(work_items_path? | document?)
- summarize_work_items(work_items_path)
- plan_work_items(work_items_path, project_path, quality_level?)
- implement_work_item(work_item, project_path, quality_level?)

Run: python -m devflow_mcp workitems
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from devflow_mcp import __version__
from devflow_mcp.controllers import determine_target_controller
from devflow_mcp.envelope import failure, ok
from devflow_mcp.workitems import (
    QUALITY_LEVELS,
    classify_work_item,
    extract_requirements,
    plan_task_todos,
    read_work_items as load_work_items,
    summarize_work_items as summarize,
    validate_work_items as validate,
    write_work_items as save_work_items,
)

SERVER_NAME = "workitems-manager"
DESCRIPTION = (
    "Writes, reads and validates the Agile work-items JSON produced from parsed "
    "requirement documents, and plans per-task implementation calls."
)

mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "Work Items Manager MCP Server\n"
        "\n"
        "Document shape: {epics: [{id: 'E1', title, description, acceptance_criteria[],\n"
        "user_stories: [{id: 'US1', ..., tasks: [{id: 'T1', title, purpose,\n"
        "implementation_details, dependencies[], assignee, status: todo|in-progress|done,\n"
        "estimated_effort}]}]}], metadata: {generated_at, source_document, parser_version}}\n"
        "\n"
        "- write_work_items stamps metadata.generated_at and fills missing arrays.\n"
        "- validate_work_items reports id pattern, duplicate id, array and status problems\n"
        "  without failing; check 'valid' in the response.\n"
        "- plan_work_items returns one todo per task with a ready implement_work_item call.\n"
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
def write_work_items(
    work_items_path: str,
    document: dict[str, Any],
    source_document: str | None = None,
    parser_version: str | None = None,
) -> dict[str, Any]:
    """
    Persist a work items document to JSON, stamping metadata.generated_at.

    Validation issues are returned alongside the write; they do not block it.
    """
    try:
        written = save_work_items(
            work_items_path,
            document,
            source_document=source_document,
            parser_version=parser_version,
        )
    except Exception as exc:
        return failure(
            "Failed to write work items", exc, work_items_path=work_items_path
        )
    issues = validate(written)
    return ok(
        work_items_path=work_items_path,
        metadata=written["metadata"],
        summary=summarize(written),
        issues=issues,
        valid=not any(i["severity"] == "error" for i in issues),
    )


@mcp.tool
def read_work_items(work_items_path: str) -> dict[str, Any]:
    """Load a work items JSON file."""
    try:
        document = load_work_items(work_items_path)
    except Exception as exc:
        return failure("Failed to read work items", exc, work_items_path=work_items_path)
    return ok(work_items_path=work_items_path, document=document)


@mcp.tool
def validate_work_items(
    work_items_path: str | None = None,
    document: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Validate ids, nesting, array fields and task statuses.

    Provide either work_items_path or an inline document.
    """
    try:
        if document is None:
            if not work_items_path:
                raise ValueError("provide work_items_path or document")
            document = load_work_items(work_items_path)
    except Exception as exc:
        return failure(
            "Failed to validate work items", exc, work_items_path=work_items_path
        )
    issues = validate(document)
    errors = sum(1 for i in issues if i["severity"] == "error")
    return ok(
        valid=errors == 0,
        error_count=errors,
        warning_count=len(issues) - errors,
        issues=issues,
    )


@mcp.tool
def summarize_work_items(work_items_path: str) -> dict[str, Any]:
    """Count epics, user stories and tasks; break tasks down by status."""
    try:
        document = load_work_items(work_items_path)
    except Exception as exc:
        return failure(
            "Failed to summarize work items", exc, work_items_path=work_items_path
        )
    return ok(work_items_path=work_items_path, work_items_summary=summarize(document))


@mcp.tool
def plan_work_items(
    work_items_path: str,
    project_path: str,
    quality_level: str = "production",
) -> dict[str, Any]:
    """
    Create one todo per task, each carrying an implement_work_item tool call.

    quality_level: basic | production | enterprise
    """
    try:
        document = load_work_items(work_items_path)
        todos = plan_task_todos(document, project_path, quality_level)
    except Exception as exc:
        return failure(
            "Failed to plan work items", exc, work_items_path=work_items_path
        )
    return ok(
        message=f"Created {len(todos)} todo items for work item implementation",
        total_work_items=len(todos),
        todo_items=todos,
        next_tool="implement_work_item",
    )


@mcp.tool
def implement_work_item(
    work_item: dict[str, Any],
    project_path: str,
    quality_level: str = "production",
) -> dict[str, Any]:
    """
    Summarize what implementing one work item involves: its type, target controller,
    and the endpoint/validation/method requirements derived from it.
    """
    try:
        if quality_level not in QUALITY_LEVELS:
            raise ValueError(
                f"quality_level must be one of {list(QUALITY_LEVELS)}, got {quality_level!r}"
            )
        requirements = extract_requirements(work_item)
        target = determine_target_controller(work_item)
    except Exception as exc:
        return failure("Failed to analyze work item", exc, project_path=project_path)
    return ok(
        work_item_summary={
            "id": work_item.get("id"),
            "title": work_item.get("title"),
            "type": classify_work_item(work_item),
            "tasks_count": len(work_item.get("tasks") or []),
        },
        target_controller=target,
        requirements=requirements,
        project_path=project_path,
        quality_level=quality_level,
        next_tool="generate_controller",
    )


def main() -> None:
    from devflow_mcp.server import run

    run("workitems")


if __name__ == "__main__":
    main()
