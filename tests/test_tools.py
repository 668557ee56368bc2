from __future__ import annotations

import json
from pathlib import Path

from devflow_mcp.server import invoke_tool, list_tool_names
from devflow_mcp.servers import controllers_server, documents_server
from devflow_mcp.servers import filesystem_server, workitems_server


def test_tool_catalogs() -> None:
    assert set(list_tool_names(filesystem_server.mcp)) == {
        "server_info",
        "read_file",
        "list_directory",
        "search_files",
        "get_file_info",
        "find_code_patterns",
        "cache_stats",
    }
    assert "plan_work_items" in list_tool_names(workitems_server.mcp)
    assert "generate_controller" in list_tool_names(controllers_server.mcp)
    assert "parse_document" in list_tool_names(documents_server.mcp)


def test_unknown_tool_returns_error_payload() -> None:
    result = invoke_tool(filesystem_server.mcp, "delete_everything", {})
    assert result["success"] is False
    assert result["error"] == "Unknown tool: delete_everything"
    assert "read_file" in result["available_tools"]


def test_missing_required_argument_returns_error_payload() -> None:
    result = invoke_tool(filesystem_server.mcp, "read_file", {})
    assert result["success"] is False
    assert result["error"] == "Tool call failed"
    assert result["tool"] == "read_file"


def test_server_info() -> None:
    info = invoke_tool(filesystem_server.mcp, "server_info")
    assert info["success"] is True
    assert info["name"] == "filesystem-manager"
    assert info["transport"] == "stdio"
    assert "csharp" in info["supported_languages"]


def test_read_file_success_and_failure(tmp_path: Path) -> None:
    f = tmp_path / "hello.txt"
    f.write_text("a\nb\nc\n", encoding="utf-8")

    ok = invoke_tool(
        filesystem_server.mcp,
        "read_file",
        {"file_path": str(f), "start_line": 2, "end_line": 2},
    )
    assert ok["success"] is True
    assert ok["content"] == "b"

    missing = invoke_tool(
        filesystem_server.mcp, "read_file", {"file_path": str(tmp_path / "nope.txt")}
    )
    assert missing["success"] is False
    assert missing["error"] == "Failed to read file"
    assert missing["file_path"] == str(tmp_path / "nope.txt")
    assert missing["details"]


def test_search_files_invalid_regex_is_reported(tmp_path: Path) -> None:
    result = invoke_tool(
        filesystem_server.mcp,
        "search_files",
        {"search_path": str(tmp_path), "pattern": "([a-z"},
    )
    assert result["success"] is False
    assert result["pattern"] == "([a-z"


def test_cache_stats_tool() -> None:
    stats = invoke_tool(filesystem_server.mcp, "cache_stats")
    assert stats["success"] is True
    assert stats["cache"]["max_size"] >= 1


def test_work_items_tool_flow(tmp_path: Path) -> None:
    path = tmp_path / "work_items.json"
    document = {
        "epics": [
            {
                "id": "E1",
                "title": "Ops",
                "user_stories": [
                    {
                        "id": "US1",
                        "title": "Health check endpoint",
                        "tasks": [{"id": "T1", "title": "Add liveness route", "status": "todo"}],
                    }
                ],
            }
        ]
    }

    written = invoke_tool(
        workitems_server.mcp,
        "write_work_items",
        {"work_items_path": str(path), "document": document, "source_document": "ops.docx"},
    )
    assert written["success"] is True
    assert written["valid"] is True
    assert written["metadata"]["source_document"] == "ops.docx"
    assert written["summary"]["tasks"] == 1
    assert json.loads(path.read_text(encoding="utf-8"))["metadata"]["generated_at"]

    plan = invoke_tool(
        workitems_server.mcp,
        "plan_work_items",
        {"work_items_path": str(path), "project_path": str(tmp_path)},
    )
    assert plan["total_work_items"] == 1
    call = plan["todo_items"][0]["mcp_tool_call"]["params"]

    implemented = invoke_tool(workitems_server.mcp, call["name"], call["arguments"])
    assert implemented["success"] is True
    assert implemented["work_item_summary"]["type"] == "task"
    assert implemented["target_controller"] == "Business"


def test_validate_work_items_inline_document() -> None:
    result = invoke_tool(
        workitems_server.mcp,
        "validate_work_items",
        {"document": {"epics": [{"id": "Epic1"}], "metadata": {}}},
    )
    assert result["success"] is True
    assert result["valid"] is False
    assert result["error_count"] >= 1
    assert result["warning_count"] == 1


def test_read_work_items_missing_file(tmp_path: Path) -> None:
    result = invoke_tool(
        workitems_server.mcp,
        "read_work_items",
        {"work_items_path": str(tmp_path / "none.json")},
    )
    assert result["success"] is False
    assert "not found" in result["details"]


def test_controllers_tools(tmp_path: Path) -> None:
    controllers = tmp_path / "Controllers"
    controllers.mkdir()
    (controllers / "EchoController.cs").write_text(
        "public class EchoController\n{\n    [HttpGet]\n    public string Get() => \"echo\";\n}\n",
        encoding="utf-8",
    )

    created = invoke_tool(
        controllers_server.mcp,
        "generate_controller",
        {"controllers_dir": str(controllers), "controller_name": "Orders"},
    )
    assert created["success"] is True
    assert created["controller_name"] == "Orders"
    assert (controllers / "OrdersController.cs").exists()

    again = invoke_tool(
        controllers_server.mcp,
        "generate_controller",
        {"controllers_dir": str(controllers), "controller_name": "Orders"},
    )
    assert again["success"] is False
    assert "suggested_action" in again

    endpoints = invoke_tool(
        controllers_server.mcp, "list_endpoints", {"controllers_dir": str(controllers)}
    )
    assert endpoints["total"] == 2


def test_extract_html_tool(tmp_path: Path) -> None:
    page = tmp_path / "p.html"
    page.write_text("<title>T</title><p>Body</p>", encoding="utf-8")
    result = invoke_tool(documents_server.mcp, "extract_html", {"html_path": str(page)})
    assert result["success"] is True
    assert result["metadata"]["title"] == "T"
    assert result["text"] == "T\nBody"
