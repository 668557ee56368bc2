from __future__ import annotations

from pathlib import Path

import pytest

from devflow_mcp.stubgen import (
    add_route_constant,
    find_endpoints,
    generate_stub,
    insert_route_constant,
    list_endpoints,
    render_stub,
    sanitize_name,
)

ECHO_CONTROLLER = """using Microsoft.AspNetCore.Mvc;

namespace Demo.Api.Controllers
{
    [ApiController]
    [Route("api/echo")]
    public class EchoController : ControllerBase
    {
        private readonly IEchoService _echoService;

        [HttpGet("{message}")]
        public ActionResult<string> Get(string message) => _echoService.Echo(message);

        [HttpPost]
        [Route("batch")]
        public async Task<IActionResult> PostBatch([FromBody] EchoRequest request)
        {
            return Ok(await _echoService.EchoAll(request));
        }
    }
}
"""

ROUTE_CONSTANTS = """namespace Demo.Api
{
    public static class RouteConstants
    {
        public const string Echo = "api/echo";
    }
}
"""


def test_render_stub_replaces_both_cases() -> None:
    out = render_stub(ECHO_CONTROLLER, "Echo", "Inventory")
    assert "public class InventoryController" in out
    assert "IInventoryService _inventoryService" in out
    assert '[Route("api/inventory")]' in out
    assert "Echo" not in out
    assert "echo" not in out


def test_render_stub_is_single_pass() -> None:
    assert render_stub("Echo echo", "Echo", "Reecho") == "Reecho reecho"


def test_render_stub_rejects_empty_source() -> None:
    with pytest.raises(ValueError):
        render_stub("text", "", "X")


def test_sanitize_name() -> None:
    assert sanitize_name("Order-Items 2") == "OrderItems2"
    with pytest.raises(ValueError):
        sanitize_name("--")


def test_generate_stub_writes_renamed_file(tmp_path: Path) -> None:
    template = tmp_path / "EchoController.cs"
    template.write_text(ECHO_CONTROLLER, encoding="utf-8")

    result = generate_stub(template, "Inventory", suffix="Controller")

    out = tmp_path / "InventoryController.cs"
    assert result["file_path"] == str(out)
    assert result["source_name"] == "Echo"
    assert result["name"] == "Inventory"
    assert "public class InventoryController" in out.read_text(encoding="utf-8")
    # template untouched
    assert template.read_text(encoding="utf-8") == ECHO_CONTROLLER


def test_generate_stub_to_other_dir_and_explicit_source(tmp_path: Path) -> None:
    template = tmp_path / "EchoRequest.cs"
    template.write_text("public class EchoRequest { }\n", encoding="utf-8")
    out_dir = tmp_path / "Models"

    result = generate_stub(template, "Order", output_dir=out_dir, source_name="Echo")

    assert Path(result["file_path"]) == out_dir / "OrderRequest.cs"
    assert (out_dir / "OrderRequest.cs").read_text(encoding="utf-8") == (
        "public class OrderRequest { }\n"
    )


def test_generate_stub_refuses_existing_and_self(tmp_path: Path) -> None:
    template = tmp_path / "EchoController.cs"
    template.write_text(ECHO_CONTROLLER, encoding="utf-8")
    generate_stub(template, "Inventory", suffix="Controller")

    with pytest.raises(FileExistsError):
        generate_stub(template, "Inventory", suffix="Controller")
    generate_stub(template, "Inventory", suffix="Controller", overwrite=True)

    with pytest.raises(ValueError):
        generate_stub(template, "Echo", suffix="Controller", overwrite=True)


def test_generate_stub_missing_template(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        generate_stub(tmp_path / "NopeController.cs", "X")


def test_insert_route_constant() -> None:
    out = insert_route_constant(ROUTE_CONSTANTS, "Orders", "api/orders")
    assert '        public const string Orders = "api/orders";\n    }\n}' in out
    assert out.index("Echo =") < out.index("Orders =")


def test_insert_route_constant_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        insert_route_constant(ROUTE_CONSTANTS, "Echo", "api/echo2")
    with pytest.raises(ValueError):
        insert_route_constant(ROUTE_CONSTANTS, "1Bad", "x")
    with pytest.raises(ValueError):
        insert_route_constant("class X {}", "Orders", "api/orders")


def test_add_route_constant_updates_file(tmp_path: Path) -> None:
    path = tmp_path / "RouteConstants.cs"
    path.write_text(ROUTE_CONSTANTS, encoding="utf-8")

    result = add_route_constant(path, "Orders", "api/orders")

    assert result["constant_name"] == "Orders"
    assert 'Orders = "api/orders"' in path.read_text(encoding="utf-8")
    with pytest.raises(FileNotFoundError):
        add_route_constant(tmp_path / "missing.cs", "A", "b")


def test_find_endpoints() -> None:
    endpoints = find_endpoints(ECHO_CONTROLLER, "EchoController")
    assert endpoints == [
        {"method": "GET", "route": "{message}", "function": "Get", "controller": "EchoController"},
        {"method": "POST", "route": "batch", "function": "PostBatch", "controller": "EchoController"},
    ]


def test_list_endpoints(tmp_path: Path) -> None:
    (tmp_path / "EchoController.cs").write_text(ECHO_CONTROLLER, encoding="utf-8")
    (tmp_path / "notes.txt").write_text("[HttpGet] public void Nope()", encoding="utf-8")

    endpoints = list_endpoints(tmp_path)
    assert {e["function"] for e in endpoints} == {"Get", "PostBatch"}

    with pytest.raises(FileNotFoundError):
        list_endpoints(tmp_path / "missing")


def test_render_stub_lowercase_source_keeps_target_case() -> None:
    assert render_stub("class echo {}", "echo", "Inventory") == "class Inventory {}"


def test_sanitize_name_rejects_leading_digit() -> None:
    with pytest.raises(ValueError):
        sanitize_name("1Inventory")


def test_generate_stub_drops_repeated_suffix(tmp_path: Path) -> None:
    template = tmp_path / "EchoController.cs"
    template.write_text(ECHO_CONTROLLER, encoding="utf-8")

    result = generate_stub(template, "InventoryController", suffix="Controller")

    assert result["name"] == "Inventory"
    assert Path(result["file_path"]).name == "InventoryController.cs"
    assert not (tmp_path / "InventoryControllerController.cs").exists()
    with pytest.raises(ValueError):
        generate_stub(template, "1Inventory", suffix="Controller")
