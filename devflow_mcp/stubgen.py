"""
devflow_mcp.stubgen

Source stubs produced by renaming identifier tokens in an existing file.

This is plain text substitution: a template such as `EchoController.cs` becomes
`InventoryController.cs` by replacing every `Echo` with `Inventory` and every
`echo` with `inventory`. Nothing is parsed, so the output is only as correct as
the template's naming is consistent.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
ENDPOINT_RE = re.compile(
    r"\[Http(?P<verb>Get|Post|Put|Delete|Patch)(?:\(\s*\"(?P<inline>[^\"]*)\"\s*\))?\]"
    r"(?P<attrs>(?:\s*\[[^\]]*\])*)"
    r"\s*public\s+(?:async\s+)?[\w<>\[\],\s]+?\s+(?P<action>\w+)\s*\("
)
ROUTE_RE = re.compile(r"\[Route\(\s*\"(?P<route>[^\"]*)\"\s*\)\]")


def sanitize_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9]", "", name or "")
    if not cleaned:
        raise ValueError(f"name {name!r} has no usable characters")
    if cleaned[0].isdigit():
        raise ValueError(f"name {name!r} must not start with a digit")
    return cleaned


def render_stub(template: str, source_name: str, target_name: str) -> str:
    """
    function_purpose: Replace source_name (and its lowercase form) with target_name in one pass.

    A single pass keeps replacements from being re-applied to already substituted text,
    e.g. renaming Echo -> Reecho never produces 'Rereecho'.
    """
    if not source_name:
        raise ValueError("source_name must not be empty")
    lower_source = source_name.lower()
    # source_name last so an all-lowercase source keeps the target's casing
    alternatives = {lower_source: target_name.lower(), source_name: target_name}
    pattern = re.compile(
        "|".join(re.escape(s) for s in sorted(alternatives, key=len, reverse=True))
    )
    return pattern.sub(lambda m: alternatives[m.group(0)], template)


def derive_source_name(template_path: Path, suffix: str = "") -> str:
    stem = template_path.stem
    if suffix and stem.endswith(suffix) and len(stem) > len(suffix):
        return stem[: -len(suffix)]
    return stem


def generate_stub(
    template_path: str | Path,
    target_name: str,
    output_dir: str | Path | None = None,
    source_name: str | None = None,
    suffix: str = "",
    overwrite: bool = False,
) -> dict[str, Any]:
    """
    function_purpose: Write a renamed copy of a template file.

    Args:
    - template_path: existing file used as the template (e.g. Controllers/EchoController.cs)
    - target_name: new base name (sanitized to letters and digits; a trailing suffix is dropped)
    - output_dir: destination directory (default: the template's directory)
    - source_name: token to replace (default: template stem minus suffix)
    - suffix: name suffix shared by template and output (e.g. "Controller")
    - overwrite: replace an existing output file

    Returns: {name, file_path, template_source, source_name}
    """
    template = Path(template_path)
    if not template.is_file():
        raise FileNotFoundError(f"template not found: {template}")

    name = sanitize_name(target_name)
    if suffix and name.endswith(suffix) and len(name) > len(suffix):
        name = name[: -len(suffix)]
    token = source_name or derive_source_name(template, suffix)
    out_dir = Path(output_dir) if output_dir is not None else template.parent
    out_path = out_dir / render_stub(template.name, token, name)

    if out_path.resolve() == template.resolve():
        raise ValueError(f"stub for '{name}' would overwrite its own template")
    if out_path.exists() and not overwrite:
        raise FileExistsError(f"file already exists: {out_path}")

    content = render_stub(template.read_text(encoding="utf-8"), token, name)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path.write_text(content, encoding="utf-8")
    logger.info("Generated %s from %s", str(out_path), str(template))
    return {
        "name": name,
        "file_path": str(out_path),
        "template_source": str(template),
        "source_name": token,
    }


def insert_route_constant(content: str, name: str, value: str) -> str:
    """
    function_purpose: Add `public const string <name> = "<value>";` before the class's closing brace.

    The insertion point is the last line consisting of four spaces and '}' (the class
    brace inside a namespace block), as produced by the standard constants template.
    """
    if not IDENTIFIER_RE.fullmatch(name):
        raise ValueError(f"constant name {name!r} is not a valid identifier")
    if re.search(rf"\bconst\s+string\s+{re.escape(name)}\b", content):
        raise ValueError(f"constant {name!r} already exists")

    insertion = content.rfind("    }")
    if insertion == -1:
        raise ValueError("could not find insertion point in constants file")
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    line = f'        public const string {name} = "{escaped}";\n'
    return content[:insertion] + line + content[insertion:]


def add_route_constant(constants_path: str | Path, name: str, value: str) -> dict[str, Any]:
    path = Path(constants_path)
    if not path.is_file():
        raise FileNotFoundError(f"constants file not found: {path}")
    updated = insert_route_constant(path.read_text(encoding="utf-8"), name, value)
    path.write_text(updated, encoding="utf-8")
    return {"constant_name": name, "route_value": value, "file_path": str(path)}


def find_endpoints(content: str, controller: str) -> list[dict[str, Any]]:
    """Extract HTTP actions from C# controller source using the attribute layout."""
    endpoints: list[dict[str, Any]] = []
    for m in ENDPOINT_RE.finditer(content):
        route = m.group("inline")
        if route is None:
            route_match = ROUTE_RE.search(m.group("attrs") or "")
            route = route_match.group("route") if route_match else ""
        endpoints.append(
            {
                "method": m.group("verb").upper(),
                "route": route,
                "function": m.group("action"),
                "controller": controller,
            }
        )
    return endpoints


def list_endpoints(controllers_dir: str | Path) -> list[dict[str, Any]]:
    directory = Path(controllers_dir)
    if not directory.is_dir():
        raise FileNotFoundError(f"controllers directory not found: {directory}")
    endpoints: list[dict[str, Any]] = []
    for source in sorted(directory.glob("*.cs")):
        try:
            content = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable controller %s: %s", source, exc)
            continue
        endpoints.extend(find_endpoints(content, source.stem))
    return endpoints
