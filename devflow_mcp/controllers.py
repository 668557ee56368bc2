"""
devflow_mcp.controllers

Maps work items onto controller names and drives stub generation for them.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from devflow_mcp.stubgen import generate_stub, list_endpoints
from devflow_mcp.workitems import as_list, classify_work_item

logger = logging.getLogger(__name__)

CONTROLLER_SUFFIX = "Controller"

# (pattern over title + description + acceptance criteria, controller, type)
STORY_RULES: list[tuple[re.Pattern[str], str, str]] = [
    (re.compile(r"conversion.+ratio|lead.+opportunity", re.I), "ConversionRatio", "calculation"),
    (re.compile(r"revenue.+opportunities|opportunities.+revenue", re.I), "Revenue", "calculation"),
    (re.compile(r"unified.+dashboard|dashboard.+api", re.I), "Dashboard", "aggregation"),
    (re.compile(r"health.+check|health.+endpoint", re.I), "Health", "monitoring"),
    (re.compile(r"time.+filter|date.+calculation", re.I), "TimeFilter", "utility"),
    (re.compile(r"authentication|authorization|security", re.I), "Auth", "security"),
]

# Every keyword in a group must appear in the work item text.
TARGET_RULES: list[tuple[tuple[str, ...], str]] = [
    (("conversion", "ratio"), "ConversionRatio"),
    (("revenue", "opportunit"), "Revenue"),
    (("dashboard", "unified"), "Dashboard"),
    (("health",), "Health"),
    (("monitor",), "Health"),
    (("time", "filter"), "TimeFilter"),
    (("auth",), "Auth"),
    (("security",), "Auth"),
    (("user", "management"), "User"),
]


def determine_target_controller(work_item: dict[str, Any]) -> str:
    text = " ".join(
        str(work_item.get(key) or "") for key in ("title", "description", "purpose")
    ).lower()
    for keywords, controller in TARGET_RULES:
        if all(k in text for k in keywords):
            return controller
    kind = classify_work_item(work_item)
    if kind == "task":
        return "Business"
    if kind == "epic":
        return "Integration"
    return "Generic"


def _story_specs(story: dict[str, Any], epic: dict[str, Any]) -> list[dict[str, Any]]:
    criteria = [str(c) for c in as_list(story.get("acceptance_criteria"))]
    text = " ".join(
        [str(story.get("title") or ""), str(story.get("description") or ""), " ".join(criteria)]
    )

    def spec(name: str, kind: str) -> dict[str, Any]:
        return {
            "name": name,
            "type": kind,
            "epic_title": epic.get("title"),
            "user_story_title": story.get("title"),
            "acceptance_criteria": list(criteria),
            "tasks": list(as_list(story.get("tasks"))),
        }

    specs = [spec(name, kind) for pattern, name, kind in STORY_RULES if pattern.search(text)]
    if specs:
        return specs

    epic_title = str(epic.get("title") or "").lower()
    if "infrastructure" in epic_title:
        return [spec("Infrastructure", "utility")]
    if "integration" in epic_title:
        return [spec("Integration", "integration")]
    return [spec("Generic", "business")]


def consolidate_controller_specs(specs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Merge specs sharing a controller name; first occurrence keeps its position."""
    merged: dict[str, dict[str, Any]] = {}
    for spec in specs:
        related = {"epic": spec["epic_title"], "story": spec["user_story_title"]}
        existing = merged.get(spec["name"])
        if existing is None:
            merged[spec["name"]] = {**spec, "related_stories": [related]}
            continue
        existing["acceptance_criteria"].extend(spec["acceptance_criteria"])
        existing["tasks"].extend(spec["tasks"])
        existing["related_stories"].append(related)
    return list(merged.values())


def analyze_work_items_for_controllers(doc: dict[str, Any]) -> list[dict[str, Any]]:
    specs: list[dict[str, Any]] = []
    for epic in as_list(doc.get("epics")):
        if not isinstance(epic, dict):
            continue
        for story in as_list(epic.get("user_stories")):
            if isinstance(story, dict):
                specs.extend(_story_specs(story, epic))
    return consolidate_controller_specs(specs)


def generate_controller(
    controllers_dir: str | Path,
    controller_name: str,
    template_name: str = "EchoController.cs",
    overwrite: bool = False,
) -> dict[str, Any]:
    return generate_stub(
        Path(controllers_dir) / template_name,
        controller_name,
        suffix=CONTROLLER_SUFFIX,
        overwrite=overwrite,
    )


def generate_controllers_from_work_items(
    doc: dict[str, Any],
    controllers_dir: str | Path,
    template_name: str = "EchoController.cs",
) -> dict[str, Any]:
    """
    function_purpose: Generate one controller stub per consolidated controller spec.

    A failure for one controller (existing file, missing template) is recorded in its
    entry and does not stop the others.
    """
    results: list[dict[str, Any]] = []
    for spec in analyze_work_items_for_controllers(doc):
        entry: dict[str, Any] = {
            "controller_name": spec["name"],
            "type": spec["type"],
            "related_stories": spec["related_stories"],
        }
        try:
            generated = generate_controller(controllers_dir, spec["name"], template_name)
            entry.update(file_path=generated["file_path"], success=True)
        except (OSError, ValueError) as exc:
            logger.warning("Controller %s not generated: %s", spec["name"], exc)
            entry.update(error=str(exc), success=False)
        results.append(entry)
    return {
        "controllers_generated": sum(1 for r in results if r["success"]),
        "controllers_failed": sum(1 for r in results if not r["success"]),
        "controller_details": results,
    }


def existing_controllers(controllers_dir: str | Path) -> list[str]:
    directory = Path(controllers_dir)
    if not directory.is_dir():
        return []
    return sorted(
        p.stem[: -len(CONTROLLER_SUFFIX)]
        for p in directory.glob(f"*{CONTROLLER_SUFFIX}.cs")
        if len(p.stem) > len(CONTROLLER_SUFFIX)
    )


def validate_implementation(doc: dict[str, Any], controllers_dir: str | Path) -> dict[str, Any]:
    """
    function_purpose: Compare controllers required by the work items with those on disk.

    Returns required/existing/missing controller names, the endpoint inventory, and
    whether every required controller exists.
    """
    required = [spec["name"] for spec in analyze_work_items_for_controllers(doc)]
    existing = existing_controllers(controllers_dir)
    missing = [name for name in required if name not in existing]
    endpoints = list_endpoints(controllers_dir) if Path(controllers_dir).is_dir() else []
    return {
        "required_controllers": required,
        "existing_controllers": existing,
        "missing_controllers": missing,
        "api_endpoints": endpoints,
        "complete": not missing,
    }
