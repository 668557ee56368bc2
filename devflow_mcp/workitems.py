"""
devflow_mcp.workitems

Agile work-items interchange format (Epic > User Story > Task) stored as JSON.

Document shape:
    {
      "epics": [
        {"id": "E1", "title", "description", "acceptance_criteria": [...],
         "user_stories": [
           {"id": "US1", "title", "description", "acceptance_criteria": [...],
            "tasks": [
              {"id": "T1", "title", "purpose", "implementation_details",
               "dependencies": ["T2"], "assignee", "status", "estimated_effort"}
            ]}
         ]}
      ],
      "metadata": {"generated_at", "source_document", "parser_version"}
    }
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

EPIC_ID_RE = re.compile(r"E\d+")
STORY_ID_RE = re.compile(r"US\d+")
TASK_ID_RE = re.compile(r"T\d+")

TASK_STATUSES = ("todo", "in-progress", "done")
QUALITY_LEVELS = ("basic", "production", "enterprise")

EPIC_ARRAYS = ("acceptance_criteria", "user_stories")
STORY_ARRAYS = ("acceptance_criteria", "tasks")
TASK_ARRAYS = ("dependencies",)


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO 8601 UTC with millisecond precision and a 'Z' suffix."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _fill_arrays(record: dict[str, Any], fields: tuple[str, ...]) -> None:
    for field in fields:
        if not isinstance(record.get(field), list):
            record[field] = []


def normalize_work_items(doc: dict[str, Any]) -> dict[str, Any]:
    """
    function_purpose: Return a deep copy with every array field present and metadata a mapping.

    The input document is never mutated.
    """
    if not isinstance(doc, dict):
        raise ValueError("work items document must be a JSON object")
    out = copy.deepcopy(doc)
    _fill_arrays(out, ("epics",))
    if not isinstance(out.get("metadata"), dict):
        out["metadata"] = {}
    for epic in out["epics"]:
        if not isinstance(epic, dict):
            continue
        _fill_arrays(epic, EPIC_ARRAYS)
        for story in epic["user_stories"]:
            if not isinstance(story, dict):
                continue
            _fill_arrays(story, STORY_ARRAYS)
            for task in story["tasks"]:
                if isinstance(task, dict):
                    _fill_arrays(task, TASK_ARRAYS)
    return out


def write_work_items(
    path: str | Path,
    doc: dict[str, Any],
    source_document: str | None = None,
    parser_version: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    function_purpose: Persist a work items document as pretty JSON.

    - Normalizes array fields.
    - Injects metadata.generated_at (always refreshed on write).
    - Sets metadata.source_document / parser_version when provided.
    - Creates parent directories as needed.

    Returns the document exactly as written.
    """
    out = normalize_work_items(doc)
    meta = out["metadata"]
    meta["generated_at"] = utc_timestamp(now)
    if source_document is not None:
        meta["source_document"] = source_document
    if parser_version is not None:
        meta["parser_version"] = parser_version

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(out, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.info(
        "Wrote work items to %s (%d epics)", str(target), len(out["epics"])
    )
    return out


def read_work_items(path: str | Path) -> dict[str, Any]:
    source = Path(path)
    if not source.is_file():
        raise FileNotFoundError(f"Work items file not found: {source}")
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Work items file is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Work items file must contain a JSON object at the top level")
    return data


def _issue(
    severity: str, level: str, path: str, item_id: Any, message: str
) -> dict[str, Any]:
    return {
        "severity": severity,
        "level": level,
        "path": path,
        "id": item_id,
        "message": message,
    }


def _check_record(
    record: Any,
    level: str,
    path: str,
    id_re: re.Pattern[str],
    arrays: tuple[str, ...],
    seen: set[str],
    issues: list[dict[str, Any]],
) -> bool:
    if not isinstance(record, dict):
        issues.append(_issue("error", level, path, None, f"{level} must be an object"))
        return False

    item_id = record.get("id")
    if not isinstance(item_id, str) or not id_re.fullmatch(item_id):
        issues.append(
            _issue(
                "error",
                level,
                path,
                item_id,
                f"{level} id {item_id!r} does not match pattern {id_re.pattern}",
            )
        )
    if isinstance(item_id, str):
        if item_id in seen:
            issues.append(
                _issue("error", level, path, item_id, f"duplicate {level} id {item_id!r}")
            )
        seen.add(item_id)

    for field in arrays:
        if field not in record:
            issues.append(
                _issue("error", level, path, item_id, f"missing array field '{field}'")
            )
        elif not isinstance(record[field], list):
            issues.append(
                _issue("error", level, path, item_id, f"field '{field}' must be an array")
            )
    return True


def validate_work_items(doc: Any) -> list[dict[str, Any]]:
    """
    function_purpose: Check a work items document against the interchange rules.

    Never raises: structural problems are reported as issues so callers can surface
    every problem at once. Returns a list of {severity, level, path, id, message}.
    """
    issues: list[dict[str, Any]] = []
    if not isinstance(doc, dict):
        return [_issue("error", "document", "$", None, "document must be a JSON object")]

    epics = doc.get("epics")
    if not isinstance(epics, list):
        issues.append(_issue("error", "document", "$.epics", None, "'epics' must be an array"))
        epics = []

    metadata = doc.get("metadata")
    if not isinstance(metadata, dict):
        issues.append(
            _issue("error", "document", "$.metadata", None, "'metadata' must be an object")
        )
    elif not metadata.get("generated_at"):
        issues.append(
            _issue("warning", "document", "$.metadata", None, "metadata.generated_at is missing")
        )

    epic_ids: set[str] = set()
    story_ids: set[str] = set()
    task_ids: set[str] = set()
    dependency_refs: list[tuple[str, Any, str]] = []

    for ei, epic in enumerate(epics):
        epic_path = f"$.epics[{ei}]"
        if not _check_record(epic, "epic", epic_path, EPIC_ID_RE, EPIC_ARRAYS, epic_ids, issues):
            continue
        for si, story in enumerate(as_list(epic.get("user_stories"))):
            story_path = f"{epic_path}.user_stories[{si}]"
            if not _check_record(
                story, "user_story", story_path, STORY_ID_RE, STORY_ARRAYS, story_ids, issues
            ):
                continue
            for ti, task in enumerate(as_list(story.get("tasks"))):
                task_path = f"{story_path}.tasks[{ti}]"
                if not _check_record(
                    task, "task", task_path, TASK_ID_RE, TASK_ARRAYS, task_ids, issues
                ):
                    continue
                status = task.get("status")
                if status is not None and status not in TASK_STATUSES:
                    issues.append(
                        _issue(
                            "error",
                            "task",
                            task_path,
                            task.get("id"),
                            f"status {status!r} is not one of {list(TASK_STATUSES)}",
                        )
                    )
                for dep in as_list(task.get("dependencies")):
                    dependency_refs.append((task_path, task.get("id"), dep))

    for task_path, task_id, dep in dependency_refs:
        if not isinstance(dep, str) or dep not in task_ids:
            issues.append(
                _issue(
                    "warning",
                    "task",
                    task_path,
                    task_id,
                    f"dependency {dep!r} does not refer to a known task",
                )
            )
    return issues


def iter_tasks(
    doc: dict[str, Any],
) -> Iterator[tuple[dict[str, Any], dict[str, Any], dict[str, Any]]]:
    """Yield (epic, user_story, task) triples in document order, skipping malformed entries."""
    for epic in as_list(doc.get("epics")):
        if not isinstance(epic, dict):
            continue
        for story in as_list(epic.get("user_stories")):
            if not isinstance(story, dict):
                continue
            for task in as_list(story.get("tasks")):
                if isinstance(task, dict):
                    yield epic, story, task


def summarize_work_items(doc: dict[str, Any]) -> dict[str, Any]:
    epics = [e for e in as_list(doc.get("epics")) if isinstance(e, dict)]
    stories = [
        s for e in epics for s in as_list(e.get("user_stories")) if isinstance(s, dict)
    ]
    statuses = Counter(
        str(task.get("status") or "unspecified") for _, _, task in iter_tasks(doc)
    )
    return {
        "epics": len(epics),
        "user_stories": len(stories),
        "tasks": sum(statuses.values()),
        "task_status": dict(sorted(statuses.items())),
        "sample_epic_titles": [e.get("title") for e in epics[:3]],
    }


def classify_work_item(work_item: dict[str, Any]) -> str:
    if "user_stories" in work_item:
        return "epic"
    if "tasks" in work_item:
        return "user_story"
    if "purpose" in work_item or "implementation_details" in work_item:
        return "task"
    item_id = str(work_item.get("id") or "")
    if STORY_ID_RE.fullmatch(item_id):
        return "user_story"
    if EPIC_ID_RE.fullmatch(item_id):
        return "epic"
    return "task"


def extract_requirements(work_item: dict[str, Any]) -> dict[str, Any]:
    """
    function_purpose: Derive endpoint, validation and method hints from a work item.

    Acceptance criteria are bucketed by keyword (api/endpoint, validat, calculat/process);
    nested tasks contribute their purpose as a method and their implementation details
    as business logic.
    """
    requirements: dict[str, Any] = {
        "endpoints": [],
        "validation": [],
        "methods": [],
        "business_logic": "",
    }
    for criterion in as_list(work_item.get("acceptance_criteria")):
        text = str(criterion)
        lowered = text.lower()
        if "api" in lowered or "endpoint" in lowered:
            requirements["endpoints"].append(text)
        if "validat" in lowered:
            requirements["validation"].append(text)
        if "calculat" in lowered or "process" in lowered:
            requirements["methods"].append(text)

    logic: list[str] = []
    tasks = as_list(work_item.get("tasks"))
    if classify_work_item(work_item) == "task":
        tasks = [work_item]
    for task in tasks:
        if not isinstance(task, dict):
            continue
        if task.get("implementation_details"):
            logic.append(str(task["implementation_details"]))
        if task.get("purpose"):
            requirements["methods"].append(str(task["purpose"]))
    requirements["business_logic"] = " ".join(logic)
    return requirements


def plan_task_todos(
    doc: dict[str, Any], project_path: str, quality_level: str = "production"
) -> list[dict[str, Any]]:
    """
    function_purpose: Turn every task into a todo carrying a ready implement_work_item call.
    """
    if quality_level not in QUALITY_LEVELS:
        raise ValueError(
            f"quality_level must be one of {list(QUALITY_LEVELS)}, got {quality_level!r}"
        )
    todos: list[dict[str, Any]] = []
    for number, (epic, story, task) in enumerate(iter_tasks(doc), start=1):
        todos.append(
            {
                "id": number,
                "title": f"Implement Task {task.get('id')}",
                "status": "not-started",
                "work_item_type": "task",
                "epic_id": epic.get("id"),
                "user_story_id": story.get("id"),
                "work_item": task,
                "mcp_tool_call": {
                    "method": "tools/call",
                    "params": {
                        "name": "implement_work_item",
                        "arguments": {
                            "work_item": task,
                            "project_path": project_path,
                            "quality_level": quality_level,
                        },
                    },
                },
            }
        )
    return todos
