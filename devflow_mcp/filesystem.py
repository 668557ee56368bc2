"""
devflow_mcp.filesystem

File reading with a small content cache, bounded directory listing, regex search
across files, and a catalog of language-specific code patterns.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MAX_MATCHES_PER_FILE = 10
CODE_PATTERN_RESULTS_PER_PATTERN = 20
CODE_PATTERN_RESULT_CAP = 30

LANGUAGE_PATTERNS: dict[str, dict[str, list[str]]] = {
    "csharp": {
        "controller": [
            r"public class \w+Controller\s*:\s*ControllerBase",
            r"public class \w+Controller\s*:\s*Controller",
            r"\[ApiController\]",
            r"\[Route\(",
            r"\[HttpGet\]",
            r"\[HttpPost\]",
            r"\[HttpPut\]",
            r"\[HttpDelete\]",
        ],
        "service": [
            r"public class \w+Service\s*:\s*I\w+Service",
            r"public interface I\w+Service",
            r"services\.AddScoped",
            r"services\.AddTransient",
            r"services\.AddSingleton",
        ],
        "model": [
            r"public class \w+\s*\{",
            r"public record \w+",
            r"\[DataContract\]",
            r"\[Serializable\]",
            r"public \w+ \w+ \{ get; set; \}",
        ],
        "repository": [
            r"public class \w+Repository",
            r"public interface I\w+Repository",
            r"DbContext",
        ],
    },
    "typescript": {
        "component": [
            r"export.*React\.FC",
            r"export.*function.*Component",
            r"interface.*Props",
            r"useState\(",
            r"useEffect\(",
        ],
        "service": [r"export class \w+Service", r"@Injectable\("],
        "interface": [r"export interface \w+"],
        "type": [r"export type \w+\s*="],
    },
    "javascript": {
        "component": [r"export default function \w+", r"useState\(", r"useEffect\("],
    },
    "python": {
        "class": [r"^class \w+"],
        "function": [r"^def \w+", r"^async def \w+"],
        "route": [r"@\w+\.(get|post|put|delete|patch)\("],
    },
}

LANGUAGE_EXTENSIONS: dict[str, list[str]] = {
    "csharp": [".cs"],
    "typescript": [".ts", ".tsx"],
    "javascript": [".js", ".jsx", ".mjs"],
    "python": [".py"],
}


def _iso_mtime(ts: float) -> str:
    return (
        datetime.fromtimestamp(ts, timezone.utc)
        .isoformat(timespec="seconds")
        .replace("+00:00", "Z")
    )


def _normalize_extensions(exts: list[str] | None) -> set[str] | None:
    if not exts:
        return None
    return {("." + e.lstrip(".")).lower() for e in exts}


class FileCache:
    """
    Content cache keyed by (resolved path, mtime_ns, encoding).

    When full, the oldest-inserted entry is evicted. Reads do not refresh an
    entry's position, so this is FIFO rather than LRU. A changed mtime yields
    a new key; the stale entry ages out naturally.
    """

    def __init__(self, max_size: int = 1000) -> None:
        if max_size < 1:
            raise ValueError("cache max_size must be at least 1")
        self.max_size = max_size
        self._entries: dict[tuple[str, int, str], str] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[tuple[str, int, str]]:
        return list(self._entries)

    def get(self, key: tuple[str, int, str]) -> str | None:
        content = self._entries.get(key)
        if content is None:
            self.misses += 1
        else:
            self.hits += 1
        return content

    def put(self, key: tuple[str, int, str], content: str) -> None:
        if key in self._entries:
            self._entries[key] = content
            return
        while len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            self.evictions += 1
        self._entries[key] = content

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }


class FileSystemManager:
    """Cached reads, listing and search over the local filesystem."""

    def __init__(self, cache_size: int = 1000) -> None:
        self.cache = FileCache(cache_size)

    @staticmethod
    def resolve(path: str | Path) -> Path:
        return Path(path).expanduser().resolve()

    def read_file_content(self, path: str | Path, encoding: str = "utf-8") -> str:
        """
        function_purpose: Read a text file through the content cache.

        Raises FileNotFoundError / IsADirectoryError / UnicodeDecodeError from the
        underlying read; nothing is cached on failure.
        """
        resolved = self.resolve(path)
        st = resolved.stat()
        key = (str(resolved), st.st_mtime_ns, encoding)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        content = resolved.read_text(encoding=encoding)
        self.cache.put(key, content)
        return content

    def get_file_info(self, path: str | Path) -> dict[str, Any]:
        resolved = self.resolve(path)
        st = resolved.stat()
        return {
            "path": str(resolved),
            "name": resolved.name,
            "directory": str(resolved.parent),
            "extension": resolved.suffix,
            "size": st.st_size,
            "created": _iso_mtime(st.st_ctime),
            "modified": _iso_mtime(st.st_mtime),
            "accessed": _iso_mtime(st.st_atime),
            "is_directory": resolved.is_dir(),
            "is_file": resolved.is_file(),
            "permissions": oct(st.st_mode)[2:],
        }

    def read_file(
        self,
        path: str | Path,
        encoding: str = "utf-8",
        start_line: int | None = None,
        end_line: int | None = None,
    ) -> dict[str, Any]:
        """
        function_purpose: Read a file, optionally restricted to a 1-based inclusive line window.
        """
        content = self.read_file_content(path, encoding)
        line_range = None
        if start_line is not None or end_line is not None:
            lines = content.split("\n")
            start_idx = max((start_line or 1) - 1, 0)
            end_idx = end_line if end_line is not None else len(lines)
            if end_idx < start_idx:
                raise ValueError(
                    f"end_line ({end_line}) must not be before start_line ({start_line})"
                )
            content = "\n".join(lines[start_idx:end_idx])
            line_range = {"start": start_idx + 1, "end": min(end_idx, len(lines))}
        return {
            "file_info": self.get_file_info(path),
            "content": content,
            "line_range": line_range,
        }

    def list_directory(
        self,
        path: str | Path,
        recursive: bool = False,
        name_filter: str | None = None,
        max_depth: int = 5,
        include_hidden: bool = False,
    ) -> list[dict[str, Any]]:
        """
        function_purpose: List a directory, optionally recursing up to max_depth.

        The root listing is depth 0; subdirectories are descended while depth < max_depth.
        name_filter is a case-insensitive glob on entry names; it selects which entries
        are reported but does not stop recursion. Unreadable subdirectories are skipped;
        an unreadable root raises.
        """
        root = self.resolve(path)
        if not root.is_dir():
            raise NotADirectoryError(f"not a directory: {root}")
        items: list[dict[str, Any]] = []
        self._list_into(
            root, items, recursive, name_filter, max_depth, include_hidden, depth=0
        )
        return items

    def _list_into(
        self,
        directory: Path,
        items: list[dict[str, Any]],
        recursive: bool,
        name_filter: str | None,
        max_depth: int,
        include_hidden: bool,
        depth: int,
    ) -> None:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
        for entry in entries:
            if not include_hidden and entry.name.startswith("."):
                continue
            try:
                is_dir = entry.is_dir()
                st = entry.stat()
            except OSError:
                continue

            if name_filter is None or fnmatch.fnmatch(
                entry.name.lower(), name_filter.lower()
            ):
                items.append(
                    {
                        "name": entry.name,
                        "path": str(entry),
                        "type": "directory" if is_dir else "file",
                        "size": None if is_dir else st.st_size,
                        "modified": _iso_mtime(st.st_mtime),
                        "extension": None if is_dir else entry.suffix,
                        "depth": depth,
                    }
                )

            if recursive and is_dir and depth < max_depth:
                try:
                    self._list_into(
                        entry,
                        items,
                        recursive,
                        name_filter,
                        max_depth,
                        include_hidden,
                        depth + 1,
                    )
                except OSError as exc:
                    logger.debug("Skipping unreadable directory %s: %s", entry, exc)

    def search_files(
        self,
        path: str | Path,
        pattern: str,
        file_extensions: list[str] | None = None,
        recursive: bool = True,
        case_sensitive: bool = False,
        max_results: int = 50,
        include_content: bool = False,
        max_depth: int = 10,
    ) -> list[dict[str, Any]]:
        """
        function_purpose: Regex search across files under path.

        Returns one entry per matching file (at most max_results files), each with up
        to MAX_MATCHES_PER_FILE matches carrying text, offset, line and column.
        Files that cannot be read or decoded are skipped.
        """
        regex = re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
        exts = _normalize_extensions(file_extensions)
        root = self.resolve(path)
        results: list[dict[str, Any]] = []

        if root.is_file():
            self._search_file(root, regex, exts, include_content, results)
            return results
        if not root.is_dir():
            raise FileNotFoundError(f"search path not found: {root}")

        self._search_dir(
            root, regex, exts, recursive, max_results, include_content, max_depth, 0, results
        )
        return results

    def _search_dir(
        self,
        directory: Path,
        regex: re.Pattern[str],
        exts: set[str] | None,
        recursive: bool,
        max_results: int,
        include_content: bool,
        max_depth: int,
        depth: int,
        results: list[dict[str, Any]],
    ) -> None:
        if depth > max_depth or len(results) >= max_results:
            return
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            return

        for entry in entries:
            if len(results) >= max_results:
                break
            try:
                if entry.is_file():
                    self._search_file(entry, regex, exts, include_content, results)
                elif entry.is_dir() and recursive:
                    self._search_dir(
                        entry,
                        regex,
                        exts,
                        recursive,
                        max_results,
                        include_content,
                        max_depth,
                        depth + 1,
                        results,
                    )
            except OSError as exc:
                logger.debug("Skipping %s: %s", entry, exc)

    def _search_file(
        self,
        file_path: Path,
        regex: re.Pattern[str],
        exts: set[str] | None,
        include_content: bool,
        results: list[dict[str, Any]],
    ) -> None:
        if exts is not None and file_path.suffix.lower() not in exts:
            return
        try:
            content = self.read_file_content(file_path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable file %s: %s", file_path, exc)
            return

        matches = list(regex.finditer(content))
        if not matches:
            return

        reported = []
        for m in matches[:MAX_MATCHES_PER_FILE]:
            line_start = content.rfind("\n", 0, m.start()) + 1
            reported.append(
                {
                    "text": m.group(0),
                    "index": m.start(),
                    "line": content.count("\n", 0, m.start()) + 1,
                    "column": m.start() - line_start + 1,
                }
            )
        entry: dict[str, Any] = {
            "path": str(file_path),
            "filename": file_path.name,
            "match_count": len(matches),
            "matches": reported,
        }
        if include_content:
            entry["content"] = content
        results.append(entry)

    def find_code_patterns(
        self,
        path: str | Path,
        language: str = "csharp",
        pattern_type: str = "controller",
        specific_patterns: list[str] | None = None,
    ) -> dict[str, Any]:
        """
        function_purpose: Locate files matching a language/pattern-type catalog entry.

        Each pattern is searched independently (capped per pattern); results are
        deduplicated by path, sorted by match count and capped overall.
        """
        if specific_patterns:
            patterns = list(specific_patterns)
        else:
            by_type = LANGUAGE_PATTERNS.get(language)
            if by_type is None:
                raise ValueError(
                    f"unsupported language '{language}'; "
                    f"supported: {sorted(LANGUAGE_PATTERNS)}"
                )
            if pattern_type not in by_type:
                raise ValueError(
                    f"unsupported pattern_type '{pattern_type}' for {language}; "
                    f"supported: {sorted(by_type)}"
                )
            patterns = by_type[pattern_type]

        # Python patterns are line-anchored.
        prefix = "(?m)" if language == "python" and not specific_patterns else ""
        exts = LANGUAGE_EXTENSIONS.get(language)

        by_path: dict[str, dict[str, Any]] = {}
        for pattern in patterns:
            for result in self.search_files(
                path,
                prefix + pattern,
                file_extensions=exts,
                max_results=CODE_PATTERN_RESULTS_PER_PATTERN,
            ):
                # keep the strongest pattern hit per file
                current = by_path.get(result["path"])
                if current is None or result["match_count"] > current["match_count"]:
                    by_path[result["path"]] = result

        unique = sorted(by_path.values(), key=lambda r: r["match_count"], reverse=True)
        return {
            "patterns_searched": patterns,
            "results": unique[:CODE_PATTERN_RESULT_CAP],
            "total_files_found": len(unique),
        }
