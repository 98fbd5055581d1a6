"""Line-delimited JSON reading and source directory walking."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from agent_insights.observability import record_parser_failure

logger = logging.getLogger("insights.parsers")


def parse_jsonl_text(content: str, *, source: str = "") -> list[dict[str, Any]]:
    """Parse each non-blank line independently. Malformed lines are dropped."""
    records: list[dict[str, Any]] = []
    for line_no, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.debug("Skipping malformed line %s:%d (%s): %s", source, line_no, exc, line[:100])
            record_parser_failure("jsonl_line")
            continue
        if not isinstance(record, dict):
            logger.debug("Skipping non-object line %s:%d", source, line_no)
            continue
        records.append(record)
    return records


def read_jsonl(path: Path) -> list[dict[str, Any]] | None:
    """Read a JSON-lines file. Returns ``None`` when the file cannot be read."""
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Skipping unreadable file %s: %s", path, exc)
        record_parser_failure("jsonl_file")
        return None
    return parse_jsonl_text(content, source=str(path))


def walk_files(root: Path, matcher: Callable[[Path], bool]) -> list[Path]:
    """Recursively list files under `root` accepted by `matcher`, sorted.

    A missing root yields an empty list.
    """
    if not root.is_dir():
        return []
    results: list[Path] = []
    try:
        candidates = root.rglob("*")
        for path in candidates:
            try:
                if path.is_file() and matcher(path):
                    results.append(path)
            except OSError as exc:
                logger.warning("Skipping unreadable path %s: %s", path, exc)
    except OSError as exc:
        logger.warning("Failed walking %s: %s", root, exc)
    return sorted(results)
