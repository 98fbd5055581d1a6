"""Parse Claude Code JSONL session logs into Conversation models."""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any

from agent_insights import config
from agent_insights.date_utils import file_mtime
from agent_insights.models import Conversation, ContentItem, Message
from agent_insights.parsers.jsonl import read_jsonl
from agent_insights.parsers.normalize import (
    backfill_timestamps,
    coerce_content,
    placeholder_message,
)

logger = logging.getLogger("insights.parsers.claude")

PLATFORM = "claude"
SUBAGENTS_DIRNAME = "subagents"

_CONVERSATIONAL_TYPES = {"user", "assistant"}
# Record keys consumed into Message fields rather than preserved as extras.
_CONSUMED_KEYS = {"type", "timestamp", "content", "message"}


def _is_subagent_file(path: Path) -> bool:
    return path.parent.name == SUBAGENTS_DIRNAME


def _project_name(path: Path, is_subagent: bool) -> str:
    # <projects>/<project>/<session>.jsonl or <projects>/<project>/<session>/subagents/<agent>.jsonl
    project_dir = path.parents[2] if is_subagent else path.parent
    return project_dir.name or "unknown"


def _record_content(entry: dict[str, Any]) -> Any:
    message = entry.get("message")
    if isinstance(message, dict) and "content" in message:
        return coerce_content(message.get("content"))
    for key in ("content", "summary"):
        value = entry.get(key)
        if isinstance(value, str):
            return value
    return None


def _build_message(entry: dict[str, Any], timestamp: str) -> Message:
    record_type = str(entry.get("type") or "unknown")
    extras = {
        key: value
        for key, value in entry.items()
        if key not in _CONSUMED_KEYS and not key.startswith("_")
    }
    if record_type in _CONVERSATIONAL_TYPES:
        message_type = record_type
    else:
        message_type = "system"
        extras["recordType"] = record_type
    return Message(
        type=message_type,
        timestamp=timestamp,
        content=_record_content(entry),
        **extras,
    )


def parse_session_file(path: Path) -> Conversation | None:
    """Parse a single JSONL session log. Returns ``None`` when unreadable."""
    entries = read_jsonl(path)
    if entries is None:
        return None

    is_subagent = _is_subagent_file(path)
    fallback = file_mtime(path)
    timestamps = backfill_timestamps([entry.get("timestamp") for entry in entries], fallback)

    record_types: Counter[str] = Counter()
    item_types: Counter[str] = Counter()
    versions: set[str] = set()
    branches: set[str] = set()
    messages: list[Message] = []

    for entry, timestamp in zip(entries, timestamps):
        record_types[str(entry.get("type") or "unknown")] += 1
        version = entry.get("version")
        if isinstance(version, str) and version.strip():
            versions.add(version.strip())
        branch = entry.get("gitBranch")
        if isinstance(branch, str) and branch.strip():
            branches.add(branch.strip())

        message = _build_message(entry, timestamp)
        if isinstance(message.content, list):
            for item in message.content:
                if isinstance(item, ContentItem) and item.type:
                    item_types[item.type] += 1
        messages.append(message)

    if not messages:
        messages.append(placeholder_message(fallback))

    metadata: dict[str, Any] = {
        "recordTypeCounts": dict(record_types),
        "contentItemTypeCounts": dict(item_types),
        "cliVersions": sorted(versions),
        "gitBranches": sorted(branches),
    }

    parent_id: str | None = None
    conversation_id = path.stem
    if is_subagent:
        parent_id = path.parent.parent.name
        conversation_id = f"{parent_id}__{path.stem}"
        if path.stem.startswith("agent-"):
            metadata["agentId"] = path.stem.split("agent-", 1)[-1]

    return Conversation(
        conversationId=conversation_id,
        project=_project_name(path, is_subagent),
        platform=PLATFORM,
        sourceKind="subagent" if is_subagent else "main",
        parentConversationId=parent_id,
        path=str(path),
        metadata=metadata,
        messages=messages,
    )


def discover_files(projects_dir: Path) -> list[Path]:
    """List main session logs and their nested subagent runs, sorted."""
    files: list[Path] = []
    if not projects_dir.is_dir():
        return files

    for project_dir in sorted(p for p in projects_dir.iterdir() if p.is_dir()):
        try:
            files.extend(p for p in project_dir.glob("*.jsonl") if p.is_file())
            for session_dir in project_dir.iterdir():
                subagents_dir = session_dir / SUBAGENTS_DIRNAME
                if session_dir.is_dir() and subagents_dir.is_dir():
                    files.extend(p for p in subagents_dir.glob("*.jsonl") if p.is_file())
        except OSError as exc:
            logger.warning("Skipping unreadable project directory %s: %s", project_dir, exc)
    return sorted(files)


def scan_conversations(projects_dir: Path | None = None) -> list[Conversation]:
    """Parse every discoverable session under the projects directory.

    Main sessions come first, followed by subagent runs.
    """
    root = projects_dir or config.CLAUDE_PROJECTS_DIR
    conversations: list[Conversation] = []
    for path in discover_files(root):
        conversation = parse_session_file(path)
        if conversation:
            conversations.append(conversation)
    conversations.sort(key=lambda conv: conv.sourceKind == "subagent")
    return conversations


def read_history(history_file: Path | None = None) -> list[dict[str, Any]]:
    """Return raw prompt-history entries; a missing file yields an empty list."""
    path = history_file or config.CLAUDE_HISTORY_FILE
    if not path.is_file():
        logger.info("History file not found: %s", path)
        return []
    return read_jsonl(path) or []
