"""Parse Cursor agent transcripts (plain text) into Conversation models.

Transcripts are role blocks opened by bare ``user:`` / ``assistant:`` lines.
Assistant blocks may contain ``[Tool call] <name>`` and ``[Tool result]``
lines, which become tool invocations and are removed from the free text.
Transcripts carry no timestamps, so each emitted message gets the file
mtime plus a running millisecond offset.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from agent_insights import config
from agent_insights.date_utils import file_mtime, offset_timestamp
from agent_insights.models import Conversation, Message
from agent_insights.observability import record_parser_failure
from agent_insights.parsers.jsonl import walk_files
from agent_insights.parsers.normalize import (
    METADATA_ONLY_TRANSCRIPT,
    placeholder_message,
    tool_use_item,
)

logger = logging.getLogger("insights.parsers.cursor")

PLATFORM = "cursor"
TRANSCRIPTS_DIRNAME = "agent-transcripts"

_ROLE_SENTINELS = {"user:": "user", "assistant:": "assistant"}
_WRAPPER_TAG_PATTERN = re.compile(r"</?user_query>")
_TOOL_CALL_PATTERN = re.compile(r"\[Tool call\]\s*([A-Za-z0-9_.-]+)")
_TOOL_LINE_PREFIXES = ("[Tool call]", "[Tool result]")


@dataclass(frozen=True)
class TranscriptBlock:
    role: str
    text: str


def parse_transcript_blocks(content: str) -> list[TranscriptBlock]:
    """Split a transcript into role blocks. Text before the first sentinel is ignored."""
    blocks: list[TranscriptBlock] = []
    role: str | None = None
    buffer: list[str] = []

    def flush() -> None:
        if role is None:
            return
        text = "\n".join(buffer).strip()
        if text:
            blocks.append(TranscriptBlock(role=role, text=text))

    for line in content.split("\n"):
        sentinel = _ROLE_SENTINELS.get(line.strip())
        if sentinel:
            flush()
            role = sentinel
            buffer = []
            continue
        if role is not None:
            buffer.append(line)

    flush()
    return blocks


def normalize_block_text(text: str) -> str:
    return _WRAPPER_TAG_PATTERN.sub("", text).strip()


def extract_tool_calls(text: str) -> list[str]:
    return _TOOL_CALL_PATTERN.findall(text)


def strip_tool_lines(text: str) -> str:
    lines = [line for line in text.split("\n") if not line.lstrip().startswith(_TOOL_LINE_PREFIXES)]
    return "\n".join(lines).strip()


def _project_name(path: Path, projects_dir: Path) -> str:
    try:
        relative = path.relative_to(projects_dir)
    except ValueError:
        return "unknown"
    return relative.parts[0] if len(relative.parts) > 1 else "unknown"


def parse_transcript_file(path: Path, projects_dir: Path | None = None) -> Conversation | None:
    """Parse one transcript. Returns ``None`` when unreadable."""
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
        size = path.stat().st_size
    except OSError as exc:
        logger.warning("Skipping unreadable Cursor transcript %s: %s", path, exc)
        record_parser_failure("cursor_transcript")
        return None

    mtime = file_mtime(path)
    blocks = parse_transcript_blocks(content)
    messages: list[Message] = []
    tool_call_count = 0

    def emit(message_type: str, body) -> None:
        messages.append(Message(
            type=message_type,
            timestamp=offset_timestamp(mtime, len(messages)),
            content=body,
        ))

    for block in blocks:
        text = normalize_block_text(block.text)
        plain_text = strip_tool_lines(text)
        if plain_text:
            emit(block.role, plain_text)
        if block.role == "assistant":
            tool_names = extract_tool_calls(text)
            tool_call_count += len(tool_names)
            for name in tool_names:
                emit("assistant", [tool_use_item(name)])

    if not messages:
        messages.append(placeholder_message(mtime, METADATA_ONLY_TRANSCRIPT))

    return Conversation(
        conversationId=path.stem,
        project=_project_name(path, projects_dir or config.CURSOR_PROJECTS_DIR),
        platform=PLATFORM,
        sourceKind="main",
        path=str(path),
        metadata={
            "blockCount": len(blocks),
            "toolCallCount": tool_call_count,
            "fileSizeBytes": size,
        },
        messages=messages,
    )


def discover_files(projects_dir: Path) -> list[Path]:
    return walk_files(
        projects_dir,
        lambda p: p.suffix == ".txt" and TRANSCRIPTS_DIRNAME in p.parts,
    )


def scan_conversations(projects_dir: Path | None = None) -> list[Conversation]:
    root = projects_dir or config.CURSOR_PROJECTS_DIR
    conversations: list[Conversation] = []
    for path in discover_files(root):
        conversation = parse_transcript_file(path, root)
        if conversation:
            conversations.append(conversation)
    return conversations
